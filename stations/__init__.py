"""Station-information feed client and lookup helpers."""

from stations.api import router
from stations.gbfs import (
    build_station_index,
    fetch_station_information,
    find_nearest_stations,
    get_station_index,
)

__all__ = [
    "build_station_index",
    "fetch_station_information",
    "find_nearest_stations",
    "get_station_index",
    "router",
]
