"""
Station resolution.

Maps a trip's raw station reference onto the station-information index:
exact id match first, then proximity to a real GPS fix, otherwise the raw
reference is returned untouched. A miss is an expected outcome, not an error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.constants import UNKNOWN_STATION_NAME
from core.spatial import GeometryService
from trip_normalizer.models import MinimalStation, StationResolution

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_PROXIMITY_METERS = 50.0

# Rough meters per degree of latitude; only used to skip far-away candidates.
_METERS_PER_DEGREE = 111_000.0


def is_placeholder_name(name: str | None) -> bool:
    return name is None or not name.strip() or name.strip() == UNKNOWN_STATION_NAME


def find_nearest_station(
    lat: float,
    lon: float,
    station_index: Mapping[str, MinimalStation],
    max_distance_meters: float,
) -> tuple[MinimalStation, float] | None:
    """
    Return the closest indexed station within ``max_distance_meters``.

    Ties on distance go to the lowest station id so the answer does not
    depend on index ordering.
    """
    lat_window = max_distance_meters / _METERS_PER_DEGREE
    best: tuple[float, str, MinimalStation] | None = None

    for station in station_index.values():
        if abs(station.lat - lat) > lat_window:
            continue
        distance = GeometryService.haversine_distance(
            lat, lon, station.lat, station.lon
        )
        if distance > max_distance_meters:
            continue
        candidate = (distance, station.id, station)
        if best is None or candidate[:2] < best[:2]:
            best = candidate

    if best is None:
        return None
    return best[2], best[0]


def resolve_station(
    raw_name: str | None,
    raw_id: str | None,
    lat: float,
    lon: float,
    station_index: Mapping[str, MinimalStation],
    *,
    proximity_meters: float = DEFAULT_PROXIMITY_METERS,
) -> StationResolution:
    """
    Resolve one end of a trip against the station index.

    Args:
        raw_name: Station name as recorded, possibly ``"Unknown"`` or empty.
        raw_id: Station id as recorded, if any.
        lat: Recorded latitude (``0`` when unknown).
        lon: Recorded longitude (``0`` when unknown).
        station_index: Stations keyed by id.
        proximity_meters: Maximum distance for a coordinate match.

    Returns:
        The resolved name and coordinates. On a proximity match the recorded
        coordinates are kept and only the name comes from the index.
    """
    if raw_id:
        station = station_index.get(raw_id)
        if station is not None:
            return StationResolution(
                name=station.name,
                lat=station.lat,
                lon=station.lon,
                resolved=True,
            )

    if GeometryService.is_known_coordinate(lat, lon) and station_index:
        match = find_nearest_station(lat, lon, station_index, proximity_meters)
        if match is not None:
            station, distance = match
            logger.debug(
                "Matched (%s, %s) to station %s at %.1fm",
                lat,
                lon,
                station.id,
                distance,
            )
            return StationResolution(
                name=station.name,
                lat=lat,
                lon=lon,
                resolved=True,
            )

    logger.debug("No station match for id=%s name=%s", raw_id, raw_name)
    return StationResolution(name=raw_name, lat=lat, lon=lon, resolved=False)
