"""API routes for station information."""

import logging

from fastapi import APIRouter, Query

from config import DEFAULT_CITY_ID
from core.api import api_route
from core.exceptions import ValidationException
from core.spatial import GeometryService
from stations.gbfs import (
    build_station_index,
    fetch_station_information,
    find_nearest_stations,
    refresh_station_information,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/stations/info", tags=["Stations API"])
@api_route(logger)
async def get_station_information(city_id: str = Query(DEFAULT_CITY_ID)):
    stations = await fetch_station_information(city_id)
    return {"status": "success", "city_id": city_id, "stations": stations}


@router.get("/api/stations/nearest", tags=["Stations API"])
@api_route(logger)
async def get_nearest_stations(
    lat: float,
    lon: float,
    city_id: str = Query(DEFAULT_CITY_ID),
    limit: int = Query(5, ge=1, le=50),
):
    if not GeometryService.validate_coordinate_pair(lat, lon)[0]:
        msg = "lat/lon out of range"
        raise ValidationException(msg)
    index = build_station_index(await fetch_station_information(city_id))
    return {
        "status": "success",
        "stations": find_nearest_stations(index, lat, lon, limit),
    }


@router.post("/api/stations/refresh", tags=["Stations API"])
@api_route(logger)
async def refresh_stations(city_id: str = Query(DEFAULT_CITY_ID)):
    stations = await refresh_station_information(city_id)
    return {"status": "success", "city_id": city_id, "count": len(stations)}
