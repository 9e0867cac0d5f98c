"""API routes for rider statistics and economics."""

import logging

from fastapi import APIRouter, Query

from core.api import api_route
from trips.services.trip_economics_service import TripEconomicsService
from trips.services.trip_stats_service import TripStatsService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/trips/stats", tags=["Trips API"])
@api_route(logger)
async def get_trip_stats(
    user_id: str = Query(..., min_length=1),
    city_id: str | None = None,
):
    return await TripStatsService.get_user_stats(user_id, city_id)


@router.get("/api/trips/economics", tags=["Trips API"])
@api_route(logger)
async def get_trip_economics(
    user_id: str = Query(..., min_length=1),
    city_id: str | None = None,
    period: str | None = Query(None, pattern=r"^\d{4}-\d{2}$"),
):
    """Monthly membership vs pay-per-ride comparison and breakeven figures."""
    return await TripEconomicsService.get_user_economics(
        user_id,
        city_id=city_id,
        period=period,
    )
