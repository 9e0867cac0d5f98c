"""API routes for trip normalization."""

import logging

from fastapi import APIRouter, Query

from core.api import api_route
from trips.models import NormalizationResult, NormalizationStatus, NormalizeRequest
from trips.services.trip_normalization_service import (
    TripNormalizationService,
    trip_normalization_service,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/api/trips/normalize/status",
    response_model=NormalizationStatus,
    tags=["Trips API"],
)
@api_route(logger)
async def get_normalization_status(user_id: str = Query(..., min_length=1)):
    """Counts of normalized, pending and failed trips for a rider."""
    return await TripNormalizationService.get_status(user_id)


@router.post(
    "/api/trips/normalize",
    response_model=NormalizationResult,
    tags=["Trips API"],
)
@api_route(logger)
async def normalize_trips(payload: NormalizeRequest):
    """Normalize every pending trip for a rider."""
    return await trip_normalization_service.normalize_user_trips(
        payload.user_id,
        city_id=payload.city_id,
        hourly_rate=payload.hourly_rate,
        retry_failed=payload.retry_failed,
        limit=payload.limit,
    )
