"""API routes for public trip dataset imports."""

import logging

from fastapi import APIRouter, Path, Query

from core.api import api_route
from trips.models import PublicImportRequest
from trips.services.public_trip_import_service import (
    PublicTripImportService,
    public_trip_import_service,
)

logger = logging.getLogger(__name__)
router = APIRouter()

MONTH_PATTERN = r"^\d{4}-\d{2}$"


@router.post("/api/public-trips", tags=["Public Data API"])
@api_route(logger)
async def import_public_trips(payload: PublicImportRequest):
    """Import a batch of converted public trip rows."""
    return await public_trip_import_service.import_trips(
        payload.trips,
        payload.dataset_month,
        city_id=payload.city_id,
    )


@router.get("/api/public-trips", tags=["Public Data API"])
@api_route(logger)
async def get_public_trip_stats():
    """Aggregate benchmark statistics over imported public trips."""
    return await PublicTripImportService.get_stats()


@router.get("/api/public-trips/{dataset_month}", tags=["Public Data API"])
@api_route(logger)
async def has_public_trips_for_month(
    dataset_month: str = Path(..., pattern=MONTH_PATTERN),
):
    has_data = await PublicTripImportService.has_data_for_month(dataset_month)
    return {"datasetMonth": dataset_month, "hasData": has_data}


@router.delete("/api/public-trips", tags=["Public Data API"])
@api_route(logger)
async def clear_public_trips(
    dataset_month: str | None = Query(None, pattern=MONTH_PATTERN),
):
    deleted = await PublicTripImportService.clear(dataset_month)
    return {"success": True, "deleted": deleted}
