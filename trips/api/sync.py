"""API routes for ride-history sync."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Header, Query

from core.api import api_route
from core.exceptions import AuthenticationException
from db.models import SyncMetadata
from trips.models import SyncRequest
from trips.services.trip_sync_service import trip_sync_service

logger = logging.getLogger(__name__)
router = APIRouter()


def bearer_token(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer`` header."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        msg = "Missing or invalid Authorization header"
        raise AuthenticationException(msg)
    return token.strip()


@router.get("/api/trips/sync/status", tags=["Trips API"])
@api_route(logger)
async def get_sync_status(user_id: str = Query(..., min_length=1)):
    meta = await SyncMetadata.find_one(SyncMetadata.userId == user_id)
    if meta is None:
        return {"userId": user_id, "status": "never_synced"}
    return meta.model_dump(exclude={"id", "revision_id"})


@router.post("/api/trips/sync", tags=["Trips API"])
@api_route(logger)
async def sync_trips(
    payload: SyncRequest,
    authorization: Annotated[str | None, Header()] = None,
):
    """Pull the rider's ride history using their provider credential."""
    token = bearer_token(authorization)
    result = await trip_sync_service.sync_trips(
        payload.user_id,
        token,
        city_id=payload.city_id,
        fetch_details=payload.fetch_details,
    )
    return {"success": True, **result}
