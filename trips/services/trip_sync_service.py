"""
Account ride-history sync.

Pulls a rider's history page by page into the ``trips`` collection
(insert-only, so already-normalized trips are never overwritten), then
optionally enriches trips with per-ride details: the route polyline, real
start/end coordinates and the reported distance. Detail fetching backs off
exponentially while the provider rate-limits and gives up after three
consecutive rate-limited batches.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError
from pymongo import UpdateOne

from config import DETAILS_BATCH_SIZE, SYNC_MAX_PAGES
from core.casting import safe_float
from core.constants import METERS_PER_MILE
from core.date_utils import get_current_utc_time
from core.exceptions import (
    AuthenticationException,
    ExternalServiceException,
    RateLimitException,
)
from db.models import SyncMetadata, Trip
from trips.services.ride_history_client import (
    RideHistoryClient,
    extract_polyline,
    parse_history_page,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_RATE_LIMITED_BATCHES = 3
MAX_BACKOFF_SECONDS = 10.0

DETAILS_OK = "ok"
DETAILS_FAILED = "failed"
DETAILS_RATE_LIMITED = "rate_limited"


def build_details_update(
    trip: dict[str, Any],
    details: dict[str, Any],
) -> dict[str, Any]:
    """Fields to ``$set`` on a trip from a ride-details response."""
    updates: dict[str, Any] = {
        "detailsFetched": True,
        "detailsFetchedAt": get_current_utc_time(),
        # New coordinates invalidate any earlier normalization.
        "normalized": False,
    }

    for prefix, key in (("start", "start_address"), ("end", "end_address")):
        address = details.get(key)
        if not isinstance(address, dict):
            continue
        updates[f"{prefix}StationName"] = address.get("address") or trip.get(
            f"{prefix}StationName"
        )
        updates[f"{prefix}Lat"] = safe_float(address.get("lat"), 0.0) or trip.get(
            f"{prefix}Lat", 0.0
        )
        updates[f"{prefix}Lon"] = safe_float(address.get("lng"), 0.0) or trip.get(
            f"{prefix}Lon", 0.0
        )

    polyline = extract_polyline(details.get("map_image_url"))
    if polyline:
        updates["polyline"] = polyline
        updates["hasActualCoordinates"] = True

    distance = details.get("distance")
    miles = safe_float(distance.get("value"), 0.0) if isinstance(distance, dict) else 0.0
    if miles > 0:
        updates["distance"] = round(miles * METERS_PER_MILE)
        updates["hasActualCoordinates"] = True

    return updates


class TripSyncService:
    """Syncs ride history and ride details for one rider."""

    def __init__(
        self,
        *,
        client_factory: Callable[[str], RideHistoryClient] = RideHistoryClient,
        max_pages: int = SYNC_MAX_PAGES,
        details_batch_size: int = DETAILS_BATCH_SIZE,
        details_delay_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client_factory = client_factory
        self.max_pages = max_pages
        self.details_batch_size = max(1, details_batch_size)
        self.details_delay_seconds = details_delay_seconds
        self._sleep = sleep

    @staticmethod
    async def _get_metadata(user_id: str) -> SyncMetadata:
        meta = await SyncMetadata.find_one(SyncMetadata.userId == user_id)
        if meta is None:
            meta = SyncMetadata(userId=user_id)
            await meta.insert()
        return meta

    @staticmethod
    def _insert_operation(user_id: str, city_id: str | None, trip: dict[str, Any]):
        doc = {
            **trip,
            "userId": user_id,
            "cityId": city_id,
            "hasActualCoordinates": False,
            "normalized": False,
            "detailsFetched": False,
            "detailsFetchAttempts": 0,
            "createdAt": get_current_utc_time(),
        }
        return UpdateOne(
            {"userId": user_id, "rideId": trip["rideId"]},
            {"$setOnInsert": doc},
            upsert=True,
        )

    async def sync_trips(
        self,
        user_id: str,
        access_token: str,
        *,
        city_id: str | None = None,
        fetch_details: bool = True,
    ) -> dict[str, Any]:
        """
        Pull the rider's ride history into storage.

        Starts from the stored cursor when the previous sync stopped early.
        Existing trips are left untouched.

        Raises:
            AuthenticationException: If the credential is rejected.
            ExternalServiceException: If the provider keeps failing.
        """
        client = self._client_factory(access_token)
        meta = await self._get_metadata(user_id)
        meta.status = "syncing"
        meta.lastError = None
        meta.updatedAt = get_current_utc_time()
        await meta.save()

        collection = Trip.get_motor_collection()
        cursor = meta.nextPageStartTime
        pages = 0
        fetched = 0
        inserted = 0
        has_more = True

        try:
            while has_more:
                pages += 1
                payload = await client.fetch_history_page(cursor)
                trips, has_more, next_cursor = parse_history_page(payload)

                if trips:
                    result = await collection.bulk_write(
                        [self._insert_operation(user_id, city_id, t) for t in trips],
                        ordered=False,
                    )
                    fetched += len(trips)
                    inserted += result.upserted_count
                    logger.debug(
                        "Synced page %d for %s: %d trips", pages, user_id, len(trips)
                    )

                cursor = next_cursor
                if has_more and cursor is None:
                    logger.warning("Ride history reported more pages without a cursor")
                    has_more = False
                if has_more and pages >= self.max_pages:
                    logger.warning(
                        "Reached page limit (%d) syncing %s; stopping", pages, user_id
                    )
                    break
        except Exception as e:
            meta.status = "error"
            meta.lastError = getattr(e, "message", None) or str(e)
            meta.updatedAt = get_current_utc_time()
            await meta.save()
            logger.warning("Ride history sync failed for %s: %s", user_id, meta.lastError)
            raise

        now = get_current_utc_time()
        newest = await Trip.find(Trip.userId == user_id).sort("-startTime").first_or_none()
        meta.status = "idle"
        meta.lastSyncedAt = now
        meta.updatedAt = now
        meta.nextPageStartTime = cursor if has_more else None
        meta.totalTrips = await Trip.find(Trip.userId == user_id).count()
        meta.newestTripTime = newest.startTime if newest else None
        await meta.save()

        logger.info(
            "Ride history sync for %s: %d fetched, %d new over %d pages",
            user_id,
            fetched,
            inserted,
            pages,
        )

        summary: dict[str, Any] = {
            "totalSynced": fetched,
            "inserted": inserted,
            "pages": pages,
            "hasMore": has_more,
        }
        if fetch_details:
            summary["details"] = await self.sync_trip_details(user_id, client)
        return summary

    @staticmethod
    def _details_query(user_id: str) -> dict[str, Any]:
        return {
            "userId": user_id,
            "detailsFetched": {"$ne": True},
            "$or": [
                {"polyline": None},
                {"hasActualCoordinates": {"$ne": True}},
                {"startLat": 0},
                {"startLon": 0},
                {"endLat": 0},
                {"endLon": 0},
            ],
        }

    async def _record_details_failure(self, trip: dict[str, Any], code: str) -> None:
        await Trip.get_motor_collection().update_one(
            {"_id": trip["_id"]},
            {
                "$set": {"detailsFetchError": code, "detailsFetched": False},
                "$inc": {"detailsFetchAttempts": 1},
            },
        )

    async def _fetch_details(
        self,
        client: RideHistoryClient,
        trip: dict[str, Any],
    ) -> str:
        ride_id = trip["rideId"]
        try:
            payload = await client.fetch_trip_details(ride_id)
        except RateLimitException:
            await self._record_details_failure(trip, "RATE_LIMITED")
            return DETAILS_RATE_LIMITED
        except AuthenticationException:
            raise
        except ExternalServiceException as e:
            status = e.details.get("status")
            await self._record_details_failure(trip, f"HTTP_{status or 'ERROR'}")
            logger.warning("Ride details for %s failed: %s", ride_id, e.message)
            return DETAILS_FAILED
        except (ClientError, TimeoutError) as e:
            await self._record_details_failure(trip, "NETWORK_ERROR")
            logger.warning("Ride details for %s failed: %s", ride_id, e)
            return DETAILS_FAILED

        details = payload.get("trip") if isinstance(payload.get("trip"), dict) else payload
        if not details:
            await self._record_details_failure(trip, "INVALID_RESPONSE")
            return DETAILS_FAILED

        await Trip.get_motor_collection().update_one(
            {"_id": trip["_id"]},
            {
                "$set": build_details_update(trip, details),
                "$unset": {"detailsFetchError": ""},
            },
        )
        return DETAILS_OK

    async def sync_trip_details(
        self,
        user_id: str,
        client: RideHistoryClient,
        *,
        max_trips: int | None = None,
    ) -> dict[str, Any]:
        """Fetch details for trips still missing a route or coordinates."""
        cursor = Trip.get_motor_collection().find(self._details_query(user_id))
        if max_trips:
            cursor = cursor.limit(max_trips)
        pending = await cursor.to_list(length=max_trips)

        total = len(pending)
        fetched = 0
        failed = 0
        consecutive_rate_limited = 0
        delay = self.details_delay_seconds
        stopped = False

        for offset in range(0, total, self.details_batch_size):
            if consecutive_rate_limited >= MAX_CONSECUTIVE_RATE_LIMITED_BATCHES:
                stopped = True
                logger.warning(
                    "Provider is rate limiting (%d batches in a row); "
                    "stopping details sync for %s",
                    consecutive_rate_limited,
                    user_id,
                )
                break

            batch = pending[offset : offset + self.details_batch_size]
            outcomes = await asyncio.gather(
                *(self._fetch_details(client, trip) for trip in batch),
            )
            fetched += outcomes.count(DETAILS_OK)
            failed += len(outcomes) - outcomes.count(DETAILS_OK)

            if DETAILS_RATE_LIMITED in outcomes:
                consecutive_rate_limited += 1
                delay = min(max(delay, 0.1) * 2, MAX_BACKOFF_SECONDS)
                logger.warning("Rate limited; backing off to %.1fs", delay)
            else:
                consecutive_rate_limited = 0
                delay = self.details_delay_seconds

            if offset + self.details_batch_size < total:
                await self._sleep(delay)

        logger.info(
            "Ride details sync for %s: %d fetched, %d failed of %d",
            user_id,
            fetched,
            failed,
            total,
        )
        return {
            "fetched": fetched,
            "failed": failed,
            "skipped": total - fetched - failed,
            "stoppedForRateLimit": stopped,
        }


trip_sync_service = TripSyncService()
