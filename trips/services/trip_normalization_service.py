"""
Batch normalization runner.

Feeds a user's unnormalized trips through the pure normalizer in fixed-size
batches. Each batch is written with one unordered ``bulk_write``. That is not
a transaction: a crash mid-write can leave part of a batch applied, and since
every patch is idempotent, re-running simply picks up the rest. A record that
fails is marked with ``normalizationError`` and skipped, never retried
automatically. If the station feed is unavailable the run aborts before
anything is written.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from typing import TYPE_CHECKING, Any

from pymongo import UpdateOne

from config import (
    DEFAULT_CITY_ID,
    DEFAULT_HOURLY_RATE,
    NORMALIZATION_BATCH_PAUSE_SECONDS,
    NORMALIZATION_BATCH_SIZE,
    get_normalization_settings,
)
from core.date_utils import get_current_utc_time
from core.exceptions import (
    ExternalServiceException,
    MalformedInputError,
    ValidationException,
)
from db.models import Trip
from stations.gbfs import get_station_index
from trip_normalizer.processor import TripNormalizer
from trips.models import NormalizationProgress, NormalizationResult, NormalizationStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from datetime import datetime

    from trip_normalizer.models import MinimalStation
    from trip_normalizer.settings import NormalizationSettings

    ProgressCallback = Callable[[NormalizationProgress], Awaitable[None] | None]
    StationIndexLoader = Callable[[str], Awaitable[dict[str, MinimalStation]]]

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 50


def _failure_operation(
    doc: dict[str, Any],
    error: str,
    now: datetime,
    result: NormalizationResult,
) -> UpdateOne:
    """Record a failed trip so later runs skip it until retried explicitly."""
    result.failed += 1
    if len(result.errors) < MAX_REPORTED_ERRORS:
        result.errors.append({"rideId": doc.get("rideId"), "error": error})
    return UpdateOne(
        {"_id": doc["_id"]},
        {"$set": {"normalizationError": error, "normalizationFailedAt": now}},
    )


class TripNormalizationService:
    """Runs normalization over stored trips for one user at a time."""

    def __init__(
        self,
        *,
        station_index_loader: StationIndexLoader | None = None,
        batch_size: int = NORMALIZATION_BATCH_SIZE,
        batch_pause_seconds: float = NORMALIZATION_BATCH_PAUSE_SECONDS,
    ) -> None:
        self._load_station_index = station_index_loader or get_station_index
        self.batch_size = max(1, batch_size)
        self.batch_pause_seconds = max(0.0, batch_pause_seconds)

    @staticmethod
    def pending_query(user_id: str, *, retry_failed: bool = False) -> dict[str, Any]:
        query: dict[str, Any] = {"userId": user_id, "normalized": {"$ne": True}}
        if not retry_failed:
            query["normalizationError"] = None
        return query

    @staticmethod
    async def get_status(user_id: str) -> NormalizationStatus:
        collection = Trip.get_motor_collection()
        total = await collection.count_documents({"userId": user_id})
        normalized = await collection.count_documents(
            {"userId": user_id, "normalized": True},
        )
        failed = await collection.count_documents(
            {
                "userId": user_id,
                "normalized": {"$ne": True},
                "normalizationError": {"$ne": None},
            },
        )
        return NormalizationStatus(
            totalTrips=total,
            normalizedTrips=normalized,
            toNormalize=max(total - normalized - failed, 0),
            failedTrips=failed,
        )

    async def _resolve_station_index(self, city_id: str) -> dict[str, MinimalStation]:
        try:
            return await self._load_station_index(city_id)
        except ExternalServiceException as e:
            # Trips normalized without stations would never be resolved later.
            logger.error(
                "Station feed unavailable for %s; aborting normalization: %s",
                city_id,
                e.message,
            )
            raise

    @staticmethod
    async def _report(
        callback: ProgressCallback | None,
        progress: NormalizationProgress,
    ) -> None:
        if callback is None:
            return
        outcome = callback(progress)
        if inspect.isawaitable(outcome):
            await outcome

    async def normalize_user_trips(
        self,
        user_id: str,
        *,
        city_id: str | None = None,
        hourly_rate: float | None = None,
        retry_failed: bool = False,
        limit: int | None = None,
        settings: NormalizationSettings | None = None,
        station_index: Mapping[str, MinimalStation] | None = None,
        progress_callback: ProgressCallback | None = None,
        should_continue: Callable[[], bool] | None = None,
    ) -> NormalizationResult:
        """
        Normalize every pending trip for ``user_id``.

        Args:
            user_id: Owner of the trips.
            city_id: City whose timezone and station feed apply.
            hourly_rate: Rider's value of time; defaults to configuration.
            retry_failed: Also reprocess trips that previously failed.
            limit: Stop after this many trips.
            settings: Override the configured normalization settings.
            station_index: Use this index instead of loading the city feed.
            progress_callback: Called (sync or async) after every batch.
            should_continue: Checked between batches; returning False stops
                the run cleanly.

        Returns:
            Counts for the run.

        Raises:
            ValidationException: If ``hourly_rate`` is negative or not finite.
            ExternalServiceException: If the city's station feed cannot be
                loaded; no trip is touched.
        """
        city = city_id or DEFAULT_CITY_ID
        settings = settings or get_normalization_settings(city)
        rate = DEFAULT_HOURLY_RATE if hourly_rate is None else hourly_rate
        if not math.isfinite(rate) or rate < 0:
            msg = "hourly_rate must be a finite, non-negative number"
            raise ValidationException(msg, {"hourly_rate": hourly_rate})
        result = NormalizationResult()

        missing = settings.pricing.missing_fields()
        if missing:
            result.missingPricingFields = missing
            logger.warning(
                "Pricing plan is missing %s; affected trips will be treated as free",
                ", ".join(missing),
            )

        if station_index is None:
            station_index = await self._resolve_station_index(city)

        normalizer = TripNormalizer(settings)
        collection = Trip.get_motor_collection()
        query = self.pending_query(user_id, retry_failed=retry_failed)
        total = await collection.count_documents(query)
        if limit is not None:
            total = min(total, limit)

        logger.info(
            "Normalizing %d trips for user %s (batch size %d)",
            total,
            user_id,
            self.batch_size,
        )

        last_id = None
        while result.processed < total:
            if should_continue is not None and not should_continue():
                result.cancelled = True
                logger.info(
                    "Normalization for user %s cancelled after %d trips",
                    user_id,
                    result.processed,
                )
                break

            batch_query = dict(query)
            if last_id is not None:
                batch_query["_id"] = {"$gt": last_id}
            size = min(self.batch_size, total - result.processed)
            docs = (
                await collection.find(batch_query)
                .sort("_id", 1)
                .limit(size)
                .to_list(length=size)
            )
            if not docs:
                break
            last_id = docs[-1]["_id"]

            operations = self._build_operations(docs, normalizer, station_index, rate, result)
            await collection.bulk_write(operations, ordered=False)
            result.batches += 1

            await self._report(
                progress_callback,
                NormalizationProgress(
                    processed=result.processed,
                    total=total,
                    normalized=result.normalized,
                    failed=result.failed,
                ),
            )
            logger.debug(
                "Batch %d committed (%d/%d)", result.batches, result.processed, total
            )
            if result.processed < total:
                await asyncio.sleep(self.batch_pause_seconds)

        logger.info(
            "Normalization for user %s finished: %d normalized, %d failed",
            user_id,
            result.normalized,
            result.failed,
        )
        return result

    @staticmethod
    def _build_operations(
        docs: list[dict[str, Any]],
        normalizer: TripNormalizer,
        station_index: Mapping[str, MinimalStation],
        hourly_rate: float,
        result: NormalizationResult,
    ) -> list[UpdateOne]:
        now = get_current_utc_time()
        operations: list[UpdateOne] = []
        for doc in docs:
            result.processed += 1
            try:
                patch = normalizer.normalize(doc, station_index, hourly_rate)
            except MalformedInputError as e:
                logger.warning("Skipping trip %s: %s", doc.get("rideId"), e.message)
                operations.append(_failure_operation(doc, e.message, now, result))
                continue
            except Exception as e:
                logger.exception("Unexpected error normalizing trip %s", doc.get("rideId"))
                error = f"Unexpected error: {type(e).__name__}: {e}"
                operations.append(_failure_operation(doc, error, now, result))
                continue

            result.normalized += 1
            operations.append(
                UpdateOne(
                    {"_id": doc["_id"]},
                    {
                        "$set": {**patch, "normalizedAt": now},
                        "$unset": {"normalizationError": "", "normalizationFailedAt": ""},
                    },
                ),
            )
        return operations


trip_normalization_service = TripNormalizationService()
