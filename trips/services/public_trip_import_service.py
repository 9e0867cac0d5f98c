"""
Public trip dataset import.

Loads converted public trip datasets (one JSON object per ride) into the
``public_trips`` collection for benchmarking a rider against the system
as a whole. Rows are upserted by ``rideId`` so re-importing a month is safe.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from pymongo import ReplaceOne
from pymongo.errors import PyMongoError

from config import DEFAULT_CITY_ID, PUBLIC_IMPORT_BATCH_SIZE, get_city_config
from core.casting import safe_float
from core.constants import METERS_PER_MILE
from core.date_utils import get_current_utc_time, parse_timestamp
from core.exceptions import MalformedInputException
from core.spatial import GeometryService
from db.models import PublicTrip
from trip_normalizer.classifier import classify_trip
from trip_normalizer.models import BikeType, coerce_bike_type
from trips.models import PublicTripRecord

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

logger = logging.getLogger(__name__)


def prepare_public_trip(
    record: dict[str, Any],
    dataset_month: str,
    *,
    city_id: str,
    tz_name: str | None,
    imported_at: datetime,
) -> dict[str, Any]:
    """
    Turn one dataset row into a ``public_trips`` document.

    Missing duration and distance are derived from the timestamps and the
    station coordinates.

    Raises:
        MalformedInputException: When the row lacks a ride id or has
            unusable timestamps.
    """
    try:
        row = PublicTripRecord.model_validate(record)
    except ValidationError as e:
        msg = f"Invalid public trip row: {e.error_count()} error(s)"
        raise MalformedInputException(msg) from e

    start = parse_timestamp(row.startTime)
    end = parse_timestamp(row.endTime)
    duration = safe_float(row.duration, None)
    if duration is None and start is not None and end is not None:
        duration = (end - start).total_seconds()
    if duration is None or duration < 0:
        msg = f"Public trip {row.rideId} has no usable duration"
        raise MalformedInputException(msg, {"rideId": row.rideId})

    start_lat = safe_float(row.startLat, 0.0)
    start_lon = safe_float(row.startLon, 0.0)
    end_lat = safe_float(row.endLat, 0.0)
    end_lon = safe_float(row.endLon, 0.0)

    distance = safe_float(row.distance, 0.0)
    if distance <= 0 and (
        GeometryService.is_known_coordinate(start_lat, start_lon)
        and GeometryService.is_known_coordinate(end_lat, end_lon)
    ):
        distance = GeometryService.haversine_distance(
            start_lat, start_lon, end_lat, end_lon
        )
    distance = max(distance, 0.0)

    bike_type = coerce_bike_type(row.bikeType)
    category = None
    if start is not None:
        category = classify_trip(
            distance, duration, start, tz_name=tz_name
        ).model_dump(mode="json")

    return {
        "rideId": row.rideId,
        "datasetMonth": dataset_month,
        "cityId": city_id,
        "bikeType": bike_type.value if bike_type else None,
        "memberType": row.memberType.strip().lower() if row.memberType else None,
        "startTime": start,
        "endTime": end,
        "duration": duration,
        "distance": distance,
        "startStationId": row.startStationId,
        "startStationName": row.startStationName,
        "startLat": start_lat,
        "startLon": start_lon,
        "endStationId": row.endStationId,
        "endStationName": row.endStationName,
        "endLat": end_lat,
        "endLon": end_lon,
        "category": category,
        "importedAt": imported_at,
    }


class PublicTripImportService:
    """Batch import and benchmark statistics for public trip datasets."""

    def __init__(self, batch_size: int = PUBLIC_IMPORT_BATCH_SIZE) -> None:
        self.batch_size = max(1, batch_size)

    async def import_trips(
        self,
        records: list[dict[str, Any]],
        dataset_month: str,
        *,
        city_id: str | None = None,
        progress_callback: Callable[[int, int], Awaitable[None] | None] | None = None,
    ) -> dict[str, Any]:
        """
        Upsert dataset rows in batches.

        Rows that cannot be interpreted are counted as ``skipped``; rows in a
        batch whose write fails are counted as ``errors``. One failed batch
        does not stop the import.
        """
        city = get_city_config(city_id or DEFAULT_CITY_ID)
        collection = PublicTrip.get_motor_collection()
        total = len(records)
        imported = 0
        skipped = 0
        errors = 0
        now = get_current_utc_time()

        for offset in range(0, total, self.batch_size):
            batch = records[offset : offset + self.batch_size]
            operations = []
            for record in batch:
                try:
                    doc = prepare_public_trip(
                        record,
                        dataset_month,
                        city_id=city["id"],
                        tz_name=city["timezone"],
                        imported_at=now,
                    )
                except MalformedInputException as e:
                    skipped += 1
                    logger.debug("Skipping public trip row: %s", e.message)
                    continue
                operations.append(
                    ReplaceOne({"rideId": doc["rideId"]}, doc, upsert=True)
                )

            if operations:
                try:
                    await collection.bulk_write(operations, ordered=False)
                except PyMongoError:
                    errors += len(operations)
                    logger.warning(
                        "Public trip batch at offset %d failed",
                        offset,
                        exc_info=True,
                    )
                else:
                    imported += len(operations)

            if progress_callback is not None:
                outcome = progress_callback(min(offset + len(batch), total), total)
                if inspect.isawaitable(outcome):
                    await outcome

        message = f"Imported {imported} public trips from {dataset_month}"
        logger.info("%s (%d skipped, %d errors)", message, skipped, errors)
        return {
            "success": errors == 0,
            "imported": imported,
            "skipped": skipped,
            "errors": errors,
            "datasetMonth": dataset_month,
            "message": message,
        }

    @staticmethod
    async def get_stats() -> dict[str, Any]:
        collection = PublicTrip.get_motor_collection()
        total = await collection.count_documents({})
        if total == 0:
            return {"totalTrips": 0, "hasData": False}

        months: set[str] = set()
        bikes = {BikeType.CLASSIC.value: 0, BikeType.EBIKE.value: 0}
        members = {"member": 0, "casual": 0}
        duration_sum = 0.0
        distance_sum = 0.0

        projection = {
            "datasetMonth": 1,
            "bikeType": 1,
            "memberType": 1,
            "duration": 1,
            "distance": 1,
        }
        async for doc in collection.find({}, projection):
            if doc.get("datasetMonth"):
                months.add(doc["datasetMonth"])
            bike = doc.get("bikeType")
            if bike in bikes:
                bikes[bike] += 1
            member = doc.get("memberType")
            if member in members:
                members[member] += 1
            duration_sum += safe_float(doc.get("duration"), 0.0)
            distance_sum += safe_float(doc.get("distance"), 0.0)

        avg_duration = duration_sum / total
        avg_distance = distance_sum / total
        return {
            "totalTrips": total,
            "hasData": True,
            "datasetMonths": sorted(months),
            "bikeTypes": {
                "ebike": bikes[BikeType.EBIKE.value],
                "classic": bikes[BikeType.CLASSIC.value],
                "ebikePercent": bikes[BikeType.EBIKE.value] / total * 100,
                "classicPercent": bikes[BikeType.CLASSIC.value] / total * 100,
            },
            "memberTypes": {
                "member": members["member"],
                "casual": members["casual"],
                "memberPercent": members["member"] / total * 100,
                "casualPercent": members["casual"] / total * 100,
            },
            "averages": {
                "duration": avg_duration,
                "distance": avg_distance,
                "durationMinutes": avg_duration / 60,
                "distanceMiles": avg_distance / METERS_PER_MILE,
            },
        }

    @staticmethod
    async def clear(dataset_month: str | None = None) -> int:
        query = {"datasetMonth": dataset_month} if dataset_month else {}
        result = await PublicTrip.get_motor_collection().delete_many(query)
        logger.info("Cleared %d public trips", result.deleted_count)
        return result.deleted_count

    @staticmethod
    async def has_data_for_month(dataset_month: str) -> bool:
        count = await PublicTrip.get_motor_collection().count_documents(
            {"datasetMonth": dataset_month},
        )
        return count > 0


public_trip_import_service = PublicTripImportService()
