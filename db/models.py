"""Beanie ODM document models for MongoDB collections.

Usage:
    from db.models import Trip

    pending = await Trip.find(
        Trip.userId == "u1",
        Trip.normalized == False,
    ).to_list()
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from beanie import Document, Indexed
from pydantic import ConfigDict, Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from core.date_utils import get_current_utc_time, parse_timestamp


class Trip(Document):
    """A rider's trip, raw as synced and enriched once normalized."""

    model_config = ConfigDict(extra="allow")

    rideId: str
    userId: str
    cityId: str | None = None
    startTime: datetime | None = None
    endTime: datetime | None = None
    duration: float | None = None
    distance: float | None = None

    startStationId: str | None = None
    startStationName: str | None = None
    startLat: float = 0.0
    startLon: float = 0.0
    endStationId: str | None = None
    endStationName: str | None = None
    endLat: float = 0.0
    endLon: float = 0.0

    bikeType: str | None = None
    polyline: str | None = None
    hasActualCoordinates: bool = False
    providerCostCents: int | None = None

    # Derived by normalization
    distanceSource: str | None = None
    startStationResolved: bool | None = None
    endStationResolved: bool | None = None
    category: dict[str, Any] | None = None
    cost: int | None = None
    costCapped: bool | None = None
    transitAlternative: dict[str, Any] | None = None
    timeSavedSeconds: int | None = None
    timeValueCents: int | None = None
    costDeltaCents: int | None = None
    netValueCents: int | None = None
    healthValueCents: int | None = None
    co2SavedGrams: int | None = None
    suitabilityScore: int | None = None
    suitabilityBand: str | None = None
    recommendedMode: str | None = None
    normalized: bool = False
    normalizedAt: datetime | None = None
    normalizationError: str | None = None
    normalizationFailedAt: datetime | None = None

    # Detail-sync bookkeeping
    detailsFetched: bool = False
    detailsFetchedAt: datetime | None = None
    detailsFetchError: str | None = None
    detailsFetchAttempts: int = 0

    createdAt: datetime = Field(default_factory=get_current_utc_time)

    @field_validator(
        "startTime",
        "endTime",
        "normalizedAt",
        "normalizationFailedAt",
        "detailsFetchedAt",
        mode="before",
    )
    @classmethod
    def parse_datetime_fields(cls, v: Any) -> datetime | None:
        if v is None:
            return None
        return parse_timestamp(v)

    class Settings:
        name = "trips"
        indexes = [
            IndexModel(
                [("userId", ASCENDING), ("rideId", ASCENDING)],
                name="trips_user_ride_unique_idx",
                unique=True,
            ),
            IndexModel(
                [("userId", ASCENDING), ("normalized", ASCENDING)],
                name="trips_user_normalized_idx",
            ),
            IndexModel(
                [("userId", ASCENDING), ("startTime", DESCENDING)],
                name="trips_user_startTime_desc_idx",
            ),
        ]


class PublicTrip(Document):
    """A trip row imported from a public system dataset, used for benchmarks."""

    rideId: Indexed(str, unique=True)
    datasetMonth: Indexed(str)
    cityId: str | None = None
    bikeType: str | None = None
    memberType: str | None = None
    startTime: datetime | None = None
    endTime: datetime | None = None
    duration: float | None = None
    distance: float | None = None
    startStationId: str | None = None
    startStationName: str | None = None
    startLat: float = 0.0
    startLon: float = 0.0
    endStationId: str | None = None
    endStationName: str | None = None
    endLat: float = 0.0
    endLon: float = 0.0
    category: dict[str, Any] | None = None
    importedAt: datetime = Field(default_factory=get_current_utc_time)

    @field_validator("startTime", "endTime", "importedAt", mode="before")
    @classmethod
    def parse_datetime_fields(cls, v: Any) -> datetime | None:
        if v is None:
            return None
        return parse_timestamp(v)

    class Settings:
        name = "public_trips"


class SyncMetadata(Document):
    """Per-user ride-history sync state."""

    userId: Indexed(str, unique=True)
    status: str = "idle"
    lastSyncedAt: datetime | None = None
    newestTripTime: datetime | None = None
    nextPageStartTime: int | None = None
    totalTrips: int = 0
    lastError: str | None = None
    updatedAt: datetime = Field(default_factory=get_current_utc_time)

    class Settings:
        name = "sync_metadata"


ALL_DOCUMENT_MODELS = [
    Trip,
    PublicTrip,
    SyncMetadata,
]
