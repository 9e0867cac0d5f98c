"""Pydantic models for trip-related API and service operations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NormalizeRequest(BaseModel):
    user_id: str
    city_id: str | None = None
    hourly_rate: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    retry_failed: bool = False
    limit: int | None = Field(default=None, ge=1)


class NormalizationStatus(BaseModel):
    totalTrips: int = 0
    normalizedTrips: int = 0
    toNormalize: int = 0
    failedTrips: int = 0


class NormalizationResult(BaseModel):
    """Summary of one normalization run."""

    processed: int = 0
    normalized: int = 0
    failed: int = 0
    batches: int = 0
    cancelled: bool = False
    missingPricingFields: list[str] = Field(default_factory=list)
    errors: list[dict[str, Any]] = Field(default_factory=list)


class NormalizationProgress(BaseModel):
    processed: int
    total: int
    normalized: int
    failed: int


class SyncRequest(BaseModel):
    user_id: str
    city_id: str | None = None
    fetch_details: bool = True


class PublicImportRequest(BaseModel):
    dataset_month: str = Field(pattern=r"^\d{4}-\d{2}$")
    city_id: str | None = None
    trips: list[dict[str, Any]]


class PublicTripRecord(BaseModel):
    """One row of a converted public trip dataset."""

    model_config = ConfigDict(extra="ignore")

    rideId: str
    bikeType: str | None = None
    memberType: str | None = None
    startTime: Any = None
    endTime: Any = None
    duration: Any = None
    distance: Any = None
    startStationId: str | None = None
    startStationName: str | None = None
    startLat: Any = None
    startLon: Any = None
    endStationId: str | None = None
    endStationName: str | None = None
    endLat: Any = None
    endLon: Any = None

    @field_validator("rideId", "startStationId", "endStationId", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return str(v)
