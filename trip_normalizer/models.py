"""
Record shapes for the normalization core.

``RawTrip`` is the possibly-incomplete record as stored by sync or import;
the remaining models describe what each normalization step produces.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from core.casting import safe_float
from core.date_utils import parse_timestamp

# Anything longer or farther is a corrupt record, not a ride.
MAX_TRIP_DURATION_SECONDS = 30 * 24 * 3600
MAX_TRIP_DISTANCE_METERS = 1_000_000


class BikeType(str, Enum):
    CLASSIC = "classic"
    EBIKE = "ebike"


class TravelMode(str, Enum):
    """Modes a trip can be recommended for."""

    CLASSIC = "classic"
    EBIKE = "ebike"
    TRANSIT = "transit"


class DistanceBucket(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class DurationBucket(str, Enum):
    QUICK = "<10min"
    STANDARD = "10-30min"
    EXTENDED = ">30min"


class TimeOfDay(str, Enum):
    MORNING_RUSH = "morning_rush"
    MIDDAY = "midday"
    EVENING_RUSH = "evening_rush"
    NIGHT = "night"


class SuitabilityBand(str, Enum):
    GREAT = "great"
    OKAY = "okay"
    POOR = "poor"


class DistanceSource(str, Enum):
    POLYLINE = "polyline"
    COORDINATES = "coordinates"
    REPORTED = "reported"
    NONE = "none"


_BIKE_TYPE_ALIASES: dict[str, BikeType] = {
    "classic": BikeType.CLASSIC,
    "classic_bike": BikeType.CLASSIC,
    "docked_bike": BikeType.CLASSIC,
    "ebike": BikeType.EBIKE,
    "e-bike": BikeType.EBIKE,
    "electric": BikeType.EBIKE,
    "electric_bike": BikeType.EBIKE,
}


def coerce_bike_type(value: Any) -> BikeType | None:
    """Map provider and public-dataset bike labels onto ``BikeType``."""
    if isinstance(value, BikeType):
        return value
    if not isinstance(value, str):
        return None
    return _BIKE_TYPE_ALIASES.get(value.strip().lower())


class MinimalStation(BaseModel):
    """Flattened station-information entry used for resolution lookups."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    lat: float
    lon: float


class StationResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None
    lat: float
    lon: float
    resolved: bool


class TripCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    distanceBucket: DistanceBucket
    durationBucket: DurationBucket
    timeOfDay: TimeOfDay


class TripCost(BaseModel):
    model_config = ConfigDict(frozen=True)

    cents: int | None
    billed_minutes: int
    capped: bool = False


class TransitAlternative(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimatedDurationSeconds: int
    estimatedCostCents: int | None


class SuitabilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    band: SuitabilityBand
    recommendedMode: TravelMode
    timeSavedSeconds: int
    timeValueCents: int
    costDeltaCents: int
    netValueCents: int


class RawTrip(BaseModel):
    """
    A trip as received from the ride-history sync or a public dataset.

    Only ``startTime`` is strictly required, together with either
    ``endTime`` or ``duration``. Coordinates default to ``0`` which means
    "not yet known". Unrecognised keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    startTime: datetime | None = None
    endTime: datetime | None = None
    duration: float | None = None
    startStationId: str | None = None
    startStationName: str | None = None
    startLat: float = 0.0
    startLon: float = 0.0
    endStationId: str | None = None
    endStationName: str | None = None
    endLat: float = 0.0
    endLon: float = 0.0
    bikeType: BikeType | None = None
    polyline: str | None = None
    distance: float | None = None
    hasActualCoordinates: bool | None = None

    @field_validator("id", "startStationId", "endStationId", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> str | None:
        if v is None or isinstance(v, bool):
            return None
        text = str(v).strip()
        return text or None

    @field_validator("startTime", "endTime", mode="before")
    @classmethod
    def parse_datetime_fields(cls, v: Any) -> datetime | None:
        if v is None:
            return None
        parsed = parse_timestamp(v)
        if parsed is None:
            msg = f"unparseable timestamp: {v!r}"
            raise ValueError(msg)
        return parsed

    @field_validator("startLat", "startLon", "endLat", "endLon", mode="before")
    @classmethod
    def coerce_coordinates(cls, v: Any) -> float:
        return safe_float(v, 0.0)

    @field_validator("duration", mode="before")
    @classmethod
    def validate_duration(cls, v: Any) -> float | None:
        if v is None:
            return None
        result = safe_float(v, None)
        if result is None:
            msg = f"non-numeric duration: {v!r}"
            raise ValueError(msg)
        if result < 0:
            msg = f"negative duration: {result}"
            raise ValueError(msg)
        if result > MAX_TRIP_DURATION_SECONDS:
            msg = f"implausible duration: {result}"
            raise ValueError(msg)
        return result

    @field_validator("distance", mode="before")
    @classmethod
    def validate_distance(cls, v: Any) -> float | None:
        result = safe_float(v, None)
        if result is None or result <= 0:
            return None
        if result > MAX_TRIP_DISTANCE_METERS:
            msg = f"implausible distance: {result}"
            raise ValueError(msg)
        return result

    @field_validator("bikeType", mode="before")
    @classmethod
    def normalize_bike_type(cls, v: Any) -> BikeType | None:
        return coerce_bike_type(v)

    @field_validator("polyline", mode="before")
    @classmethod
    def blank_polyline(cls, v: Any) -> str | None:
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_timing(self) -> RawTrip:
        if self.startTime is None:
            msg = "startTime is required"
            raise ValueError(msg)
        if self.duration is None:
            if self.endTime is None:
                msg = "either endTime or duration is required"
                raise ValueError(msg)
            if self.endTime < self.startTime:
                msg = "endTime precedes startTime"
                raise ValueError(msg)
            if (
                self.endTime - self.startTime
            ).total_seconds() > MAX_TRIP_DURATION_SECONDS:
                msg = "endTime is implausibly far after startTime"
                raise ValueError(msg)
        return self

    @property
    def duration_seconds(self) -> float:
        if self.duration is not None:
            return self.duration
        return (self.endTime - self.startTime).total_seconds()
