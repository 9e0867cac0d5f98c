"""Trip categorisation by distance, duration and local time of day."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.date_utils import to_local
from trip_normalizer.models import (
    DistanceBucket,
    DurationBucket,
    TimeOfDay,
    TripCategory,
)
from trip_normalizer.settings import ClassificationThresholds

if TYPE_CHECKING:
    from datetime import datetime

DEFAULT_THRESHOLDS = ClassificationThresholds()


def distance_bucket(
    distance_meters: float,
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> DistanceBucket:
    if distance_meters < thresholds.short_max_meters:
        return DistanceBucket.SHORT
    if distance_meters <= thresholds.medium_max_meters:
        return DistanceBucket.MEDIUM
    return DistanceBucket.LONG


def duration_bucket(
    duration_seconds: float,
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> DurationBucket:
    minutes = duration_seconds / 60
    if minutes < thresholds.quick_max_minutes:
        return DurationBucket.QUICK
    if minutes <= thresholds.standard_max_minutes:
        return DurationBucket.STANDARD
    return DurationBucket.EXTENDED


def time_of_day(
    start_time: datetime,
    tz_name: str | None = None,
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> TimeOfDay:
    """Bucket the local start hour; intervals are half-open ``[start, end)``."""
    hour = to_local(start_time, tz_name).hour
    if thresholds.morning_rush_start_hour <= hour < thresholds.midday_start_hour:
        return TimeOfDay.MORNING_RUSH
    if thresholds.midday_start_hour <= hour < thresholds.evening_rush_start_hour:
        return TimeOfDay.MIDDAY
    if thresholds.evening_rush_start_hour <= hour < thresholds.night_start_hour:
        return TimeOfDay.EVENING_RUSH
    return TimeOfDay.NIGHT


def is_rush_hour(
    start_time: datetime,
    tz_name: str | None = None,
    thresholds: ClassificationThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    return time_of_day(start_time, tz_name, thresholds) in (
        TimeOfDay.MORNING_RUSH,
        TimeOfDay.EVENING_RUSH,
    )


def classify_trip(
    distance_meters: float,
    duration_seconds: float,
    start_time: datetime,
    *,
    thresholds: ClassificationThresholds | None = None,
    tz_name: str | None = None,
) -> TripCategory:
    thresholds = thresholds or DEFAULT_THRESHOLDS
    return TripCategory(
        distanceBucket=distance_bucket(distance_meters, thresholds),
        durationBucket=duration_bucket(duration_seconds, thresholds),
        timeOfDay=time_of_day(start_time, tz_name, thresholds),
    )
