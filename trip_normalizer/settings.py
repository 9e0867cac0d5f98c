"""
Normalization settings.

Every tunable the normalization core reads lives on these frozen models and
is passed in explicitly; nothing in the core reaches for process-wide state.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from core.constants import METERS_PER_MILE

PRICING_REQUIRED_FIELDS: tuple[str, ...] = (
    "classic_free_minutes",
    "classic_overage_cents_per_minute",
    "ebike_cents_per_minute",
    "transit_flat_fare_cents",
)


class PricingPlan(BaseModel):
    """
    Fare table for one bike-share system and its comparison transit system.

    Any field may be ``None`` when the configured plan omits it; cost
    calculations that need a missing field treat the trip as free.
    """

    model_config = ConfigDict(frozen=True)

    classic_free_minutes: int | None = 45
    classic_overage_cents_per_minute: float | None = 26
    ebike_cents_per_minute: float | None = 26
    transit_flat_fare_cents: int | None = 290
    annual_membership_cents: int | None = 20500
    transit_unlimited_monthly_cents: int | None = 13200
    max_billed_minutes: int = 1440

    def missing_fields(self) -> list[str]:
        return [
            name for name in PRICING_REQUIRED_FIELDS if getattr(self, name) is None
        ]


class ClassificationThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    short_max_meters: float = METERS_PER_MILE
    medium_max_meters: float = 3 * METERS_PER_MILE
    quick_max_minutes: float = 10
    standard_max_minutes: float = 30
    morning_rush_start_hour: int = 6
    midday_start_hour: int = 10
    evening_rush_start_hour: int = 16
    night_start_hour: int = 20


class TransitAssumptions(BaseModel):
    """Door-to-door transit heuristics (no routing involved)."""

    model_config = ConfigDict(frozen=True)

    walk_to_station_minutes: float = 5
    walk_from_station_minutes: float = 5
    wait_minutes: float = 7
    rush_hour_wait_minutes: float = 10
    ride_speed_mph: float = 17
    transfer_threshold_miles: float = 2
    transfer_penalty_minutes: float = 8


class ScoringWeights(BaseModel):
    """
    Suitability score calibration.

    The weights and the band boundaries are tuned together: a trip with zero
    net value sits at 30 points from the value term alone, so reaching the
    ``great`` band needs both real savings and a bike-friendly distance.
    """

    model_config = ConfigDict(frozen=True)

    value_weight: float = 0.6
    distance_weight: float = 0.4
    value_scale_cents: float = 500
    walkable_meters: float = 400
    walkable_fit: float = 0.2
    sweet_spot_start_meters: float = METERS_PER_MILE
    sweet_spot_end_meters: float = 3 * METERS_PER_MILE
    taper_end_meters: float = 6 * METERS_PER_MILE
    long_trip_fit: float = 0.3
    great_min_score: int = 80
    okay_min_score: int = 50
    classic_speed_mps: float = 3.6
    ebike_speed_mps: float = 5.0
    health_calories_per_mile: float = 50
    health_cents_per_calorie: float = 1


class StationMatchSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    proximity_meters: float = 50


class NormalizationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    pricing: PricingPlan = Field(default_factory=PricingPlan)
    thresholds: ClassificationThresholds = Field(
        default_factory=ClassificationThresholds
    )
    transit: TransitAssumptions = Field(default_factory=TransitAssumptions)
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    stations: StationMatchSettings = Field(default_factory=StationMatchSettings)
    timezone: str = "UTC"
