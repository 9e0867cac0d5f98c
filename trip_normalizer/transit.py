"""
Transit alternative estimate.

A door-to-door heuristic for the comparison subway/bus trip: walk to the
station, wait, ride at an average speed, add a transfer for longer trips,
walk to the destination. Transit is priced as a flat fare regardless of
distance. No routing is involved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.casting import round_half_up
from core.constants import METERS_PER_MILE
from trip_normalizer.classifier import is_rush_hour
from trip_normalizer.models import TransitAlternative
from trip_normalizer.settings import (
    ClassificationThresholds,
    PricingPlan,
    TransitAssumptions,
)

if TYPE_CHECKING:
    from datetime import datetime

DEFAULT_ASSUMPTIONS = TransitAssumptions()


def fixed_overhead_minutes(
    assumptions: TransitAssumptions,
    *,
    rush_hour: bool = False,
) -> float:
    wait = assumptions.rush_hour_wait_minutes if rush_hour else assumptions.wait_minutes
    return (
        assumptions.walk_to_station_minutes
        + assumptions.walk_from_station_minutes
        + wait
    )


def estimate_transit_alternative(
    distance_meters: float,
    start_time: datetime,
    *,
    pricing: PricingPlan | None = None,
    assumptions: TransitAssumptions | None = None,
    thresholds: ClassificationThresholds | None = None,
    tz_name: str | None = None,
) -> TransitAlternative:
    """
    Estimate duration and fare of the transit trip covering the same distance.

    The duration never drops below the fixed walking and waiting overhead,
    so a zero-distance trip still costs the rider that overhead.
    """
    pricing = pricing or PricingPlan()
    assumptions = assumptions or DEFAULT_ASSUMPTIONS
    thresholds = thresholds or ClassificationThresholds()

    miles = max(distance_meters, 0.0) / METERS_PER_MILE
    rush = is_rush_hour(start_time, tz_name, thresholds)
    overhead = fixed_overhead_minutes(assumptions, rush_hour=rush)

    ride_minutes = 0.0
    if assumptions.ride_speed_mph > 0:
        ride_minutes = miles / assumptions.ride_speed_mph * 60
    if miles > assumptions.transfer_threshold_miles:
        ride_minutes += assumptions.transfer_penalty_minutes

    total_seconds = max(
        round_half_up((overhead + ride_minutes) * 60),
        round_half_up(overhead * 60),
    )

    return TransitAlternative(
        estimatedDurationSeconds=total_seconds,
        estimatedCostCents=pricing.transit_flat_fare_cents,
    )
