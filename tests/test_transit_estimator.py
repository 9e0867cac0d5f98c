from datetime import UTC, datetime

import pytest

from trip_normalizer.settings import PricingPlan, TransitAssumptions
from trip_normalizer.transit import estimate_transit_alternative, fixed_overhead_minutes

MIDDAY = datetime(2024, 6, 3, 12, 0, tzinfo=UTC)
MORNING_RUSH = datetime(2024, 6, 3, 8, 0, tzinfo=UTC)
MILE = 1609.344


def test_zero_distance_returns_overhead_floor() -> None:
    estimate = estimate_transit_alternative(0, MIDDAY)

    assert estimate.estimatedDurationSeconds == 17 * 60
    assert estimate.estimatedCostCents == 290


def test_negative_distance_is_clamped_to_floor() -> None:
    assert estimate_transit_alternative(-500, MIDDAY).estimatedDurationSeconds == 1020


def test_rush_hour_adds_wait() -> None:
    assert estimate_transit_alternative(0, MORNING_RUSH).estimatedDurationSeconds == 1200


def test_ride_time_scales_with_distance() -> None:
    # 17 min overhead + 1 mi at 17 mph.
    assert estimate_transit_alternative(MILE, MIDDAY).estimatedDurationSeconds == 1232


def test_transfer_penalty_beyond_threshold() -> None:
    two_miles = estimate_transit_alternative(2 * MILE, MIDDAY)
    three_miles = estimate_transit_alternative(3 * MILE, MIDDAY)

    assert two_miles.estimatedDurationSeconds == 1444
    assert three_miles.estimatedDurationSeconds == 2135


def test_fare_is_flat_and_configurable() -> None:
    pricing = PricingPlan(transit_flat_fare_cents=300)
    short = estimate_transit_alternative(100, MIDDAY, pricing=pricing)
    long = estimate_transit_alternative(20000, MIDDAY, pricing=pricing)

    assert short.estimatedCostCents == long.estimatedCostCents == 300


def test_missing_fare_yields_no_cost() -> None:
    pricing = PricingPlan(transit_flat_fare_cents=None)
    assert estimate_transit_alternative(100, MIDDAY, pricing=pricing).estimatedCostCents is None


def test_fixed_overhead_minutes() -> None:
    assumptions = TransitAssumptions(wait_minutes=3, rush_hour_wait_minutes=6)
    assert fixed_overhead_minutes(assumptions) == 13
    assert fixed_overhead_minutes(assumptions, rush_hour=True) == 16


@pytest.mark.parametrize("meters", [0, 1, 50, 400, 5000, 50000])
def test_duration_is_always_positive(meters) -> None:
    assert estimate_transit_alternative(meters, MIDDAY).estimatedDurationSeconds > 0
