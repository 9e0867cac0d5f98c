"""
Trip cost calculation.

All amounts are integer cents. Durations are billed in whole minutes,
rounding any started minute up, and the per-minute product is rounded
half-up at the cent.
"""

from __future__ import annotations

import logging
import math
from decimal import ROUND_CEILING, Decimal

from core.casting import round_half_up
from core.exceptions import MalformedInputError
from trip_normalizer.models import BikeType, TripCost, coerce_bike_type
from trip_normalizer.settings import PricingPlan

logger = logging.getLogger(__name__)


def billed_minutes(duration_seconds: float) -> int:
    """Whole minutes billed for a ride, counting any partial minute."""
    if duration_seconds <= 0:
        return 0
    minutes = Decimal(str(duration_seconds)) / Decimal(60)
    return int(minutes.to_integral_value(rounding=ROUND_CEILING))


def _check_duration(duration_seconds: float) -> None:
    if duration_seconds is None or isinstance(duration_seconds, bool):
        msg = "duration is required to price a trip"
        raise MalformedInputError(msg, {"duration": duration_seconds})
    if math.isnan(duration_seconds) or math.isinf(duration_seconds):
        msg = "duration must be finite"
        raise MalformedInputError(msg, {"duration": duration_seconds})
    if duration_seconds < 0:
        msg = "duration cannot be negative"
        raise MalformedInputError(msg, {"duration": duration_seconds})


def compute_trip_cost(
    bike_type: BikeType | str | None,
    duration_seconds: float,
    pricing_plan: PricingPlan,
) -> TripCost:
    """
    Price a single ride.

    Args:
        bike_type: ``classic`` or ``ebike``; anything unrecognised is priced
            as a classic ride.
        duration_seconds: Ride length, must be non-negative.
        pricing_plan: Fare table to apply.

    Returns:
        ``TripCost`` with ``cents`` set to ``None`` when the ride is free
        (inside the classic allowance) or when the plan lacks the fields
        needed to price it.

    Raises:
        MalformedInputError: On a negative or non-finite duration.
    """
    _check_duration(duration_seconds)

    raw_minutes = billed_minutes(duration_seconds)
    cap = pricing_plan.max_billed_minutes
    capped = raw_minutes > cap
    minutes = min(raw_minutes, cap)

    if coerce_bike_type(bike_type) is BikeType.EBIKE:
        rate = pricing_plan.ebike_cents_per_minute
        if rate is None:
            return TripCost(cents=None, billed_minutes=minutes, capped=capped)
        if duration_seconds == 0:
            return TripCost(cents=0, billed_minutes=0)
        minutes = max(minutes, 1)
        cents = round_half_up(Decimal(minutes) * Decimal(str(rate)))
        return TripCost(cents=cents, billed_minutes=minutes, capped=capped)

    free_minutes = pricing_plan.classic_free_minutes
    rate = pricing_plan.classic_overage_cents_per_minute
    if free_minutes is None or rate is None:
        return TripCost(cents=None, billed_minutes=minutes, capped=capped)
    if minutes <= free_minutes:
        return TripCost(cents=None, billed_minutes=minutes, capped=capped)

    overage = minutes - free_minutes
    cents = round_half_up(Decimal(overage) * Decimal(str(rate)))
    return TripCost(cents=cents, billed_minutes=minutes, capped=capped)


def calculate_trip_cost(
    bike_type: BikeType | str | None,
    duration_seconds: float,
    pricing_plan: PricingPlan,
) -> int | None:
    """Cost of a ride in cents, or ``None`` when nothing is charged."""
    return compute_trip_cost(bike_type, duration_seconds, pricing_plan).cents
