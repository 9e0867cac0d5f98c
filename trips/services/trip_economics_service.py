"""
Transportation economics for a rider's trip history.

Compares what the bike-share membership and ride fees actually cost with
what the same number of trips would have cost on transit, either paying
per ride or with an unlimited monthly pass. All money values are cents.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from config import DEFAULT_CITY_ID, get_city_config, get_pricing_plan
from core.casting import safe_float
from core.date_utils import month_key, parse_timestamp
from trip_normalizer.cost import calculate_trip_cost
from trip_normalizer.models import BikeType, coerce_bike_type
from trip_normalizer.settings import PricingPlan
from trips.services.trip_stats_service import TripStatsService

logger = logging.getLogger(__name__)


def monthly_membership_cents(pricing: PricingPlan) -> float:
    return (pricing.annual_membership_cents or 0) / 12


def charged_cents(trip: dict[str, Any]) -> int:
    """What a ride cost: the provider's charge when known, else the computed cost."""
    for key in ("providerCostCents", "cost"):
        value = trip.get(key)
        if value is not None:
            return max(int(value), 0)
    return 0


def _is_ebike(trip: dict[str, Any]) -> bool:
    return coerce_bike_type(trip.get("bikeType")) is BikeType.EBIKE


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _optimal_transit_cents(trip_count: int, pricing: PricingPlan) -> float:
    fare = pricing.transit_flat_fare_cents or 0
    pay_per_ride = trip_count * fare
    unlimited = pricing.transit_unlimited_monthly_cents
    if unlimited is None:
        return pay_per_ride
    return min(pay_per_ride, unlimited)


def calculate_monthly_economics(
    trips: list[dict[str, Any]],
    period: str,
    pricing: PricingPlan,
) -> dict[str, Any]:
    """
    Economics for one month of trips.

    Args:
        trips: The month's trip records.
        period: ``YYYY-MM`` label for the month.
        pricing: Fare table.
    """
    ebike_trips = [t for t in trips if _is_ebike(t)]
    classic_trips = [t for t in trips if not _is_ebike(t)]
    count = len(trips)

    membership = monthly_membership_cents(pricing) if count else 0.0
    ebike_fees = sum(charged_cents(t) for t in ebike_trips)
    overage_fees = sum(charged_cents(t) for t in classic_trips)
    total_cost = membership + ebike_fees + overage_fees

    pay_per_ride = count * (pricing.transit_flat_fare_cents or 0)
    unlimited = pricing.transit_unlimited_monthly_cents if count else 0
    optimal_transit = _optimal_transit_cents(count, pricing) if count else 0
    savings = optimal_transit - total_cost

    normalized = [t for t in trips if t.get("normalized")]
    time_saved = [safe_float(t.get("timeSavedSeconds"), 0.0) for t in normalized]
    net_values = [safe_float(t.get("netValueCents"), 0.0) for t in normalized]

    return {
        "period": period,
        "bikeTrips": count,
        "classicTrips": len(classic_trips),
        "ebikeTrips": len(ebike_trips),
        "membershipCostCents": membership,
        "ebikeFeesCents": ebike_fees,
        "overageFeesCents": overage_fees,
        "totalBikeCostCents": total_cost,
        "avgCostPerTripCents": total_cost / count if count else 0.0,
        "transitPayPerRideCents": pay_per_ride,
        "transitUnlimitedCents": unlimited,
        "optimalTransitCents": optimal_transit,
        "savingsCents": savings,
        "savingsPercent": savings / optimal_transit * 100 if optimal_transit else 0.0,
        "normalizedTrips": len(normalized),
        "avgTimeSavedMinutes": _average(time_saved) / 60,
        "totalTimeSavedMinutes": sum(time_saved) / 60,
        "avgNetValueCents": _average(net_values),
        "totalNetValueCents": sum(net_values),
        "classicPercent": len(classic_trips) / count * 100 if count else 0.0,
        "ebikePercent": len(ebike_trips) / count * 100 if count else 0.0,
        "avgClassicDurationSeconds": _average(
            [safe_float(t.get("duration"), 0.0) for t in classic_trips]
        ),
        "avgEbikeDurationSeconds": _average(
            [safe_float(t.get("duration"), 0.0) for t in ebike_trips]
        ),
    }


def group_by_month(
    trips: list[dict[str, Any]],
    tz_name: str | None = None,
) -> dict[str, list[dict[str, Any]]]:
    months: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for trip in trips:
        started = parse_timestamp(trip.get("startTime"))
        if started is None:
            continue
        months[month_key(started, tz_name)].append(trip)
    return dict(sorted(months.items()))


def calculate_breakeven(
    trips: list[dict[str, Any]],
    pricing: PricingPlan,
    tz_name: str | None = None,
) -> dict[str, Any]:
    """
    When does the membership pay for itself?

    ``breakevenVsPayPerRide`` is the number of trips per month at which the
    membership undercuts paying a transit fare per trip; it is ``None`` when
    the average ride fee already exceeds the fare, i.e. never.
    ``breakevenVsUnlimited`` is the number of transit fares that add up to
    the unlimited pass after subtracting ride fees.
    """
    months = group_by_month(trips, tz_name)
    membership = monthly_membership_cents(pricing)
    fare = pricing.transit_flat_fare_cents or 0
    unlimited = pricing.transit_unlimited_monthly_cents

    if not months:
        return {
            "avgTripsPerMonth": 0.0,
            "avgEbikePercent": 0.0,
            "avgEbikeDurationMinutes": 0.0,
            "avgClassicDurationMinutes": 0.0,
            "currentMonthlyCostCents": 0.0,
            "breakevenVsPayPerRide": None,
            "breakevenVsUnlimited": None,
            "scenarios": {
                "allClassicWithinAllowanceCents": 0.0,
                "allEbikeCents": 0.0,
                "optimalCents": 0.0,
                "currentTransitCents": 0.0,
            },
            "monthlyData": [],
        }

    month_count = len(months)
    dated = [t for month in months.values() for t in month]
    ebike_trips = [t for t in dated if _is_ebike(t)]
    classic_trips = [t for t in dated if not _is_ebike(t)]

    avg_trips = len(dated) / month_count
    avg_fees = sum(charged_cents(t) for t in dated) / month_count
    avg_ebike_minutes = (
        _average([safe_float(t.get("duration"), 0.0) for t in ebike_trips]) / 60
    )
    avg_classic_minutes = (
        _average([safe_float(t.get("duration"), 0.0) for t in classic_trips]) / 60
    )

    avg_trip_fee = avg_fees / avg_trips if avg_trips else 0.0
    breakeven_pay_per_ride = None
    if fare - avg_trip_fee > 0:
        breakeven_pay_per_ride = membership / (fare - avg_trip_fee)
    breakeven_unlimited = None
    if unlimited is not None and fare > 0:
        breakeven_unlimited = (unlimited - avg_fees) / fare

    ebike_ride = calculate_trip_cost(BikeType.EBIKE, avg_ebike_minutes * 60, pricing)
    all_ebike = membership + avg_trips * (ebike_ride or 0)

    monthly_data = []
    for period, month_trips in months.items():
        cost = membership + sum(charged_cents(t) for t in month_trips)
        transit = _optimal_transit_cents(len(month_trips), pricing)
        monthly_data.append(
            {
                "month": period,
                "trips": len(month_trips),
                "costCents": cost,
                "transitCents": transit,
                "breaksEven": cost < transit,
            },
        )

    return {
        "avgTripsPerMonth": avg_trips,
        "avgEbikePercent": len(ebike_trips) / len(dated) * 100,
        "avgEbikeDurationMinutes": avg_ebike_minutes,
        "avgClassicDurationMinutes": avg_classic_minutes,
        "currentMonthlyCostCents": membership + avg_fees,
        "breakevenVsPayPerRide": breakeven_pay_per_ride,
        "breakevenVsUnlimited": breakeven_unlimited,
        "scenarios": {
            "allClassicWithinAllowanceCents": membership,
            "allEbikeCents": all_ebike,
            "optimalCents": min(membership, all_ebike),
            "currentTransitCents": _optimal_transit_cents(round(avg_trips), pricing),
        },
        "monthlyData": monthly_data,
    }


class TripEconomicsService:
    """Loads a user's trips and computes monthly economics and breakeven."""

    @staticmethod
    async def get_user_economics(
        user_id: str,
        *,
        city_id: str | None = None,
        period: str | None = None,
        pricing: PricingPlan | None = None,
    ) -> dict[str, Any]:
        city = get_city_config(city_id or DEFAULT_CITY_ID)
        pricing = pricing or get_pricing_plan()
        trips = await TripStatsService.load_user_trips(user_id)
        months = group_by_month(trips, city["timezone"])

        if period is None and months:
            period = next(reversed(months))
        monthly = None
        if period is not None:
            monthly = calculate_monthly_economics(
                months.get(period, []), period, pricing
            )

        logger.debug("Economics for %s over %d months", user_id, len(months))
        return {
            "monthly": monthly,
            "breakeven": calculate_breakeven(trips, pricing, city["timezone"]),
            "availableMonths": list(months),
        }
