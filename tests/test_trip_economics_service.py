from datetime import UTC, datetime

import pytest

from db.models import Trip
from trip_normalizer.settings import PricingPlan
from trips.services.trip_economics_service import (
    TripEconomicsService,
    calculate_breakeven,
    calculate_monthly_economics,
    charged_cents,
    group_by_month,
)

PLAN = PricingPlan()
MEMBERSHIP = 20500 / 12


def _month_trips() -> list[dict]:
    trips = []
    for i in range(3):
        trips.append(
            {
                "rideId": f"e{i}",
                "startTime": f"2024-06-0{i + 1}T12:00:00Z",
                "bikeType": "ebike",
                "duration": 900,
                "providerCostCents": 390,
                "normalized": True,
                "timeSavedSeconds": 300,
                "netValueCents": 200,
            },
        )
    for i in range(7):
        trips.append(
            {
                "rideId": f"c{i}",
                "startTime": f"2024-06-1{i}T12:00:00Z",
                "bikeType": "classic",
                "duration": 600,
                "cost": 26 if i == 0 else None,
            },
        )
    return trips


def test_charged_cents_prefers_provider_amount() -> None:
    assert charged_cents({"providerCostCents": 100, "cost": 390}) == 100
    assert charged_cents({"cost": 390}) == 390
    assert charged_cents({}) == 0


def test_monthly_economics() -> None:
    result = calculate_monthly_economics(_month_trips(), "2024-06", PLAN)

    assert result["bikeTrips"] == 10
    assert result["ebikeTrips"] == 3
    assert result["ebikeFeesCents"] == 1170
    assert result["overageFeesCents"] == 26
    assert result["totalBikeCostCents"] == pytest.approx(MEMBERSHIP + 1196)
    assert result["transitPayPerRideCents"] == 2900
    assert result["optimalTransitCents"] == 2900
    assert result["savingsCents"] == pytest.approx(2900 - MEMBERSHIP - 1196)
    assert result["normalizedTrips"] == 3
    assert result["avgTimeSavedMinutes"] == pytest.approx(5)
    assert result["totalNetValueCents"] == 600
    assert result["ebikePercent"] == pytest.approx(30)


def test_monthly_economics_caps_transit_at_unlimited_pass() -> None:
    trips = [{"startTime": "2024-06-01T12:00:00Z", "bikeType": "classic"}] * 60
    result = calculate_monthly_economics(trips, "2024-06", PLAN)

    assert result["transitPayPerRideCents"] == 60 * 290
    assert result["optimalTransitCents"] == 13200


def test_empty_month_costs_nothing() -> None:
    result = calculate_monthly_economics([], "2024-06", PLAN)

    assert result["totalBikeCostCents"] == 0
    assert result["savingsPercent"] == 0.0


def test_breakeven() -> None:
    result = calculate_breakeven(_month_trips(), PLAN)

    assert result["avgTripsPerMonth"] == 10
    assert result["breakevenVsPayPerRide"] == pytest.approx(MEMBERSHIP / (290 - 119.6))
    assert result["breakevenVsUnlimited"] == pytest.approx((13200 - 1196) / 290)
    assert result["monthlyData"][0]["month"] == "2024-06"
    assert result["monthlyData"][0]["breaksEven"] is False
    assert result["scenarios"]["allClassicWithinAllowanceCents"] == pytest.approx(
        MEMBERSHIP
    )
    assert result["scenarios"]["allEbikeCents"] == pytest.approx(MEMBERSHIP + 10 * 390)


def test_breakeven_is_none_when_rides_cost_more_than_transit() -> None:
    trips = [
        {"startTime": "2024-06-01T12:00:00Z", "bikeType": "ebike", "cost": 500},
    ]
    assert calculate_breakeven(trips, PLAN)["breakevenVsPayPerRide"] is None


def test_breakeven_without_trips() -> None:
    result = calculate_breakeven([], PLAN)
    assert result["breakevenVsPayPerRide"] is None
    assert result["monthlyData"] == []


def test_group_by_month_uses_timezone_and_skips_undated() -> None:
    trips = [
        {"startTime": "2024-07-01T02:00:00Z"},
        {"startTime": None},
    ]
    assert list(group_by_month(trips, "America/New_York")) == ["2024-06"]


@pytest.mark.asyncio
async def test_get_user_economics_defaults_to_latest_month(beanie_db) -> None:
    for i, month in enumerate((5, 6, 6)):
        await Trip(
            rideId=f"r{i}",
            userId="u1",
            startTime=datetime(2024, month, 10, 12, tzinfo=UTC),
            duration=600,
            bikeType="classic",
        ).insert()

    result = await TripEconomicsService.get_user_economics(
        "u1", city_id="nyc", pricing=PLAN
    )

    assert result["availableMonths"] == ["2024-05", "2024-06"]
    assert result["monthly"]["period"] == "2024-06"
    assert result["monthly"]["bikeTrips"] == 2
    assert result["breakeven"]["avgTripsPerMonth"] == 1.5
