import itertools

import pytest

from trip_normalizer.models import SuitabilityBand, TransitAlternative, TravelMode
from trip_normalizer.settings import PricingPlan, ScoringWeights
from trip_normalizer.suitability import (
    distance_fit,
    health_value_cents,
    recommend_mode,
    score_trip_suitability,
    suitability_band,
    time_value_cents,
)

MILE = 1609.344


def _transit(seconds: int = 1338, fare: int | None = 290) -> TransitAlternative:
    return TransitAlternative(estimatedDurationSeconds=seconds, estimatedCostCents=fare)


def test_ebike_commute_scores_great() -> None:
    result = score_trip_suitability(
        distance=2414,
        duration=900,
        cost=390,
        transit_alternative=_transit(),
        hourly_rate=60,
        bike_type="ebike",
    )

    assert result.timeSavedSeconds == 438
    assert result.timeValueCents == 730
    assert result.costDeltaCents == -100
    assert result.netValueCents == 630
    assert result.score == 96
    assert result.band is SuitabilityBand.GREAT
    # A classic bike would have been free and nearly as fast.
    assert result.recommendedMode is TravelMode.CLASSIC


def test_slow_short_trip_scores_poor() -> None:
    result = score_trip_suitability(
        distance=200,
        duration=3600,
        cost=390,
        transit_alternative=_transit(1046),
        hourly_rate=60,
        bike_type="classic",
    )

    assert result.score == 8
    assert result.band is SuitabilityBand.POOR
    assert result.netValueCents < 0


def test_higher_hourly_rate_never_lowers_score_when_time_is_saved() -> None:
    common = {
        "distance": 3000,
        "duration": 700,
        "cost": None,
        "transit_alternative": _transit(1500),
    }
    score_a = score_trip_suitability(hourly_rate=30, **common).score
    score_b = score_trip_suitability(hourly_rate=120, **common).score

    assert score_b >= score_a


@pytest.mark.parametrize(
    ("distance", "duration", "cost", "rate"),
    list(
        itertools.product(
            [0, 150, 800, 2500, 7000, 40000],
            [0, 120, 900, 5400, 86400],
            [None, 0, 26, 5000],
            [0, 15, 200],
        )
    ),
)
def test_score_is_bounded(distance, duration, cost, rate) -> None:
    result = score_trip_suitability(
        distance=distance,
        duration=duration,
        cost=cost,
        transit_alternative=_transit(1200),
        hourly_rate=rate,
    )
    assert 0 <= result.score <= 100
    assert result.band is suitability_band(result.score)


@pytest.mark.parametrize(
    ("score", "band"),
    [
        (100, SuitabilityBand.GREAT),
        (80, SuitabilityBand.GREAT),
        (79, SuitabilityBand.OKAY),
        (50, SuitabilityBand.OKAY),
        (49, SuitabilityBand.POOR),
        (0, SuitabilityBand.POOR),
    ],
)
def test_band_boundaries(score, band) -> None:
    assert suitability_band(score) is band


def test_distance_fit_curve() -> None:
    weights = ScoringWeights()

    assert distance_fit(0) == weights.walkable_fit
    assert distance_fit(400) == weights.walkable_fit
    assert distance_fit(1000) == pytest.approx(
        0.2 + 0.8 * (1000 - 400) / (MILE - 400)
    )
    assert distance_fit(2 * MILE) == 1.0
    assert distance_fit(4.5 * MILE) == pytest.approx(0.65)
    assert distance_fit(10 * MILE) == weights.long_trip_fit


def test_time_value_is_signed() -> None:
    assert time_value_cents(3600, 60) == 6000
    assert time_value_cents(-1800, 60) == -3000
    assert time_value_cents(600, 0) == 0


def test_health_value_per_mile() -> None:
    assert health_value_cents(MILE) == 50
    assert health_value_cents(-10) == 0


def test_recommend_mode_ties_keep_ridden_mode() -> None:
    transit = _transit(1020, None)
    plan = PricingPlan()

    assert recommend_mode(TravelMode.CLASSIC, 0, 1000, transit, 0, plan) is TravelMode.CLASSIC
    assert recommend_mode(TravelMode.CLASSIC, -1, 1000, transit, 0, plan) is TravelMode.TRANSIT
