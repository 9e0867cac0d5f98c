"""
Suitability scoring.

The score blends two signals on a 0-100 scale:

* value: the rider's net gain over transit, i.e. time saved priced at the
  rider's hourly rate plus the fare difference, squashed through ``tanh``;
* distance fit: how well the trip length suits a bike (walkable trips and
  very long trips score lower).

``ScoringWeights`` holds the weights together with the band boundaries
(80 and 50) they were calibrated against.
"""

from __future__ import annotations

import math

from core.casting import round_half_up
from core.constants import METERS_PER_MILE
from trip_normalizer.cost import calculate_trip_cost
from trip_normalizer.models import (
    BikeType,
    SuitabilityBand,
    SuitabilityResult,
    TransitAlternative,
    TravelMode,
    coerce_bike_type,
)
from trip_normalizer.settings import PricingPlan, ScoringWeights

DEFAULT_WEIGHTS = ScoringWeights()

_MODE_PREFERENCE = (TravelMode.CLASSIC, TravelMode.EBIKE, TravelMode.TRANSIT)


def suitability_band(
    score: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> SuitabilityBand:
    if score >= weights.great_min_score:
        return SuitabilityBand.GREAT
    if score >= weights.okay_min_score:
        return SuitabilityBand.OKAY
    return SuitabilityBand.POOR


def distance_fit(
    distance_meters: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """Piecewise-linear fit of a distance for bike travel, in ``[0, 1]``."""
    d = max(distance_meters, 0.0)
    if d <= weights.walkable_meters:
        return weights.walkable_fit
    if d < weights.sweet_spot_start_meters:
        span = weights.sweet_spot_start_meters - weights.walkable_meters
        progress = (d - weights.walkable_meters) / span
        return weights.walkable_fit + (1.0 - weights.walkable_fit) * progress
    if d <= weights.sweet_spot_end_meters:
        return 1.0
    if d < weights.taper_end_meters:
        span = weights.taper_end_meters - weights.sweet_spot_end_meters
        progress = (d - weights.sweet_spot_end_meters) / span
        return 1.0 - (1.0 - weights.long_trip_fit) * progress
    return weights.long_trip_fit


def time_value_cents(time_saved_seconds: float, hourly_rate: float) -> int:
    """Money value of saved time; negative when the ride was slower."""
    return round_half_up(time_saved_seconds / 3600 * hourly_rate * 100)


def health_value_cents(
    distance_meters: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    calories = max(distance_meters, 0.0) / METERS_PER_MILE
    calories *= weights.health_calories_per_mile
    return round_half_up(calories * weights.health_cents_per_calorie)


def _net_value(
    duration_seconds: float,
    cost_cents: int | None,
    transit: TransitAlternative,
    hourly_rate: float,
) -> int:
    saved = transit.estimatedDurationSeconds - duration_seconds
    fare = transit.estimatedCostCents or 0
    return time_value_cents(saved, hourly_rate) + fare - (cost_cents or 0)


def _modeled_net_value(
    mode: TravelMode,
    distance_meters: float,
    transit: TransitAlternative,
    hourly_rate: float,
    pricing: PricingPlan,
    weights: ScoringWeights,
) -> int:
    if mode is TravelMode.TRANSIT:
        return 0
    speed = (
        weights.ebike_speed_mps if mode is TravelMode.EBIKE else weights.classic_speed_mps
    )
    duration = max(distance_meters, 0.0) / speed if speed > 0 else 0.0
    cost = calculate_trip_cost(BikeType(mode.value), duration, pricing)
    return _net_value(duration, cost, transit, hourly_rate)


def recommend_mode(
    ridden_mode: TravelMode,
    ridden_net_value: int,
    distance_meters: float,
    transit: TransitAlternative,
    hourly_rate: float,
    pricing: PricingPlan,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> TravelMode:
    """
    Pick the mode with the highest net value for this trip.

    The ridden mode keeps its actual net value; the other bike mode is
    modelled from the distance at a typical speed; transit is the baseline
    at zero. Ties go to the ridden mode, then classic, e-bike, transit.
    """
    ordered = [ridden_mode] + [m for m in _MODE_PREFERENCE if m is not ridden_mode]
    best_mode = ridden_mode
    best_value = ridden_net_value
    for mode in ordered[1:]:
        value = _modeled_net_value(
            mode, distance_meters, transit, hourly_rate, pricing, weights
        )
        if value > best_value:
            best_mode = mode
            best_value = value
    return best_mode


def score_trip_suitability(
    *,
    distance: float,
    duration: float,
    cost: int | None,
    transit_alternative: TransitAlternative,
    hourly_rate: float,
    bike_type: BikeType | str | None = None,
    pricing: PricingPlan | None = None,
    weights: ScoringWeights | None = None,
) -> SuitabilityResult:
    """
    Score how well a bike ride served the rider compared with transit.

    Args:
        distance: Trip distance in meters.
        duration: Trip duration in seconds.
        cost: Amount charged in cents, ``None`` when free.
        transit_alternative: Estimated transit duration and fare.
        hourly_rate: Rider's value of time in dollars per hour.
        bike_type: Bike actually ridden; defaults to classic.
        pricing: Fare table used to model the other bike type.
        weights: Score calibration.

    Returns:
        Score, band, recommended mode and the value components behind them.
    """
    pricing = pricing or PricingPlan()
    weights = weights or DEFAULT_WEIGHTS

    time_saved = round_half_up(transit_alternative.estimatedDurationSeconds - duration)
    time_value = time_value_cents(
        transit_alternative.estimatedDurationSeconds - duration, hourly_rate
    )
    cost_delta = (transit_alternative.estimatedCostCents or 0) - (cost or 0)
    net_value = time_value + cost_delta

    value_component = (math.tanh(net_value / weights.value_scale_cents) + 1) / 2
    raw_score = 100 * (
        weights.value_weight * value_component
        + weights.distance_weight * distance_fit(distance, weights)
    )
    score = max(0, min(100, round_half_up(raw_score)))

    ridden = (
        TravelMode.EBIKE
        if coerce_bike_type(bike_type) is BikeType.EBIKE
        else TravelMode.CLASSIC
    )
    recommended = recommend_mode(
        ridden, net_value, distance, transit_alternative, hourly_rate, pricing, weights
    )

    return SuitabilityResult(
        score=score,
        band=suitability_band(score, weights),
        recommendedMode=recommended,
        timeSavedSeconds=time_saved,
        timeValueCents=time_value,
        costDeltaCents=cost_delta,
        netValueCents=net_value,
    )
