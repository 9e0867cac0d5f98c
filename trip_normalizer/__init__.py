"""
Trip Normalizer Package.

Pure, synchronous derivation of complete trip records:
- Station resolution against a station-information index
- Best-available distance (polyline, coordinates, reported)
- Distance/duration/time-of-day categories
- Plan-aware ride pricing
- Transit comparison and suitability scoring

Usage:
    from trip_normalizer import normalize_trip

    patch = normalize_trip(raw_trip, station_index, hourly_rate=60)
"""

from trip_normalizer.classifier import classify_trip
from trip_normalizer.cost import calculate_trip_cost, compute_trip_cost
from trip_normalizer.models import MinimalStation, RawTrip
from trip_normalizer.processor import TripNormalizer, normalize_trip
from trip_normalizer.settings import NormalizationSettings, PricingPlan
from trip_normalizer.stations import resolve_station
from trip_normalizer.suitability import score_trip_suitability, suitability_band
from trip_normalizer.transit import estimate_transit_alternative

__all__ = [
    "MinimalStation",
    "NormalizationSettings",
    "PricingPlan",
    "RawTrip",
    "TripNormalizer",
    "calculate_trip_cost",
    "classify_trip",
    "compute_trip_cost",
    "estimate_transit_alternative",
    "normalize_trip",
    "resolve_station",
    "score_trip_suitability",
    "suitability_band",
]
