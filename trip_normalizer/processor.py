"""
Trip normalization orchestrator.

Composes station resolution, distance, classification, pricing, the
transit comparison and suitability scoring into one patch. The whole
computation is synchronous and pure: no storage, no network, no clock.
Callers merge the returned patch into the stored trip.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from core.casting import round_half_up
from core.constants import CO2_GRAMS_PER_METER
from core.exceptions import MalformedInputError
from core.spatial import GeometryService
from trip_normalizer.classifier import classify_trip
from trip_normalizer.cost import compute_trip_cost
from trip_normalizer.models import DistanceSource, RawTrip, StationResolution
from trip_normalizer.settings import NormalizationSettings
from trip_normalizer.stations import resolve_station
from trip_normalizer.suitability import health_value_cents, score_trip_suitability
from trip_normalizer.transit import estimate_transit_alternative

if TYPE_CHECKING:
    from collections.abc import Mapping

    from trip_normalizer.models import MinimalStation

logger = logging.getLogger(__name__)


def _trip_label(raw_trip: Mapping[str, Any]) -> str:
    for key in ("id", "rideId", "_id"):
        value = raw_trip.get(key)
        if value:
            return str(value)
    return "unknown"


def parse_raw_trip(raw_trip: Mapping[str, Any]) -> RawTrip:
    """
    Validate a stored record into a ``RawTrip``.

    Raises:
        MalformedInputError: If the record cannot be interpreted.
    """
    try:
        return RawTrip.model_validate(dict(raw_trip))
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        reasons = "; ".join(err["msg"] for err in e.errors())
        msg = f"Trip {_trip_label(raw_trip)} is malformed: {reasons}"
        raise MalformedInputError(
            msg,
            {"trip_id": _trip_label(raw_trip), "fields": fields},
        ) from e


def compute_distance(
    trip: RawTrip,
    start: StationResolution,
    end: StationResolution,
) -> tuple[float, DistanceSource]:
    """
    Best available distance in meters.

    Preference order: decoded polyline path, straight line between known
    coordinates, previously reported distance, then zero.
    """
    points = GeometryService.decode_polyline(trip.polyline)
    if len(points) >= 2:
        return GeometryService.path_distance(points), DistanceSource.POLYLINE

    if GeometryService.is_known_coordinate(
        start.lat, start.lon
    ) and GeometryService.is_known_coordinate(end.lat, end.lon):
        distance = GeometryService.haversine_distance(
            start.lat, start.lon, end.lat, end.lon
        )
        return distance, DistanceSource.COORDINATES

    if trip.distance is not None:
        return trip.distance, DistanceSource.REPORTED

    return 0.0, DistanceSource.NONE


class TripNormalizer:
    """
    Derives a complete trip record from a raw one.

    Holds only immutable settings, so one instance can be shared freely.
    """

    def __init__(self, settings: NormalizationSettings | None = None) -> None:
        self.settings = settings or NormalizationSettings()

    def normalize(
        self,
        raw_trip: Mapping[str, Any],
        station_index: Mapping[str, MinimalStation],
        hourly_rate: float,
    ) -> dict[str, Any]:
        """
        Build the normalization patch for one trip.

        Args:
            raw_trip: The stored trip record. Never modified.
            station_index: Stations keyed by id.
            hourly_rate: Rider's value of time in dollars per hour.

        Returns:
            A new dict containing every derived field and ``normalized: True``.

        Raises:
            MalformedInputError: For records that cannot be normalized, such
                as a negative duration or an unparseable timestamp.
        """
        if (
            hourly_rate is None
            or isinstance(hourly_rate, bool)
            or not math.isfinite(hourly_rate)
            or hourly_rate < 0
        ):
            msg = "hourly_rate must be a finite, non-negative number"
            raise MalformedInputError(msg, {"hourly_rate": hourly_rate})

        settings = self.settings
        trip = parse_raw_trip(raw_trip)
        duration = trip.duration_seconds

        proximity = settings.stations.proximity_meters
        start = resolve_station(
            trip.startStationName,
            trip.startStationId,
            trip.startLat,
            trip.startLon,
            station_index,
            proximity_meters=proximity,
        )
        end = resolve_station(
            trip.endStationName,
            trip.endStationId,
            trip.endLat,
            trip.endLon,
            station_index,
            proximity_meters=proximity,
        )

        distance, distance_source = compute_distance(trip, start, end)
        has_actual = (
            distance_source is DistanceSource.POLYLINE
            or distance_source is DistanceSource.COORDINATES
            or bool(trip.hasActualCoordinates)
        )

        category = classify_trip(
            distance,
            duration,
            trip.startTime,
            thresholds=settings.thresholds,
            tz_name=settings.timezone,
        )
        cost = compute_trip_cost(trip.bikeType, duration, settings.pricing)
        transit = estimate_transit_alternative(
            distance,
            trip.startTime,
            pricing=settings.pricing,
            assumptions=settings.transit,
            thresholds=settings.thresholds,
            tz_name=settings.timezone,
        )
        suitability = score_trip_suitability(
            distance=distance,
            duration=duration,
            cost=cost.cents,
            transit_alternative=transit,
            hourly_rate=hourly_rate,
            bike_type=trip.bikeType,
            pricing=settings.pricing,
            weights=settings.scoring,
        )

        return {
            "startStationName": start.name,
            "startLat": start.lat,
            "startLon": start.lon,
            "startStationResolved": start.resolved,
            "endStationName": end.name,
            "endLat": end.lat,
            "endLon": end.lon,
            "endStationResolved": end.resolved,
            "duration": duration,
            "distance": distance,
            "distanceSource": distance_source.value,
            "hasActualCoordinates": has_actual,
            "category": category.model_dump(mode="json"),
            "cost": cost.cents,
            "costCapped": cost.capped,
            "transitAlternative": transit.model_dump(),
            "timeSavedSeconds": suitability.timeSavedSeconds,
            "timeValueCents": suitability.timeValueCents,
            "costDeltaCents": suitability.costDeltaCents,
            "netValueCents": suitability.netValueCents,
            "healthValueCents": health_value_cents(distance, settings.scoring),
            "co2SavedGrams": round_half_up(distance * CO2_GRAMS_PER_METER),
            "suitabilityScore": suitability.score,
            "suitabilityBand": suitability.band.value,
            "recommendedMode": suitability.recommendedMode.value,
            "normalized": True,
        }


def normalize_trip(
    raw_trip: Mapping[str, Any],
    station_index: Mapping[str, MinimalStation],
    hourly_rate: float,
    *,
    settings: NormalizationSettings | None = None,
) -> dict[str, Any]:
    """Functional shortcut for ``TripNormalizer(settings).normalize(...)``."""
    return TripNormalizer(settings).normalize(raw_trip, station_index, hourly_rate)
