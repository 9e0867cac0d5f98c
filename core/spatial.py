"""
Spatial and geometry utilities.

Centralizes coordinate validation, great-circle distance calculations and
Google-style encoded polyline handling. Everything here is pure and
synchronous so it can run inside the normalization core.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from core.constants import EARTH_RADIUS_M, METERS_PER_KM, METERS_PER_MILE

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

LatLon = tuple[float, float]


class GeometryService:
    """Authoritative geometry operations for the application."""

    EARTH_RADIUS_M = EARTH_RADIUS_M

    @staticmethod
    def validate_coordinate_pair(
        lat: Any,
        lon: Any,
    ) -> tuple[bool, LatLon | None]:
        """Validate a latitude/longitude pair."""
        try:
            lat_f = float(lat)
            lon_f = float(lon)
        except (TypeError, ValueError):
            return False, None
        if math.isnan(lat_f) or math.isnan(lon_f):
            return False, None
        if not (-90 <= lat_f <= 90 and -180 <= lon_f <= 180):
            return False, None
        return True, (lat_f, lon_f)

    @staticmethod
    def is_known_coordinate(lat: Any, lon: Any) -> bool:
        """
        Whether a coordinate carries real position data.

        Ride records use ``0,0`` to mean "not yet known", so a zero on either
        axis counts as unknown.
        """
        is_valid, pair = GeometryService.validate_coordinate_pair(lat, lon)
        if not is_valid or pair is None:
            return False
        return pair[0] != 0 and pair[1] != 0

    @staticmethod
    def haversine_distance(
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float,
        unit: str = "meters",
    ) -> float:
        """Calculate the great-circle distance using the Haversine formula.

        Uses the ``atan2`` form so identical and antipodal points stay
        numerically stable.
        """
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlmb = math.radians(lon2 - lon1)
        a = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
        )
        a = min(1.0, max(0.0, a))
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        distance_m = GeometryService.EARTH_RADIUS_M * c
        if unit == "meters":
            return distance_m
        if unit == "miles":
            return distance_m / METERS_PER_MILE
        if unit == "km":
            return distance_m / METERS_PER_KM
        msg = "Invalid unit. Use 'meters', 'miles', or 'km'."
        raise ValueError(msg)

    @staticmethod
    def decode_polyline(encoded: str | None, precision: int = 5) -> list[LatLon]:
        """
        Decode a Google encoded polyline into ``(lat, lon)`` pairs.

        Returns an empty list for empty, truncated or otherwise invalid
        input instead of raising.
        """
        if not encoded or not isinstance(encoded, str):
            return []

        factor = 10**precision
        coordinates: list[LatLon] = []
        index = 0
        lat = 0
        lon = 0
        length = len(encoded)

        def _next_value() -> int | None:
            nonlocal index
            shift = 0
            result = 0
            while True:
                if index >= length:
                    return None
                byte = ord(encoded[index]) - 63
                index += 1
                if byte < 0 or byte > 63:
                    return None
                result |= (byte & 0x1F) << shift
                shift += 5
                if byte < 0x20:
                    break
            return ~(result >> 1) if result & 1 else result >> 1

        while index < length:
            delta_lat = _next_value()
            delta_lon = _next_value()
            if delta_lat is None or delta_lon is None:
                logger.debug("Invalid polyline (length %d); discarding", length)
                return []
            lat += delta_lat
            lon += delta_lon
            point = (lat / factor, lon / factor)
            if not GeometryService.validate_coordinate_pair(*point)[0]:
                logger.debug("Polyline decoded out-of-range point %s", point)
                return []
            coordinates.append(point)

        return coordinates

    @staticmethod
    def encode_polyline(points: Iterable[Sequence[float]], precision: int = 5) -> str:
        """Encode ``(lat, lon)`` pairs as a Google polyline string."""
        factor = 10**precision
        chunks: list[str] = []
        prev_lat = 0
        prev_lon = 0

        def _encode_value(value: int) -> str:
            value = ~(value << 1) if value < 0 else value << 1
            out = []
            while value >= 0x20:
                out.append(chr((0x20 | (value & 0x1F)) + 63))
                value >>= 5
            out.append(chr(value + 63))
            return "".join(out)

        for point in points:
            lat = round(point[0] * factor)
            lon = round(point[1] * factor)
            chunks.append(_encode_value(lat - prev_lat))
            chunks.append(_encode_value(lon - prev_lon))
            prev_lat = lat
            prev_lon = lon

        return "".join(chunks)

    @staticmethod
    def path_distance(points: Sequence[Sequence[float]]) -> float:
        """Sum the haversine distance across consecutive ``(lat, lon)`` points."""
        total = 0.0
        for i in range(1, len(points)):
            lat1, lon1 = points[i - 1][0], points[i - 1][1]
            lat2, lon2 = points[i][0], points[i][1]
            total += GeometryService.haversine_distance(lat1, lon1, lat2, lon2)
        return total
