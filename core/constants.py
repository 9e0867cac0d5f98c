"""Global constants for the core package.

This module contains shared constants used across the application core.
"""

from typing import Final

# HTTP Client Constants
HTTP_CONNECTION_LIMIT: Final[int] = 10
HTTP_TIMEOUT_CONNECT: Final[float] = 10.0
HTTP_TIMEOUT_SOCK_READ: Final[float] = 30.0
HTTP_TIMEOUT_TOTAL: Final[float] = 60.0

# Geodesy
EARTH_RADIUS_M: Final[float] = 6371000.0

# Distance Conversion
METERS_PER_MILE: Final[float] = 1609.344
METERS_PER_KM: Final[float] = 1000.0

# Placeholder used by the ride-history provider for stations it cannot name.
UNKNOWN_STATION_NAME: Final[str] = "Unknown"

# Environmental impact: average car emissions, grams CO2 per meter driven.
CO2_GRAMS_PER_METER: Final[float] = 0.251
