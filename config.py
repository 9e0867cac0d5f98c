"""Centralized configuration for environment variables and upstream feeds.

This module is the single source of truth for configuration used across the
application. Import constants from here rather than calling os.getenv directly
in multiple places.

The normalization core never reads this module; callers build a
``NormalizationSettings`` with :func:`get_normalization_settings` and pass it in.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Final

from dotenv import load_dotenv

from core.exceptions import ResourceNotFoundException
from trip_normalizer.settings import NormalizationSettings, PricingPlan

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


# --- Server ---
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()
PORT: Final[int] = _env_int("PORT", 8080)
CORS_ALLOWED_ORIGINS: Final[list[str]] = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

# --- Storage ---
MONGODB_URI: Final[str] = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DATABASE: Final[str] = os.getenv("MONGODB_DATABASE", "bikeshare")
MONGODB_MAX_POOL_SIZE: Final[int] = _env_int("MONGODB_MAX_POOL_SIZE", 50)
MONGODB_SERVER_SELECTION_TIMEOUT_MS: Final[int] = _env_int(
    "MONGODB_SERVER_SELECTION_TIMEOUT_MS", 10000
)

# --- Batch processing ---
NORMALIZATION_BATCH_SIZE: Final[int] = _env_int("NORMALIZATION_BATCH_SIZE", 100)
NORMALIZATION_BATCH_PAUSE_SECONDS: Final[float] = _env_float(
    "NORMALIZATION_BATCH_PAUSE_SECONDS", 0.01
)
PUBLIC_IMPORT_BATCH_SIZE: Final[int] = _env_int("PUBLIC_IMPORT_BATCH_SIZE", 1000)
DEFAULT_HOURLY_RATE: Final[float] = _env_float("DEFAULT_HOURLY_RATE", 60.0)

# --- Station feeds (GBFS) ---
STATION_CACHE_TTL_SECONDS: Final[int] = _env_int("STATION_CACHE_TTL_SECONDS", 86400)
DEFAULT_CITY_ID: Final[str] = os.getenv("DEFAULT_CITY_ID", "nyc")

CITIES: Final[dict[str, dict[str, str]]] = {
    "nyc": {
        "name": "New York City",
        "system": "Citi Bike",
        "gbfs_base_url": "https://gbfs.citibikenyc.com",
        "gbfs_path": "gbfs/en",
        "timezone": "America/New_York",
    },
    "dc": {
        "name": "Washington, D.C.",
        "system": "Capital Bikeshare",
        "gbfs_base_url": "https://gbfs.lyft.com/gbfs/2.3/dca-cabi",
        "gbfs_path": "en",
        "timezone": "America/New_York",
    },
    "sf": {
        "name": "San Francisco Bay Area",
        "system": "Bay Wheels",
        "gbfs_base_url": "https://gbfs.baywheels.com",
        "gbfs_path": "gbfs/en",
        "timezone": "America/Los_Angeles",
    },
    "chicago": {
        "name": "Chicago",
        "system": "Divvy",
        "gbfs_base_url": "https://gbfs.divvybikes.com",
        "gbfs_path": "gbfs/en",
        "timezone": "America/Chicago",
    },
    "boston": {
        "name": "Boston",
        "system": "Bluebikes",
        "gbfs_base_url": "https://gbfs.bluebikes.com",
        "gbfs_path": "gbfs/en",
        "timezone": "America/New_York",
    },
    "portland": {
        "name": "Portland",
        "system": "BIKETOWN",
        "gbfs_base_url": "https://gbfs.biketownpdx.com",
        "gbfs_path": "gbfs/en",
        "timezone": "America/Los_Angeles",
    },
}

# --- Ride history provider ---
RIDE_HISTORY_URL: Final[str] = os.getenv(
    "RIDE_HISTORY_URL", "https://api.lyft.com/v1/last-mile/ride-history"
)
RIDE_DETAILS_URL: Final[str] = os.getenv(
    "RIDE_DETAILS_URL", "https://api.lyft.com/v1/last-mile/rides/{ride_id}"
)
SYNC_MAX_PAGES: Final[int] = _env_int("SYNC_MAX_PAGES", 100)
DETAILS_BATCH_SIZE: Final[int] = _env_int("DETAILS_BATCH_SIZE", 5)

# --- Pricing ---
# Env var per field; an empty value removes the field from the plan.
PRICING_ENV_VARS: Final[dict[str, str]] = {
    "classic_free_minutes": "PRICING_CLASSIC_FREE_MINUTES",
    "classic_overage_cents_per_minute": "PRICING_CLASSIC_OVERAGE_CENTS_PER_MINUTE",
    "ebike_cents_per_minute": "PRICING_EBIKE_CENTS_PER_MINUTE",
    "transit_flat_fare_cents": "PRICING_TRANSIT_FLAT_FARE_CENTS",
    "annual_membership_cents": "PRICING_ANNUAL_MEMBERSHIP_CENTS",
    "transit_unlimited_monthly_cents": "PRICING_TRANSIT_UNLIMITED_MONTHLY_CENTS",
    "max_billed_minutes": "PRICING_MAX_BILLED_MINUTES",
}


def get_city_config(city_id: str | None = None) -> dict[str, Any]:
    """Return the city entry for ``city_id`` (default city when omitted)."""
    key = (city_id or DEFAULT_CITY_ID).strip().lower()
    city = CITIES.get(key)
    if city is None:
        msg = f"Unknown city: {city_id}"
        raise ResourceNotFoundException(msg, {"city_id": city_id})
    return {"id": key, **city}


def build_gbfs_url(city_id: str | None, feed: str) -> str:
    """Join a city's GBFS base URL, language path and feed file name."""
    city = get_city_config(city_id)
    base = city["gbfs_base_url"].rstrip("/")
    path = city["gbfs_path"].strip("/")
    return f"{base}/{path}/{feed.lstrip('/')}"


def get_pricing_plan() -> PricingPlan:
    """Build the pricing plan from defaults and ``PRICING_*`` overrides."""
    overrides: dict[str, Any] = {}
    for field, env_var in PRICING_ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is None:
            continue
        raw = raw.strip()
        if not raw:
            if field == "max_billed_minutes":
                continue
            overrides[field] = None
            continue
        try:
            overrides[field] = float(raw) if "." in raw else int(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric %s=%r", env_var, raw)
    return PricingPlan(**overrides)


def get_normalization_settings(city_id: str | None = None) -> NormalizationSettings:
    city = get_city_config(city_id)
    return NormalizationSettings(pricing=get_pricing_plan(), timezone=city["timezone"])


__all__ = [
    "CITIES",
    "CORS_ALLOWED_ORIGINS",
    "DEFAULT_CITY_ID",
    "DEFAULT_HOURLY_RATE",
    "DETAILS_BATCH_SIZE",
    "LOG_LEVEL",
    "MONGODB_DATABASE",
    "MONGODB_MAX_POOL_SIZE",
    "MONGODB_SERVER_SELECTION_TIMEOUT_MS",
    "MONGODB_URI",
    "NORMALIZATION_BATCH_PAUSE_SECONDS",
    "NORMALIZATION_BATCH_SIZE",
    "PORT",
    "PUBLIC_IMPORT_BATCH_SIZE",
    "RIDE_DETAILS_URL",
    "RIDE_HISTORY_URL",
    "STATION_CACHE_TTL_SECONDS",
    "SYNC_MAX_PAGES",
    "build_gbfs_url",
    "get_city_config",
    "get_normalization_settings",
    "get_pricing_plan",
]
