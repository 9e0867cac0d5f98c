"""
Centralized date and time utilities for the application.

This module provides a focused set of functions for handling dates, times,
and timestamps in a consistent and timezone-aware manner.

Key Features:
-   **Timezone-Aware Parsing**: All timestamps are handled as timezone-aware
    datetime objects, defaulting to UTC to prevent common timezone-related bugs.
-   **Epoch Support**: Ride records store timestamps as epoch milliseconds;
    numeric inputs are interpreted that way.
-   **Local Time**: Trips are classified by the local hour of the city they
    were ridden in, resolved through IANA timezone names.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser

logger = logging.getLogger(__name__)


def get_current_utc_time() -> datetime:
    """Return the current time as a timezone-aware datetime object in UTC."""
    return datetime.now(UTC)


def parse_timestamp(ts: str | datetime | int | float | None) -> datetime | None:
    """
    Parse a timestamp and ensure it is timezone-aware, defaulting to UTC.

    Args:
        ts: An ISO 8601 string, a datetime object, or a number of epoch
            milliseconds.

    Returns:
        A timezone-aware datetime object, or None if parsing fails.
    """
    if ts is None or ts == "":
        logger.debug("Received empty timestamp; returning None.")
        return None

    if isinstance(ts, bool):
        return None

    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            return ts.replace(tzinfo=UTC)
        return ts

    if isinstance(ts, int | float):
        try:
            return datetime.fromtimestamp(ts / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning("Failed to parse epoch timestamp %s: %s", ts, e)
            return None

    if isinstance(ts, str):
        stripped = ts.strip()
        if stripped.lstrip("-").isdigit():
            return parse_timestamp(int(stripped))
        try:
            parsed_time = parser.isoparse(stripped)
        except (ValueError, TypeError) as e:
            logger.warning("Failed to parse timestamp '%s': %s", ts, e)
            return None
        if parsed_time.tzinfo is None:
            return parsed_time.replace(tzinfo=UTC)
        return parsed_time

    logger.warning("Unsupported timestamp type %s", type(ts).__name__)
    return None


def get_zone(tz_name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to UTC."""
    if not tz_name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s'; falling back to UTC", tz_name)
        return ZoneInfo("UTC")


def to_local(dt: datetime, tz_name: str | None) -> datetime:
    """Convert a datetime into the given IANA timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(get_zone(tz_name))


def month_key(dt: datetime, tz_name: str | None = None) -> str:
    """Return the YYYY-MM key of a datetime in the given timezone."""
    local = to_local(dt, tz_name)
    return f"{local.year}-{local.month:02d}"
