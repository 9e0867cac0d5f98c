"""
GBFS station-information client.

Fetches ``station_information.json`` for a city, flattens it into
``MinimalStation`` records and caches the result in Redis. Station topology
changes rarely, so the cache TTL defaults to a day.
"""

from __future__ import annotations

import logging
from typing import Any

from config import STATION_CACHE_TTL_SECONDS, build_gbfs_url, get_city_config
from core.cache import cached, invalidate_prefix
from core.casting import safe_float
from core.exceptions import ExternalServiceException
from core.http.request import request_json
from core.http.retry import retry_async
from core.http.session import get_session
from core.spatial import GeometryService
from trip_normalizer.models import MinimalStation

logger = logging.getLogger(__name__)

STATION_CACHE_PREFIX = "gbfs_station_information"
STATION_INFORMATION_FEED = "station_information.json"


def parse_station(raw: dict[str, Any]) -> MinimalStation | None:
    """Flatten one feed entry; entries without id or coordinates are dropped."""
    station_id = raw.get("station_id")
    lat = safe_float(raw.get("lat"), None)
    lon = safe_float(raw.get("lon"), None)
    if station_id in (None, "") or lat is None or lon is None:
        return None
    if not GeometryService.validate_coordinate_pair(lat, lon)[0]:
        return None
    name = raw.get("name")
    return MinimalStation(
        id=str(station_id),
        name=str(name) if name else str(station_id),
        lat=lat,
        lon=lon,
    )


@retry_async(max_retries=2, retry_delay=1.0)
async def _download_station_information(city_id: str) -> dict[str, Any]:
    url = build_gbfs_url(city_id, STATION_INFORMATION_FEED)
    session = await get_session()
    payload = await request_json(
        "GET",
        url,
        session=session,
        service_name="GBFS station feed",
    )
    if not isinstance(payload, dict):
        msg = "GBFS station feed returned an unexpected payload"
        raise ExternalServiceException(msg, {"url": url})
    return payload


@cached(STATION_CACHE_PREFIX, ttl_seconds=STATION_CACHE_TTL_SECONDS)
async def fetch_station_information(city_id: str) -> list[dict[str, Any]]:
    """
    Return the city's stations as plain ``{id, name, lat, lon}`` dicts.

    Raises:
        ResourceNotFoundException: For an unknown city.
        ExternalServiceException: When the feed cannot be fetched.
    """
    city = get_city_config(city_id)
    payload = await _download_station_information(city["id"])
    raw_stations = (payload.get("data") or {}).get("stations") or []

    stations: list[dict[str, Any]] = []
    skipped = 0
    for raw in raw_stations:
        station = parse_station(raw) if isinstance(raw, dict) else None
        if station is None:
            skipped += 1
            continue
        stations.append(station.model_dump())

    if skipped:
        logger.debug("Skipped %d incomplete stations for %s", skipped, city["id"])
    logger.info("Loaded %d stations for %s", len(stations), city["id"])
    return stations


def build_station_index(
    stations: list[dict[str, Any]] | list[MinimalStation],
) -> dict[str, MinimalStation]:
    index: dict[str, MinimalStation] = {}
    for entry in stations:
        station = (
            entry if isinstance(entry, MinimalStation) else MinimalStation(**entry)
        )
        index[station.id] = station
    return index


async def get_station_index(city_id: str) -> dict[str, MinimalStation]:
    return build_station_index(await fetch_station_information(city_id))


async def refresh_station_information(city_id: str) -> list[dict[str, Any]]:
    """Drop cached station lists and fetch the city's feed again."""
    await invalidate_prefix(STATION_CACHE_PREFIX)
    return await fetch_station_information(city_id)


def find_nearest_stations(
    index: dict[str, MinimalStation],
    lat: float,
    lon: float,
    limit: int = 5,
) -> list[dict[str, Any]]:
    """Closest stations to a point, nearest first, with ``distance`` in meters."""
    ranked = sorted(
        (
            (
                GeometryService.haversine_distance(lat, lon, s.lat, s.lon),
                s.id,
                s,
            )
            for s in index.values()
        ),
        key=lambda item: (item[0], item[1]),
    )
    return [
        {**station.model_dump(), "distance": distance}
        for distance, _, station in ranked[: max(limit, 0)]
    ]
