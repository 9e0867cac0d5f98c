"""Aggregate ride statistics for a user's trip history."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from config import DEFAULT_CITY_ID, get_city_config
from core.casting import safe_float
from core.constants import CO2_GRAMS_PER_METER, METERS_PER_MILE
from core.date_utils import month_key, parse_timestamp, to_local
from db.models import Trip
from trip_normalizer.models import BikeType, coerce_bike_type
from trip_normalizer.stations import is_placeholder_name

logger = logging.getLogger(__name__)

# Taxi fare avoided per mile ridden, in dollars.
TAXI_DOLLARS_PER_MILE = 3.0
TOP_STATIONS_LIMIT = 10
DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def _top_stations(counts: Counter, names: dict[str, str]) -> list[dict[str, Any]]:
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        {"stationId": key, "stationName": names[key], "count": count}
        for key, count in ranked[:TOP_STATIONS_LIMIT]
    ]


def _count_station(
    counts: Counter,
    names: dict[str, str],
    station_id: str | None,
    station_name: str | None,
) -> None:
    if is_placeholder_name(station_name):
        return
    key = station_id or station_name
    counts[key] += 1
    names.setdefault(key, station_name)


def most_frequent_route(trips: list[dict[str, Any]]) -> dict[str, Any] | None:
    routes: Counter = Counter()
    for trip in trips:
        start = trip.get("startStationName")
        end = trip.get("endStationName")
        if is_placeholder_name(start) or is_placeholder_name(end):
            continue
        routes[(start, end)] += 1
    if not routes:
        return None
    (start, end), count = min(routes.items(), key=lambda item: (-item[1], item[0]))
    return {"startStationName": start, "endStationName": end, "count": count}


def calculate_trip_stats(
    trips: list[dict[str, Any]],
    tz_name: str | None = None,
) -> dict[str, Any]:
    """
    Summarize a list of trip records.

    Args:
        trips: Stored trip dicts (raw or normalized).
        tz_name: Timezone for the month, weekday and hour breakdowns.

    Returns:
        Totals, environmental and money savings, favourite stations, riding
        patterns, bike-type usage, averages, longest trip and most frequent
        route.
    """
    by_month: Counter = Counter()
    by_day = dict.fromkeys(DAY_NAMES, 0)
    by_hour: Counter = Counter()
    start_counts: Counter = Counter()
    end_counts: Counter = Counter()
    start_names: dict[str, str] = {}
    end_names: dict[str, str] = {}
    bike_usage = {BikeType.CLASSIC.value: 0, BikeType.EBIKE.value: 0}

    total_distance = 0.0
    total_duration = 0.0
    longest: dict[str, Any] | None = None

    for trip in trips:
        distance = max(safe_float(trip.get("distance"), 0.0), 0.0)
        total_distance += distance
        total_duration += max(safe_float(trip.get("duration"), 0.0), 0.0)
        if longest is None or distance > max(
            safe_float(longest.get("distance"), 0.0), 0.0
        ):
            longest = trip

        _count_station(
            start_counts,
            start_names,
            trip.get("startStationId"),
            trip.get("startStationName"),
        )
        _count_station(
            end_counts,
            end_names,
            trip.get("endStationId"),
            trip.get("endStationName"),
        )

        started = parse_timestamp(trip.get("startTime"))
        if started is not None:
            local = to_local(started, tz_name)
            by_month[month_key(started, tz_name)] += 1
            by_day[DAY_NAMES[local.weekday()]] += 1
            by_hour[str(local.hour)] += 1

        if coerce_bike_type(trip.get("bikeType")) is BikeType.EBIKE:
            bike_usage[BikeType.EBIKE.value] += 1
        else:
            bike_usage[BikeType.CLASSIC.value] += 1

    total_trips = len(trips)
    months = len(by_month)
    return {
        "totalTrips": total_trips,
        "totalDistance": total_distance,
        "totalDuration": total_duration,
        "co2Saved": round(total_distance * CO2_GRAMS_PER_METER),
        "moneySaved": round(total_distance / METERS_PER_MILE * TAXI_DOLLARS_PER_MILE, 2),
        "favoriteStartStations": _top_stations(start_counts, start_names),
        "favoriteEndStations": _top_stations(end_counts, end_names),
        "ridingPatterns": {
            "byMonth": dict(sorted(by_month.items())),
            "byDayOfWeek": by_day,
            "byHour": dict(by_hour),
        },
        "bikeTypeUsage": bike_usage,
        "averageDuration": round(total_duration / total_trips) if total_trips else 0,
        "averageDistance": round(total_distance / total_trips) if total_trips else 0,
        "tripsPerMonth": round(total_trips / months, 1) if months else 0,
        "longestTrip": _summarize_trip(longest),
        "mostFrequentRoute": most_frequent_route(trips),
    }


def _summarize_trip(trip: dict[str, Any] | None) -> dict[str, Any] | None:
    if trip is None:
        return None
    return {
        "rideId": trip.get("rideId"),
        "startTime": trip.get("startTime"),
        "distance": trip.get("distance"),
        "duration": trip.get("duration"),
        "startStationName": trip.get("startStationName"),
        "endStationName": trip.get("endStationName"),
    }


class TripStatsService:
    """Loads a user's trips and summarizes them."""

    @staticmethod
    async def load_user_trips(user_id: str) -> list[dict[str, Any]]:
        trips = await Trip.find(Trip.userId == user_id).sort("+startTime").to_list()
        return [trip.model_dump(exclude={"id", "revision_id"}) for trip in trips]

    @staticmethod
    async def get_user_stats(
        user_id: str,
        city_id: str | None = None,
    ) -> dict[str, Any]:
        city = get_city_config(city_id or DEFAULT_CITY_ID)
        trips = await TripStatsService.load_user_trips(user_id)
        logger.debug("Computing stats over %d trips for %s", len(trips), user_id)
        return calculate_trip_stats(trips, city["timezone"])
