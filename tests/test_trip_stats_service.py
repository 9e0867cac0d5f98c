from datetime import UTC, datetime

import pytest

from db.models import Trip
from trips.services.trip_stats_service import (
    TripStatsService,
    calculate_trip_stats,
    most_frequent_route,
)


def _trip(ride_id: str, start: str, **fields) -> dict:
    trip = {
        "rideId": ride_id,
        "startTime": start,
        "duration": 600,
        "distance": 1000,
        "bikeType": "classic",
        "startStationName": "Unknown",
        "endStationName": "Unknown",
    }
    trip.update(fields)
    return trip


TRIPS = [
    _trip(
        "a",
        "2024-06-03T12:00:00Z",
        startStationId="s1",
        startStationName="Pier 40",
        endStationId="s2",
        endStationName="Union Sq",
    ),
    _trip(
        "b",
        "2024-06-04T17:30:00Z",
        distance=3218.688,
        duration=1200,
        bikeType="ebike",
        startStationId="s1",
        startStationName="Pier 40",
        endStationId="s2",
        endStationName="Union Sq",
    ),
    _trip("c", "2024-07-01T08:00:00Z", distance=390.312, duration=300),
]


def test_totals_and_averages() -> None:
    stats = calculate_trip_stats(TRIPS)

    assert stats["totalTrips"] == 3
    assert stats["totalDistance"] == pytest.approx(4609.0)
    assert stats["totalDuration"] == 2100
    assert stats["co2Saved"] == round(4609.0 * 0.251)
    assert stats["averageDuration"] == 700
    assert stats["averageDistance"] == 1536
    assert stats["tripsPerMonth"] == 1.5
    assert stats["bikeTypeUsage"] == {"classic": 2, "ebike": 1}


def test_favorites_skip_placeholder_stations() -> None:
    stats = calculate_trip_stats(TRIPS)

    assert stats["favoriteStartStations"] == [
        {"stationId": "s1", "stationName": "Pier 40", "count": 2},
    ]
    assert stats["favoriteEndStations"][0]["stationName"] == "Union Sq"
    assert stats["mostFrequentRoute"] == {
        "startStationName": "Pier 40",
        "endStationName": "Union Sq",
        "count": 2,
    }


def test_longest_trip_and_patterns() -> None:
    stats = calculate_trip_stats(TRIPS)

    assert stats["longestTrip"]["rideId"] == "b"
    patterns = stats["ridingPatterns"]
    assert patterns["byMonth"] == {"2024-06": 2, "2024-07": 1}
    assert patterns["byDayOfWeek"]["Monday"] == 2
    assert patterns["byDayOfWeek"]["Tuesday"] == 1
    assert patterns["byHour"] == {"12": 1, "17": 1, "8": 1}


def test_patterns_use_local_time() -> None:
    stats = calculate_trip_stats(TRIPS, "America/New_York")

    # 2024-07-01T08:00Z is 04:00 in New York.
    assert stats["ridingPatterns"]["byHour"]["4"] == 1


def test_empty_history() -> None:
    stats = calculate_trip_stats([])

    assert stats["totalTrips"] == 0
    assert stats["averageDuration"] == 0
    assert stats["longestTrip"] is None
    assert stats["mostFrequentRoute"] is None


def test_most_frequent_route_requires_named_stations() -> None:
    assert most_frequent_route([_trip("x", "2024-06-03T12:00:00Z")]) is None


@pytest.mark.asyncio
async def test_get_user_stats_reads_only_that_user(beanie_db) -> None:
    for ride_id, user in (("a", "u1"), ("b", "u1"), ("c", "u2")):
        await Trip(
            rideId=ride_id,
            userId=user,
            startTime=datetime(2024, 6, 3, 12, tzinfo=UTC),
            duration=600,
            distance=1000,
        ).insert()

    stats = await TripStatsService.get_user_stats("u1", "nyc")

    assert stats["totalTrips"] == 2
    assert stats["totalDistance"] == 2000
