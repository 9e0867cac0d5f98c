from datetime import UTC, datetime

import pytest
from pymongo.errors import BulkWriteError

from core.exceptions import MalformedInputException
from db.models import PublicTrip
from trips.services.public_trip_import_service import (
    PublicTripImportService,
    prepare_public_trip,
)

NOW = datetime(2024, 7, 1, tzinfo=UTC)

def _row(ride_id, **fields):
    row = {
        "rideId": ride_id,
        "bikeType": "electric_bike",
        "memberType": "Member",
        "startTime": "2024-06-03T12:00:00Z",
        "endTime": "2024-06-03T12:15:00Z",
        "startStationId": 6140,
        "startLat": 40.7,
        "startLon": -74.0,
        "endLat": 40.71,
        "endLon": -74.0,
    }
    row.update(fields)
    return row

def test_prepare_derives_duration_distance_and_category() -> None:
    doc = prepare_public_trip(
        _row("p1"), "2024-06", city_id="nyc", tz_name="UTC", imported_at=NOW
    )

    assert doc["duration"] == 900
    assert doc["distance"] == pytest.approx(1111.95, rel=1e-3)
    assert doc["bikeType"] == "ebike"
    assert doc["memberType"] == "member"
    assert doc["startStationId"] == "6140"
    assert doc["category"] == {
        "distanceBucket": "short",
        "durationBucket": "10-30min",
        "timeOfDay": "midday",
    }
    assert doc["datasetMonth"] == "2024-06"

def test_prepare_keeps_reported_distance() -> None:
    doc = prepare_public_trip(
        _row("p1", distance=2500, duration=700),
        "2024-06",
        city_id="nyc",
        tz_name="UTC",
        imported_at=NOW,
    )
    assert doc["distance"] == 2500
    assert doc["duration"] == 700

@pytest.mark.parametrize(
    "row",
    [
        {"bikeType": "classic_bike"},
        _row(""),
        _row("p1", endTime=None),
        _row("p1", endTime="2024-06-03T11:00:00Z"),
    ],
)
def test_prepare_rejects_unusable_rows(row) -> None:
    with pytest.raises(MalformedInputException):
        prepare_public_trip(row, "2024-06", city_id="nyc", tz_name="UTC", imported_at=NOW)

@pytest.mark.asyncio
async def test_import_upserts_in_batches(beanie_db) -> None:
    service = PublicTripImportService(batch_size=2)
    rows = [_row(f"p{i}") for i in range(5)] + [{"memberType": "casual"}]
    progress = []

    result = await service.import_trips(
        rows,
        "2024-06",
        city_id="nyc",
        progress_callback=lambda done, total: progress.append((done, total)),
    )

    assert result["success"] is True
    assert result["imported"] == 5
    assert result["skipped"] == 1
    assert result["errors"] == 0
    assert progress == [(2, 6), (4, 6), (6, 6)]
    assert await PublicTrip.find_all().count() == 5

    again = await service.import_trips(rows[:2], "2024-06", city_id="nyc")
    assert again["imported"] == 2
    assert await PublicTrip.find_all().count() == 5

class FlakyCollection:
    """Fails the first bulk write, delegates everything else."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.calls = 0

    async def bulk_write(self, operations, **kwargs):
        self.calls += 1
        if self.calls == 1:
            raise BulkWriteError({"writeErrors": []})
        return await self._inner.bulk_write(operations, **kwargs)

    def __getattr__(self, name):
        return getattr(self._inner, name)

@pytest.mark.asyncio
async def test_failed_batch_counts_errors_and_continues(beanie_db, monkeypatch) -> None:
    service = PublicTripImportService(batch_size=2)
    flaky = FlakyCollection(PublicTrip.get_motor_collection())
    monkeypatch.setattr(PublicTrip, "get_motor_collection", lambda: flaky)

    result = await service.import_trips([_row(f"p{i}") for i in range(4)], "2024-06")

    assert result["success"] is False
    assert result["errors"] == 2
    assert result["imported"] == 2
    assert flaky.calls == 2

@pytest.mark.asyncio
async def test_stats_clear_and_month_check(beanie_db) -> None:
    service = PublicTripImportService()
    await service.import_trips(
        [_row("p1"), _row("p2", bikeType="classic_bike", memberType="casual")],
        "2024-06",
    )
    await service.import_trips([_row("p3")], "2024-07")

    stats = await service.get_stats()
    assert stats["totalTrips"] == 3
    assert stats["datasetMonths"] == ["2024-06", "2024-07"]
    assert stats["bikeTypes"]["ebike"] == 2
    assert stats["memberTypes"]["casual"] == 1
    assert stats["averages"]["durationMinutes"] == pytest.approx(15)

    assert await service.has_data_for_month("2024-07") is True
    assert await service.clear("2024-07") == 1
    assert await service.has_data_for_month("2024-07") is False
    assert await service.clear() == 2
    assert await service.get_stats() == {"totalTrips": 0, "hasData": False}
