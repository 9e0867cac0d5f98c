from unittest.mock import AsyncMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.exceptions import ExternalServiceException, ResourceNotFoundException
from stations import router as stations_router
from trips import router as trips_router


def _create_app() -> FastAPI:
    app = FastAPI()
    app.include_router(trips_router)
    app.include_router(stations_router)
    return app


def test_normalization_status() -> None:
    app = _create_app()

    with patch(
        "trips.api.normalize.TripNormalizationService.get_status",
        new=AsyncMock(
            return_value={
                "totalTrips": 4,
                "normalizedTrips": 3,
                "toNormalize": 1,
                "failedTrips": 0,
            }
        ),
    ) as get_status:
        client = TestClient(app)
        response = client.get("/api/trips/normalize/status", params={"user_id": "u1"})

    assert response.status_code == 200
    assert response.json()["toNormalize"] == 1
    get_status.assert_awaited_once_with("u1")


def test_normalize_trips_passes_request_options() -> None:
    app = _create_app()

    with patch(
        "trips.api.normalize.trip_normalization_service.normalize_user_trips",
        new=AsyncMock(return_value={"processed": 2, "normalized": 2, "batches": 1}),
    ) as normalize:
        client = TestClient(app)
        response = client.post(
            "/api/trips/normalize",
            json={"user_id": "u1", "city_id": "nyc", "hourly_rate": 30},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["normalized"] == 2
    assert body["failed"] == 0
    assert body["missingPricingFields"] == []
    normalize.assert_awaited_once_with(
        "u1",
        city_id="nyc",
        hourly_rate=30,
        retry_failed=False,
        limit=None,
    )


def test_normalize_rejects_negative_hourly_rate() -> None:
    client = TestClient(_create_app())
    response = client.post(
        "/api/trips/normalize",
        json={"user_id": "u1", "hourly_rate": -5},
    )
    assert response.status_code == 422


def test_sync_requires_bearer_token() -> None:
    app = _create_app()

    with patch(
        "trips.api.sync.trip_sync_service.sync_trips",
        new=AsyncMock(),
    ) as sync:
        client = TestClient(app)
        response = client.post("/api/trips/sync", json={"user_id": "u1"})

    assert response.status_code == 401
    sync.assert_not_awaited()


def test_sync_uses_bearer_token() -> None:
    app = _create_app()

    with patch(
        "trips.api.sync.trip_sync_service.sync_trips",
        new=AsyncMock(
            return_value={"totalSynced": 5, "inserted": 2, "pages": 1, "hasMore": False}
        ),
    ) as sync:
        client = TestClient(app)
        response = client.post(
            "/api/trips/sync",
            json={"user_id": "u1", "fetch_details": False},
            headers={"Authorization": "Bearer abc123"},
        )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "totalSynced": 5,
        "inserted": 2,
        "pages": 1,
        "hasMore": False,
    }
    sync.assert_awaited_once_with("u1", "abc123", city_id=None, fetch_details=False)


def test_trip_stats_not_found() -> None:
    app = _create_app()

    with patch(
        "trips.api.stats.TripStatsService.get_user_stats",
        new=AsyncMock(side_effect=ResourceNotFoundException("No trips for u1")),
    ):
        client = TestClient(app)
        response = client.get("/api/trips/stats", params={"user_id": "u1"})

    assert response.status_code == 404
    assert response.json()["detail"] == "No trips for u1"


def test_trip_economics_maps_upstream_failure() -> None:
    app = _create_app()

    with patch(
        "trips.api.stats.TripEconomicsService.get_user_economics",
        new=AsyncMock(side_effect=ExternalServiceException("feed down")),
    ):
        client = TestClient(app)
        response = client.get(
            "/api/trips/economics",
            params={"user_id": "u1", "period": "2024-06"},
        )

    assert response.status_code == 502
    assert response.json()["detail"] == "External service error: feed down"


def test_trip_economics_rejects_bad_period() -> None:
    client = TestClient(_create_app())
    response = client.get(
        "/api/trips/economics",
        params={"user_id": "u1", "period": "June"},
    )
    assert response.status_code == 422


def test_public_trip_month_lookup() -> None:
    app = _create_app()

    with patch(
        "trips.api.public_data.PublicTripImportService.has_data_for_month",
        new=AsyncMock(return_value=True),
    ):
        client = TestClient(app)
        response = client.get("/api/public-trips/2024-05")

    assert response.status_code == 200
    assert response.json() == {"datasetMonth": "2024-05", "hasData": True}


def test_public_trip_import() -> None:
    app = _create_app()
    rows = [{"rideId": "A1", "bikeType": "classic_bike"}]

    with patch(
        "trips.api.public_data.public_trip_import_service.import_trips",
        new=AsyncMock(return_value={"imported": 1, "skipped": 0}),
    ) as import_trips:
        client = TestClient(app)
        response = client.post(
            "/api/public-trips",
            json={"dataset_month": "2024-05", "trips": rows},
        )

    assert response.status_code == 200
    assert response.json()["imported"] == 1
    import_trips.assert_awaited_once_with(rows, "2024-05", city_id=None)


def test_nearest_stations_rejects_bad_coordinates() -> None:
    client = TestClient(_create_app())
    response = client.get("/api/stations/nearest", params={"lat": 120, "lon": -74})
    assert response.status_code == 400


def test_nearest_stations_ranks_by_distance() -> None:
    app = _create_app()
    stations = [
        {"id": "far", "name": "Far", "lat": 40.80, "lon": -73.95},
        {"id": "near", "name": "Near", "lat": 40.7501, "lon": -73.9901},
    ]

    with patch(
        "stations.api.fetch_station_information",
        new=AsyncMock(return_value=stations),
    ):
        client = TestClient(app)
        response = client.get(
            "/api/stations/nearest",
            params={"lat": 40.75, "lon": -73.99, "limit": 1},
        )

    assert response.status_code == 200
    ranked = response.json()["stations"]
    assert [s["id"] for s in ranked] == ["near"]
    assert ranked[0]["distance"] < 50
