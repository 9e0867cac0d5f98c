"""Trip services module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trips.services.public_trip_import_service import PublicTripImportService
    from trips.services.trip_economics_service import TripEconomicsService
    from trips.services.trip_normalization_service import TripNormalizationService
    from trips.services.trip_stats_service import TripStatsService
    from trips.services.trip_sync_service import TripSyncService

__all__ = (
    "PublicTripImportService",
    "TripEconomicsService",
    "TripNormalizationService",
    "TripStatsService",
    "TripSyncService",
)

_MODULES = {
    "PublicTripImportService": "trips.services.public_trip_import_service",
    "TripEconomicsService": "trips.services.trip_economics_service",
    "TripNormalizationService": "trips.services.trip_normalization_service",
    "TripStatsService": "trips.services.trip_stats_service",
    "TripSyncService": "trips.services.trip_sync_service",
}


def __getattr__(name: str):
    module_name = _MODULES.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    from importlib import import_module

    return getattr(import_module(module_name), name)
