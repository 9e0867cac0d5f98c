"""
Rider trip package.

- api/: route handlers for normalization, stats, sync and public data
- services/: normalization runner, sync, stats, economics and imports
- models.py: request and result models
"""

from fastapi import APIRouter

from trips.api import normalize, public_data, stats, sync

router = APIRouter()

router.include_router(normalize.router, tags=["trips-normalize"])
router.include_router(stats.router, tags=["trips-stats"])
router.include_router(sync.router, tags=["trips-sync"])
router.include_router(public_data.router, tags=["public-data"])

__all__ = ["router"]
