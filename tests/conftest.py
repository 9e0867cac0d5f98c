import sys
from fnmatch import fnmatch
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient
from network_blocker import install_network_blocker

from db.models import ALL_DOCUMENT_MODELS  # noqa: E402


class FakeRedis:
    """In-memory stand-in for the handful of Redis calls the cache makes."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str = "*"):
        for key in list(self.store):
            if fnmatch(key, match):
                yield key


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PRICING_CLASSIC_FREE_MINUTES",
        "PRICING_CLASSIC_OVERAGE_CENTS_PER_MINUTE",
        "PRICING_EBIKE_CENTS_PER_MINUTE",
        "PRICING_TRANSIT_FLAT_FARE_CENTS",
        "PRICING_ANNUAL_MEMBERSHIP_CENTS",
        "PRICING_TRANSIT_UNLIMITED_MONTHLY_CENTS",
        "PRICING_MAX_BILLED_MINUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    install_network_blocker(monkeypatch)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    redis = FakeRedis()

    async def _get_shared_redis() -> FakeRedis:
        return redis

    monkeypatch.setattr("core.cache.get_shared_redis", _get_shared_redis)
    return redis


@pytest.fixture
async def beanie_db():
    client = AsyncMongoMockClient()
    database = client["test_db"]
    await init_beanie(database=database, document_models=ALL_DOCUMENT_MODELS)
    return database
