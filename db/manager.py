"""
Database connection manager module.

Provides a singleton DatabaseManager owning the Motor client, rebinding it
when the running event loop changes, and initializing Beanie.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import UTC
from typing import Any, Self

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config import (
    MONGODB_DATABASE,
    MONGODB_MAX_POOL_SIZE,
    MONGODB_SERVER_SELECTION_TIMEOUT_MS,
    MONGODB_URI,
)

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Singleton owning the MongoDB client; pool sizing comes from ``config``."""

    _instance: DatabaseManager | None = None
    _lock = threading.Lock()

    def __new__(cls) -> Self:
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, "_initialized", False):
            return
        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None
        self._bound_loop: asyncio.AbstractEventLoop | None = None
        self._beanie_initialized = False
        self._db_name = MONGODB_DATABASE
        self._initialized = True

    @staticmethod
    def _get_current_loop() -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _client_kwargs(self) -> dict[str, Any]:
        return {
            "tz_aware": True,
            "tzinfo": UTC,
            "maxPoolSize": MONGODB_MAX_POOL_SIZE,
            "serverSelectionTimeoutMS": MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            "retryWrites": True,
            "appname": "BikeshareEconomics",
        }

    def _reset(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None
        self._bound_loop = None
        self._beanie_initialized = False

    def _ensure_client(self) -> None:
        current_loop = self._get_current_loop()
        if self._client is not None and (
            (self._bound_loop is not None and self._bound_loop.is_closed())
            or (current_loop is not None and self._bound_loop is not current_loop)
        ):
            logger.info("Event loop changed, reconnecting MongoDB client")
            self._reset()

        if self._client is None:
            self._client = AsyncIOMotorClient(MONGODB_URI, **self._client_kwargs())
            self._db = self._client[self._db_name]
            self._bound_loop = current_loop
            logger.info("MongoDB client initialized for database %s", self._db_name)

    @property
    def db(self) -> AsyncIOMotorDatabase:
        self._ensure_client()
        if self._db is None:
            msg = "Database instance could not be initialized."
            raise RuntimeError(msg)
        return self._db

    async def init_beanie(self) -> None:
        """Bind all document models to the database (idempotent per loop)."""
        self._ensure_client()
        if self._beanie_initialized:
            logger.debug("Beanie already initialized, skipping")
            return

        from beanie import init_beanie

        from db.models import ALL_DOCUMENT_MODELS

        await init_beanie(database=self.db, document_models=ALL_DOCUMENT_MODELS)
        self._beanie_initialized = True
        logger.info(
            "Beanie ODM initialized with %d document models",
            len(ALL_DOCUMENT_MODELS),
        )

    async def cleanup_connections(self) -> None:
        if self._client is not None:
            logger.info("Closing MongoDB client connections")
        self._reset()


db_manager = DatabaseManager()


async def init_database() -> None:
    await db_manager.init_beanie()
