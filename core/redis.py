"""Shared async Redis client used by the station cache."""

from __future__ import annotations

import logging
import os
from typing import Final

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL: Final[str] = "redis://localhost:6379/0"

_shared_client: aioredis.Redis | None = None


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "").strip() or DEFAULT_REDIS_URL


async def get_shared_redis() -> aioredis.Redis:
    """
    Return the process-wide Redis client.

    Created lazily and health-checked with ``ping()`` on reuse; a dropped
    connection is replaced transparently.
    """
    global _shared_client
    if _shared_client is not None:
        try:
            await _shared_client.ping()
        except (RedisConnectionError, OSError):
            logger.warning("Redis connection lost, reconnecting")
            _shared_client = None
        else:
            return _shared_client

    client = aioredis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_connect_timeout=2,
    )
    await client.ping()
    _shared_client = client
    logger.info("Redis client connected")
    return _shared_client


async def close_shared_redis() -> None:
    global _shared_client
    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None
        logger.info("Redis client closed")
