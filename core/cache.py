"""
Redis-backed result cache for upstream feed lookups.

Entries expire through Redis TTL. Any Redis failure degrades to a cache
miss so a missing cache never breaks a request.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
from typing import Any

from redis.exceptions import RedisError

from core.redis import get_shared_redis

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "cache"
CACHE_ERRORS = (RedisError, OSError)


def make_cache_key(prefix: str, args: tuple, kwargs: dict[str, Any]) -> str:
    raw = json.dumps({"a": args, "k": kwargs}, sort_keys=True, default=str)
    digest = hashlib.sha256(raw.encode()).hexdigest()[:16]
    return f"{KEY_NAMESPACE}:{prefix}:{digest}"


async def invalidate_prefix(prefix: str) -> int:
    """Drop every cached entry under ``prefix``. Returns the number removed."""
    removed = 0
    try:
        r = await get_shared_redis()
        async for key in r.scan_iter(match=f"{KEY_NAMESPACE}:{prefix}:*"):
            removed += await r.delete(key)
    except CACHE_ERRORS:
        logger.warning("Could not invalidate cache prefix %s", prefix, exc_info=True)
    return removed


def cached(prefix: str, ttl_seconds: int = 300):
    """
    Cache an async function's JSON-serializable result in Redis.

    The key is derived from ``prefix`` and the call arguments.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            key = make_cache_key(prefix, args, kwargs)
            try:
                r = await get_shared_redis()
                hit = await r.get(key)
                if hit is not None:
                    return json.loads(hit)
            except CACHE_ERRORS:
                logger.debug("Cache read failed for %s", key, exc_info=True)

            result = await fn(*args, **kwargs)

            try:
                r = await get_shared_redis()
                await r.set(key, json.dumps(result, default=str), ex=ttl_seconds)
            except CACHE_ERRORS:
                logger.debug("Cache write failed for %s", key, exc_info=True)

            return result

        return wrapper

    return decorator
