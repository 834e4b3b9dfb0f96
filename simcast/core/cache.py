"""Redis cache for dashboard metric reads.

Cache errors never fail a request: they are logged and the caller falls
through to the database.
"""

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from simcast.core.config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None

METRICS_PREFIX = "cache:metrics"


async def _get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _redis


def make_cache_key(*parts: Any) -> str:
    return ":".join([METRICS_PREFIX, *("-" if p is None else str(p) for p in parts)])


async def cache_get_json(key: str) -> Any | None:
    try:
        r = await _get_redis()
        raw = await r.get(key)
    except Exception:
        logger.exception("Cache get failed for key=%s", key)
        return None
    return json.loads(raw) if raw is not None else None


async def cache_set_json(key: str, value: Any, ttl: int | None = None) -> None:
    try:
        r = await _get_redis()
        await r.set(key, json.dumps(value, default=str), ex=ttl or settings.metrics_cache_ttl)
    except Exception:
        logger.exception("Cache set failed for key=%s", key)


async def invalidate_metrics_cache() -> None:
    """Drop every cached metrics response; called after each collection run."""
    try:
        r = await _get_redis()
        cursor = 0
        while True:
            cursor, keys = await r.scan(cursor, match=f"{METRICS_PREFIX}:*", count=100)
            if keys:
                await r.delete(*keys)
            if cursor == 0:
                break
    except Exception:
        logger.exception("Metrics cache invalidation failed")
