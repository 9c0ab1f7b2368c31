"""Redis store for shared short-lived caches.

Handles:
- JSON caching with TTL policies
- Sales aggregate cache used by recommendation scoring

TTL policies:
- Sales aggregates: 5 minutes by default (SALES_CACHE_TTL_SECONDS)

Category closure and synonym tables are NOT stored here: they are
process-local caches owned by the services layer.
"""

import json
import logging
from typing import Any

import redis.asyncio as redis

from partsearch.settings import get_settings

# Key prefixes
PREFIX_SALES = "sales:"
SALES_AGGREGATES_KEY = f"{PREFIX_SALES}aggregates"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


# ============================================================
# Generic cache operations
# ============================================================


async def cache_get(key: str) -> str | None:
    """Get value from cache.

    Args:
        key: Cache key.

    Returns:
        Cached value or None if not found.
    """
    return await _get_redis().get(key)


async def cache_set(key: str, value: str, ttl: int) -> None:
    """Set value in cache with TTL.

    Args:
        key: Cache key.
        value: Value to cache.
        ttl: Time-to-live in seconds.
    """
    await _get_redis().setex(key, ttl, value)


async def cache_delete(key: str) -> None:
    """Delete value from cache.

    Args:
        key: Cache key.
    """
    await _get_redis().delete(key)


async def cache_get_json(key: str) -> dict[str, Any] | None:
    """Get JSON value from cache.

    Args:
        key: Cache key.

    Returns:
        Parsed JSON dict or None if not found.
    """
    value = await cache_get(key)
    if value:
        return json.loads(value)
    return None


async def cache_set_json(key: str, value: dict[str, Any], ttl: int) -> None:
    """Set JSON value in cache.

    Args:
        key: Cache key.
        value: Dict to cache as JSON.
        ttl: Time-to-live in seconds.
    """
    await cache_set(key, json.dumps(value), ttl)


# ============================================================
# Sales aggregates cache
# ============================================================


async def get_sales_cache() -> dict[str, Any] | None:
    """Get cached sales aggregates payload ({sku: [total_sold, order_count]})."""
    return await cache_get_json(SALES_AGGREGATES_KEY)


async def set_sales_cache(payload: dict[str, Any], ttl: int) -> None:
    """Cache sales aggregates payload."""
    await cache_set_json(SALES_AGGREGATES_KEY, payload, ttl)


async def clear_sales_cache() -> None:
    """Drop cached sales aggregates so the next request reads Postgres."""
    await cache_delete(SALES_AGGREGATES_KEY)
