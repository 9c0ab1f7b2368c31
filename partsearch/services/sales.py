"""Per-SKU sales aggregates backed by Postgres + Redis cache.

Aggregates come from order_items joined to non-draft orders. The result is
cached in Redis for SALES_CACHE_TTL_SECONDS.

If Redis is unavailable (e.g. tests / local minimal env), the service still works
but skips caching.
"""

from __future__ import annotations

import logging
from typing import Any

from redis.exceptions import RedisError

from partsearch.stores.catalog import CatalogSource, SalesAggregate
from partsearch.stores.redis import get_sales_cache, set_sales_cache

logger = logging.getLogger("uvicorn.error")


async def get_sales_aggregates(
    source: CatalogSource,
    *,
    ttl: int,
    force_refresh: bool = False,
) -> dict[str, SalesAggregate]:
    """Get sku -> SalesAggregate, using Redis cache when available.

    Args:
        source: Catalog source to read from on cache miss.
        ttl: Cache TTL in seconds. 0 disables caching.
        force_refresh: If True, bypass Redis cache and read Postgres once.
    """
    if ttl > 0 and not force_refresh:
        cached = await _try_get_cached_sales()
        if cached is not None:
            logger.info(f"Sales aggregates loaded from cache: {len(cached)} skus")
            return cached

    aggregates = await source.load_sales_aggregates()
    by_sku = {agg.sku: agg for agg in aggregates}
    logger.info(f"Sales aggregates read from Postgres: {len(by_sku)} skus")

    if ttl > 0:
        await _try_set_cached_sales(by_sku, ttl)
    return by_sku


async def _try_get_cached_sales() -> dict[str, SalesAggregate] | None:
    try:
        payload = await get_sales_cache()
    except (RuntimeError, RedisError):
        return None
    except ValueError as e:
        logger.warning(f"Sales cache payload unreadable, reading Postgres: {e}")
        return None
    if payload is None:
        return None

    try:
        return {
            str(sku): SalesAggregate(sku=str(sku), total_sold=int(values[0]), order_count=int(values[1]))
            for sku, values in payload.items()
        }
    except (AttributeError, TypeError, ValueError, IndexError):
        return None


async def _try_set_cached_sales(by_sku: dict[str, SalesAggregate], ttl: int) -> None:
    payload: dict[str, Any] = {sku: [agg.total_sold, agg.order_count] for sku, agg in by_sku.items()}
    try:
        await set_sales_cache(payload, ttl)
    except (RuntimeError, RedisError):
        # Redis may be unavailable in tests/local minimal env.
        return
