"""Admin endpoints for cache management.

These endpoints are intended for manual testing and admin operations.
In production, consider adding authentication (API key or admin token).

The category closure and synonym caches are process-local: these endpoints
only affect the worker that serves the request.
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from redis.exceptions import RedisError

from partsearch.services.engine import (
    cache_status,
    invalidate_caches,
    rebuild_caches,
    refresh_sales_cache,
)
from partsearch.services.errors import TransientReadFailure
from partsearch.stores.redis import clear_sales_cache

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


class CacheStatusResponse(BaseModel):
    """Process-local cache state."""

    success: bool = True
    caches: list[dict]


class SalesCacheResponse(BaseModel):
    success: bool
    message: str


@router.get("/caches", response_model=CacheStatusResponse)
async def get_cache_status() -> CacheStatusResponse:
    """Report build time, age and size of each process-local cache."""
    return CacheStatusResponse(caches=cache_status())


@router.post("/caches/invalidate", response_model=CacheStatusResponse)
async def invalidate_cache() -> CacheStatusResponse:
    """Drop the caches; the next request rebuilds them."""
    statuses = invalidate_caches()
    logger.info("[admin] caches invalidated")
    return CacheStatusResponse(caches=statuses)


@router.post("/caches/rebuild", response_model=CacheStatusResponse)
async def rebuild_cache() -> CacheStatusResponse:
    """Rebuild the caches now.

    Returns 503 if a build read fails; the previous cache contents are kept.
    """
    try:
        statuses = await rebuild_caches()
    except TransientReadFailure as e:
        logger.exception("[admin] cache rebuild failed")
        raise HTTPException(status_code=503, detail=f"Cache rebuild failed: {e.source}")
    logger.info("[admin] caches rebuilt")
    return CacheStatusResponse(caches=statuses)


@router.delete("/caches/sales", response_model=SalesCacheResponse)
async def drop_sales_cache() -> SalesCacheResponse:
    """Drop the Redis sales aggregate so recommendations re-read Postgres."""
    try:
        await clear_sales_cache()
    except (RuntimeError, RedisError) as e:
        logger.warning(f"[admin] sales cache clear skipped: {e}")
        return SalesCacheResponse(success=False, message="Redis unavailable; nothing to clear.")
    return SalesCacheResponse(success=True, message="Sales cache cleared.")


@router.post("/caches/sales/refresh", response_model=SalesCacheResponse)
async def refresh_sales() -> SalesCacheResponse:
    """Re-read sales aggregates from Postgres now, bypassing the Redis copy."""
    try:
        skus = await refresh_sales_cache()
    except RuntimeError as e:
        logger.exception("[admin] sales refresh failed")
        raise HTTPException(status_code=503, detail=f"Sales refresh failed: {e}")
    return SalesCacheResponse(success=True, message=f"Sales cache refreshed: {skus} skus.")
