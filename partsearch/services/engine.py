"""Wiring between routes and the catalog services.

Process-wide state lives here: the category closure and synonym caches are
created once per worker and shared by every request. Everything else
(sources, scorers) is built per request on a read-only session.

Supporting reads (cache builds, vocabulary, sales) run in their own
sessions so a failed read cannot abort the request's transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from partsearch.schemas import ItemView
from partsearch.services.analytics import SearchLogSink
from partsearch.services.browse import BrowsePage, BrowseService
from partsearch.services.cache import ProcessCache
from partsearch.services.category_closure import CategoryClosureIndex
from partsearch.services.fuzzy import FuzzyMatcher
from partsearch.services.query_expansion import QueryExpander
from partsearch.services.recommendation import RecommendationPage, RecommendationScorer
from partsearch.services.relevance import RelevanceScorer, SearchPage, SearchQuery
from partsearch.services.sales import get_sales_aggregates
from partsearch.services.synonyms import SynonymTable
from partsearch.settings import get_settings
from partsearch.stores.catalog import PostgresCatalogSource, SalesAggregate, SynonymEdge, VocabularyTerm
from partsearch.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


@dataclass
class CatalogCaches:
    closure: CategoryClosureIndex
    synonyms: SynonymTable

    def all(self) -> list[ProcessCache]:
        return [self.closure, self.synonyms]


_caches: CatalogCaches | None = None


# ============================================================
# Supporting reads (own sessions)
# ============================================================


async def _load_category_edges() -> list[tuple[int, int | None]]:
    async with get_session(readonly=True) as session:
        return await PostgresCatalogSource(session).load_category_edges()


async def _load_synonym_edges() -> list[SynonymEdge]:
    async with get_session(readonly=True) as session:
        return await PostgresCatalogSource(session).load_synonym_edges()


async def _load_vocabulary() -> list[VocabularyTerm]:
    limits = get_settings().search_limits
    async with get_session(readonly=True) as session:
        return await PostgresCatalogSource(session).load_vocabulary(limits)


async def _load_sales() -> dict[str, SalesAggregate]:
    ttl = get_settings().sales_cache_ttl_seconds
    async with get_session(readonly=True) as session:
        return await get_sales_aggregates(PostgresCatalogSource(session), ttl=ttl)


async def refresh_sales_cache() -> int:
    """Re-read sales aggregates from Postgres and overwrite the Redis copy."""
    ttl = get_settings().sales_cache_ttl_seconds
    async with get_session(readonly=True) as session:
        by_sku = await get_sales_aggregates(
            PostgresCatalogSource(session), ttl=ttl, force_refresh=True
        )
    logger.info(f"[sales] cache refreshed: {len(by_sku)} skus")
    return len(by_sku)


# ============================================================
# Process-local caches
# ============================================================


def get_catalog_caches() -> CatalogCaches:
    """Get (creating on first use) the worker's closure and synonym caches."""
    global _caches
    if _caches is None:
        settings = get_settings()
        _caches = CatalogCaches(
            closure=CategoryClosureIndex(
                _load_category_edges, max_age=settings.category_cache_max_age_seconds
            ),
            synonyms=SynonymTable(
                _load_synonym_edges, max_age=settings.synonym_cache_max_age_seconds
            ),
        )
    return _caches


def reset_catalog_caches() -> None:
    """Forget the worker's caches entirely (tests, shutdown)."""
    global _caches
    _caches = None


def cache_status() -> list[dict[str, Any]]:
    return [cache.status() for cache in get_catalog_caches().all()]


def invalidate_caches() -> list[dict[str, Any]]:
    for cache in get_catalog_caches().all():
        cache.invalidate()
    return cache_status()


async def rebuild_caches() -> list[dict[str, Any]]:
    """Rebuild every cache now.

    Raises:
        TransientReadFailure: a build read failed (earlier caches stay rebuilt).
    """
    for cache in get_catalog_caches().all():
        await cache.rebuild()
    return cache_status()


# ============================================================
# Request entry points
# ============================================================


async def run_search(query: SearchQuery) -> SearchPage:
    settings = get_settings()
    caches = get_catalog_caches()
    limits = settings.search_limits

    async with get_session(readonly=True) as session:
        source = PostgresCatalogSource(session)
        expander = QueryExpander(caches.synonyms, FuzzyMatcher(_load_vocabulary, limits), limits)
        scorer = RelevanceScorer(
            source,
            caches.closure,
            expander,
            weights=settings.relevance_weights,
            limits=limits,
            sink=SearchLogSink(),
        )
        return await scorer.search(query)


async def run_recommendation(page: int, page_size: int) -> RecommendationPage:
    settings = get_settings()
    async with get_session(readonly=True) as session:
        scorer = RecommendationScorer(
            PostgresCatalogSource(session),
            _load_sales,
            weights=settings.recommendation_weights,
            limits=settings.search_limits,
        )
        return await scorer.recommend(page, page_size)


async def browse_by_category(category_id: int, page: int, page_size: int) -> BrowsePage:
    async with get_session(readonly=True) as session:
        service = _browse_service(PostgresCatalogSource(session))
        return await service.by_category(category_id, page, page_size)


async def browse_by_manufacturer(
    manufacturer_id: int, model_ids: tuple[int, ...], page: int, page_size: int
) -> BrowsePage:
    async with get_session(readonly=True) as session:
        service = _browse_service(PostgresCatalogSource(session))
        return await service.by_manufacturer(manufacturer_id, model_ids, page, page_size)


async def browse_by_filter(
    category_id: int | None,
    manufacturer_id: int | None,
    model_ids: tuple[int, ...],
    page: int,
    page_size: int,
) -> BrowsePage:
    async with get_session(readonly=True) as session:
        service = _browse_service(PostgresCatalogSource(session))
        return await service.by_filter(category_id, manufacturer_id, model_ids, page, page_size)


async def get_item_detail(item_id: int) -> ItemView:
    async with get_session(readonly=True) as session:
        service = _browse_service(PostgresCatalogSource(session))
        return await service.item_detail(item_id)


def _browse_service(source: PostgresCatalogSource) -> BrowseService:
    return BrowseService(source, get_catalog_caches().closure, limits=get_settings().search_limits)
