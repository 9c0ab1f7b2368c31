"""Structural browsing: items by category, by manufacturer, by combined filter,
and single-item detail.

Browse listings reuse the search candidate filter without text tokens and
return every image of each item.

Ordering:
- by category: newest first
- by manufacturer / by filter: universal items first, then newest
Ties break by id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from partsearch.schemas import ItemView, Pagination
from partsearch.services.category_closure import CategoryClosureIndex
from partsearch.services.errors import ItemNotFound, ValidationError
from partsearch.services.pagination import build_pagination, paginate, validate_pagination
from partsearch.services.relevance import fetch_matching
from partsearch.services.views import build_item_view
from partsearch.settings import SearchLimits
from partsearch.stores.catalog import CandidateRow, CatalogFilters, CatalogSource

logger = logging.getLogger("uvicorn.error")


@dataclass
class BrowsePage:
    items: list[ItemView]
    total_items: int
    page: int
    page_size: int
    message: str
    descendant_categories: tuple[int, ...] = ()

    @property
    def pagination(self) -> Pagination:
        return build_pagination(self.page, self.page_size, self.total_items)


def _created_desc(row: CandidateRow) -> float:
    created: datetime | None = row.item.created_at
    return -created.timestamp() if created else float("inf")


def newest_first(row: CandidateRow) -> tuple:
    return (_created_desc(row), row.item.id)


def universal_then_newest(row: CandidateRow) -> tuple:
    return (not row.item.is_universal, _created_desc(row), row.item.id)


class BrowseService:
    def __init__(self, source: CatalogSource, closure: CategoryClosureIndex, *, limits: SearchLimits) -> None:
        self.source = source
        self.closure = closure
        self.limits = limits

    async def _list(
        self,
        filters: CatalogFilters,
        order: Callable[[CandidateRow], tuple],
        page: int,
        page_size: int,
    ) -> tuple[list[ItemView], int]:
        matched = await fetch_matching(self.source, (), filters, self.limits)
        ordered = sorted(matched, key=order)
        page_rows = paginate(ordered, page, page_size)
        relations = await self.source.load_relations(
            [row.item.id for row in page_rows], all_images=True
        )
        views = [build_item_view(row.item, relations, all_images=True) for row in page_rows]
        return views, len(ordered)

    async def by_category(self, category_id: int, page: int, page_size: int) -> BrowsePage:
        if category_id <= 0:
            raise ValidationError(
                "category_id", "Invalid category ID. Please provide a valid category_id parameter."
            )
        validate_pagination(page, page_size, self.limits)

        descendants = await self.closure.descendants_of(category_id)
        filters = CatalogFilters(category_ids=frozenset(descendants))
        items, total = await self._list(filters, newest_first, page, page_size)

        logger.info(f"[browse] category_id={category_id} descendants={len(descendants)} total={total}")
        return BrowsePage(
            items=items,
            total_items=total,
            page=page,
            page_size=page_size,
            message="Items retrieved successfully." if total else "No items found in this category.",
            descendant_categories=descendants,
        )

    async def by_manufacturer(
        self,
        manufacturer_id: int,
        model_ids: tuple[int, ...],
        page: int,
        page_size: int,
    ) -> BrowsePage:
        if manufacturer_id <= 0:
            raise ValidationError(
                "manufacturer_id",
                "Invalid manufacturer ID. Please provide a valid manufacturer_id parameter.",
            )
        validate_pagination(page, page_size, self.limits)

        filters = CatalogFilters(
            manufacturer_id=manufacturer_id,
            model_ids=frozenset(model_ids) if model_ids else None,
        )
        items, total = await self._list(filters, universal_then_newest, page, page_size)

        logger.info(f"[browse] manufacturer_id={manufacturer_id} models={list(model_ids)} total={total}")
        return BrowsePage(
            items=items,
            total_items=total,
            page=page,
            page_size=page_size,
            message=(
                "Items retrieved successfully." if total else "No items found for this manufacturer."
            ),
        )

    async def by_filter(
        self,
        category_id: int | None,
        manufacturer_id: int | None,
        model_ids: tuple[int, ...],
        page: int,
        page_size: int,
    ) -> BrowsePage:
        if not category_id and not manufacturer_id:
            raise ValidationError(
                "category_id", "Provide at least one of category_id or manufacturer_id."
            )
        # Non-positive ids are ignored rather than rejected.
        category_id = category_id if category_id and category_id > 0 else None
        manufacturer_id = manufacturer_id if manufacturer_id and manufacturer_id > 0 else None
        if category_id is None and manufacturer_id is None:
            raise ValidationError(
                "category_id", "Provide at least one valid category_id or manufacturer_id."
            )
        validate_pagination(page, page_size, self.limits)

        descendants: tuple[int, ...] = ()
        if category_id is not None:
            descendants = await self.closure.descendants_of(category_id)

        filters = CatalogFilters(
            manufacturer_id=manufacturer_id,
            category_ids=frozenset(descendants) if descendants else None,
            # Models narrow a manufacturer filter only.
            model_ids=frozenset(model_ids) if manufacturer_id is not None and model_ids else None,
        )
        items, total = await self._list(filters, universal_then_newest, page, page_size)

        logger.info(
            f"[browse] filter category_id={category_id} manufacturer_id={manufacturer_id} total={total}"
        )
        return BrowsePage(
            items=items,
            total_items=total,
            page=page,
            page_size=page_size,
            message="Items retrieved successfully." if total else "No items found for the given filter.",
            descendant_categories=descendants,
        )

    async def item_detail(self, item_id: int) -> ItemView:
        if item_id <= 0:
            raise ValidationError("item_id", "Invalid item ID. Please provide a valid item ID.")

        item = await self.source.get_item(item_id)
        if item is None:
            raise ItemNotFound(item_id)

        relations = await self.source.load_relations([item.id], all_images=True)
        return build_item_view(item, relations, all_images=True)
