"""Catalog item endpoints.

GET /v1/items/search          - Text search with filters, ranked and paginated
GET /v1/items/recommended     - Whole catalog ranked by recommendation score
GET /v1/items/by-category     - Items in a category or any descendant
GET /v1/items/by-manufacturer - Universal items + items for a manufacturer
GET /v1/items/by-filter       - Category and/or manufacturer filter
GET /v1/items/{item_id}       - Single item with all images

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Query

from partsearch.schemas import (
    CategoryInfo,
    CategoryItemsResponse,
    FilteredItemsResponse,
    FilterInfo,
    ItemDetailResponse,
    RecommendationResponse,
    SearchParams,
    SearchResponse,
)
from partsearch.services.engine import (
    browse_by_category,
    browse_by_filter,
    browse_by_manufacturer,
    get_item_detail,
    run_recommendation,
    run_search,
)
from partsearch.services.pagination import (
    parse_model_ids,
    parse_model_ids_strict,
    require_positive_id,
    resolve_page_size,
)
from partsearch.services.relevance import SearchQuery, SortMode
from partsearch.settings import get_settings

router = APIRouter()

_MODEL_IDS_DESCRIPTION = "Vehicle model ids: comma-separated and/or repeated"


def _page_size(page_size: int | None) -> int:
    return resolve_page_size(page_size, get_settings().search_limits)


@router.get("/search", response_model=SearchResponse)
async def search_items(
    q: str | None = Query(default=None, description="Free-text query", examples=["brake pad"]),
    manufacturer_id: int | None = Query(default=None, description="Manufacturer filter"),
    category_id: int | None = Query(default=None, description="Category filter (includes subcategories)"),
    model_id: int | None = Query(default=None, description="Single vehicle model filter"),
    model_ids: list[str] | None = Query(default=None, description=_MODEL_IDS_DESCRIPTION),
    sort: str | None = Query(default=None, description="relevance | price_asc | price_desc"),
    page: int = Query(default=1, description="Page number (>= 1)"),
    page_size: int | None = Query(default=None, description="Items per page (1-100)"),
) -> SearchResponse:
    """Search the catalog.

    Unknown sort values fall back to relevance. Synonyms and typo matches only
    affect the order of results, never which items match.
    """
    require_positive_id("model_id", model_id)
    merged = parse_model_ids_strict(
        [*([model_id] if model_id is not None else []), *(model_ids or [])]
    )

    query = SearchQuery(
        q=q.strip() if q else None,
        manufacturer_id=manufacturer_id,
        category_id=category_id,
        model_ids=merged,
        sort=SortMode.parse(sort),
        page=page,
        page_size=_page_size(page_size),
    )
    result = await run_search(query)

    return SearchResponse(
        message=(
            "Items found successfully."
            if result.total_items
            else "No items found matching your search criteria."
        ),
        data=result.items,
        pagination=result.pagination,
        search_params=SearchParams(
            q=query.q,
            manufacturer_id=query.manufacturer_id,
            category_id=query.category_id,
            model_ids=list(query.model_ids),
            sort=query.sort.value,
            page=query.page,
            page_size=query.page_size,
            descendant_categories=list(result.descendant_categories),
            enriched_terms=result.enriched_terms,
        ),
    )


@router.get("/recommended", response_model=RecommendationResponse)
async def recommended_items(
    page: int = Query(default=1, description="Page number (>= 1)"),
    page_size: int | None = Query(default=None, description="Items per page (1-100)"),
) -> RecommendationResponse:
    """Rank the whole catalog by popularity, freshness and margin."""
    result = await run_recommendation(page, _page_size(page_size))

    if not result.items and page > 1:
        message = "No more items available."
    else:
        message = "Recommended items retrieved successfully."

    return RecommendationResponse(
        message=message,
        data=result.items,
        pagination=result.pagination,
        recommendation_params=result.params,
    )


@router.get("/by-category", response_model=CategoryItemsResponse)
async def items_by_category(
    category_id: int = Query(description="Category id; subcategories are included"),
    page: int = Query(default=1),
    page_size: int | None = Query(default=None),
) -> CategoryItemsResponse:
    result = await browse_by_category(category_id, page, _page_size(page_size))
    return CategoryItemsResponse(
        message=result.message,
        data=result.items,
        pagination=result.pagination,
        category_info=CategoryInfo(
            category_id=category_id,
            descendant_categories=list(result.descendant_categories),
            total_descendants=len(result.descendant_categories),
        ),
    )


@router.get("/by-manufacturer", response_model=FilteredItemsResponse)
async def items_by_manufacturer(
    manufacturer_id: int = Query(description="Manufacturer id"),
    model_ids: list[str] | None = Query(default=None, description=_MODEL_IDS_DESCRIPTION),
    page: int = Query(default=1),
    page_size: int | None = Query(default=None),
) -> FilteredItemsResponse:
    """Universal items plus items fitting the manufacturer's models."""
    ids = parse_model_ids(model_ids)
    result = await browse_by_manufacturer(manufacturer_id, ids, page, _page_size(page_size))
    return FilteredItemsResponse(
        message=result.message,
        data=result.items,
        pagination=result.pagination,
        filter_info=FilterInfo(
            manufacturer_id=manufacturer_id,
            model_ids=list(ids),
            includes_universal=True,
        ),
    )


@router.get("/by-filter", response_model=FilteredItemsResponse)
async def items_by_filter(
    category_id: int | None = Query(default=None),
    manufacturer_id: int | None = Query(default=None),
    model_ids: list[str] | None = Query(default=None, description=_MODEL_IDS_DESCRIPTION),
    page: int = Query(default=1),
    page_size: int | None = Query(default=None),
) -> FilteredItemsResponse:
    """Items matching a category and/or a manufacturer (at least one)."""
    ids = parse_model_ids(model_ids)
    result = await browse_by_filter(
        category_id, manufacturer_id, ids, page, _page_size(page_size)
    )

    has_manufacturer = manufacturer_id is not None and manufacturer_id > 0
    return FilteredItemsResponse(
        message=result.message,
        data=result.items,
        pagination=result.pagination,
        filter_info=FilterInfo(
            category_id=category_id if category_id and category_id > 0 else None,
            manufacturer_id=manufacturer_id if has_manufacturer else None,
            model_ids=list(ids),
            descendant_categories=list(result.descendant_categories),
            includes_universal=has_manufacturer,
        ),
    )


@router.get("/{item_id}", response_model=ItemDetailResponse)
async def item_detail(item_id: int) -> ItemDetailResponse:
    item = await get_item_detail(item_id)
    return ItemDetailResponse(message="Item details retrieved successfully.", data=item)
