"""Schemas for the catalog item endpoints (/v1/items/*)."""

from datetime import datetime

from pydantic import BaseModel, Field


class SupportedModel(BaseModel):
    """A vehicle model an item fits."""

    vehicle_model_id: int
    model_name: str
    variant: str | None = None
    year_from: int | None = None
    year_to: int | None = None
    manufacturer_id: int
    manufacturer_name: str


class CategoryRef(BaseModel):
    category_id: int
    category_name: str


class ItemImage(BaseModel):
    image_id: int
    src: str
    alt: str | None = None
    created_at: datetime | None = None


class RecommendationScore(BaseModel):
    """Raw components behind a recommendation score."""

    score: float
    popularity: int = Field(ge=0, description="Units sold across non-draft orders")
    freshness_days: int = Field(ge=0, description="Days since the item was created")
    profit_margin_percent: float


class ItemView(BaseModel):
    """Catalog item as returned by list and detail endpoints.

    List endpoints fill image_url with the primary image; the detail endpoint
    fills images with all of them.
    """

    id: int
    name: str
    description: str | None = None
    sku: str | None = None
    is_universal: bool = False
    price: float | None = None
    discount: float | None = None
    sale_price: float | None = None
    lead_time: str | None = None
    image_url: str | None = None
    images: list[ItemImage] | None = None
    supported_models: list[SupportedModel] = Field(default_factory=list)
    categories: list[CategoryRef] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    relevance_score: float | None = None
    recommendation_score: RecommendationScore | None = None


class Pagination(BaseModel):
    current_page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=100)
    total_items: int = Field(ge=0)
    total_pages: int = Field(ge=0)
    has_more: bool


class SearchParams(BaseModel):
    """Echo of the search request plus what the service resolved."""

    q: str | None = None
    manufacturer_id: int | None = None
    category_id: int | None = None
    model_ids: list[int] = Field(default_factory=list)
    sort: str
    page: int
    page_size: int
    descendant_categories: list[int] = Field(default_factory=list)
    enriched_terms: list[str] = Field(default_factory=list)


class FilterInfo(BaseModel):
    category_id: int | None = None
    manufacturer_id: int | None = None
    model_ids: list[int] = Field(default_factory=list)
    descendant_categories: list[int] = Field(default_factory=list)
    includes_universal: bool = False


class CategoryInfo(BaseModel):
    category_id: int
    descendant_categories: list[int]
    total_descendants: int


class RecommendationParams(BaseModel):
    weights: dict[str, int]
    algorithm: str = "weighted_scoring"


class ItemListResponse(BaseModel):
    success: bool = True
    message: str
    data: list[ItemView]
    pagination: Pagination


class SearchResponse(ItemListResponse):
    """Response payload for GET /v1/items/search."""

    search_params: SearchParams


class RecommendationResponse(ItemListResponse):
    """Response payload for GET /v1/items/recommended."""

    recommendation_params: RecommendationParams


class CategoryItemsResponse(ItemListResponse):
    category_info: CategoryInfo


class FilteredItemsResponse(ItemListResponse):
    filter_info: FilterInfo


class ItemDetailResponse(BaseModel):
    success: bool = True
    message: str
    data: ItemView
