"""Pydantic schemas for API request/response validation."""

from partsearch.schemas.catalog import (
    CategoryInfo,
    CategoryItemsResponse,
    CategoryRef,
    FilteredItemsResponse,
    FilterInfo,
    ItemDetailResponse,
    ItemImage,
    ItemListResponse,
    ItemView,
    Pagination,
    RecommendationParams,
    RecommendationResponse,
    RecommendationScore,
    SearchParams,
    SearchResponse,
    SupportedModel,
)
from partsearch.schemas.common import ErrorDetail, ErrorResponse

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "CategoryInfo",
    "CategoryItemsResponse",
    "CategoryRef",
    "FilteredItemsResponse",
    "FilterInfo",
    "ItemDetailResponse",
    "ItemImage",
    "ItemListResponse",
    "ItemView",
    "Pagination",
    "RecommendationParams",
    "RecommendationResponse",
    "RecommendationScore",
    "SearchParams",
    "SearchResponse",
    "SupportedModel",
]
