"""API routes."""

from fastapi import APIRouter

from partsearch.routes import admin, items
from partsearch.schemas import ErrorResponse

api_router = APIRouter()

_ITEM_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid pagination or filter values"},
    404: {"model": ErrorResponse, "description": "Item not found"},
    503: {"model": ErrorResponse, "description": "Full-text indexes missing"},
}

# Catalog item endpoints (search, recommendations, browse)
api_router.include_router(items.router, prefix="/v1/items", tags=["items"], responses=_ITEM_ERRORS)

# Admin endpoints (cache management)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
