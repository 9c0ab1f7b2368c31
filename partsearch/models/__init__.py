"""SQLAlchemy ORM models.

Models represent database tables:
- items, categories, manufacturers, vehicle_models, item_images: the catalog
- item_category, item_vehicle_models: catalog link tables
- orders, order_items: sales history (aggregated for recommendations)
- search_synonyms, search_logs: search support
"""

from partsearch.models.catalog import (
    Category,
    Item,
    ItemImage,
    Manufacturer,
    VehicleModel,
    item_category,
    item_vehicle_models,
)
from partsearch.models.order import Order, OrderItem
from partsearch.models.search import SearchLog, SearchSynonym

__all__ = [
    "Category",
    "Item",
    "ItemImage",
    "Manufacturer",
    "Order",
    "OrderItem",
    "SearchLog",
    "SearchSynonym",
    "VehicleModel",
    "item_category",
    "item_vehicle_models",
]
