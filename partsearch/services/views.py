"""ItemView assembly from detached catalog rows."""

from __future__ import annotations

from partsearch.schemas import CategoryRef, ItemImage, ItemView, RecommendationScore, SupportedModel
from partsearch.stores.catalog import ItemRecord, ItemRelations


def build_item_view(
    item: ItemRecord,
    relations: ItemRelations,
    *,
    all_images: bool = False,
    relevance_score: float | None = None,
    recommendation_score: RecommendationScore | None = None,
) -> ItemView:
    images = relations.images.get(item.id, [])
    return ItemView(
        id=item.id,
        name=item.name,
        description=item.description,
        sku=item.sku,
        is_universal=item.is_universal,
        price=item.price,
        discount=item.discount,
        sale_price=item.sale_price,
        lead_time=item.lead_time,
        image_url=images[0].src if images else None,
        images=(
            [
                ItemImage(image_id=img.image_id, src=img.src, alt=img.alt, created_at=img.created_at)
                for img in images
            ]
            if all_images
            else None
        ),
        supported_models=[
            SupportedModel(
                vehicle_model_id=m.vehicle_model_id,
                model_name=m.model_name,
                variant=m.variant,
                year_from=m.year_from,
                year_to=m.year_to,
                manufacturer_id=m.manufacturer_id,
                manufacturer_name=m.manufacturer_name,
            )
            for m in relations.models.get(item.id, [])
        ],
        categories=[
            CategoryRef(category_id=c.category_id, category_name=c.category_name)
            for c in relations.categories.get(item.id, [])
        ],
        created_at=item.created_at,
        updated_at=item.updated_at,
        relevance_score=relevance_score,
        recommendation_score=recommendation_score,
    )
