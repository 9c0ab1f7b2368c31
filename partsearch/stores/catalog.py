"""Catalog read queries.

CatalogSource is the read contract the search services depend on.
PostgresCatalogSource implements it on an AsyncSession; tests use an
in-memory implementation.

Rows returned here are plain frozen dataclasses, detached from the ORM
session, so services can score and sort them after the session closes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, Sequence

from sqlalchemy import Select, bindparam, distinct, func, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from partsearch.models import (
    Category,
    Item,
    ItemImage,
    Manufacturer,
    Order,
    OrderItem,
    SearchSynonym,
    VehicleModel,
    item_category,
    item_vehicle_models,
)
from partsearch.models.order import ORDER_STATUS_DRAFT
from partsearch.settings import SearchLimits

# GIN to_tsvector indexes created by the initial migration. Text search is
# only served when all of them exist.
FULLTEXT_INDEXES: tuple[str, ...] = (
    "ix_items_fulltext",
    "ix_manufacturers_fulltext",
    "ix_vehicle_models_fulltext",
)

VOCABULARY_ITEM = "item"
VOCABULARY_MANUFACTURER = "manufacturer"
VOCABULARY_MODEL = "model"


# ============================================================
# Row types
# ============================================================


@dataclass(frozen=True)
class SynonymEdge:
    term: str
    synonym: str
    weight: float


@dataclass(frozen=True)
class VocabularyTerm:
    term: str
    source: str  # item / manufacturer / model


@dataclass(frozen=True)
class CatalogFilters:
    """Resolved structural filters.

    category_ids is the descendant closure of the requested category, not the
    raw id. None means "no filter".
    """

    manufacturer_id: int | None = None
    category_ids: frozenset[int] | None = None
    model_ids: frozenset[int] | None = None


@dataclass(frozen=True)
class ItemRecord:
    id: int
    name: str
    description: str | None = None
    sku: str | None = None
    is_universal: bool = False
    price: float | None = None
    discount: float | None = None
    sale_price: float | None = None
    cost_price: float | None = None
    lead_time: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_price(self) -> float | None:
        """Sale price when set, else list price."""
        return self.sale_price if self.sale_price is not None else self.price


@dataclass(frozen=True)
class CandidateRow:
    """An item plus the linked data the mandatory filter and scorer look at."""

    item: ItemRecord
    manufacturer_ids: frozenset[int] = frozenset()
    manufacturer_names: tuple[str, ...] = ()
    model_ids: frozenset[int] = frozenset()
    model_names: tuple[str, ...] = ()
    model_variants: tuple[str, ...] = ()
    category_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class SupportedModelRecord:
    vehicle_model_id: int
    model_name: str
    variant: str | None
    year_from: int | None
    year_to: int | None
    manufacturer_id: int
    manufacturer_name: str


@dataclass(frozen=True)
class CategoryLinkRecord:
    category_id: int
    category_name: str


@dataclass(frozen=True)
class ImageRecord:
    image_id: int
    src: str
    alt: str | None = None
    created_at: datetime | None = None


@dataclass
class ItemRelations:
    """Related entities for a page of items, keyed by item id."""

    models: dict[int, list[SupportedModelRecord]] = field(default_factory=dict)
    categories: dict[int, list[CategoryLinkRecord]] = field(default_factory=dict)
    images: dict[int, list[ImageRecord]] = field(default_factory=dict)


@dataclass(frozen=True)
class SalesAggregate:
    sku: str
    total_sold: int
    order_count: int


class CatalogSource(Protocol):
    """Read contract over the catalog store."""

    async def load_category_edges(self) -> list[tuple[int, int | None]]: ...

    async def load_synonym_edges(self) -> list[SynonymEdge]: ...

    async def load_vocabulary(self, limits: SearchLimits) -> list[VocabularyTerm]: ...

    async def has_fulltext_support(self) -> bool: ...

    async def fetch_candidates(
        self,
        tokens: Sequence[str],
        filters: CatalogFilters,
        *,
        limit: int | None = None,
    ) -> list[CandidateRow]: ...

    async def load_relations(
        self, item_ids: Sequence[int], *, all_images: bool = False
    ) -> ItemRelations: ...

    async def load_recommendation_rows(self) -> list[ItemRecord]: ...

    async def load_sales_aggregates(self) -> list[SalesAggregate]: ...

    async def get_item(self, item_id: int) -> ItemRecord | None: ...


# ============================================================
# PostgreSQL implementation
# ============================================================


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _item_record(item: Item) -> ItemRecord:
    return ItemRecord(
        id=item.id,
        name=item.name,
        description=item.description,
        sku=item.sku,
        is_universal=bool(item.is_universal),
        price=item.price,
        discount=item.discount,
        sale_price=item.sale_price,
        cost_price=item.cost_price,
        lead_time=item.lead_time,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _model_links():
    """item_id -> vehicle model -> manufacturer join used by several filters."""
    return (
        select(item_vehicle_models.c.item_id)
        .join(VehicleModel, VehicleModel.id == item_vehicle_models.c.vehicle_model_id)
        .join(Manufacturer, Manufacturer.id == VehicleModel.manufacturer_id)
    )


def candidate_query(
    tokens: Sequence[str],
    filters: CatalogFilters,
    *,
    limit: int | None = None,
) -> Select:
    """Candidate items for the mandatory filter, ordered by id.

    Never narrower than the in-memory filter: one ILIKE predicate per token
    over the item text or a linked manufacturer/model, universal-or-linked
    for a manufacturer, and IN over the category closure and model ids.
    """
    stmt = select(Item)

    for token in tokens:
        pattern = f"%{_escape_like(token)}%"
        linked = _model_links().where(
            or_(
                Manufacturer.name.ilike(pattern, escape="\\"),
                VehicleModel.model_name.ilike(pattern, escape="\\"),
                VehicleModel.variant.ilike(pattern, escape="\\"),
            )
        )
        stmt = stmt.where(
            or_(
                Item.name.ilike(pattern, escape="\\"),
                Item.description.ilike(pattern, escape="\\"),
                Item.id.in_(linked),
            )
        )

    if filters.manufacturer_id is not None:
        by_manufacturer = _model_links().where(
            VehicleModel.manufacturer_id == filters.manufacturer_id
        )
        stmt = stmt.where(or_(Item.is_universal.is_(True), Item.id.in_(by_manufacturer)))

    if filters.category_ids is not None:
        stmt = stmt.where(
            Item.id.in_(
                select(item_category.c.item_id).where(
                    item_category.c.category_id.in_(sorted(filters.category_ids))
                )
            )
        )

    if filters.model_ids:
        stmt = stmt.where(
            Item.id.in_(
                select(item_vehicle_models.c.item_id).where(
                    item_vehicle_models.c.vehicle_model_id.in_(sorted(filters.model_ids))
                )
            )
        )

    stmt = stmt.order_by(Item.id)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


class PostgresCatalogSource:
    """CatalogSource backed by an AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load_category_edges(self) -> list[tuple[int, int | None]]:
        result = await self.session.execute(
            select(Category.id, Category.parent_id).order_by(Category.id)
        )
        return [(int(cid), int(pid) if pid is not None else None) for cid, pid in result.all()]

    async def load_synonym_edges(self) -> list[SynonymEdge]:
        result = await self.session.execute(
            select(SearchSynonym.term, SearchSynonym.synonym, SearchSynonym.weight).order_by(
                SearchSynonym.term
            )
        )
        return [
            SynonymEdge(term=str(term), synonym=str(synonym), weight=float(weight))
            for term, synonym, weight in result.all()
        ]

    async def load_vocabulary(self, limits: SearchLimits) -> list[VocabularyTerm]:
        sources = (
            (Item.name, VOCABULARY_ITEM, limits.vocabulary_item_limit),
            (Manufacturer.name, VOCABULARY_MANUFACTURER, limits.vocabulary_manufacturer_limit),
            (VehicleModel.model_name, VOCABULARY_MODEL, limits.vocabulary_model_limit),
        )
        terms: list[VocabularyTerm] = []
        for column, source, limit in sources:
            if limit <= 0:
                continue
            term = distinct(func.lower(column)).label("term")
            result = await self.session.execute(
                select(term).where(func.length(column) >= 3).order_by(term).limit(limit)
            )
            terms.extend(VocabularyTerm(term=str(t), source=source) for t in result.scalars().all())
        return terms

    async def has_fulltext_support(self) -> bool:
        stmt = text(
            "SELECT indexname FROM pg_indexes "
            "WHERE schemaname = current_schema() AND indexname IN :names"
        ).bindparams(bindparam("names", expanding=True))
        result = await self.session.execute(stmt, {"names": list(FULLTEXT_INDEXES)})
        found = set(result.scalars().all())
        return found.issuperset(FULLTEXT_INDEXES)

    async def fetch_candidates(
        self,
        tokens: Sequence[str],
        filters: CatalogFilters,
        *,
        limit: int | None = None,
    ) -> list[CandidateRow]:
        stmt = candidate_query(tokens, filters, limit=limit)
        result = await self.session.execute(stmt)
        items = [_item_record(item) for item in result.scalars().all()]
        if not items:
            return []
        return await self._with_links(items, stmt.with_only_columns(Item.id))

    async def _with_links(self, items: list[ItemRecord], candidate_ids: Select) -> list[CandidateRow]:
        # Link rows are joined against the candidate query itself, so the
        # parameter count does not grow with the number of candidates.
        ids = candidate_ids

        model_rows = await self.session.execute(
            select(
                item_vehicle_models.c.item_id,
                VehicleModel.id,
                VehicleModel.model_name,
                VehicleModel.variant,
                Manufacturer.id,
                Manufacturer.name,
            )
            .join(VehicleModel, VehicleModel.id == item_vehicle_models.c.vehicle_model_id)
            .join(Manufacturer, Manufacturer.id == VehicleModel.manufacturer_id)
            .where(item_vehicle_models.c.item_id.in_(ids))
        )
        models: dict[int, list[tuple]] = defaultdict(list)
        for item_id, *rest in model_rows.all():
            models[item_id].append(tuple(rest))

        category_rows = await self.session.execute(
            select(item_category.c.item_id, item_category.c.category_id).where(
                item_category.c.item_id.in_(ids)
            )
        )
        categories: dict[int, set[int]] = defaultdict(set)
        for item_id, category_id in category_rows.all():
            categories[item_id].add(int(category_id))

        rows: list[CandidateRow] = []
        for item in items:
            links = models.get(item.id, [])
            rows.append(
                CandidateRow(
                    item=item,
                    manufacturer_ids=frozenset(int(link[3]) for link in links),
                    manufacturer_names=tuple(str(link[4]) for link in links),
                    model_ids=frozenset(int(link[0]) for link in links),
                    model_names=tuple(str(link[1]) for link in links),
                    model_variants=tuple(str(link[2]) for link in links if link[2]),
                    category_ids=frozenset(categories.get(item.id, set())),
                )
            )
        return rows

    async def load_relations(
        self, item_ids: Sequence[int], *, all_images: bool = False
    ) -> ItemRelations:
        relations = ItemRelations()
        if not item_ids:
            return relations
        ids = list(item_ids)

        model_rows = await self.session.execute(
            select(
                item_vehicle_models.c.item_id,
                VehicleModel.id,
                VehicleModel.model_name,
                VehicleModel.variant,
                VehicleModel.year_from,
                VehicleModel.year_to,
                Manufacturer.id,
                Manufacturer.name,
            )
            .join(VehicleModel, VehicleModel.id == item_vehicle_models.c.vehicle_model_id)
            .join(Manufacturer, Manufacturer.id == VehicleModel.manufacturer_id)
            .where(item_vehicle_models.c.item_id.in_(ids))
            .order_by(Manufacturer.name.asc(), VehicleModel.model_name.asc())
        )
        for item_id, vm_id, model_name, variant, year_from, year_to, m_id, m_name in model_rows.all():
            relations.models.setdefault(item_id, []).append(
                SupportedModelRecord(
                    vehicle_model_id=vm_id,
                    model_name=model_name,
                    variant=variant,
                    year_from=year_from,
                    year_to=year_to,
                    manufacturer_id=m_id,
                    manufacturer_name=m_name,
                )
            )

        category_rows = await self.session.execute(
            select(item_category.c.item_id, Category.id, Category.name)
            .join(Category, Category.id == item_category.c.category_id)
            .where(item_category.c.item_id.in_(ids))
            .order_by(item_category.c.item_id.asc(), Category.name.asc())
        )
        for item_id, category_id, category_name in category_rows.all():
            relations.categories.setdefault(item_id, []).append(
                CategoryLinkRecord(category_id=category_id, category_name=category_name)
            )

        image_rows = await self.session.execute(
            select(ItemImage)
            .where(ItemImage.item_id.in_(ids))
            .order_by(ItemImage.item_id.asc(), ItemImage.id.asc())
        )
        for image in image_rows.scalars().all():
            bucket = relations.images.setdefault(image.item_id, [])
            if bucket and not all_images:
                continue
            bucket.append(
                ImageRecord(image_id=image.id, src=image.src, alt=image.alt, created_at=image.created_at)
            )
        return relations

    async def load_recommendation_rows(self) -> list[ItemRecord]:
        result = await self.session.execute(select(Item).order_by(Item.id))
        return [_item_record(item) for item in result.scalars().all()]

    async def load_sales_aggregates(self) -> list[SalesAggregate]:
        result = await self.session.execute(
            select(
                OrderItem.sku,
                func.sum(OrderItem.quantity),
                func.count(distinct(Order.id)),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != ORDER_STATUS_DRAFT)
            .group_by(OrderItem.sku)
        )
        return [
            SalesAggregate(sku=str(sku), total_sold=int(total or 0), order_count=int(orders or 0))
            for sku, total, orders in result.all()
        ]

    async def get_item(self, item_id: int) -> ItemRecord | None:
        item = await self.session.get(Item, item_id)
        return _item_record(item) if item is not None else None
