"""Shared fixtures: an in-memory catalog source and a recording analytics sink."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from partsearch.services.category_closure import CategoryClosureIndex
from partsearch.services.fuzzy import FuzzyMatcher
from partsearch.services.query_expansion import QueryExpander
from partsearch.services.relevance import RelevanceScorer
from partsearch.services.synonyms import SynonymTable
from partsearch.settings import RelevanceWeights, SearchLimits
from partsearch.stores.catalog import (
    VOCABULARY_ITEM,
    VOCABULARY_MANUFACTURER,
    VOCABULARY_MODEL,
    CandidateRow,
    CatalogFilters,
    CategoryLinkRecord,
    ImageRecord,
    ItemRecord,
    ItemRelations,
    SalesAggregate,
    SupportedModelRecord,
    SynonymEdge,
    VocabularyTerm,
)

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class ReadError(RuntimeError):
    pass


class FakeCatalogSource:
    """CatalogSource over plain dicts.

    fetch_candidates ignores tokens and filters and returns every item (up to
    limit, lowest ids first), so the scorer's own filter decides membership.
    """

    def __init__(self) -> None:
        self.items: dict[int, ItemRecord] = {}
        self.manufacturers: dict[int, str] = {}
        self.models: dict[int, tuple[int, str, str | None]] = {}
        self.categories: list[tuple[int, int | None, str]] = []
        self.item_models: dict[int, list[int]] = {}
        self.item_categories: dict[int, list[int]] = {}
        self.images: dict[int, list[ImageRecord]] = {}
        self.synonyms: list[SynonymEdge] = []
        self.sales: list[SalesAggregate] = []
        self.fulltext = True
        self.failing: set[str] = set()
        self.calls: Counter[str] = Counter()
        self.candidate_limits: list[int | None] = []
        self._image_id = 0

    # --------------------------------------------------------
    # Builders
    # --------------------------------------------------------

    def add_manufacturer(self, manufacturer_id: int, name: str) -> None:
        self.manufacturers[manufacturer_id] = name

    def add_model(
        self, model_id: int, manufacturer_id: int, name: str, variant: str | None = None
    ) -> None:
        self.models[model_id] = (manufacturer_id, name, variant)

    def add_category(self, category_id: int, name: str, parent_id: int | None = None) -> None:
        self.categories.append((category_id, parent_id, name))

    def add_item(
        self,
        item_id: int,
        name: str,
        *,
        description: str | None = None,
        models: Sequence[int] = (),
        categories: Sequence[int] = (),
        images: Sequence[str] = (),
        **fields: Any,
    ) -> ItemRecord:
        fields.setdefault("created_at", BASE_TIME)
        fields.setdefault("sku", f"SKU-{item_id}")
        record = ItemRecord(id=item_id, name=name, description=description, **fields)
        self.items[item_id] = record
        self.item_models[item_id] = list(models)
        self.item_categories[item_id] = list(categories)
        for src in images:
            self._image_id += 1
            self.images.setdefault(item_id, []).append(
                ImageRecord(image_id=self._image_id, src=src, alt=name)
            )
        return record

    def _check(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.failing:
            raise ReadError(f"{name} unavailable")

    # --------------------------------------------------------
    # CatalogSource
    # --------------------------------------------------------

    async def load_category_edges(self) -> list[tuple[int, int | None]]:
        self._check("load_category_edges")
        return [(cid, parent) for cid, parent, _ in sorted(self.categories)]

    async def load_synonym_edges(self) -> list[SynonymEdge]:
        self._check("load_synonym_edges")
        return list(self.synonyms)

    async def load_vocabulary(self, limits: SearchLimits) -> list[VocabularyTerm]:
        self._check("load_vocabulary")
        sources = (
            ([i.name for i in self.items.values()], VOCABULARY_ITEM, limits.vocabulary_item_limit),
            (list(self.manufacturers.values()), VOCABULARY_MANUFACTURER, limits.vocabulary_manufacturer_limit),
            ([m[1] for m in self.models.values()], VOCABULARY_MODEL, limits.vocabulary_model_limit),
        )
        terms: list[VocabularyTerm] = []
        for names, source, limit in sources:
            distinct = sorted({n.lower() for n in names if len(n) >= 3})[:limit]
            terms.extend(VocabularyTerm(term=t, source=source) for t in distinct)
        return terms

    async def has_fulltext_support(self) -> bool:
        self._check("has_fulltext_support")
        return self.fulltext

    async def fetch_candidates(
        self,
        tokens: Sequence[str],
        filters: CatalogFilters,
        *,
        limit: int | None = None,
    ) -> list[CandidateRow]:
        self._check("fetch_candidates")
        self.candidate_limits.append(limit)
        rows = []
        for item_id in sorted(self.items)[:limit]:
            item = self.items[item_id]
            links = [self.models[m] for m in self.item_models[item_id]]
            rows.append(
                CandidateRow(
                    item=item,
                    manufacturer_ids=frozenset(link[0] for link in links),
                    manufacturer_names=tuple(self.manufacturers[link[0]] for link in links),
                    model_ids=frozenset(self.item_models[item_id]),
                    model_names=tuple(link[1] for link in links),
                    model_variants=tuple(link[2] for link in links if link[2]),
                    category_ids=frozenset(self.item_categories[item_id]),
                )
            )
        return rows

    async def load_relations(
        self, item_ids: Sequence[int], *, all_images: bool = False
    ) -> ItemRelations:
        self._check("load_relations")
        relations = ItemRelations()
        names = {cid: name for cid, _, name in self.categories}
        for item_id in item_ids:
            for model_id in self.item_models.get(item_id, []):
                manufacturer_id, model_name, variant = self.models[model_id]
                relations.models.setdefault(item_id, []).append(
                    SupportedModelRecord(
                        vehicle_model_id=model_id,
                        model_name=model_name,
                        variant=variant,
                        year_from=None,
                        year_to=None,
                        manufacturer_id=manufacturer_id,
                        manufacturer_name=self.manufacturers[manufacturer_id],
                    )
                )
            for category_id in self.item_categories.get(item_id, []):
                relations.categories.setdefault(item_id, []).append(
                    CategoryLinkRecord(category_id=category_id, category_name=names.get(category_id, ""))
                )
            images = self.images.get(item_id, [])
            if images:
                relations.images[item_id] = list(images) if all_images else images[:1]
        return relations

    async def load_recommendation_rows(self) -> list[ItemRecord]:
        self._check("load_recommendation_rows")
        return [self.items[i] for i in sorted(self.items)]

    async def load_sales_aggregates(self) -> list[SalesAggregate]:
        self._check("load_sales_aggregates")
        return list(self.sales)

    async def get_item(self, item_id: int) -> ItemRecord | None:
        self._check("get_item")
        return self.items.get(item_id)


class RecordingSink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.records: list[tuple[dict[str, Any], int]] = []

    async def record(self, query_params: dict[str, Any], results_count: int) -> None:
        if self.fail:
            raise ReadError("search_logs write failed")
        self.records.append((query_params, results_count))


@pytest.fixture
def source() -> FakeCatalogSource:
    return FakeCatalogSource()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def limits() -> SearchLimits:
    return SearchLimits()


@pytest.fixture
def make_scorer(source: FakeCatalogSource, sink: RecordingSink, limits: SearchLimits):
    """Build a RelevanceScorer wired to the fake source (fresh caches per call)."""

    def _make(**overrides: Any) -> RelevanceScorer:
        bounds = overrides.pop("limits", limits)
        synonyms = SynonymTable(source.load_synonym_edges)
        matcher = FuzzyMatcher(lambda: source.load_vocabulary(bounds), bounds)
        return RelevanceScorer(
            source,
            overrides.pop("closure", CategoryClosureIndex(source.load_category_edges)),
            QueryExpander(synonyms, matcher, bounds),
            weights=overrides.pop("weights", RelevanceWeights()),
            limits=bounds,
            sink=overrides.pop("sink", sink),
        )

    return _make
