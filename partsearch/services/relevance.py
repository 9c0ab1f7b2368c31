"""Text search with structural filters and multi-field relevance ranking.

Pipeline for one search():
1. Validate pagination and filter ids (ValidationError).
2. Text queries require the full-text indexes (FeatureUnavailable).
3. Resolve the category filter to its descendant closure.
4. Fetch candidates (at most max_candidates, lowest ids first) and apply
   the mandatory filter:
   - every original token is a case-insensitive substring of the item name,
     description, or a linked manufacturer name / model name / variant
   - manufacturer: universal items or items linked to the manufacturer
   - category: item tagged with any category in the closure
   - models: item linked to any of the models
5. Rank (relevance or effective price), slice the page, attach relations.
6. Report the call to the analytics sink (best-effort).

Relevance per original token:
- substring: name 10, description 8, manufacturer 6, model 4
- tokens >= 3 chars also get word-prefix (full-text) bonuses:
  name/description 5, manufacturer 3, model 2
- synonyms (weight >= 0.8): weight * 3 / 2 / 1
- near-duplicates (edit distance 1 or phonetic): 2 / 1 / 1

Synonyms, near-duplicates and stems never widen or narrow the result set.
Ties break by name, then id.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from partsearch.schemas import ItemView, Pagination
from partsearch.services.analytics import AnalyticsSink, NullSink, report_search
from partsearch.services.category_closure import CategoryClosureIndex
from partsearch.services.errors import FeatureUnavailable
from partsearch.services.pagination import (
    build_pagination,
    paginate,
    require_positive_id,
    total_pages,
    validate_pagination,
)
from partsearch.services.query_expansion import ExpandedQuery, QueryExpander, tokenize
from partsearch.services.views import build_item_view
from partsearch.settings import RelevanceWeights, SearchLimits
from partsearch.stores.catalog import FULLTEXT_INDEXES, CandidateRow, CatalogFilters, CatalogSource

logger = logging.getLogger("uvicorn.error")

_WORD_RE = re.compile(r"\w+")


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"

    @classmethod
    def parse(cls, value: str | None) -> "SortMode":
        """Unknown or missing values fall back to relevance."""
        if not value:
            return cls.RELEVANCE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.RELEVANCE


@dataclass(frozen=True)
class SearchQuery:
    q: str | None = None
    manufacturer_id: int | None = None
    category_id: int | None = None
    model_ids: tuple[int, ...] = ()
    sort: SortMode = SortMode.RELEVANCE
    page: int = 1
    page_size: int = 10

    def params(self) -> dict[str, Any]:
        return {
            "q": self.q,
            "manufacturer_id": self.manufacturer_id,
            "category_id": self.category_id,
            "model_ids": list(self.model_ids),
            "sort": self.sort.value,
            "page": self.page,
            "page_size": self.page_size,
        }


@dataclass
class SearchPage:
    items: list[ItemView]
    total_items: int
    page: int
    page_size: int
    resolved_filters: CatalogFilters
    descendant_categories: tuple[int, ...] = ()
    enriched_terms: list[str] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return total_pages(self.total_items, self.page_size)

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total_items

    @property
    def pagination(self) -> Pagination:
        return build_pagination(self.page, self.page_size, self.total_items)


# ============================================================
# Matching primitives
# ============================================================


def words(*values: str | None) -> list[str]:
    out: list[str] = []
    for value in values:
        if value:
            out.extend(_WORD_RE.findall(value.lower()))
    return out


def fulltext_match(phrase: str, field_words: Sequence[str]) -> bool:
    """True when every word of phrase is a prefix of some word in the field."""
    phrase_words = words(phrase)
    if not phrase_words or not field_words:
        return False
    return all(any(w.startswith(p) for w in field_words) for p in phrase_words)


def _contains(token: str, values: Iterable[str | None]) -> bool:
    return any(value and token in value.lower() for value in values)


def is_candidate(row: CandidateRow, tokens: Sequence[str], filters: CatalogFilters) -> bool:
    item = row.item
    for token in tokens:
        if not _contains(
            token,
            (item.name, item.description, *row.manufacturer_names, *row.model_names, *row.model_variants),
        ):
            return False

    if filters.manufacturer_id is not None:
        if not (item.is_universal or filters.manufacturer_id in row.manufacturer_ids):
            return False

    if filters.category_ids is not None and not (row.category_ids & filters.category_ids):
        return False

    if filters.model_ids and not (row.model_ids & filters.model_ids):
        return False

    return True


def score_row(
    row: CandidateRow,
    expanded: ExpandedQuery,
    weights: RelevanceWeights,
    limits: SearchLimits,
) -> float:
    item = row.item
    text_words = words(item.name, item.description)
    manufacturer_words = words(*row.manufacturer_names)
    model_words = words(*row.model_names, *row.model_variants)

    score = 0.0
    for token in expanded.tokens:
        if _contains(token, (item.name,)):
            score += weights.name_match
        if _contains(token, (item.description,)):
            score += weights.description_match
        if _contains(token, row.manufacturer_names):
            score += weights.manufacturer_match
        if _contains(token, (*row.model_names, *row.model_variants)):
            score += weights.model_match

        if len(token) < limits.fulltext_min_term_length:
            continue

        if fulltext_match(token, text_words):
            score += weights.fulltext_text
        if fulltext_match(token, manufacturer_words):
            score += weights.fulltext_manufacturer
        if fulltext_match(token, model_words):
            score += weights.fulltext_model

        expansion = expanded.expansion_for(token)
        if expansion is None:
            continue

        for synonym, weight in expansion.synonyms.items():
            if len(synonym) < limits.fulltext_min_term_length:
                continue
            if fulltext_match(synonym, text_words):
                score += weight * weights.synonym_text
            if fulltext_match(synonym, manufacturer_words):
                score += weight * weights.synonym_manufacturer
            if fulltext_match(synonym, model_words):
                score += weight * weights.synonym_model

        for match in expansion.close_matches:
            if len(match.term) < limits.fulltext_min_term_length:
                continue
            if fulltext_match(match.term, text_words):
                score += weights.fuzzy_text
            if fulltext_match(match.term, manufacturer_words):
                score += weights.fuzzy_manufacturer
            if fulltext_match(match.term, model_words):
                score += weights.fuzzy_model

    return score


async def fetch_matching(
    source: CatalogSource,
    tokens: Sequence[str],
    filters: CatalogFilters,
    limits: SearchLimits,
) -> list[CandidateRow]:
    """Bounded candidate read followed by the mandatory filter, one row per item."""
    rows = await source.fetch_candidates(tokens, filters, limit=limits.max_candidates)
    if len(rows) >= limits.max_candidates:
        logger.warning(
            f"[search] candidate cap reached: max_candidates={limits.max_candidates}, results truncated"
        )

    matched: dict[int, CandidateRow] = {}
    for row in rows:
        if row.item.id not in matched and is_candidate(row, tokens, filters):
            matched[row.item.id] = row
    return list(matched.values())


def _name_key(row: CandidateRow) -> tuple[str, int]:
    return (row.item.name.casefold(), row.item.id)


# ============================================================
# Scorer
# ============================================================


class RelevanceScorer:
    """Runs text/filter searches against a CatalogSource."""

    def __init__(
        self,
        source: CatalogSource,
        closure: CategoryClosureIndex,
        expander: QueryExpander,
        *,
        weights: RelevanceWeights,
        limits: SearchLimits,
        sink: AnalyticsSink | None = None,
    ) -> None:
        self.source = source
        self.closure = closure
        self.expander = expander
        self.weights = weights
        self.limits = limits
        self.sink = sink or NullSink()

    def rank(
        self,
        rows: list[CandidateRow],
        expanded: ExpandedQuery,
        sort: SortMode,
    ) -> list[tuple[CandidateRow, float | None]]:
        if sort is SortMode.PRICE_ASC or sort is SortMode.PRICE_DESC:
            sign = 1 if sort is SortMode.PRICE_ASC else -1

            def price_key(row: CandidateRow) -> tuple:
                price = row.item.effective_price
                return (price is None, sign * price if price is not None else 0.0, *_name_key(row))

            return [(row, None) for row in sorted(rows, key=price_key)]

        if expanded.is_empty:
            return [(row, None) for row in sorted(rows, key=_name_key)]

        scored = [(row, score_row(row, expanded, self.weights, self.limits)) for row in rows]
        scored.sort(key=lambda pair: (-pair[1], *_name_key(pair[0])))
        return scored

    async def search(self, query: SearchQuery) -> SearchPage:
        validate_pagination(query.page, query.page_size, self.limits)
        require_positive_id("manufacturer_id", query.manufacturer_id)
        require_positive_id("category_id", query.category_id)
        for model_id in query.model_ids:
            require_positive_id("model_ids", model_id)

        tokens = tokenize(query.q)
        if tokens and not await self.source.has_fulltext_support():
            raise FeatureUnavailable(
                "Full-text search is not available.",
                remediation=(
                    "Run `alembic upgrade head` to create the full-text indexes: "
                    + ", ".join(FULLTEXT_INDEXES)
                ),
            )

        descendants: tuple[int, ...] = ()
        if query.category_id is not None:
            descendants = await self.closure.descendants_of(query.category_id)

        filters = CatalogFilters(
            manufacturer_id=query.manufacturer_id,
            category_ids=frozenset(descendants) if descendants else None,
            model_ids=frozenset(query.model_ids) if query.model_ids else None,
        )

        expanded = await self.expander.expand(query.q)

        matched = await fetch_matching(self.source, tokens, filters, self.limits)

        ranked = self.rank(matched, expanded, query.sort)
        total = len(ranked)
        page_rows = paginate(ranked, query.page, query.page_size)
        relations = await self.source.load_relations([row.item.id for row, _ in page_rows])

        items = [
            build_item_view(
                row.item,
                relations,
                relevance_score=round(score, 2) if score is not None else None,
            )
            for row, score in page_rows
        ]

        logger.info(
            f"[search] q={query.q!r} sort={query.sort.value} total={total} "
            f"page={query.page} returned={len(items)}"
        )

        result = SearchPage(
            items=items,
            total_items=total,
            page=query.page,
            page_size=query.page_size,
            resolved_filters=filters,
            descendant_categories=descendants,
            enriched_terms=expanded.enriched_terms,
        )
        await report_search(self.sink, query.params(), total)
        return result
