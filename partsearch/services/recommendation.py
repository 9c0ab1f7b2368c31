"""Catalog-wide recommendation scoring.

score = w_pop * normalized_sales + w_fresh * freshness + w_profit * normalized_margin

- normalized_sales = total_sold / max(1, best seller's total_sold)
- freshness = 1 / (1 + age_days / 30)
- margin_ratio = (effective_price - cost_price) / cost_price, 0 without a cost
- normalized_margin = min(margin_ratio, 2.0) / 2.0

Ties break by newest first, then id. If the sales read fails every item is
scored with zero sales.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Awaitable, Callable

from partsearch.schemas import ItemView, Pagination, RecommendationParams, RecommendationScore
from partsearch.services.pagination import build_pagination, paginate, validate_pagination
from partsearch.services.views import build_item_view
from partsearch.settings import RecommendationWeights, SearchLimits
from partsearch.stores.catalog import CatalogSource, ItemRecord, SalesAggregate

logger = logging.getLogger("uvicorn.error")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


@dataclass(frozen=True)
class ScoredItem:
    item: ItemRecord
    score: float
    sales_volume: int
    age_days: int
    margin_ratio: float

    @property
    def components(self) -> RecommendationScore:
        return RecommendationScore(
            score=round(self.score, 4),
            popularity=self.sales_volume,
            freshness_days=self.age_days,
            profit_margin_percent=round(self.margin_ratio * 100, 2),
        )


@dataclass
class RecommendationPage:
    items: list[ItemView]
    total_items: int
    page: int
    page_size: int
    params: RecommendationParams = field(default_factory=lambda: RecommendationParams(weights={}))

    @property
    def pagination(self) -> Pagination:
        return build_pagination(self.page, self.page_size, self.total_items)


class RecommendationScorer:
    def __init__(
        self,
        source: CatalogSource,
        sales_loader: Callable[[], Awaitable[dict[str, SalesAggregate]]],
        *,
        weights: RecommendationWeights,
        limits: SearchLimits,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.source = source
        self.sales_loader = sales_loader
        self.weights = weights
        self.limits = limits
        self.now = now

    @property
    def params(self) -> RecommendationParams:
        """Weights as whole percentages."""
        return RecommendationParams(
            weights={
                "popularity": round(self.weights.popularity * 100),
                "freshness": round(self.weights.freshness * 100),
                "profitability": round(self.weights.profitability * 100),
            },
            algorithm="weighted_scoring",
        )

    async def _load_sales(self) -> dict[str, SalesAggregate]:
        try:
            return await self.sales_loader()
        except Exception:
            logger.exception("[recommend] sales read failed, scoring with zero sales")
            return {}

    def score_items(
        self, items: list[ItemRecord], sales: dict[str, SalesAggregate]
    ) -> list[ScoredItem]:
        w = self.weights
        today = _as_utc_date(self.now())

        volumes = {
            item.id: (sales[item.sku].total_sold if item.sku and item.sku in sales else 0)
            for item in items
        }
        max_sales = max((agg.total_sold for agg in sales.values()), default=0)
        sales_norm = max(1, max_sales)

        scored: list[ScoredItem] = []
        for item in items:
            volume = volumes[item.id]
            age_days = max(0, (today - _as_utc_date(item.created_at)).days) if item.created_at else 0
            freshness = 1.0 / (1.0 + age_days / w.freshness_period_days)

            price = item.effective_price
            if item.cost_price is not None and item.cost_price > 0 and price is not None:
                margin_ratio = (price - item.cost_price) / item.cost_price
            else:
                margin_ratio = 0.0
            normalized_margin = min(margin_ratio, w.margin_cap) / w.margin_cap

            score = (
                w.popularity * (volume / sales_norm)
                + w.freshness * freshness
                + w.profitability * normalized_margin
            )
            scored.append(
                ScoredItem(
                    item=item,
                    score=score,
                    sales_volume=volume,
                    age_days=age_days,
                    margin_ratio=margin_ratio,
                )
            )

        scored.sort(
            key=lambda s: (
                -s.score,
                -(s.item.created_at.timestamp()) if s.item.created_at else float("inf"),
                s.item.id,
            )
        )
        return scored

    async def recommend(self, page: int, page_size: int) -> RecommendationPage:
        validate_pagination(page, page_size, self.limits)

        sales = await self._load_sales()
        items = await self.source.load_recommendation_rows()
        ranked = self.score_items(items, sales)

        page_rows = paginate(ranked, page, page_size)
        relations = await self.source.load_relations([s.item.id for s in page_rows])
        views = [
            build_item_view(s.item, relations, recommendation_score=s.components) for s in page_rows
        ]

        logger.info(
            f"[recommend] total={len(ranked)} page={page} returned={len(views)} "
            f"skus_with_sales={len(sales)}"
        )
        return RecommendationPage(
            items=views,
            total_items=len(ranked),
            page=page,
            page_size=page_size,
            params=self.params,
        )
