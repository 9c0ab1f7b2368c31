import json
from datetime import timedelta

import pydantic
import pytest

import partsearch.services.sales as sales_service
from conftest import BASE_TIME, ReadError
from partsearch.services.errors import ValidationError
from partsearch.services.recommendation import RecommendationScorer
from partsearch.services.sales import get_sales_aggregates
from partsearch.settings import RecommendationWeights, SearchLimits
from partsearch.stores.catalog import SalesAggregate

NOW = BASE_TIME + timedelta(days=30)


def _scorer(source, sales=None, *, fail_sales: bool = False) -> RecommendationScorer:
    async def sales_loader():
        if fail_sales:
            raise ReadError("order_items unavailable")
        return {agg.sku: agg for agg in (sales or [])}

    return RecommendationScorer(
        source,
        sales_loader,
        weights=RecommendationWeights(),
        limits=SearchLimits(),
        now=lambda: NOW,
    )


def _sold(sku: str, total: int) -> SalesAggregate:
    return SalesAggregate(sku=sku, total_sold=total, order_count=1)


@pytest.mark.asyncio
async def test_pages_follow_score_order(source):
    for i in range(1, 26):
        source.add_item(i, f"Item {i}")
    sales = [_sold(f"SKU-{i}", i) for i in range(1, 26)]
    scorer = _scorer(source, sales)

    page2 = await scorer.recommend(page=2, page_size=10)
    page3 = await scorer.recommend(page=3, page_size=10)

    assert [item.id for item in page2.items] == list(range(15, 5, -1))
    assert page2.pagination.has_more is True
    assert page2.total_items == 25
    assert [item.id for item in page3.items] == [5, 4, 3, 2, 1]
    assert page3.pagination.has_more is False


@pytest.mark.asyncio
async def test_score_components(source):
    source.add_item(1, "Brake Pads", price=200.0, sale_price=150.0, cost_price=100.0)
    source.add_item(2, "Wiper", price=10.0)

    page = await _scorer(source, [_sold("SKU-1", 10)]).recommend(page=1, page_size=10)

    top = page.items[0].recommendation_score
    # 0.5 * 1.0 + 0.3 * 1 / (1 + 30 / 30) + 0.2 * 0.5 / 2
    assert top.score == pytest.approx(0.7)
    assert top.popularity == 10
    assert top.freshness_days == 30
    assert top.profit_margin_percent == 50.0

    other = page.items[1].recommendation_score
    assert other.popularity == 0
    assert other.profit_margin_percent == 0.0
    assert other.score == pytest.approx(0.15)


@pytest.mark.asyncio
async def test_more_sales_never_ranks_lower(source):
    source.add_item(1, "Older bestseller", created_at=BASE_TIME - timedelta(days=60))
    source.add_item(2, "Newer slow mover", created_at=BASE_TIME)
    scorer = _scorer(source)

    low = scorer.score_items(list(source.items.values()), {"SKU-1": _sold("SKU-1", 1)})
    high = scorer.score_items(list(source.items.values()), {"SKU-1": _sold("SKU-1", 50)})

    rank_low = [s.item.id for s in low].index(1)
    rank_high = [s.item.id for s in high].index(1)
    assert rank_high <= rank_low
    assert high[rank_high].score >= low[rank_low].score


@pytest.mark.asyncio
async def test_margin_is_capped(source):
    source.add_item(1, "Markup x10", price=1000.0, cost_price=100.0)
    source.add_item(2, "Markup x3", price=300.0, cost_price=100.0)

    scored = _scorer(source).score_items(list(source.items.values()), {})

    assert scored[0].score == pytest.approx(scored[1].score)
    assert [s.item.id for s in scored] == [1, 2]
    assert scored[0].components.profit_margin_percent == 900.0


@pytest.mark.asyncio
async def test_ties_break_by_newest_then_id(source):
    source.add_item(3, "C", created_at=BASE_TIME)
    source.add_item(1, "A", created_at=BASE_TIME)
    source.add_item(2, "B", created_at=BASE_TIME + timedelta(hours=1))

    scored = _scorer(source).score_items(list(source.items.values()), {})

    assert [s.item.id for s in scored] == [2, 1, 3]


@pytest.mark.asyncio
async def test_future_created_at_counts_as_fresh(source):
    source.add_item(1, "Preorder", created_at=NOW + timedelta(days=5))

    scored = _scorer(source).score_items(list(source.items.values()), {})

    assert scored[0].age_days == 0
    assert scored[0].score == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_sales_failure_scores_with_zero_sales(source):
    source.add_item(1, "Old", created_at=BASE_TIME - timedelta(days=300))
    source.add_item(2, "New", created_at=BASE_TIME)

    page = await _scorer(source, fail_sales=True).recommend(page=1, page_size=10)

    assert [item.id for item in page.items] == [2, 1]
    assert all(item.recommendation_score.popularity == 0 for item in page.items)


@pytest.mark.asyncio
async def test_params_echo_weights_as_percentages(source):
    page = await _scorer(source).recommend(page=1, page_size=5)

    assert page.params.weights == {"popularity": 50, "freshness": 30, "profitability": 20}
    assert page.params.algorithm == "weighted_scoring"
    assert page.items == []
    assert page.total_items == 0


@pytest.mark.asyncio
async def test_recommend_validates_pagination(source):
    with pytest.raises(ValidationError):
        await _scorer(source).recommend(page=1, page_size=101)


# ============================================================
# Sales aggregate cache
# ============================================================


@pytest.mark.asyncio
async def test_sales_aggregates_without_redis_read_postgres(source):
    source.sales = [_sold("SKU-1", 4), _sold("SKU-2", 9)]

    by_sku = await get_sales_aggregates(source, ttl=300)

    assert by_sku["SKU-2"].total_sold == 9
    assert source.calls["load_sales_aggregates"] == 1


@pytest.mark.asyncio
async def test_sales_aggregates_prefer_cached_payload(source, monkeypatch):
    async def cached():
        return {"SKU-1": [7, 3]}

    monkeypatch.setattr(sales_service, "get_sales_cache", cached)

    by_sku = await get_sales_aggregates(source, ttl=300)

    assert by_sku == {"SKU-1": SalesAggregate(sku="SKU-1", total_sold=7, order_count=3)}
    assert source.calls["load_sales_aggregates"] == 0


@pytest.mark.asyncio
async def test_sales_aggregates_force_refresh_writes_cache(source, monkeypatch):
    written = {}

    async def cached():
        return {"SKU-1": [7, 3]}

    async def store(payload, ttl):
        written["payload"] = payload
        written["ttl"] = ttl

    monkeypatch.setattr(sales_service, "get_sales_cache", cached)
    monkeypatch.setattr(sales_service, "set_sales_cache", store)
    source.sales = [_sold("SKU-1", 11)]

    by_sku = await get_sales_aggregates(source, ttl=60, force_refresh=True)

    assert by_sku["SKU-1"].total_sold == 11
    assert written == {"payload": {"SKU-1": [11, 1]}, "ttl": 60}


@pytest.mark.parametrize(
    "payload_error",
    [json.JSONDecodeError("Expecting value", "{", 1), UnicodeDecodeError("utf-8", b"\xff", 0, 1, "bad")],
)
@pytest.mark.asyncio
async def test_sales_aggregates_unreadable_cache_reads_postgres(source, monkeypatch, payload_error):
    async def cached():
        raise payload_error

    monkeypatch.setattr(sales_service, "get_sales_cache", cached)
    source.sales = [_sold("SKU-1", 5)]

    by_sku = await get_sales_aggregates(source, ttl=300)

    assert by_sku["SKU-1"].total_sold == 5
    assert source.calls["load_sales_aggregates"] == 1


@pytest.mark.asyncio
async def test_sales_aggregates_malformed_cache_entry_reads_postgres(source, monkeypatch):
    async def cached():
        return {"SKU-1": "seven"}

    monkeypatch.setattr(sales_service, "get_sales_cache", cached)
    source.sales = [_sold("SKU-1", 2)]

    by_sku = await get_sales_aggregates(source, ttl=300)

    assert by_sku["SKU-1"].total_sold == 2
    assert source.calls["load_sales_aggregates"] == 1


@pytest.mark.parametrize("field", ["margin_cap", "freshness_period_days"])
@pytest.mark.parametrize("value", [0, -1.5])
def test_weights_reject_non_positive_bounds(field, value):
    with pytest.raises(pydantic.ValidationError):
        RecommendationWeights(**{field: value})
