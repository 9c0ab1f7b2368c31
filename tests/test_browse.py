from datetime import timedelta

import pytest

from conftest import BASE_TIME
from partsearch.services.browse import BrowseService
from partsearch.services.category_closure import CategoryClosureIndex
from partsearch.services.errors import ItemNotFound, ValidationError
from partsearch.settings import SearchLimits


@pytest.fixture
def browse(source) -> BrowseService:
    return BrowseService(
        source, CategoryClosureIndex(source.load_category_edges), limits=SearchLimits()
    )


def _day(n: int):
    return BASE_TIME + timedelta(days=n)


@pytest.fixture
def catalog(source):
    source.add_manufacturer(1, "Toyota")
    source.add_manufacturer(2, "Ford")
    source.add_model(10, 1, "Corolla")
    source.add_model(11, 1, "Camry")
    source.add_model(20, 2, "Focus")
    source.add_category(1, "Brakes")
    source.add_category(2, "Brake Pads", parent_id=1)
    source.add_category(3, "Wipers")
    source.add_item(1, "Corolla Pads", models=[10], categories=[2], created_at=_day(1))
    source.add_item(2, "Camry Pads", models=[11], categories=[2], created_at=_day(3))
    source.add_item(
        3,
        "Brake Cleaner",
        categories=[1],
        is_universal=True,
        created_at=_day(0),
        images=["https://cdn.test/3a.jpg", "https://cdn.test/3b.jpg"],
    )
    source.add_item(4, "Focus Wiper", models=[20], categories=[3], created_at=_day(2))
    return source


@pytest.mark.asyncio
async def test_by_category_includes_descendants_newest_first(catalog, browse):
    page = await browse.by_category(1, page=1, page_size=10)

    assert [item.id for item in page.items] == [2, 1, 3]
    assert set(page.descendant_categories) == {1, 2}
    assert page.message == "Items retrieved successfully."


@pytest.mark.asyncio
async def test_by_category_empty_and_invalid(catalog, browse):
    page = await browse.by_category(99, page=1, page_size=10)
    assert page.items == []
    assert page.message == "No items found in this category."

    with pytest.raises(ValidationError) as exc_info:
        await browse.by_category(0, page=1, page_size=10)
    assert exc_info.value.field == "category_id"


@pytest.mark.asyncio
async def test_by_manufacturer_lists_universal_first(catalog, browse):
    page = await browse.by_manufacturer(1, (), page=1, page_size=10)

    assert [item.id for item in page.items] == [3, 2, 1]


@pytest.mark.asyncio
async def test_by_manufacturer_with_models(catalog, browse):
    page = await browse.by_manufacturer(1, (10,), page=1, page_size=10)

    assert [item.id for item in page.items] == [1]


@pytest.mark.asyncio
async def test_by_manufacturer_without_items(source, browse):
    source.add_manufacturer(5, "Lada")

    page = await browse.by_manufacturer(5, (), page=1, page_size=10)

    assert page.total_items == 0
    assert page.message == "No items found for this manufacturer."


@pytest.mark.asyncio
async def test_browse_returns_all_images(catalog, browse):
    page = await browse.by_category(1, page=1, page_size=10)
    cleaner = next(item for item in page.items if item.id == 3)

    assert [img.src for img in cleaner.images] == [
        "https://cdn.test/3a.jpg",
        "https://cdn.test/3b.jpg",
    ]
    assert cleaner.image_url == "https://cdn.test/3a.jpg"


@pytest.mark.asyncio
async def test_by_filter_combines_category_and_manufacturer(catalog, browse):
    page = await browse.by_filter(1, 2, (), page=1, page_size=10)

    assert [item.id for item in page.items] == [3]
    assert set(page.descendant_categories) == {1, 2}


@pytest.mark.asyncio
async def test_by_filter_ignores_models_without_manufacturer(catalog, browse):
    page = await browse.by_filter(1, None, (10,), page=1, page_size=10)

    assert [item.id for item in page.items] == [3, 2, 1]


@pytest.mark.asyncio
async def test_by_filter_ignores_non_positive_ids(catalog, browse):
    page = await browse.by_filter(-4, 2, (), page=1, page_size=10)

    assert [item.id for item in page.items] == [3, 4]


@pytest.mark.parametrize("category_id,manufacturer_id", [(None, None), (0, None), (-1, -2)])
@pytest.mark.asyncio
async def test_by_filter_requires_a_filter(browse, category_id, manufacturer_id):
    with pytest.raises(ValidationError):
        await browse.by_filter(category_id, manufacturer_id, (), page=1, page_size=10)


@pytest.mark.asyncio
async def test_by_filter_paginates(catalog, browse):
    page = await browse.by_filter(None, 1, (), page=2, page_size=2)

    assert [item.id for item in page.items] == [1]
    assert page.total_items == 3
    assert page.pagination.has_more is False
    assert page.pagination.total_pages == 2


@pytest.mark.asyncio
async def test_item_detail(catalog, browse):
    item = await browse.item_detail(3)

    assert item.name == "Brake Cleaner"
    assert len(item.images) == 2
    assert [c.category_id for c in item.categories] == [1]


@pytest.mark.asyncio
async def test_item_detail_not_found(catalog, browse):
    with pytest.raises(ItemNotFound) as exc_info:
        await browse.item_detail(404)

    assert exc_info.value.status_code == 404

    with pytest.raises(ValidationError):
        await browse.item_detail(0)


@pytest.mark.asyncio
async def test_browse_reads_are_capped(catalog):
    browse = BrowseService(
        catalog,
        CategoryClosureIndex(catalog.load_category_edges),
        limits=SearchLimits(max_candidates=2),
    )

    page = await browse.by_manufacturer(1, (), page=1, page_size=10)

    assert catalog.candidate_limits == [2]
    assert [item.id for item in page.items] == [2, 1]
