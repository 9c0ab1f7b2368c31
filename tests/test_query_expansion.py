import pytest

from partsearch.services.fuzzy import FuzzyMatcher
from partsearch.services.query_expansion import QueryExpander, tokenize
from partsearch.services.synonyms import SynonymTable
from partsearch.settings import SearchLimits
from partsearch.stores.catalog import SynonymEdge


def _expander(source, limits: SearchLimits | None = None) -> QueryExpander:
    limits = limits or SearchLimits()
    return QueryExpander(
        SynonymTable(source.load_synonym_edges),
        FuzzyMatcher(lambda: source.load_vocabulary(limits), limits),
        limits,
    )


def test_tokenize_lowercases_and_dedupes():
    assert tokenize("  Brake  brake PADS ") == ["brake", "pads"]
    assert tokenize("") == []
    assert tokenize(None) == []


@pytest.mark.asyncio
async def test_expand_adds_strong_synonyms_only(source):
    source.synonyms = [SynonymEdge("tire", "tyre", 1.0), SynonymEdge("tire", "wheel", 0.6)]

    expanded = await _expander(source).expand("Tire")

    assert expanded.tokens == ("tire",)
    assert expanded.expansion_for("tire").synonyms == {"tyre": 1.0}
    assert "wheel" not in expanded.enriched_terms


@pytest.mark.asyncio
async def test_expand_adds_stem_for_long_tokens(source):
    expanded = await _expander(source).expand("brakes pad")

    assert expanded.expansion_for("brakes").stem == "brake"
    assert expanded.expansion_for("pad").stem is None
    assert "brake" in expanded.enriched_terms


@pytest.mark.asyncio
async def test_expand_adds_near_duplicates_from_vocabulary(source):
    source.add_manufacturer(1, "Toyota")
    source.add_item(1, "Alternator")

    expanded = await _expander(source).expand("toyta alternater")

    assert [m.term for m in expanded.expansion_for("toyta").near_duplicates] == ["toyota"]
    assert [m.term for m in expanded.expansion_for("toyta").close_matches] == ["toyota"]
    assert "alternator" in [m.term for m in expanded.expansion_for("alternater").near_duplicates]
    assert expanded.enriched_terms[:2] == ["toyta", "toyota"]


@pytest.mark.asyncio
async def test_vocabulary_is_read_once_per_expansion(source):
    source.add_item(1, "Brake Pad Set")

    await _expander(source).expand("brake pad set")

    assert source.calls["load_vocabulary"] == 1


@pytest.mark.asyncio
async def test_vocabulary_failure_skips_fuzzy_tier(source):
    source.add_manufacturer(1, "Toyota")
    source.synonyms = [SynonymEdge("toyta", "toyota", 1.0)]
    source.failing.add("load_vocabulary")

    expanded = await _expander(source).expand("toyta")

    expansion = expanded.expansion_for("toyta")
    assert expansion.near_duplicates == ()
    assert expansion.synonyms == {"toyota": 1.0}


@pytest.mark.asyncio
async def test_empty_query_skips_all_reads(source):
    expanded = await _expander(source).expand("   ")

    assert expanded.is_empty
    assert expanded.enriched_terms == []
    assert sum(source.calls.values()) == 0
