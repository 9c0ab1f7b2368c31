import pytest

from partsearch.services.errors import TransientReadFailure
from partsearch.services.fuzzy import FuzzyMatcher, VocabularySnapshot, soundex
from partsearch.settings import SearchLimits
from partsearch.stores.catalog import VocabularyTerm


def _snapshot(*terms: str) -> VocabularySnapshot:
    return VocabularySnapshot(terms=tuple(VocabularyTerm(term=t, source="item") for t in terms))


def _matcher(**limits) -> FuzzyMatcher:
    async def loader() -> list[VocabularyTerm]:
        return []

    return FuzzyMatcher(loader, SearchLimits(**limits))


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Robert", "R163"),
        ("Rupert", "R163"),
        ("Tymczak", "T522"),
        ("Pfister", "P236"),
        ("brake", "B620"),
        ("A", "A000"),
        ("", ""),
        ("123", ""),
    ],
)
def test_soundex(value, expected):
    assert soundex(value) == expected


def test_find_similar_accepts_edit_distance():
    matches = _matcher().find_similar("brak", 2, _snapshot("brake", "break", "clutch"))

    terms = [m.term for m in matches]
    assert "brake" in terms
    assert "break" in terms
    assert "clutch" not in terms


def test_find_similar_accepts_phonetic_matches_with_close_length():
    # distance("fyltr", "filter") is 2 but the Soundex codes match
    matches = _matcher().find_similar("fyltr", 1, _snapshot("filter", "filterhousing"))

    assert [m.term for m in matches] == ["filter"]
    assert matches[0].phonetic_match is True


def test_find_similar_skips_identical_and_short_terms():
    matcher = _matcher()
    snapshot = _snapshot("brake", "brakes")

    assert [m.term for m in matcher.find_similar("brake", 2, snapshot)] == ["brakes"]
    assert matcher.find_similar("br", 2, snapshot) == []


def test_find_similar_ranks_and_caps_results():
    snapshot = _snapshot("pads", "pad", "pat", "paid", "pod", "pa", "padd", "spade")
    matches = _matcher().find_similar("pade", 2, snapshot)

    assert len(matches) == 5
    distances = [m.distance for m in matches]
    assert distances == sorted(distances)
    assert len({m.term for m in matches}) == 5


def test_find_similar_on_empty_snapshot():
    assert _matcher().find_similar("brake", 2, VocabularySnapshot.empty()) == []


@pytest.mark.asyncio
async def test_snapshot_dedupes_and_lowercases():
    async def loader():
        return [
            VocabularyTerm(term="Corolla", source="model"),
            VocabularyTerm(term="corolla", source="item"),
            VocabularyTerm(term="Toyota", source="manufacturer"),
        ]

    snapshot = await FuzzyMatcher(loader, SearchLimits()).snapshot()

    assert [t.term for t in snapshot.terms] == ["corolla", "toyota"]
    assert snapshot.taken_at is not None


@pytest.mark.asyncio
async def test_snapshot_read_failure_is_transient():
    async def loader():
        raise ConnectionError("db down")

    with pytest.raises(TransientReadFailure):
        await FuzzyMatcher(loader, SearchLimits()).snapshot()
