"""Typo-tolerant term matching against a catalog vocabulary.

The vocabulary is a capped sample of distinct lowercased item, manufacturer
and vehicle-model names (see SearchLimits.vocabulary_*_limit). A candidate is
similar to a term when:
- Levenshtein distance <= max_edit_distance, or
- the Soundex codes match and the lengths differ by at most
  phonetic_max_length_difference.

Results rank by distance, then phonetic match first, then shorter term.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

from rapidfuzz.distance import Levenshtein

from partsearch.services.errors import TransientReadFailure
from partsearch.settings import SearchLimits
from partsearch.stores.catalog import VocabularyTerm

logger = logging.getLogger("uvicorn.error")

# A..Z -> Soundex digit; "0" letters (vowels, H, W, Y) are not coded.
_SOUNDEX_CODES = "01230120022455012623010202"


def soundex(value: str) -> str:
    """Four-character Soundex code ("" when value has no ASCII letters).

    Non-letters are skipped. Uncoded letters separate runs, so the same digit
    on both sides of a vowel is written twice.
    """
    letters = [c for c in value.upper() if "A" <= c <= "Z"]
    if not letters:
        return ""

    first = letters[0]
    code = [first]
    last = _SOUNDEX_CODES[ord(first) - ord("A")]
    for c in letters[1:]:
        digit = _SOUNDEX_CODES[ord(c) - ord("A")]
        if digit == "0":
            last = ""
            continue
        if digit != last:
            code.append(digit)
            if len(code) == 4:
                break
        last = digit
    return "".join(code).ljust(4, "0")


@dataclass(frozen=True)
class VocabularySnapshot:
    """Immutable vocabulary captured for one expansion."""

    terms: tuple[VocabularyTerm, ...]
    taken_at: datetime | None = None

    @classmethod
    def empty(cls) -> "VocabularySnapshot":
        return cls(terms=(), taken_at=None)

    def __len__(self) -> int:
        return len(self.terms)


@dataclass(frozen=True)
class FuzzyMatch:
    term: str
    distance: int
    phonetic_match: bool
    source: str


class FuzzyMatcher:
    """Finds vocabulary terms close to a query token."""

    def __init__(
        self,
        loader: Callable[[], Awaitable[list[VocabularyTerm]]],
        limits: SearchLimits,
    ) -> None:
        self._loader = loader
        self.limits = limits

    async def snapshot(self) -> VocabularySnapshot:
        """Read the vocabulary.

        Raises:
            TransientReadFailure: the read failed.
        """
        try:
            loaded = await self._loader()
        except Exception as e:
            raise TransientReadFailure("vocabulary", e) from e

        seen: set[str] = set()
        terms: list[VocabularyTerm] = []
        for entry in loaded:
            term = entry.term.strip().lower()
            if not term or term in seen:
                continue
            seen.add(term)
            terms.append(VocabularyTerm(term=term, source=entry.source))
        return VocabularySnapshot(terms=tuple(terms), taken_at=datetime.now(timezone.utc))

    def find_similar(
        self,
        term: str,
        max_edit_distance: int,
        snapshot: VocabularySnapshot,
    ) -> list[FuzzyMatch]:
        needle = term.strip().lower()
        if len(needle) < self.limits.fuzzy_min_term_length or not snapshot.terms:
            return []

        needle_code = soundex(needle)
        matches: list[FuzzyMatch] = []
        for entry in snapshot.terms:
            if entry.term == needle:
                continue
            distance = Levenshtein.distance(needle, entry.term)
            phonetic = (
                bool(needle_code)
                and soundex(entry.term) == needle_code
                and abs(len(entry.term) - len(needle)) <= self.limits.phonetic_max_length_difference
            )
            if distance <= max_edit_distance or phonetic:
                matches.append(
                    FuzzyMatch(
                        term=entry.term,
                        distance=distance,
                        phonetic_match=phonetic,
                        source=entry.source,
                    )
                )

        matches.sort(key=lambda m: (m.distance, not m.phonetic_match, len(m.term), m.term))
        return matches[: self.limits.fuzzy_max_candidates]
