"""Query tokenization and term enrichment.

Each original token is enriched with:
- synonyms with weight >= SearchLimits.synonym_min_weight
- fuzzy near-duplicates from the vocabulary (expansion distance)
- a stem (token minus its last character) for tokens longer than 4

The enriched terms only influence ranking. The mandatory filter always runs
on ExpandedQuery.tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from partsearch.services.errors import TransientReadFailure
from partsearch.services.fuzzy import FuzzyMatch, FuzzyMatcher, VocabularySnapshot
from partsearch.services.synonyms import SynonymTable
from partsearch.settings import SearchLimits

logger = logging.getLogger("uvicorn.error")


def tokenize(raw: str | None) -> list[str]:
    """Split on whitespace, lowercase, drop duplicates (first occurrence wins)."""
    if not raw:
        return []
    tokens: list[str] = []
    for part in raw.split():
        token = part.strip().lower()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


@dataclass(frozen=True)
class TokenExpansion:
    token: str
    synonyms: dict[str, float] = field(default_factory=dict)
    near_duplicates: tuple[FuzzyMatch, ...] = ()
    # Tighter fuzzy set used for scoring bonuses.
    close_matches: tuple[FuzzyMatch, ...] = ()
    stem: str | None = None

    def terms(self) -> list[str]:
        out = [self.token, *self.synonyms]
        out.extend(m.term for m in self.near_duplicates)
        if self.stem:
            out.append(self.stem)
        return out


@dataclass(frozen=True)
class ExpandedQuery:
    raw: str
    tokens: tuple[str, ...]
    expansions: tuple[TokenExpansion, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    @property
    def enriched_terms(self) -> list[str]:
        """All distinct terms in expansion order."""
        seen: list[str] = []
        for expansion in self.expansions:
            for term in expansion.terms():
                if term not in seen:
                    seen.append(term)
        return seen

    def expansion_for(self, token: str) -> TokenExpansion | None:
        for expansion in self.expansions:
            if expansion.token == token:
                return expansion
        return None


class QueryExpander:
    def __init__(self, synonyms: SynonymTable, matcher: FuzzyMatcher, limits: SearchLimits) -> None:
        self.synonyms = synonyms
        self.matcher = matcher
        self.limits = limits

    async def _snapshot(self) -> VocabularySnapshot:
        try:
            return await self.matcher.snapshot()
        except TransientReadFailure:
            logger.exception("[expand] vocabulary read failed, fuzzy tier skipped")
            return VocabularySnapshot.empty()

    async def expand(self, raw: str | None) -> ExpandedQuery:
        tokens = tokenize(raw)
        if not tokens:
            return ExpandedQuery(raw=raw or "", tokens=())

        snapshot = await self._snapshot()
        expansions: list[TokenExpansion] = []
        for token in tokens:
            synonyms = await self.synonyms.synonyms_of(token, self.limits.synonym_min_weight)
            near = self.matcher.find_similar(
                token, self.limits.expansion_max_edit_distance, snapshot
            )
            close = self.matcher.find_similar(token, self.limits.scoring_max_edit_distance, snapshot)
            stem = token[:-1] if len(token) >= self.limits.stem_min_term_length else None
            expansions.append(
                TokenExpansion(
                    token=token,
                    synonyms=synonyms,
                    near_duplicates=tuple(near),
                    close_matches=tuple(close),
                    stem=stem,
                )
            )

        return ExpandedQuery(raw=raw or "", tokens=tuple(tokens), expansions=tuple(expansions))
