"""Weighted synonym table.

search_synonyms stores each pair once; the table is loaded into a symmetric
map term -> {synonym: weight}. Terms are matched lowercased.
"""

from __future__ import annotations

from typing import Iterable

from partsearch.services.cache import ProcessCache
from partsearch.stores.catalog import SynonymEdge

SynonymMap = dict[str, dict[str, float]]


def _normalize_term(value: str) -> str:
    return " ".join(value.lower().split())


def build_synonym_map(edges: Iterable[SynonymEdge]) -> SynonymMap:
    """Build the bidirectional synonym map.

    If a pair appears more than once (in either direction) the highest weight
    wins. Self-pairs and blank terms are ignored.
    """
    mapping: SynonymMap = {}
    for edge in edges:
        term = _normalize_term(edge.term)
        synonym = _normalize_term(edge.synonym)
        if not term or not synonym or term == synonym:
            continue
        weight = max(0.0, min(1.0, float(edge.weight)))
        for a, b in ((term, synonym), (synonym, term)):
            current = mapping.setdefault(a, {})
            if weight > current.get(b, -1.0):
                current[b] = weight
    return mapping


class SynonymTable(ProcessCache[list[SynonymEdge], SynonymMap]):
    """Process-local cache of the synonym map."""

    name = "synonyms"

    def build(self, loaded: list[SynonymEdge]) -> SynonymMap:
        return build_synonym_map(loaded)

    def fallback(self) -> SynonymMap:
        return {}

    async def synonyms_of(self, term: str, min_weight: float) -> dict[str, float]:
        """Synonyms of term with weight >= min_weight, strongest first."""
        mapping = await self.get()
        found = mapping.get(_normalize_term(term), {})
        ranked = sorted(
            ((synonym, weight) for synonym, weight in found.items() if weight >= min_weight),
            key=lambda pair: (-pair[1], pair[0]),
        )
        return dict(ranked)
