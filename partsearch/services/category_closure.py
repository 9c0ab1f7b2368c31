"""Category descendant closure.

Maps every category id to itself plus all of its recursive children, so a
filter on a parent category also matches items tagged only with a subcategory.

The closure is built from one full read of the categories table and cached
per process (see ProcessCache). Unknown ids resolve to themselves, and a
failed build leaves callers with exact-id filtering only.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from partsearch.services.cache import ProcessCache

CategoryEdges = list[tuple[int, int | None]]
CategoryClosure = dict[int, tuple[int, ...]]


def compute_closure(edges: Iterable[tuple[int, int | None]]) -> CategoryClosure:
    """Compute self + descendants for every category.

    Args:
        edges: (category_id, parent_id) pairs. Children keep the input order.

    Returns:
        category_id -> ordered ids (self first, then a depth-first walk).
        A visited set per category guards against cycles in bad data.
    """
    children: dict[int, list[int]] = defaultdict(list)
    ids: list[int] = []
    for category_id, parent_id in edges:
        ids.append(category_id)
        if parent_id is not None:
            children[parent_id].append(category_id)

    def _expand(node: int, visited: set[int], out: list[int]) -> None:
        if node in visited:
            return
        visited.add(node)
        out.append(node)
        for child in children.get(node, ()):
            _expand(child, visited, out)

    closure: CategoryClosure = {}
    for category_id in ids:
        out: list[int] = []
        _expand(category_id, set(), out)
        closure[category_id] = tuple(out)
    return closure


class CategoryClosureIndex(ProcessCache[CategoryEdges, CategoryClosure]):
    """Process-local cache of the category closure."""

    name = "category_closure"

    def build(self, loaded: CategoryEdges) -> CategoryClosure:
        return compute_closure(loaded)

    def fallback(self) -> CategoryClosure:
        return {}

    async def descendants_of(self, category_id: int) -> tuple[int, ...]:
        """Return category_id plus all its descendants.

        Never empty: an unknown id (or a failed build) yields (category_id,).
        """
        closure = await self.get()
        return closure.get(category_id) or (category_id,)
