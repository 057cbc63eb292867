"""
Sparse bag-of-words vectors.

Document vectors map term -> BM25 weight and store only non-zero entries.
Query vectors are multi-hot: a frozenset of terms, each with implicit weight 1.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from collections.abc import Set as AbstractSet


class SparseVector(Mapping[str, float]):
    """Immutable term -> weight mapping; absent terms have weight 0."""

    __slots__ = ("_weights",)

    def __init__(self, weights: Mapping[str, float] | Iterable[tuple[str, float]] = ()):
        items = weights.items() if isinstance(weights, Mapping) else weights
        self._weights: dict[str, float] = {term: float(w) for term, w in items if w != 0.0}

    def __getitem__(self, term: str) -> float:
        return self._weights[term]

    def __iter__(self) -> Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"SparseVector({self._weights!r})"

    def weight(self, term: str) -> float:
        return self._weights.get(term, 0.0)

    def dot(self, other: Mapping[str, float] | AbstractSet[str] | Iterable[str]) -> float:
        """
        Inner product with another sparse vector or a multi-hot query.

        Only terms present in both operands contribute; for a multi-hot query
        this is the sum of this vector's weights over the shared terms.
        """
        if isinstance(other, Mapping):
            small, large = (self, other) if len(self) <= len(other) else (other, self)
            return float(sum(w * large.get(t, 0.0) for t, w in small.items()))
        terms = other if isinstance(other, AbstractSet) else frozenset(other)
        return float(sum(self._weights.get(t, 0.0) for t in sorted(terms)))

    def top(self, n: int | None = None) -> list[tuple[str, float]]:
        """Entries sorted by descending weight, ties by term."""
        ranked = sorted(self._weights.items(), key=lambda item: (-item[1], item[0]))
        return ranked if n is None else ranked[:n]

    def to_dict(self) -> dict[str, float]:
        return dict(self._weights)


def multihot(terms: Iterable[str]) -> frozenset[str]:
    """Query vector: duplicates collapse, every term weighs 1."""
    return frozenset(terms)
