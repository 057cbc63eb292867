"""Query Encoder: raw query text -> multi-hot set of analyzed terms."""

from __future__ import annotations

from bow_retrieval.analysis import Analyzer, LuceneAnalyzer
from bow_retrieval.errors import InvalidArgumentError
from bow_retrieval.vectors import multihot


class QueryEncoder:
    """
    Encodes queries with the analyzer used at indexing time.

    Both sides must share one analyzer: a query stemmed differently from the
    documents matches nothing.
    """

    def __init__(self, analyzer: Analyzer | None = None):
        self.analyzer = analyzer if analyzer is not None else LuceneAnalyzer()

    def encode(self, raw_query: str) -> frozenset[str]:
        if not isinstance(raw_query, str):
            raise InvalidArgumentError(f"Query must be a string, got {type(raw_query).__name__}")
        return multihot(self.analyzer(raw_query))

    __call__ = encode
