"""
Top-K retrieval over the inverted index.

For each query term the postings list is traversed and BM25 weights are
accumulated per document; only documents sharing at least one term with the
query are ever touched. A bounded min-heap keeps the k best candidates, so a
query costs O(sum |postings(t)| log k) instead of O(N).

Ranking order: descending score, ties broken by ascending docid.

BruteForceRetriever scores every document through a sparse matrix product and
exists only as an oracle for tests and debugging.

Usage:
    from bow_retrieval.retriever import TopKRetriever

    retriever = TopKRetriever.from_documents([("d1", "..."), ("d2", "...")])
    for docid, score in retriever.search("what is paula deen's brother", k=10):
        print(docid, score)
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, NamedTuple

import numpy as np
from scipy.sparse import csr_matrix

from bow_retrieval.analysis import get_analyzer
from bow_retrieval.config import RetrievalConfig
from bow_retrieval.encoder import QueryEncoder
from bow_retrieval.errors import InvalidArgumentError
from bow_retrieval.index import InvertedIndex
from bow_retrieval.scoring import BM25Scorer

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from bow_retrieval.config import BM25Parameters
    from bow_retrieval.stats import DocId

logger = logging.getLogger(__name__)

# Minimum queries before batch_search uses a thread pool
MIN_QUERIES_FOR_PARALLEL = 10


class ScoredDocument(NamedTuple):
    docid: DocId
    score: float


class _Candidate:
    """Heap entry ordered so that the *worst* candidate sits at the heap root."""

    __slots__ = ("score", "docid")

    def __init__(self, score: float, docid: DocId):
        self.score = score
        self.docid = docid

    def __lt__(self, other: _Candidate) -> bool:
        if self.score != other.score:
            return self.score < other.score
        return self.docid > other.docid


def _check_k(k: int) -> None:
    if isinstance(k, bool) or not isinstance(k, int) or k <= 0:
        raise InvalidArgumentError(f"k must be a positive integer, got {k!r}")


def _normalize_query(query_terms: Iterable[str]) -> list[str]:
    if isinstance(query_terms, str):
        raise InvalidArgumentError("query_terms must be a collection of terms, not a raw string; use search()")
    terms = set(query_terms)
    if not all(isinstance(t, str) for t in terms):
        raise InvalidArgumentError("query terms must be strings")
    # fixed traversal order keeps float accumulation reproducible
    return sorted(terms)


def select_top_k(scores: dict[DocId, float], k: int) -> list[ScoredDocument]:
    """The k best (docid, score) pairs, descending score, ascending docid on ties."""
    heap: list[_Candidate] = []
    for docid, score in scores.items():
        candidate = _Candidate(score, docid)
        if len(heap) < k:
            heapq.heappush(heap, candidate)
        elif heap[0] < candidate:
            heapq.heapreplace(heap, candidate)
    heap.sort(reverse=True)
    return [ScoredDocument(c.docid, c.score) for c in heap]


class TopKRetriever:
    """
    Exact top-k BM25 retrieval.

    Args:
        index: Inverted index built with the same analyzer as `encoder`
        scorer: BM25 scorer over index.statistics (default: k1=0.9, b=0.4)
        encoder: Query encoder used by search()
    """

    def __init__(
        self,
        index: InvertedIndex,
        scorer: BM25Scorer | None = None,
        encoder: QueryEncoder | None = None,
    ):
        self.index = index
        self.scorer = scorer if scorer is not None else BM25Scorer(index.statistics)
        self.encoder = encoder if encoder is not None else QueryEncoder()
        if self.scorer.statistics is not index.statistics:
            raise InvalidArgumentError("scorer must be built over the index's own statistics")

    @classmethod
    def from_documents(
        cls,
        documents: Iterable[tuple[DocId, str]],
        config: RetrievalConfig | None = None,
        show_progress: bool = False,
    ) -> TopKRetriever:
        """Analyze, index and wire up a retriever in one step."""
        config = config if config is not None else RetrievalConfig()
        analyzer = get_analyzer(config)
        index = InvertedIndex.build(
            documents,
            analyzer=analyzer,
            workers=config.resolved_workers(),
            show_progress=show_progress,
        )
        return cls(index, BM25Scorer(index.statistics, config.parameters), QueryEncoder(analyzer))

    @property
    def parameters(self) -> BM25Parameters:
        return self.scorer.parameters

    def accumulate(self, query_terms: Iterable[str]) -> dict[DocId, float]:
        """Score every document that shares a term with the query."""
        statistics = self.index.statistics
        scores: dict[DocId, float] = defaultdict(float)
        for term in _normalize_query(query_terms):
            postings = self.index.postings(term)
            if not postings:
                continue
            for docid, tf in postings:
                scores[docid] += self.scorer.weight(term, tf, statistics.document_length(docid))
        return scores

    def retrieve(self, query_terms: Iterable[str], k: int) -> list[ScoredDocument]:
        """
        Rank documents for an analyzed query.

        Args:
            query_terms: Set of analyzed terms (duplicates are ignored)
            k: Maximum number of results (> 0)

        Returns:
            At most k ScoredDocuments, descending score, ascending docid on ties.
            Empty if no query term occurs in the collection.
        """
        _check_k(k)
        scores = self.accumulate(query_terms)
        results = select_top_k(scores, k)
        logger.debug("Scored %d candidates, returning %d", len(scores), len(results))
        return results

    def search(self, query: str, k: int = 10) -> list[ScoredDocument]:
        """Encode a raw query string and retrieve its top k documents."""
        _check_k(k)
        return self.retrieve(self.encoder.encode(query), k)

    def batch_search(
        self,
        queries: Sequence[str],
        k: int = 10,
        workers: int = 8,
    ) -> list[list[ScoredDocument]]:
        """Search independent queries, in parallel once there are enough of them."""
        _check_k(k)
        if workers <= 1 or len(queries) < MIN_QUERIES_FOR_PARALLEL:
            return [self.search(query, k) for query in queries]

        def search_single(query: str) -> list[ScoredDocument]:
            return self.search(query, k)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(search_single, queries))


class BruteForceRetriever:
    """
    Reference ranker: scores every document as a sparse matrix-vector product.

    Materializes the (N, V) document-term matrix of BM25 weights and multiplies
    it with a multi-hot query vector. O(N) per query; use it to cross-check
    TopKRetriever, never to serve queries.
    """

    def __init__(self, scorer: BM25Scorer):
        self.scorer = scorer
        statistics = scorer.statistics
        self.docids: list[DocId] = sorted(statistics)
        self._vocab: dict[str, int] = {term: i for i, term in enumerate(sorted(statistics.vocabulary()))}

        rows: list[int] = []
        cols: list[int] = []
        data: list[float] = []
        for row, docid in enumerate(self.docids):
            for term, weight in scorer.document_vector(docid).items():
                rows.append(row)
                cols.append(self._vocab[term])
                data.append(weight)
        self.doc_matrix = csr_matrix(
            (data, (rows, cols)),
            shape=(len(self.docids), len(self._vocab)),
            dtype=np.float64,
        )

    def score_all(self, query_terms: Iterable[str]) -> NDArray[np.float64]:
        """Scores for every document, aligned with self.docids."""
        query = np.zeros(len(self._vocab), dtype=np.float64)
        for term in _normalize_query(query_terms):
            term_id = self._vocab.get(term)
            if term_id is not None:
                query[term_id] = 1.0
        return np.asarray(self.doc_matrix @ query, dtype=np.float64)

    def retrieve(self, query_terms: Iterable[str], k: int) -> list[ScoredDocument]:
        _check_k(k)
        scores = self.score_all(query_terms)
        matched = np.flatnonzero(scores > 0)
        ranked = sorted(matched.tolist(), key=lambda i: (-scores[i], self.docids[i]))
        return [ScoredDocument(self.docids[i], float(scores[i])) for i in ranked[:k]]
