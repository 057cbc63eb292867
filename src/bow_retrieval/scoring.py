"""
BM25 Scorer.

    IDF:         log(1 + (N - df + 0.5) / (df + 0.5))       [Lucene, never negative]
    Length norm: 1 - b + b * (dl / avgdl)
    TF:          tf * (k1 + 1) / (tf + k1 * norm)           ["robertson", default]
                 tf / (tf + k1 * norm)                      ["lucene", Lucene >= 8]
    weight:      IDF * TF

bm25_weight() is the pure, fully validated formula. BM25Scorer binds it to a
CollectionStatistics instance, pre-computes IDF for the whole vocabulary and
derives per-document sparse vectors.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from bow_retrieval.config import DEFAULT_B, DEFAULT_K1, BM25Parameters
from bow_retrieval.errors import ConfigurationError, InvalidArgumentError, InvalidTermError
from bow_retrieval.vectors import SparseVector

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from bow_retrieval.stats import CollectionStatistics, DocId


def inverse_document_frequency(df: int, N: int) -> float:
    """Lucene/Pyserini IDF for a single term."""
    if df <= 0:
        raise InvalidTermError(f"df must be positive for a scored term, got {df}")
    if df > N:
        raise InvalidTermError(f"df ({df}) exceeds collection size N ({N})")
    return math.log(1.0 + (N - df + 0.5) / (df + 0.5))


def inverse_document_frequency_vectorized(df: NDArray[np.float64], N: int) -> NDArray[np.float64]:
    """IDF over an array of document frequencies."""
    if np.any(df <= 0):
        raise InvalidTermError("df must be positive for every scored term")
    return np.log1p((N - df + 0.5) / (df + 0.5))


def length_norm(doc_len: float, avg_doc_len: float, b: float) -> float:
    return 1.0 - b + b * (doc_len / avg_doc_len)


def saturate(tf: float, k1: float, norm: float, tf_variant: str = "robertson") -> float:
    if tf_variant == "lucene":
        return tf / (tf + k1 * norm)
    return tf * (k1 + 1.0) / (tf + k1 * norm)


def _check_average_length(avg_doc_len: float) -> None:
    if not math.isfinite(avg_doc_len) or avg_doc_len <= 0:
        raise ConfigurationError(
            f"Average document length must be positive, got {avg_doc_len!r} "
            "(empty collection or every document analyzed to zero terms?)"
        )


def bm25_weight(
    tf: int,
    df: int,
    N: int,
    doc_len: int,
    avg_doc_len: float,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
    tf_variant: str = "robertson",
) -> float:
    """
    BM25 weight of one term in one document.

    Args:
        tf: Term frequency in the document (0 -> weight 0)
        df: Documents containing the term (must be in 1..N)
        N: Collection size
        doc_len: Document length in terms
        avg_doc_len: Average document length over the full collection
        k1: TF saturation
        b: Length normalization strength
        tf_variant: "robertson" or "lucene"

    Raises:
        ConfigurationError: avg_doc_len <= 0 or invalid k1/b/tf_variant
        InvalidTermError: df == 0 (or df > N)
        InvalidArgumentError: negative tf or doc_len
    """
    BM25Parameters(k1=k1, b=b, tf_variant=tf_variant)
    _check_average_length(avg_doc_len)
    if tf < 0 or doc_len < 0:
        raise InvalidArgumentError(f"tf and doc_len must be non-negative, got tf={tf}, doc_len={doc_len}")
    if tf == 0:
        return 0.0
    idf = inverse_document_frequency(df, N)
    return idf * saturate(tf, k1, length_norm(doc_len, avg_doc_len, b), tf_variant)


class BM25Scorer:
    """
    BM25 bound to collection statistics.

    IDF is pre-computed for every term of the vocabulary; weights for
    (document, term) pairs are computed on demand.

    Args:
        statistics: Read-only collection statistics
        parameters: k1, b and TF variant (defaults: k1=0.9, b=0.4)
    """

    def __init__(self, statistics: CollectionStatistics, parameters: BM25Parameters | None = None):
        self.statistics = statistics
        self.parameters = parameters if parameters is not None else BM25Parameters()
        self.k1 = self.parameters.k1
        self.b = self.parameters.b
        self.avgdl = statistics.average_document_length
        _check_average_length(self.avgdl)

        dfs = statistics.document_frequencies()
        df_array = np.fromiter(dfs.values(), dtype=np.float64, count=len(dfs))
        idf = inverse_document_frequency_vectorized(df_array, statistics.N)
        self._idf: dict[str, float] = {term: float(v) for term, v in zip(dfs.keys(), idf)}

    def idf(self, term: str) -> float:
        try:
            return self._idf[term]
        except KeyError:
            raise InvalidTermError(f"Term {term!r} has df = 0 and cannot be scored") from None

    def weight(self, term: str, tf: int, doc_len: int) -> float:
        """Weight for a posting whose document length is already known."""
        if tf == 0:
            return 0.0
        norm = length_norm(doc_len, self.avgdl, self.b)
        return self.idf(term) * saturate(tf, self.k1, norm, self.parameters.tf_variant)

    def term_weight(self, docid: DocId, term: str) -> float:
        """BM25 weight of term in docid; 0 when the document lacks the term."""
        tf = self.statistics.term_frequency(docid, term)
        return self.weight(term, tf, self.statistics.document_length(docid))

    def document_vector(self, docid: DocId) -> SparseVector:
        """All non-zero BM25 weights of one document."""
        doc_len = self.statistics.document_length(docid)
        return SparseVector(
            (term, self.weight(term, tf, doc_len))
            for term, tf in self.statistics.term_frequencies(docid).items()
        )

    def score(self, query_terms: frozenset[str], docid: DocId) -> float:
        """Inner product of a multi-hot query with one document vector."""
        return self.document_vector(docid).dot(query_terms)
