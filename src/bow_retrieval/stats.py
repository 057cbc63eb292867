"""
Term Statistics Store.

Holds the collection-level statistics (N, avgdl, df) and per-document
statistics (length, term frequencies) that BM25 needs. Built once at index
time and read-only afterward; a single instance is shared by every scoring
call and can be read from many threads without locking.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

import numpy as np

from bow_retrieval.errors import InvalidArgumentError, NotFoundError

DocId = str | int


class CollectionStatistics:
    """
    Read-only collection and document statistics.

    Args:
        document_lengths: docid -> number of terms after analysis
        term_frequencies: docid -> {term: tf}
        document_frequencies: term -> number of documents containing it.
            Derived from term_frequencies when omitted.
    """

    def __init__(
        self,
        document_lengths: Mapping[DocId, int],
        term_frequencies: Mapping[DocId, Mapping[str, int]],
        document_frequencies: Mapping[str, int] | None = None,
    ):
        if document_lengths.keys() != term_frequencies.keys():
            raise InvalidArgumentError("document_lengths and term_frequencies cover different docids")

        self._doc_lengths: dict[DocId, int] = dict(document_lengths)
        self._doc_tfs: dict[DocId, Mapping[str, int]] = {
            docid: MappingProxyType(dict(tfs)) for docid, tfs in term_frequencies.items()
        }
        if document_frequencies is None:
            document_frequencies = Counter(term for tfs in self._doc_tfs.values() for term in tfs)
        self._df: dict[str, int] = dict(document_frequencies)

        self.document_count = len(self._doc_lengths)
        for term, df in self._df.items():
            if not 0 < df <= self.document_count:
                raise InvalidArgumentError(
                    f"df({term!r}) = {df} violates 0 < df <= N = {self.document_count}"
                )

        lengths = np.fromiter(self._doc_lengths.values(), dtype=np.float64, count=self.document_count)
        self.average_document_length = float(lengths.mean()) if self.document_count else 0.0
        self.total_terms = int(lengths.sum())

    @classmethod
    def from_documents(cls, documents: Iterable[tuple[DocId, list[str]]]) -> CollectionStatistics:
        """Compute statistics from already-analyzed (docid, terms) pairs."""
        lengths: dict[DocId, int] = {}
        tfs: dict[DocId, Counter[str]] = {}
        for docid, terms in documents:
            if docid in lengths:
                raise InvalidArgumentError(f"Duplicate docid {docid!r}")
            lengths[docid] = len(terms)
            tfs[docid] = Counter(terms)
        return cls(lengths, tfs)

    def __len__(self) -> int:
        return self.document_count

    def __iter__(self) -> Iterator[DocId]:
        return iter(self._doc_lengths)

    @property
    def N(self) -> int:
        return self.document_count

    @property
    def vocabulary_size(self) -> int:
        return len(self._df)

    def vocabulary(self) -> Iterator[str]:
        return iter(self._df)

    def has_document(self, docid: DocId) -> bool:
        return docid in self._doc_lengths

    def has_term(self, term: str) -> bool:
        return term in self._df

    def document_frequency(self, term: str) -> int:
        """df(t); raises NotFoundError for a term outside the collection."""
        try:
            return self._df[term]
        except KeyError:
            raise NotFoundError(f"Term {term!r} is not in the collection") from None

    def document_length(self, docid: DocId) -> int:
        try:
            return self._doc_lengths[docid]
        except KeyError:
            raise NotFoundError(f"Document {docid!r} is not in the collection") from None

    def term_frequencies(self, docid: DocId) -> Mapping[str, int]:
        """Read-only {term: tf} view of one document."""
        try:
            return self._doc_tfs[docid]
        except KeyError:
            raise NotFoundError(f"Document {docid!r} is not in the collection") from None

    def term_frequency(self, docid: DocId, term: str) -> int:
        """tf(d, t); 0 when t is in the collection but not in d."""
        tfs = self.term_frequencies(docid)
        if term not in self._df:
            raise NotFoundError(f"Term {term!r} is not in the collection")
        return tfs.get(term, 0)

    def document_frequencies(self) -> Mapping[str, int]:
        return MappingProxyType(self._df)
