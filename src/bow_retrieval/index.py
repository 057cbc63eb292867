"""
In-memory inverted index.

Maps every term to its postings list: (docid, tf) pairs sorted by docid
ascending. Built once from a document source and immutable afterward, so any
number of query threads may read it concurrently.

Build strategy:
    1. Materialize the (docid, text) source (it is consumed exactly once)
    2. Split it into contiguous shards, one per worker thread
    3. Each worker analyzes its shard into term -> postings + doc stats
    4. Shards are merged by term and every postings list sorted by docid
"""

from __future__ import annotations

import logging
import time
from collections import Counter, defaultdict
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import NamedTuple

from tqdm import tqdm

from bow_retrieval.analysis import Analyzer, LuceneAnalyzer
from bow_retrieval.config import MIN_DOCS_FOR_PARALLEL
from bow_retrieval.errors import InvalidArgumentError
from bow_retrieval.stats import CollectionStatistics, DocId

logger = logging.getLogger(__name__)

_EMPTY: tuple = ()


class Posting(NamedTuple):
    docid: DocId
    tf: int


@dataclass
class _Shard:
    postings: dict[str, list[Posting]] = field(default_factory=lambda: defaultdict(list))
    lengths: dict[DocId, int] = field(default_factory=dict)
    term_frequencies: dict[DocId, Counter[str]] = field(default_factory=dict)


def _index_shard(documents: list[tuple[DocId, str]], analyzer: Analyzer) -> _Shard:
    shard = _Shard()
    for docid, text in documents:
        terms = analyzer(text)
        counts = Counter(terms)
        shard.lengths[docid] = len(terms)
        shard.term_frequencies[docid] = counts
        for term, tf in counts.items():
            shard.postings[term].append(Posting(docid, tf))
    return shard


def _validate_docids(documents: list[tuple[DocId, str]]) -> None:
    seen: set[DocId] = set()
    kinds: set[type] = set()
    for docid, text in documents:
        if isinstance(docid, bool) or not isinstance(docid, (str, int)):
            raise InvalidArgumentError(f"docid must be str or int, got {docid!r}")
        if not isinstance(text, str):
            raise InvalidArgumentError(f"Document {docid!r} text must be str, got {type(text).__name__}")
        if docid in seen:
            raise InvalidArgumentError(f"Duplicate docid {docid!r}")
        seen.add(docid)
        kinds.add(type(docid))
    if len(kinds) > 1:
        raise InvalidArgumentError("docids must be all str or all int, not a mix")


def _split(documents: list[tuple[DocId, str]], num_shards: int) -> Iterator[list[tuple[DocId, str]]]:
    size = -(-len(documents) // num_shards)
    for start in range(0, len(documents), size):
        yield documents[start : start + size]


class InvertedIndex:
    """
    Term -> postings mapping with its collection statistics.

    Prefer InvertedIndex.build() over calling the constructor directly.
    """

    def __init__(self, postings: dict[str, tuple[Posting, ...]], statistics: CollectionStatistics):
        self._postings = postings
        self.statistics = statistics

    @classmethod
    def build(
        cls,
        documents: Iterable[tuple[DocId, str]],
        analyzer: Analyzer | None = None,
        workers: int = 1,
        show_progress: bool = False,
    ) -> InvertedIndex:
        """
        Build an index from (docid, raw text) pairs.

        Args:
            documents: Document source, consumed once
            analyzer: Same analyzer the queries will use (default: LuceneAnalyzer)
            workers: Analysis threads; small collections always use one
            show_progress: Display a tqdm progress bar

        Raises:
            InvalidArgumentError: Duplicate, mixed-type or malformed docids
        """
        analyzer = analyzer if analyzer is not None else LuceneAnalyzer()
        start = time.perf_counter()

        docs = list(documents)
        _validate_docids(docs)

        if workers > 1 and len(docs) >= MIN_DOCS_FOR_PARALLEL:
            num_shards = min(workers, len(docs))
        else:
            num_shards = 1

        shards: list[_Shard] = []
        with tqdm(total=len(docs), desc="Indexing", unit="doc", disable=not show_progress) as progress:
            if num_shards == 1:
                shards.append(_index_shard(docs, analyzer))
                progress.update(len(docs))
            else:
                with ThreadPoolExecutor(max_workers=num_shards) as executor:
                    futures = {
                        executor.submit(_index_shard, chunk, analyzer): len(chunk)
                        for chunk in _split(docs, num_shards)
                    }
                    for future in as_completed(futures):
                        shards.append(future.result())
                        progress.update(futures[future])

        index = cls.merge(shards)
        logger.info(
            "Indexed %d documents, %d terms in %.1f ms (%d shard%s)",
            len(index),
            index.vocabulary_size,
            (time.perf_counter() - start) * 1000,
            num_shards,
            "" if num_shards == 1 else "s",
        )
        return index

    @classmethod
    def merge(cls, shards: Iterable[_Shard]) -> InvertedIndex:
        """Union per-shard postings by term; shards must hold disjoint docids."""
        merged: dict[str, list[Posting]] = defaultdict(list)
        lengths: dict[DocId, int] = {}
        term_frequencies: dict[DocId, Counter[str]] = {}
        for shard in shards:
            for term, plist in shard.postings.items():
                merged[term].extend(plist)
            lengths.update(shard.lengths)
            term_frequencies.update(shard.term_frequencies)

        postings = {term: tuple(sorted(plist)) for term, plist in merged.items()}
        statistics = CollectionStatistics(
            lengths,
            term_frequencies,
            {term: len(plist) for term, plist in postings.items()},
        )
        return cls(postings, statistics)

    def __len__(self) -> int:
        return len(self.statistics)

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    @property
    def vocabulary_size(self) -> int:
        return len(self._postings)

    def vocabulary(self) -> Iterator[str]:
        return iter(self._postings)

    def postings(self, term: str) -> tuple[Posting, ...]:
        """Postings for term sorted by docid; empty for an unknown term."""
        return self._postings.get(term, _EMPTY)

    def document_frequency(self, term: str) -> int:
        """df(t), 0 for an out-of-vocabulary term."""
        return len(self._postings.get(term, _EMPTY))
