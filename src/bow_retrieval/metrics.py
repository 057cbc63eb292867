"""
Ranking quality metrics over ranked docid lists.

`relevant` is any collection of relevant docids (binary relevance) and
`retrieved` is the ranked list produced by a retriever, best first.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence

import numpy as np

from bow_retrieval.stats import DocId


def precision_at_k(relevant: Collection[DocId], retrieved: Sequence[DocId], k: int) -> float:
    """
    Computes Precision@K.

    Args:
        relevant: Relevant docids.
        retrieved: Ranked docids.
        k: Top-k cutoff.

    Returns:
        Precision at rank k.
    """
    if k <= 0:
        return 0.0
    relevant_set = set(relevant)
    hits = sum(1 for docid in retrieved[:k] if docid in relevant_set)
    return hits / k


def recall_at_k(relevant: Collection[DocId], retrieved: Sequence[DocId], k: int) -> float:
    """
    Computes Recall@K.

    Args:
        relevant: Relevant docids.
        retrieved: Ranked docids.
        k: Top-k cutoff.

    Returns:
        Recall at rank k.
    """
    relevant_set = set(relevant)
    if not relevant_set:
        return 0.0
    hits = sum(1 for docid in retrieved[:k] if docid in relevant_set)
    return hits / len(relevant_set)


def average_precision(relevant: Collection[DocId], retrieved: Sequence[DocId]) -> float:
    """Average Precision (AP) for a single query."""
    relevant_set = set(relevant)
    if not relevant_set:
        return 0.0

    hits, sum_precisions = 0, 0.0
    for i, docid in enumerate(retrieved, start=1):
        if docid in relevant_set:
            hits += 1
            sum_precisions += hits / i

    return sum_precisions / len(relevant_set)


def mean_average_precision(
    all_relevant: Sequence[Collection[DocId]], all_retrieved: Sequence[Sequence[DocId]]
) -> float:
    if not all_relevant:
        return 0.0
    return float(np.mean([average_precision(rel, ret) for rel, ret in zip(all_relevant, all_retrieved)]))


def ndcg_at_k(relevant: Collection[DocId], retrieved: Sequence[DocId], k: int) -> float:
    """
    Computes binary-relevance NDCG at rank K.

    Args:
        relevant: Relevant docids.
        retrieved: Ranked docids.
        k: Top-k cutoff.

    Returns:
        NDCG at rank k (0.0 when nothing is relevant).
    """
    if k <= 0:
        return 0.0
    relevant_set = set(relevant)
    discounts = np.log2(np.arange(2, k + 2))  # log2(i + 1) for ranks 1..k

    gains = np.array([1.0 if docid in relevant_set else 0.0 for docid in retrieved[:k]])
    dcg = float(np.sum(gains / discounts[: len(gains)]))

    ideal_hits = min(len(relevant_set), k)
    idcg = float(np.sum(1.0 / discounts[:ideal_hits]))

    return dcg / idcg if idcg > 0 else 0.0


def reciprocal_rank(relevant: Collection[DocId], retrieved: Sequence[DocId]) -> float:
    """1 / rank of the first relevant document, 0.0 if none is retrieved."""
    relevant_set = set(relevant)
    for i, docid in enumerate(retrieved, start=1):
        if docid in relevant_set:
            return 1.0 / i
    return 0.0


def mean_reciprocal_rank(
    all_relevant: Sequence[Collection[DocId]], all_retrieved: Sequence[Sequence[DocId]]
) -> float:
    if not all_relevant:
        return 0.0
    return float(np.mean([reciprocal_rank(rel, ret) for rel, ret in zip(all_relevant, all_retrieved)]))
