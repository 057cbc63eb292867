import math

import pytest

from bow_retrieval.metrics import (
    average_precision,
    mean_average_precision,
    mean_reciprocal_rank,
    ndcg_at_k,
    precision_at_k,
    recall_at_k,
    reciprocal_rank,
)

RELEVANT = {"d1", "d3"}
RETRIEVED = ["d3", "d2", "d1", "d4"]


class TestPrecisionRecall:
    def test_precision_at_k(self):
        assert precision_at_k(RELEVANT, RETRIEVED, 1) == 1.0
        assert precision_at_k(RELEVANT, RETRIEVED, 2) == 0.5
        assert precision_at_k(RELEVANT, RETRIEVED, 4) == 0.5

    def test_precision_counts_missing_ranks_as_misses(self):
        assert precision_at_k(RELEVANT, ["d1"], 10) == pytest.approx(0.1)

    def test_recall_at_k(self):
        assert recall_at_k(RELEVANT, RETRIEVED, 1) == 0.5
        assert recall_at_k(RELEVANT, RETRIEVED, 3) == 1.0

    def test_nothing_relevant(self):
        assert recall_at_k(set(), RETRIEVED, 3) == 0.0
        assert precision_at_k(RELEVANT, RETRIEVED, 0) == 0.0


class TestAveragePrecision:
    def test_average_precision(self):
        # hits at ranks 1 and 3
        assert average_precision(RELEVANT, RETRIEVED) == pytest.approx((1 / 1 + 2 / 3) / 2)

    def test_unretrieved_relevant_document_lowers_ap(self):
        assert average_precision({"d1", "d9"}, ["d1"]) == pytest.approx(0.5)

    def test_mean_average_precision(self):
        value = mean_average_precision([{"a"}, {"b"}], [["a"], ["x", "b"]])
        assert value == pytest.approx((1.0 + 0.5) / 2)
        assert mean_average_precision([], []) == 0.0


class TestNDCG:
    def test_perfect_ranking(self):
        assert ndcg_at_k(RELEVANT, ["d1", "d3", "d2"], 10) == pytest.approx(1.0)

    def test_imperfect_ranking(self):
        dcg = 1.0 / math.log2(2) + 1.0 / math.log2(4)
        idcg = 1.0 / math.log2(2) + 1.0 / math.log2(3)
        assert ndcg_at_k(RELEVANT, RETRIEVED, 10) == pytest.approx(dcg / idcg)

    def test_cutoff(self):
        assert ndcg_at_k(RELEVANT, ["d2", "d1"], 1) == 0.0

    def test_degenerate(self):
        assert ndcg_at_k(set(), RETRIEVED, 10) == 0.0
        assert ndcg_at_k(RELEVANT, [], 10) == 0.0
        assert ndcg_at_k(RELEVANT, RETRIEVED, 0) == 0.0


class TestReciprocalRank:
    def test_reciprocal_rank(self):
        assert reciprocal_rank({"d1"}, RETRIEVED) == pytest.approx(1 / 3)
        assert reciprocal_rank({"d9"}, RETRIEVED) == 0.0

    def test_mean_reciprocal_rank(self):
        assert mean_reciprocal_rank([{"a"}, {"c"}], [["a", "b"], ["a", "b"]]) == pytest.approx(0.5)
        assert mean_reciprocal_rank([], []) == 0.0

    def test_integer_docids(self):
        assert reciprocal_rank({7}, [3, 7]) == 0.5
