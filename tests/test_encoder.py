import pytest

from bow_retrieval.analysis import LuceneAnalyzer
from bow_retrieval.encoder import QueryEncoder
from bow_retrieval.errors import InvalidArgumentError
from bow_retrieval.vectors import SparseVector, multihot


class TestQueryEncoder:
    def test_multihot(self):
        encoded = QueryEncoder().encode("brother Brother brothers")
        assert encoded == frozenset({"brother"})

    def test_uses_given_analyzer(self):
        encoder = QueryEncoder(LuceneAnalyzer(stem=False))
        assert encoder("The brothers") == {"brothers"}

    def test_empty(self):
        assert QueryEncoder().encode("") == frozenset()
        assert QueryEncoder().encode("is the") == frozenset()

    @pytest.mark.parametrize("query", [None, 42, ["brother"], b"brother"])
    def test_non_string_rejected(self, query):
        with pytest.raises(InvalidArgumentError):
            QueryEncoder().encode(query)


class TestSparseVector:
    def test_zero_weights_dropped(self):
        vector = SparseVector({"a": 1.5, "b": 0.0})
        assert len(vector) == 1
        assert "b" not in vector
        assert vector.weight("b") == 0.0

    def test_dot_with_multihot(self):
        vector = SparseVector({"a": 1.5, "b": 2.0, "c": 4.0})
        assert vector.dot(multihot(["a", "c", "z"])) == pytest.approx(5.5)
        assert vector.dot(["a", "a"]) == pytest.approx(1.5)

    def test_dot_with_sparse_vector(self):
        left = SparseVector({"a": 2.0, "b": 3.0})
        right = SparseVector({"b": 0.5, "c": 9.0})
        assert left.dot(right) == pytest.approx(1.5)
        assert right.dot(left) == pytest.approx(1.5)

    def test_dot_disjoint(self):
        assert SparseVector({"a": 1.0}).dot({"b"}) == 0.0

    def test_top(self):
        vector = SparseVector({"a": 1.0, "b": 3.0, "c": 1.0})
        assert vector.top() == [("b", 3.0), ("a", 1.0), ("c", 1.0)]
        assert vector.top(1) == [("b", 3.0)]

    def test_immutable(self):
        vector = SparseVector({"a": 1.0})
        with pytest.raises(TypeError):
            vector["a"] = 2.0
