import json

import pytest

from bow_retrieval.datasets import (
    from_huggingface_dataset,
    read_jsonl_collection,
    relevance_query_to_docs,
)
from bow_retrieval.errors import InvalidArgumentError


def write_jsonl(path, records):
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n", encoding="utf-8")


class TestReadJsonlCollection:
    def test_file(self, tmp_path):
        path = tmp_path / "docs.jsonl"
        write_jsonl(path, [{"id": "d1", "contents": "one"}, {"id": 2, "contents": "two"}])
        assert list(read_jsonl_collection(path)) == [("d1", "one"), ("2", "two")]

    def test_directory(self, tmp_path):
        write_jsonl(tmp_path / "b.jsonl", [{"id": "d2", "contents": "two"}])
        write_jsonl(tmp_path / "a.jsonl", [{"id": "d1", "contents": "one"}])
        (tmp_path / "notes.txt").write_text("ignored")
        assert list(read_jsonl_collection(tmp_path)) == [("d1", "one"), ("d2", "two")]

    def test_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "docs.jsonl"
        path.write_text('\n{"id": "d1", "contents": "one"}\n\n', encoding="utf-8")
        assert list(read_jsonl_collection(path)) == [("d1", "one")]

    def test_custom_fields(self, tmp_path):
        path = tmp_path / "docs.jsonl"
        write_jsonl(path, [{"_id": "d1", "text": "one"}])
        assert list(read_jsonl_collection(path, id_field="_id", text_field="text")) == [("d1", "one")]

    @pytest.mark.parametrize("line", ["{not json", '{"id": "d2"}', "[1, 2]"])
    def test_malformed_record(self, tmp_path, line):
        path = tmp_path / "docs.jsonl"
        path.write_text('{"id": "d1", "contents": "one"}\n' + line + "\n", encoding="utf-8")
        with pytest.raises(InvalidArgumentError, match=":2:"):
            list(read_jsonl_collection(path))

    def test_missing_path(self, tmp_path):
        with pytest.raises(InvalidArgumentError):
            list(read_jsonl_collection(tmp_path / "missing.jsonl"))

    def test_empty_directory(self, tmp_path):
        with pytest.raises(InvalidArgumentError):
            list(read_jsonl_collection(tmp_path))


class TestHuggingFaceRows:
    def test_rows(self):
        rows = [{"id": "a", "content": "alpha"}, {"id": 7, "content": "beta"}]
        assert list(from_huggingface_dataset(rows)) == [("a", "alpha"), ("7", "beta")]

    def test_missing_field(self):
        with pytest.raises(KeyError):
            list(from_huggingface_dataset([{"id": "a"}]))


class FakeQrel:
    def __init__(self, query_id, doc_id, relevance):
        self.query_id = query_id
        self.doc_id = doc_id
        self.relevance = relevance


class FakeDataset:
    def qrels_iter(self):
        yield FakeQrel("q1", "d1", 1)
        yield FakeQrel("q1", "d2", 0)
        yield FakeQrel("q1", "d3", 2)
        yield FakeQrel("q2", "d4", 0)


def test_relevance_query_to_docs():
    assert relevance_query_to_docs(FakeDataset()) == {"q1": ["d1", "d3"]}
