"""
Document sources: iterables of (docid, raw text) consumed once at index time.

Supported inputs:
    - JSON-lines collections in Pyserini JsonCollection layout
      ({"id": "...", "contents": "..."} per line), as a file or a directory
    - HuggingFace datasets (any iterable of row dicts)
    - ir_datasets datasets, together with their queries and qrels
"""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

import ir_datasets
from datasets import load_dataset

from bow_retrieval.errors import InvalidArgumentError

JSONL_SUFFIXES = (".jsonl", ".json")


def _collection_files(path: Path) -> list[Path]:
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix in JSONL_SUFFIXES)
        if not files:
            raise InvalidArgumentError(f"No {'/'.join(JSONL_SUFFIXES)} files in {path}")
        return files
    if not path.exists():
        raise InvalidArgumentError(f"Collection not found: {path}")
    return [path]


def read_jsonl_collection(
    path: str | Path,
    id_field: str = "id",
    text_field: str = "contents",
) -> Iterator[tuple[str, str]]:
    """
    Stream (docid, text) pairs from a JSON-lines file or directory of them.

    Blank lines are skipped. A record missing either field raises
    InvalidArgumentError naming the file and line.
    """
    for file in _collection_files(Path(path)):
        with file.open(encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                    docid, text = str(record[id_field]), record[text_field]
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    raise InvalidArgumentError(f"{file}:{line_no}: malformed record ({e})") from e
                yield docid, text


def from_huggingface_dataset(
    dataset: Iterable[Mapping],
    id_field: str = "id",
    text_field: str = "content",
) -> Iterator[tuple[str, str]]:
    """(docid, text) pairs from HuggingFace rows (e.g. BRIGHT "documents")."""
    for row in dataset:
        yield str(row[id_field]), row[text_field]


def load_huggingface_collection(
    path: str,
    name: str | None = None,
    split: str = "train",
    id_field: str = "id",
    text_field: str = "content",
) -> list[tuple[str, str]]:
    """Download (or reuse the cached) HuggingFace dataset split as a document source."""
    dataset = load_dataset(path, name, split=split)
    return list(from_huggingface_dataset(dataset, id_field, text_field))


def _text(record) -> str:
    if hasattr(record, "default_text"):
        return record.default_text()
    return record.text


def ir_dataset_documents(dataset: ir_datasets.Dataset) -> Iterator[tuple[str, str]]:
    for doc in dataset.docs_iter():
        yield doc.doc_id, _text(doc)


def ir_dataset_queries(dataset: ir_datasets.Dataset) -> dict[str, str]:
    return {query.query_id: _text(query) for query in dataset.queries_iter()}


def relevance_query_to_docs(dataset: ir_datasets.Dataset) -> dict[str, list[str]]:
    """
    Maps each query to its relevant documents (relevance > 0).

    Args:
        dataset: ir_datasets dataset with qrels.

    Returns:
        query_id -> list of relevant doc_ids.
    """
    relevance_map: dict[str, list[str]] = defaultdict(list)
    for qrel in dataset.qrels_iter():
        if qrel.relevance > 0:
            relevance_map[qrel.query_id].append(qrel.doc_id)
    return dict(relevance_map)


def load_ir_dataset(name: str) -> ir_datasets.Dataset:
    """ir_datasets.load() with the library's KeyError mapped to InvalidArgumentError."""
    try:
        return ir_datasets.load(name)
    except KeyError as e:
        raise InvalidArgumentError(f"Unknown ir_datasets dataset {name!r}") from e
