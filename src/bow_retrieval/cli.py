"""
Command-line interface.

Usage:
    # Top-10 for one query, TREC run format
    bow-retrieval search collection.jsonl "what is paula deen's brother"

    # Many queries from a TSV topics file (qid<TAB>query)
    bow-retrieval search collection.jsonl --topics topics.tsv -k 100 --workers 8

    # BM25 vector of one document
    bow-retrieval vector collection.jsonl 7187158

    # nDCG@10 / Recall@100 / MRR on an ir_datasets benchmark
    bow-retrieval evaluate beir/scifact/test --sample-queries 50

Environment Variables:
    BOW_BM25_K1, BOW_BM25_B, BOW_TF_VARIANT, BOW_ANALYZER, BOW_STOPWORDS,
    BOW_STEM, BOW_WORKERS (see bow_retrieval.config)
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
import time
from collections.abc import Iterable

from tqdm import tqdm

from bow_retrieval import datasets
from bow_retrieval.config import (
    ANALYZERS,
    STOPWORD_SETS,
    TF_VARIANTS,
    BM25Parameters,
    RetrievalConfig,
)
from bow_retrieval.errors import RetrievalError
from bow_retrieval.metrics import mean_reciprocal_rank, ndcg_at_k, recall_at_k
from bow_retrieval.retriever import ScoredDocument, TopKRetriever

logger = logging.getLogger(__name__)

RUN_TAG = "bow-bm25"
NDCG_K = 10


def _config_from_args(args: argparse.Namespace) -> RetrievalConfig:
    defaults = RetrievalConfig.from_env()
    parameters = BM25Parameters(
        k1=args.k1 if args.k1 is not None else defaults.parameters.k1,
        b=args.b if args.b is not None else defaults.parameters.b,
        tf_variant=args.tf_variant or defaults.parameters.tf_variant,
    )
    return RetrievalConfig(
        parameters=parameters,
        analyzer=args.analyzer or defaults.analyzer,
        stopwords=args.stopwords or defaults.stopwords,
        stem=defaults.stem and not args.no_stem,
        workers=args.workers if args.workers is not None else defaults.workers,
    )


def _load_collection(args: argparse.Namespace) -> Iterable[tuple[str, str]]:
    if args.format == "hf":
        return datasets.load_huggingface_collection(
            args.collection,
            name=args.hf_name,
            split=args.hf_split,
            id_field=args.id_field or "id",
            text_field=args.text_field or "content",
        )
    return datasets.read_jsonl_collection(
        args.collection,
        id_field=args.id_field or "id",
        text_field=args.text_field or "contents",
    )


def _read_topics(path: str) -> list[tuple[str, str]]:
    topics = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\n")
            if not line.strip():
                continue
            qid, _, query = line.partition("\t")
            topics.append((qid, query))
    return topics


def format_run(qid: str, results: list[ScoredDocument], tag: str = RUN_TAG) -> list[str]:
    """TREC run lines: qid Q0 docid rank score tag."""
    return [
        f"{qid} Q0 {result.docid} {rank} {result.score:.6f} {tag}"
        for rank, result in enumerate(results, start=1)
    ]


def cmd_search(args: argparse.Namespace) -> int:
    if args.query is None and args.topics is None:
        print("error: give a QUERY or --topics", file=sys.stderr)
        return 2

    config = _config_from_args(args)
    retriever = TopKRetriever.from_documents(_load_collection(args), config, show_progress=args.progress)

    topics = _read_topics(args.topics) if args.topics else [(args.qid, args.query)]
    start = time.perf_counter()
    runs = retriever.batch_search([query for _, query in topics], k=args.k, workers=config.resolved_workers())
    logger.info("Searched %d queries in %.1f ms", len(topics), (time.perf_counter() - start) * 1000)

    for (qid, _), results in zip(topics, runs):
        for line in format_run(qid, results):
            print(line)
    return 0


def cmd_vector(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    retriever = TopKRetriever.from_documents(_load_collection(args), config, show_progress=args.progress)
    vector = retriever.scorer.document_vector(args.docid)
    print(json.dumps(dict(vector.top()), indent=2, ensure_ascii=False))
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    dataset = datasets.load_ir_dataset(args.dataset)

    index_start = time.perf_counter()
    retriever = TopKRetriever.from_documents(
        datasets.ir_dataset_documents(dataset), config, show_progress=args.progress
    )
    index_time_ms = (time.perf_counter() - index_start) * 1000

    queries = datasets.ir_dataset_queries(dataset)
    qrels = datasets.relevance_query_to_docs(dataset)
    qids = sorted(qid for qid in queries if qid in qrels)
    if args.sample_queries and args.sample_queries < len(qids):
        qids = sorted(random.Random(args.seed).sample(qids, args.sample_queries))

    query_start = time.perf_counter()
    rankings = []
    for qid in tqdm(qids, desc="Querying", unit="query", disable=not args.progress):
        rankings.append([r.docid for r in retriever.search(queries[qid], k=args.k)])
    query_time_ms = (time.perf_counter() - query_start) * 1000

    relevant = [qrels[qid] for qid in qids]
    ndcg = [ndcg_at_k(rel, ranked, NDCG_K) for rel, ranked in zip(relevant, rankings)]
    recall = [recall_at_k(rel, ranked, args.k) for rel, ranked in zip(relevant, rankings)]
    results = {
        "dataset": args.dataset,
        "num_docs": len(retriever.index),
        "num_queries": len(qids),
        f"ndcg@{NDCG_K}": sum(ndcg) / len(ndcg) if ndcg else 0.0,
        f"recall@{args.k}": sum(recall) / len(recall) if recall else 0.0,
        "mrr": mean_reciprocal_rank(relevant, rankings),
        "index_time_ms": index_time_ms,
        "query_time_ms": query_time_ms,
        "k1": config.parameters.k1,
        "b": config.parameters.b,
    }

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        print("\n" + "=" * 60)
        print(f"RESULTS: {args.dataset}")
        print("=" * 60)
        print(f"  Documents: {results['num_docs']}  Queries: {results['num_queries']}")
        print(f"  nDCG@{NDCG_K}:    {results[f'ndcg@{NDCG_K}']:.4f}")
        print(f"  Recall@{args.k}: {results[f'recall@{args.k}']:.4f}")
        print(f"  MRR:        {results['mrr']:.4f}")
        print(f"  Index time: {index_time_ms:.0f} ms  Query time: {query_time_ms:.0f} ms")
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("BM25 / analysis")
    group.add_argument("--k1", type=float, default=None, help="TF saturation (default: 0.9)")
    group.add_argument("--b", type=float, default=None, help="Length normalization (default: 0.4)")
    group.add_argument("--tf-variant", choices=TF_VARIANTS, default=None)
    group.add_argument("--analyzer", choices=ANALYZERS, default=None)
    group.add_argument("--stopwords", choices=STOPWORD_SETS, default=None)
    group.add_argument("--no-stem", action="store_true", help="Disable Porter stemming")
    group.add_argument("--workers", type=int, default=None, help="Index/query threads (0 = auto)")
    group.add_argument("--progress", action="store_true", help="Show progress bars")
    group.add_argument("-v", "--verbose", action="count", default=0)


def _add_collection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("collection", help="JSONL file/directory, or HuggingFace dataset path with --format hf")
    parser.add_argument("--format", choices=("jsonl", "hf"), default="jsonl")
    parser.add_argument("--hf-name", default=None, help="HuggingFace dataset config name")
    parser.add_argument("--hf-split", default="train", help="HuggingFace dataset split")
    parser.add_argument("--id-field", default=None)
    parser.add_argument("--text-field", default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bow-retrieval",
        description="Exact top-k BM25 retrieval over an in-memory inverted index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Rank documents for one or more queries")
    _add_collection_arguments(search)
    search.add_argument("query", nargs="?", default=None)
    search.add_argument("--topics", default=None, help="TSV file of qid<TAB>query")
    search.add_argument("--qid", default="1", help="Query id for a single QUERY")
    search.add_argument("-k", type=int, default=10)
    _add_common_arguments(search)
    search.set_defaults(func=cmd_search)

    vector = subparsers.add_parser("vector", help="Print a document's BM25 vector")
    _add_collection_arguments(vector)
    vector.add_argument("docid")
    _add_common_arguments(vector)
    vector.set_defaults(func=cmd_vector)

    evaluate = subparsers.add_parser("evaluate", help="Evaluate on an ir_datasets benchmark")
    evaluate.add_argument("dataset", help="ir_datasets name, e.g. beir/scifact/test")
    evaluate.add_argument("-k", type=int, default=100, help="Retrieval depth / recall cutoff")
    evaluate.add_argument("--sample-queries", type=int, default=None)
    evaluate.add_argument("--seed", type=int, default=42)
    evaluate.add_argument("--json", action="store_true", help="Print results as JSON")
    _add_common_arguments(evaluate)
    evaluate.set_defaults(func=cmd_evaluate)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except RetrievalError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
