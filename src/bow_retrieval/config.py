"""
Configuration for BM25 scoring and index construction.

Defaults match Pyserini/Lucene (k1=0.9, b=0.4) and can be overridden through
environment variables:

    BOW_BM25_K1=0.9
    BOW_BM25_B=0.4
    BOW_TF_VARIANT=robertson     # robertson | lucene
    BOW_ANALYZER=lucene          # lucene | pyserini
    BOW_STOPWORDS=lucene         # lucene | english | none
    BOW_STEM=1
    BOW_WORKERS=0                # 0 = auto
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field

from bow_retrieval.errors import ConfigurationError

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_K1 = float(os.environ.get("BOW_BM25_K1", "0.9"))
DEFAULT_B = float(os.environ.get("BOW_BM25_B", "0.4"))
DEFAULT_TF_VARIANT = os.environ.get("BOW_TF_VARIANT", "robertson")
DEFAULT_ANALYZER = os.environ.get("BOW_ANALYZER", "lucene")
DEFAULT_STOPWORDS = os.environ.get("BOW_STOPWORDS", "lucene")
DEFAULT_STEM = os.environ.get("BOW_STEM", "1").strip().lower() not in ("0", "false", "no")
DEFAULT_WORKERS = int(os.environ.get("BOW_WORKERS", "0"))  # 0 = auto

TF_VARIANTS = ("robertson", "lucene")
ANALYZERS = ("lucene", "pyserini")
STOPWORD_SETS = ("lucene", "english", "none")

# Below this many documents the index is built on the calling thread
MIN_DOCS_FOR_PARALLEL = 1_000


@dataclass(frozen=True)
class BM25Parameters:
    """
    BM25 free parameters.

    Args:
        k1: Term frequency saturation (> 0, finite).
        b: Length normalization strength, 0 = none, 1 = full.
        tf_variant: "robertson" keeps the (k1 + 1) numerator factor,
            "lucene" drops it (Lucene >= 8 BM25Similarity).
    """

    k1: float = DEFAULT_K1
    b: float = DEFAULT_B
    tf_variant: str = DEFAULT_TF_VARIANT

    def __post_init__(self) -> None:
        if not isinstance(self.k1, (int, float)) or not math.isfinite(self.k1) or self.k1 <= 0:
            raise ConfigurationError(f"k1 must be a positive finite number, got {self.k1!r}")
        if not isinstance(self.b, (int, float)) or not 0.0 <= self.b <= 1.0:
            raise ConfigurationError(f"b must be in [0, 1], got {self.b!r}")
        if self.tf_variant not in TF_VARIANTS:
            raise ConfigurationError(
                f"Unknown tf_variant {self.tf_variant!r}; expected one of {TF_VARIANTS}"
            )


@dataclass
class RetrievalConfig:
    """Everything needed to build an index and score queries against it."""

    parameters: BM25Parameters = field(default_factory=BM25Parameters)
    analyzer: str = DEFAULT_ANALYZER
    stopwords: str = DEFAULT_STOPWORDS
    stem: bool = DEFAULT_STEM
    workers: int = DEFAULT_WORKERS

    def __post_init__(self) -> None:
        if self.analyzer not in ANALYZERS:
            raise ConfigurationError(
                f"Unknown analyzer {self.analyzer!r}; expected one of {ANALYZERS}"
            )
        if self.stopwords not in STOPWORD_SETS:
            raise ConfigurationError(
                f"Unknown stopword set {self.stopwords!r}; expected one of {STOPWORD_SETS}"
            )
        if self.workers < 0:
            raise ConfigurationError(f"workers must be >= 0, got {self.workers}")

    @classmethod
    def from_env(cls) -> RetrievalConfig:
        """Build a config from the BOW_* environment variables."""
        try:
            k1 = float(os.environ.get("BOW_BM25_K1", str(DEFAULT_K1)))
            b = float(os.environ.get("BOW_BM25_B", str(DEFAULT_B)))
            workers = int(os.environ.get("BOW_WORKERS", str(DEFAULT_WORKERS)))
        except ValueError as e:
            raise ConfigurationError(f"Malformed BOW_* environment variable: {e}") from e
        stem = os.environ.get("BOW_STEM", "1").strip().lower() not in ("0", "false", "no")
        return cls(
            parameters=BM25Parameters(
                k1=k1,
                b=b,
                tf_variant=os.environ.get("BOW_TF_VARIANT", DEFAULT_TF_VARIANT),
            ),
            analyzer=os.environ.get("BOW_ANALYZER", DEFAULT_ANALYZER),
            stopwords=os.environ.get("BOW_STOPWORDS", DEFAULT_STOPWORDS),
            stem=stem,
            workers=workers,
        )

    def resolved_workers(self) -> int:
        """Number of build threads; 0 means one per CPU (capped at 32)."""
        if self.workers > 0:
            return self.workers
        return min(32, os.cpu_count() or 1)
