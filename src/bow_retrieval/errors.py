"""
Error kinds raised by the retrieval core.

Out-of-vocabulary query terms are not errors: they produce empty postings.
Configuration and invariant violations propagate to the caller.
"""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for all retrieval errors."""


class InvalidArgumentError(RetrievalError, ValueError):
    """Caller supplied a malformed argument (e.g. k <= 0, non-string query)."""


class NotFoundError(RetrievalError, KeyError):
    """A docid or term statistic was requested that is not in the collection."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message
        return str(self.args[0]) if self.args else ""


class InvalidTermError(RetrievalError, ValueError):
    """A term with df == 0 reached the scorer (index invariant violation)."""


class ConfigurationError(RetrievalError, ValueError):
    """Invalid BM25 parameters, degenerate statistics, or unusable backend."""


__all__ = [
    "RetrievalError",
    "InvalidArgumentError",
    "NotFoundError",
    "InvalidTermError",
    "ConfigurationError",
]
