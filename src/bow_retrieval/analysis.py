"""
Text analysis: the Tokenizer/Analyzer collaborator of the retrieval core.

The index and the query encoder must run the *same* analyzer, otherwise query
terms never match document terms. Two analyzers are provided:

- LuceneAnalyzer: pure-Python approximation of Lucene's DefaultEnglishAnalyzer
    - Tokenization on non-alphanumeric boundaries
    - Lowercasing
    - English possessive removal ("deen's" -> "deen")
    - Stopword removal (Lucene's 33-word English stoplist by default)
    - Porter stemming
- PyseriniAnalyzer: Pyserini's actual Lucene analyzer (requires pyserini + Java 21)

Usage:
    from bow_retrieval.analysis import LuceneAnalyzer

    analyze = LuceneAnalyzer()
    analyze("what is paula deen's brother")  # ['what', 'paula', 'deen', 'brother']
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol

from bow_retrieval.errors import ConfigurationError

if TYPE_CHECKING:
    from bow_retrieval.config import RetrievalConfig


class Analyzer(Protocol):
    """Anything that maps raw text to an ordered sequence of terms."""

    def __call__(self, text: str) -> list[str]: ...


# =============================================================================
# Stopwords
# =============================================================================

# Lucene EnglishAnalyzer.ENGLISH_STOP_WORDS_SET
LUCENE_STOPWORDS: frozenset[str] = frozenset([
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if", "in",
    "into", "is", "it", "no", "not", "of", "on", "or", "such", "that", "the",
    "their", "then", "there", "these", "they", "this", "to", "was", "will", "with",
])

# Broader list for collections where Lucene's stoplist is too permissive
ENGLISH_STOPWORDS: frozenset[str] = frozenset([
    "a", "an", "and", "are", "as", "at", "be", "been", "but", "by", "can",
    "do", "for", "from", "had", "has", "have", "he", "her", "him", "his",
    "how", "i", "if", "in", "into", "is", "it", "its", "me", "my", "no",
    "not", "of", "on", "or", "our", "out", "s", "she", "so", "some", "such",
    "t", "than", "that", "the", "their", "them", "then", "there", "these",
    "they", "this", "to", "too", "us", "very", "was", "we", "were", "what",
    "when", "where", "which", "who", "will", "with", "would", "you", "your",
])

STOPWORD_SETS: dict[str, frozenset[str]] = {
    "lucene": LUCENE_STOPWORDS,
    "english": ENGLISH_STOPWORDS,
    "none": frozenset(),
}

# Letters/digits, optionally joined by apostrophes ("deen's", "don't")
_TOKEN_PATTERN = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")
_POSSESSIVE_SUFFIXES = ("'s", "’s")


# =============================================================================
# Porter Stemmer
# =============================================================================


class PorterStemmer:
    """
    The original Porter (1980) suffix-stripping algorithm.

    Within each step the first suffix that matches is the only one considered,
    even when its measure condition then fails ("rational" is not reduced by
    the "tional" rule after "ational" matched).
    """

    _STEP2 = (
        ("ational", "ate"), ("tional", "tion"), ("enci", "ence"), ("anci", "ance"),
        ("izer", "ize"), ("abli", "able"), ("alli", "al"), ("entli", "ent"),
        ("eli", "e"), ("ousli", "ous"), ("ization", "ize"), ("ation", "ate"),
        ("ator", "ate"), ("alism", "al"), ("iveness", "ive"), ("fulness", "ful"),
        ("ousness", "ous"), ("aliti", "al"), ("iviti", "ive"), ("biliti", "ble"),
    )
    _STEP3 = (
        ("icate", "ic"), ("ative", ""), ("alize", "al"), ("iciti", "ic"),
        ("ical", "ic"), ("ful", ""), ("ness", ""),
    )
    _STEP4 = (
        "al", "ance", "ence", "er", "ic", "able", "ible", "ant", "ement", "ment",
        "ent", "ion", "ou", "ism", "ate", "iti", "ous", "ive", "ize",
    )

    def _is_consonant(self, word: str, i: int) -> bool:
        ch = word[i]
        if ch in "aeiou":
            return False
        if ch == "y":
            return i == 0 or not self._is_consonant(word, i - 1)
        return True

    def _measure(self, stem: str) -> int:
        """Number of VC sequences in [C](VC)^m[V]."""
        m = 0
        previous_vowel = False
        for i in range(len(stem)):
            consonant = self._is_consonant(stem, i)
            if consonant and previous_vowel:
                m += 1
            previous_vowel = not consonant
        return m

    def _contains_vowel(self, stem: str) -> bool:
        return any(not self._is_consonant(stem, i) for i in range(len(stem)))

    def _ends_double_consonant(self, word: str) -> bool:
        return (
            len(word) >= 2
            and word[-1] == word[-2]
            and self._is_consonant(word, len(word) - 1)
        )

    def _ends_cvc(self, word: str) -> bool:
        """*o condition: consonant-vowel-consonant, last not w, x or y."""
        n = len(word)
        return (
            n >= 3
            and self._is_consonant(word, n - 3)
            and not self._is_consonant(word, n - 2)
            and self._is_consonant(word, n - 1)
            and word[-1] not in "wxy"
        )

    def _apply_rules(self, word: str, rules: tuple[tuple[str, str], ...], min_measure: int) -> str:
        for suffix, replacement in rules:
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if self._measure(stem) > min_measure:
                    return stem + replacement
                return word
        return word

    def _step1a(self, word: str) -> str:
        if word.endswith("sses"):
            return word[:-2]
        if word.endswith("ies"):
            return word[:-2]
        if word.endswith("ss"):
            return word
        if word.endswith("s"):
            return word[:-1]
        return word

    def _step1b(self, word: str) -> str:
        if word.endswith("eed"):
            if self._measure(word[:-3]) > 0:
                return word[:-1]
            return word

        for suffix in ("ed", "ing"):
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if not self._contains_vowel(stem):
                    return word
                break
        else:
            return word

        if stem.endswith(("at", "bl", "iz")):
            return stem + "e"
        if self._ends_double_consonant(stem) and stem[-1] not in "lsz":
            return stem[:-1]
        if self._measure(stem) == 1 and self._ends_cvc(stem):
            return stem + "e"
        return stem

    def _step1c(self, word: str) -> str:
        if word.endswith("y") and self._contains_vowel(word[:-1]):
            return word[:-1] + "i"
        return word

    def _step4(self, word: str) -> str:
        for suffix in self._STEP4:
            if word.endswith(suffix):
                stem = word[: -len(suffix)]
                if suffix == "ion" and not stem.endswith(("s", "t")):
                    continue
                if self._measure(stem) > 1:
                    return stem
                return word
        return word

    def _step5(self, word: str) -> str:
        if word.endswith("e"):
            stem = word[:-1]
            m = self._measure(stem)
            if m > 1 or (m == 1 and not self._ends_cvc(stem)):
                word = stem
        if word.endswith("ll") and self._measure(word) > 1:
            word = word[:-1]
        return word

    def stem(self, word: str) -> str:
        if len(word) <= 2:
            return word
        word = self._step1a(word)
        word = self._step1b(word)
        word = self._step1c(word)
        word = self._apply_rules(word, self._STEP2, 0)
        word = self._apply_rules(word, self._STEP3, 0)
        word = self._step4(word)
        return self._step5(word)


# =============================================================================
# Analyzers
# =============================================================================


class LuceneAnalyzer:
    """
    Lucene-compatible analyzer (standalone implementation).

    Args:
        stopwords: Terms dropped before stemming (default: Lucene's 33 words).
        stem: Apply Porter stemming.
    """

    def __init__(self, stopwords: frozenset[str] = LUCENE_STOPWORDS, stem: bool = True):
        self.stopwords = stopwords
        self._stemmer = PorterStemmer() if stem else None

    def __call__(self, text: str) -> list[str]:
        terms = []
        for token in _TOKEN_PATTERN.findall(text.lower()):
            if token.endswith(_POSSESSIVE_SUFFIXES):
                token = token[:-2]
            if not token or token in self.stopwords:
                continue
            if self._stemmer is not None:
                token = self._stemmer.stem(token)
            terms.append(token)
        return terms


class PyseriniAnalyzer:
    """Pyserini's Lucene DefaultEnglishAnalyzer (Porter stemming + stopwords)."""

    def __init__(self):
        try:
            from pyserini.analysis import Analyzer as _LuceneAnalyzer
            from pyserini.analysis import get_lucene_analyzer
        except ImportError as e:
            raise ConfigurationError(
                "The 'pyserini' analyzer requires pyserini and Java 21. "
                "Install with: pip install 'bow-retrieval[pyserini]'"
            ) from e
        self._analyzer = _LuceneAnalyzer(get_lucene_analyzer())

    def __call__(self, text: str) -> list[str]:
        return list(self._analyzer.analyze(text))


_DEFAULT_ANALYZER = LuceneAnalyzer()


def tokenize(text: str) -> list[str]:
    """Analyze text with the default Lucene-style pipeline."""
    return _DEFAULT_ANALYZER(text)


def get_analyzer(config: RetrievalConfig) -> Analyzer:
    """Instantiate the analyzer named by a RetrievalConfig."""
    if config.analyzer == "pyserini":
        return PyseriniAnalyzer()
    if config.analyzer == "lucene":
        return LuceneAnalyzer(stopwords=STOPWORD_SETS[config.stopwords], stem=config.stem)
    raise ConfigurationError(f"Unknown analyzer {config.analyzer!r}")


__all__ = [
    "Analyzer",
    "ENGLISH_STOPWORDS",
    "LUCENE_STOPWORDS",
    "LuceneAnalyzer",
    "PorterStemmer",
    "PyseriniAnalyzer",
    "STOPWORD_SETS",
    "get_analyzer",
    "tokenize",
]
