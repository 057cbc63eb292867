import random

import pytest

from bow_retrieval.analysis import LuceneAnalyzer
from bow_retrieval.index import InvertedIndex
from bow_retrieval.retriever import TopKRetriever

DOCUMENTS = [
    ("d1", "Information retrieval is the activity of obtaining information system resources."),
    ("d2", "BM25 ranks documents based on their relevance to a query."),
    ("d3", "Python is widely used for text processing and ranking algorithms."),
    (
        "d4",
        "Paula Deen and her brother Earl W. Bubba Hiers are being sued by a former "
        "general manager at Uncle Bubba's Oyster House, a restaurant owned by Paula Deen's brother.",
    ),
    ("d5", "Deen's brother runs a seafood restaurant in Savannah, Georgia."),
    ("d6", "An inverted index maps every term to the documents that contain it."),
    ("d7", "Dense retrieval encodes queries and documents into vectors."),
]

VOCABULARY = [
    "alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta",
    "iota", "kappa", "lambda", "omicron", "sigma", "omega", "rho", "tau",
]


@pytest.fixture
def documents():
    return list(DOCUMENTS)


@pytest.fixture
def index(documents):
    return InvertedIndex.build(documents, analyzer=LuceneAnalyzer())


@pytest.fixture
def retriever(index):
    return TopKRetriever(index)


@pytest.fixture
def random_documents():
    """Synthetic collection with a skewed term distribution and many score ties."""
    rng = random.Random(1234)
    weights = [1.0 / (rank + 1) for rank in range(len(VOCABULARY))]
    docs = []
    for i in range(300):
        length = rng.randint(1, 25)
        docs.append((f"doc{i:04d}", " ".join(rng.choices(VOCABULARY, weights=weights, k=length))))
    return docs
