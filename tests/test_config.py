import pytest

from bow_retrieval.analysis import ENGLISH_STOPWORDS, LUCENE_STOPWORDS, LuceneAnalyzer, get_analyzer
from bow_retrieval.config import BM25Parameters, RetrievalConfig
from bow_retrieval.errors import ConfigurationError

BOW_VARIABLES = (
    "BOW_BM25_K1",
    "BOW_BM25_B",
    "BOW_TF_VARIANT",
    "BOW_ANALYZER",
    "BOW_STOPWORDS",
    "BOW_STEM",
    "BOW_WORKERS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in BOW_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestBM25Parameters:
    def test_defaults(self):
        params = BM25Parameters()
        assert params.k1 == 0.9
        assert params.b == 0.4
        assert params.tf_variant == "robertson"

    @pytest.mark.parametrize("b", [0.0, 1.0])
    def test_b_bounds_are_inclusive(self, b):
        assert BM25Parameters(k1=1.2, b=b).b == b

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"k1": 0.0},
            {"k1": -0.5},
            {"k1": float("inf")},
            {"k1": "0.9"},
            {"b": -0.01},
            {"b": 1.01},
            {"tf_variant": "atire"},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            BM25Parameters(**kwargs)

    def test_frozen(self):
        params = BM25Parameters()
        with pytest.raises(AttributeError):
            params.k1 = 1.2


class TestRetrievalConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [{"analyzer": "whitespace"}, {"stopwords": "french"}, {"workers": -1}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            RetrievalConfig(**kwargs)

    def test_resolved_workers(self):
        assert RetrievalConfig(workers=3).resolved_workers() == 3
        assert 1 <= RetrievalConfig(workers=0).resolved_workers() <= 32

    def test_from_env_defaults(self, clean_env):
        config = RetrievalConfig.from_env()
        assert config.parameters == BM25Parameters(k1=0.9, b=0.4)
        assert config.analyzer == "lucene"
        assert config.stopwords == "lucene"
        assert config.stem is True

    def test_from_env_overrides(self, clean_env):
        clean_env.setenv("BOW_BM25_K1", "1.2")
        clean_env.setenv("BOW_BM25_B", "0.75")
        clean_env.setenv("BOW_TF_VARIANT", "lucene")
        clean_env.setenv("BOW_STOPWORDS", "english")
        clean_env.setenv("BOW_STEM", "false")
        clean_env.setenv("BOW_WORKERS", "2")
        config = RetrievalConfig.from_env()
        assert config.parameters == BM25Parameters(k1=1.2, b=0.75, tf_variant="lucene")
        assert config.stopwords == "english"
        assert config.stem is False
        assert config.workers == 2

    @pytest.mark.parametrize(
        "name, value",
        [("BOW_BM25_K1", "fast"), ("BOW_WORKERS", "many"), ("BOW_BM25_B", "2"), ("BOW_ANALYZER", "bert")],
    )
    def test_from_env_malformed(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ConfigurationError):
            RetrievalConfig.from_env()


class TestAnalyzerFromConfig:
    def test_default_is_lucene(self):
        analyzer = get_analyzer(RetrievalConfig(analyzer="lucene"))
        assert isinstance(analyzer, LuceneAnalyzer)
        assert analyzer("Brothers") == ["brother"]

    def test_stopword_set_and_stemming(self):
        analyzer = get_analyzer(RetrievalConfig(stopwords="none", stem=False))
        assert analyzer("The Brothers") == ["the", "brothers"]

    def test_english_stopwords_are_broader(self):
        assert LUCENE_STOPWORDS < ENGLISH_STOPWORDS
        assert get_analyzer(RetrievalConfig(stopwords="lucene"))("what brother") == ["what", "brother"]
        assert get_analyzer(RetrievalConfig(stopwords="english"))("what brother") == ["brother"]
