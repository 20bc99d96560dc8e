"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from ledgerline.common.errors import ConfigurationError
from ledgerline.search import SearchConfig
from ledgerline.vectors import (
    EmbeddingConfigError,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    VectorDistance,
    VectorStoreConfig,
    create_embedding_provider,
)
from ledgerline.webhooks import WebhookConfig

_VARIABLES = (
    "LEDGERLINE_SEARCH_LANGUAGE",
    "LEDGERLINE_SEMANTIC_THRESHOLD",
    "LEDGERLINE_RRF_K",
    "LEDGERLINE_MIN_RRF_SCORE",
    "LEDGERLINE_QDRANT_URL",
    "LEDGERLINE_QDRANT_API_KEY",
    "LEDGERLINE_QDRANT_COLLECTION",
    "LEDGERLINE_VECTOR_DISTANCE",
    "LEDGERLINE_VECTOR_TIMEOUT_S",
    "LEDGERLINE_EMBEDDING_BACKEND",
    "LEDGERLINE_EMBEDDING_DIMENSIONS",
    "LEDGERLINE_EMBEDDING_MODEL",
    "LEDGERLINE_OPENAI_API_KEY",
    "LEDGERLINE_OPENAI_EMBEDDING_ENDPOINT",
    "LEDGERLINE_GITHUB_WEBHOOK_SECRET",
    "LEDGERLINE_SYNC_VECTORS_ON_INGEST",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


class TestSearchConfig:
    """``LEDGERLINE_*`` search tuning."""

    def test_defaults(self) -> None:
        """Unset variables give the documented defaults."""
        assert SearchConfig.from_env() == SearchConfig(
            language="english",
            semantic_threshold=0.35,
            rrf_k=60,
            min_rrf_score=0.005,
        )

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Variables override each default."""
        monkeypatch.setenv("LEDGERLINE_SEARCH_LANGUAGE", "simple")
        monkeypatch.setenv("LEDGERLINE_SEMANTIC_THRESHOLD", "0.5")
        monkeypatch.setenv("LEDGERLINE_RRF_K", "20")
        config = SearchConfig.from_env()
        assert (config.language, config.semantic_threshold, config.rrf_k) == (
            "simple",
            0.5,
            20,
        )

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("LEDGERLINE_SEMANTIC_THRESHOLD", "1.5"),
            ("LEDGERLINE_SEMANTIC_THRESHOLD", "high"),
            ("LEDGERLINE_RRF_K", "0"),
            ("LEDGERLINE_MIN_RRF_SCORE", "nan"),
        ],
    )
    def test_rejects_invalid_values(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        """Malformed or out-of-range values name the variable."""
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError, match=name):
            SearchConfig.from_env()


class TestVectorStoreConfig:
    """Qdrant connection settings."""

    def test_defaults(self) -> None:
        """A local Qdrant with cosine distance is assumed."""
        config = VectorStoreConfig.from_env()
        assert config.url == "http://localhost:6333"
        assert config.collection == "timeline_objects"
        assert config.distance is VectorDistance.COSINE
        assert config.timeout_s == 5.0
        assert not config.in_memory

    def test_in_memory_and_distance(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """``:memory:`` selects an in-process index; distance is case-insensitive."""
        monkeypatch.setenv("LEDGERLINE_QDRANT_URL", ":memory:")
        monkeypatch.setenv("LEDGERLINE_VECTOR_DISTANCE", "DOT")
        config = VectorStoreConfig.from_env()
        assert config.in_memory
        assert config.distance is VectorDistance.DOT

    def test_rejects_unknown_distance(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unknown distance names are configuration errors."""
        monkeypatch.setenv("LEDGERLINE_VECTOR_DISTANCE", "manhattan")
        with pytest.raises(ConfigurationError, match="cosine, dot, euclid"):
            VectorStoreConfig.from_env()

    def test_rejects_zero_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The vector timeout must be positive."""
        monkeypatch.setenv("LEDGERLINE_VECTOR_TIMEOUT_S", "0")
        with pytest.raises(ConfigurationError, match="LEDGERLINE_VECTOR_TIMEOUT_S"):
            VectorStoreConfig.from_env()


class TestCreateEmbeddingProvider:
    """Backend selection."""

    def test_unset_disables_semantic_search(self) -> None:
        """No backend variable means no provider."""
        assert create_embedding_provider() is None

    def test_hashing_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The hashing backend honours the dimensions variable."""
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_BACKEND", "Hashing")
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_DIMENSIONS", "64")
        provider = create_embedding_provider()
        assert isinstance(provider, HashingEmbeddingProvider)
        assert provider.dimensions == 64

    @pytest.mark.asyncio
    async def test_openai_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The OpenAI backend reads its key, model and endpoint."""
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_BACKEND", "openai")
        monkeypatch.setenv("LEDGERLINE_OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_MODEL", "custom-model")
        provider = create_embedding_provider()
        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.config.model == "custom-model"
        assert provider.dimensions == 1536
        await provider.aclose()

    def test_openai_requires_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Selecting OpenAI without a key is a configuration error."""
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_BACKEND", "openai")
        with pytest.raises(EmbeddingConfigError, match="LEDGERLINE_OPENAI_API_KEY"):
            create_embedding_provider()

    def test_rejects_unknown_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unknown backend names list the valid options."""
        monkeypatch.setenv("LEDGERLINE_EMBEDDING_BACKEND", "word2vec")
        with pytest.raises(EmbeddingConfigError, match="'hashing', 'openai'"):
            create_embedding_provider()


class TestWebhookConfig:
    """Webhook secret and ingest-time sync flag."""

    def test_defaults(self) -> None:
        """Without variables there is no secret and no ingest-time sync."""
        assert WebhookConfig.from_env() == WebhookConfig()

    def test_reads_secret_and_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The secret is stripped and the flag accepts common truthy spellings."""
        monkeypatch.setenv("LEDGERLINE_GITHUB_WEBHOOK_SECRET", " s3cret ")
        monkeypatch.setenv("LEDGERLINE_SYNC_VECTORS_ON_INGEST", "yes")
        assert WebhookConfig.from_env() == WebhookConfig(
            secret="s3cret",  # noqa: S106 - test value
            sync_vectors_on_ingest=True,
        )

    def test_blank_secret_is_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A whitespace-only secret counts as unset."""
        monkeypatch.setenv("LEDGERLINE_GITHUB_WEBHOOK_SECRET", "   ")
        assert WebhookConfig.from_env().secret is None
