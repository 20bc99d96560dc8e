"""Configuration for the embedding provider and the Qdrant vector store."""

from __future__ import annotations

import dataclasses as dc
import enum

from ledgerline.common.env import env_float, env_int, env_str
from ledgerline.common.errors import ConfigurationError
from ledgerline.vectors.errors import EmbeddingConfigError

_DEFAULT_ENDPOINT = "https://api.openai.com/v1/embeddings"
_DEFAULT_MODEL = "text-embedding-3-small"
_DEFAULT_OPENAI_DIMENSIONS = 1536
_DEFAULT_HASHING_DIMENSIONS = 256
_DEFAULT_TIMEOUT_S = 30.0
_DEFAULT_BATCH_SIZE = 100

DEFAULT_QDRANT_URL = "http://localhost:6333"
DEFAULT_COLLECTION = "timeline_objects"
DEFAULT_VECTOR_TIMEOUT_S = 5.0
IN_MEMORY_URL = ":memory:"


class EmbeddingBackend(enum.StrEnum):
    """Embedding backends selectable through ``LEDGERLINE_EMBEDDING_BACKEND``."""

    HASHING = "hashing"
    OPENAI = "openai"


class VectorDistance(enum.StrEnum):
    """Similarity metric used by the collection."""

    COSINE = "cosine"
    DOT = "dot"
    EUCLID = "euclid"


@dc.dataclass(frozen=True, slots=True)
class OpenAIEmbeddingConfig:
    """Settings for an OpenAI-compatible embeddings endpoint.

    Attributes
    ----------
    api_key
        Bearer token for the endpoint.
    endpoint
        Embeddings URL.
    model
        Embedding model identifier.
    dimensions
        Expected vector size; responses of any other size are rejected.
    timeout_s
        Request timeout in seconds.
    batch_size
        Maximum number of inputs sent per request.

    """

    api_key: str
    endpoint: str = _DEFAULT_ENDPOINT
    model: str = _DEFAULT_MODEL
    dimensions: int = _DEFAULT_OPENAI_DIMENSIONS
    timeout_s: float = _DEFAULT_TIMEOUT_S
    batch_size: int = _DEFAULT_BATCH_SIZE

    @classmethod
    def from_env(cls) -> OpenAIEmbeddingConfig:
        """Build configuration from ``LEDGERLINE_OPENAI_*`` variables.

        Raises
        ------
        EmbeddingConfigError
            If the API key is missing or blank.
        ConfigurationError
            If the dimensions value is invalid.

        """
        raw_api_key = env_str("LEDGERLINE_OPENAI_API_KEY")
        if raw_api_key is None:
            raise EmbeddingConfigError.missing_api_key()
        return cls(
            api_key=raw_api_key,
            endpoint=env_str("LEDGERLINE_OPENAI_EMBEDDING_ENDPOINT", _DEFAULT_ENDPOINT)
            or _DEFAULT_ENDPOINT,
            model=env_str("LEDGERLINE_EMBEDDING_MODEL", _DEFAULT_MODEL) or _DEFAULT_MODEL,
            dimensions=env_int(
                "LEDGERLINE_EMBEDDING_DIMENSIONS", _DEFAULT_OPENAI_DIMENSIONS
            ),
        )


def hashing_dimensions_from_env() -> int:
    """Return the vector size for the hashing backend."""
    return env_int("LEDGERLINE_EMBEDDING_DIMENSIONS", _DEFAULT_HASHING_DIMENSIONS)


@dc.dataclass(frozen=True, slots=True)
class VectorStoreConfig:
    """Qdrant connection and collection settings.

    ``url`` may be ``":memory:"`` for an in-process index.
    """

    url: str = DEFAULT_QDRANT_URL
    api_key: str | None = None
    collection: str = DEFAULT_COLLECTION
    distance: VectorDistance = VectorDistance.COSINE
    timeout_s: float = DEFAULT_VECTOR_TIMEOUT_S

    @property
    def in_memory(self) -> bool:
        """Return whether the store runs in-process."""
        return self.url == IN_MEMORY_URL

    @classmethod
    def from_env(cls) -> VectorStoreConfig:
        """Build configuration from ``LEDGERLINE_QDRANT_*`` and related variables.

        Raises
        ------
        ConfigurationError
            If the distance name or timeout is invalid.

        """
        raw_distance = env_str("LEDGERLINE_VECTOR_DISTANCE", VectorDistance.COSINE)
        try:
            distance = VectorDistance((raw_distance or VectorDistance.COSINE).lower())
        except ValueError as exc:
            raise ConfigurationError.invalid_parameter(
                "LEDGERLINE_VECTOR_DISTANCE",
                str(raw_distance),
                "Must be one of: cosine, dot, euclid",
            ) from exc
        timeout_s = env_float("LEDGERLINE_VECTOR_TIMEOUT_S", DEFAULT_VECTOR_TIMEOUT_S)
        if timeout_s <= 0:
            raise ConfigurationError.invalid_parameter(
                "LEDGERLINE_VECTOR_TIMEOUT_S", str(timeout_s), "Must be greater than 0"
            )
        return cls(
            url=env_str("LEDGERLINE_QDRANT_URL", DEFAULT_QDRANT_URL) or DEFAULT_QDRANT_URL,
            api_key=env_str("LEDGERLINE_QDRANT_API_KEY"),
            collection=env_str("LEDGERLINE_QDRANT_COLLECTION", DEFAULT_COLLECTION)
            or DEFAULT_COLLECTION,
            distance=distance,
            timeout_s=timeout_s,
        )
