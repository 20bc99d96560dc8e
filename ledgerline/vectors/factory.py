"""Build the embedding provider and vector store from environment configuration."""

from __future__ import annotations

import typing as typ

from qdrant_client import AsyncQdrantClient

from ledgerline.common.env import env_str
from ledgerline.vectors.config import (
    EmbeddingBackend,
    OpenAIEmbeddingConfig,
    VectorStoreConfig,
    hashing_dimensions_from_env,
)
from ledgerline.vectors.embedding import HashingEmbeddingProvider, OpenAIEmbeddingProvider
from ledgerline.vectors.errors import EmbeddingConfigError
from ledgerline.vectors.store import VectorStore

if typ.TYPE_CHECKING:
    from ledgerline.vectors.embedding import EmbeddingProvider

__all__ = ["create_embedding_provider", "create_qdrant_client", "create_vector_store"]


def create_embedding_provider() -> EmbeddingProvider | None:
    """Create the provider named by ``LEDGERLINE_EMBEDDING_BACKEND``.

    Returns
    -------
    EmbeddingProvider | None
        ``None`` when the variable is unset, which disables semantic and
        hybrid search.

    Raises
    ------
    EmbeddingConfigError
        If the backend name is unknown or the OpenAI key is missing.

    Examples
    --------
    >>> import os
    >>> os.environ["LEDGERLINE_EMBEDDING_BACKEND"] = "hashing"
    >>> create_embedding_provider().dimensions
    256

    """
    raw_backend = env_str("LEDGERLINE_EMBEDDING_BACKEND")
    if raw_backend is None:
        return None
    try:
        backend = EmbeddingBackend(raw_backend.lower())
    except ValueError as exc:
        raise EmbeddingConfigError.invalid_backend(
            raw_backend, [b.value for b in EmbeddingBackend]
        ) from exc

    if backend is EmbeddingBackend.HASHING:
        return HashingEmbeddingProvider(hashing_dimensions_from_env())
    return OpenAIEmbeddingProvider(OpenAIEmbeddingConfig.from_env())


def create_qdrant_client(config: VectorStoreConfig) -> AsyncQdrantClient:
    """Return a Qdrant client for *config*, in-process for ``:memory:``."""
    if config.in_memory:
        return AsyncQdrantClient(location=":memory:")
    return AsyncQdrantClient(
        url=config.url,
        api_key=config.api_key,
        timeout=max(int(config.timeout_s), 1),
    )


def create_vector_store(
    embedder: EmbeddingProvider,
    config: VectorStoreConfig | None = None,
) -> VectorStore:
    """Create a :class:`VectorStore` using *embedder* and environment settings."""
    config = config or VectorStoreConfig.from_env()
    return VectorStore(create_qdrant_client(config), embedder, config)
