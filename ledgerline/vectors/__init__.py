"""Embeddings, the Qdrant vector index and corpus synchronization.

The Dramatiq actor lives in :mod:`ledgerline.vectors.actor` and is not
imported here, since declaring it requires a configured broker.
"""

from __future__ import annotations

from .config import EmbeddingBackend, OpenAIEmbeddingConfig, VectorDistance, VectorStoreConfig
from .embedding import (
    EmbeddingProvider,
    HashingEmbeddingProvider,
    OpenAIEmbeddingProvider,
    prepare_for_embedding,
)
from .errors import (
    EmbeddingAPIError,
    EmbeddingConfigError,
    EmbeddingError,
    EmbeddingResponseShapeError,
    VectorStoreUnavailableError,
)
from .factory import create_embedding_provider, create_qdrant_client, create_vector_store
from .store import VectorStore
from .sync import SyncStats, VectorSyncService, resync_from_url

__all__ = [
    "EmbeddingAPIError",
    "EmbeddingBackend",
    "EmbeddingConfigError",
    "EmbeddingError",
    "EmbeddingProvider",
    "EmbeddingResponseShapeError",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingConfig",
    "OpenAIEmbeddingProvider",
    "SyncStats",
    "VectorDistance",
    "VectorStore",
    "VectorStoreConfig",
    "VectorStoreUnavailableError",
    "VectorSyncService",
    "create_embedding_provider",
    "create_qdrant_client",
    "create_vector_store",
    "prepare_for_embedding",
    "resync_from_url",
]
