"""Exceptions raised by the embedding provider and vector store."""

from __future__ import annotations

import typing as typ

from ledgerline.common.errors import DependencyUnavailableError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

EMBEDDING_DEPENDENCY = "embedding"
VECTOR_STORE_DEPENDENCY = "vector_store"


class EmbeddingError(DependencyUnavailableError):
    """Base exception for embedding provider failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise the error with message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message, dependency=EMBEDDING_DEPENDENCY)


class EmbeddingConfigError(EmbeddingError):
    """Raised when the embedding backend is selected but misconfigured."""

    @classmethod
    def missing_backend(cls) -> EmbeddingConfigError:
        """Create error for an operation that needs an embedding backend."""
        return cls("LEDGERLINE_EMBEDDING_BACKEND environment variable is required")

    @classmethod
    def missing_api_key(cls) -> EmbeddingConfigError:
        """Create error for a missing ``LEDGERLINE_OPENAI_API_KEY``."""
        return cls("LEDGERLINE_OPENAI_API_KEY environment variable is required")

    @classmethod
    def empty_api_key(cls) -> EmbeddingConfigError:
        """Create error for a blank API key."""
        return cls("OpenAI API key must be non-empty")

    @classmethod
    def invalid_backend(
        cls, name: str, valid_backends: cabc.Iterable[str]
    ) -> EmbeddingConfigError:
        """Create error for an unrecognized embedding backend name.

        Parameters
        ----------
        name
            The invalid backend name that was provided.
        valid_backends
            Names accepted by the factory.

        """
        options = ", ".join(f"'{b}'" for b in sorted(valid_backends))
        return cls(f"Invalid embedding backend '{name}'. Valid options are: {options}")


class EmbeddingAPIError(EmbeddingError):
    """Raised when the embeddings endpoint fails or cannot be reached."""

    @classmethod
    def http_error(cls, status_code: int) -> EmbeddingAPIError:
        """Create error for an HTTP error response."""
        return cls(f"Embedding API HTTP error {status_code}", status_code=status_code)

    @classmethod
    def rate_limited(cls, retry_after: int | None = None) -> EmbeddingAPIError:
        """Create error for a 429 response, noting ``Retry-After`` when sent."""
        msg = "Embedding API rate limited"
        if retry_after is not None:
            msg = f"{msg}, retry after {retry_after}s"
        return cls(msg, status_code=429)

    @classmethod
    def timeout(cls) -> EmbeddingAPIError:
        """Create error for a request timeout."""
        return cls("Embedding API request timed out")

    @classmethod
    def network_error(cls, detail: str) -> EmbeddingAPIError:
        """Create error for DNS, connection or TLS failures."""
        return cls(f"Embedding API network error: {detail}")


class EmbeddingResponseShapeError(EmbeddingError):
    """Raised when the embeddings response is malformed."""

    @classmethod
    def missing(cls, field: str) -> EmbeddingResponseShapeError:
        """Create error for a missing response field."""
        return cls(f"Embedding response missing expected field: {field}")

    @classmethod
    def count_mismatch(cls, expected: int, actual: int) -> EmbeddingResponseShapeError:
        """Create error when fewer or more vectors return than inputs sent."""
        return cls(f"Embedding response returned {actual} vectors for {expected} inputs")

    @classmethod
    def wrong_dimensions(cls, expected: int, actual: int) -> EmbeddingResponseShapeError:
        """Create error when a vector does not match the configured size."""
        return cls(f"Embedding has {actual} dimensions, expected {expected}")


class VectorStoreUnavailableError(DependencyUnavailableError):
    """Raised when the vector index cannot be reached in time."""

    def __init__(self, message: str) -> None:
        """Initialise the error for the vector store dependency."""
        super().__init__(message, dependency=VECTOR_STORE_DEPENDENCY)

    @classmethod
    def timeout(cls, operation: str, seconds: float) -> VectorStoreUnavailableError:
        """Create error for an operation that exceeded its time budget."""
        return cls(f"Vector store {operation} timed out after {seconds:g}s")

    @classmethod
    def unreachable(cls, operation: str, detail: str) -> VectorStoreUnavailableError:
        """Create error for a failed vector store call."""
        return cls(f"Vector store {operation} failed: {detail}")
