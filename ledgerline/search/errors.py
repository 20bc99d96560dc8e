"""Search error types."""

from __future__ import annotations

from ledgerline.common.errors import DependencyUnavailableError


class SearchDegradedError(DependencyUnavailableError):
    """Raised when hybrid search cannot reach its semantic half.

    Lexical search remains available; the message says so, letting clients
    retry against ``/api/search``.
    """

    @classmethod
    def vector_search_disabled(cls) -> SearchDegradedError:
        """Create an error for deployments without an embedding backend."""
        return cls(
            "Hybrid search degraded: semantic search is not configured; "
            "use lexical search instead",
            dependency="vector_store",
        )

    @classmethod
    def from_dependency(cls, exc: DependencyUnavailableError) -> SearchDegradedError:
        """Wrap a failure raised by the embedding provider or vector store."""
        return cls(
            f"Hybrid search degraded: {exc}; lexical search is still available",
            dependency=exc.dependency,
        )
