"""Event store error types."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime reaches a UTC column."""

    def __init__(self, column: str = "timestamp") -> None:
        """Name the column that received the naive value."""
        super().__init__(f"{column} must be timezone aware")


class EventStoreError(RuntimeError):
    """Raised when events cannot be persisted or read.

    The transaction has been rolled back by the time this propagates, so the
    sender can safely redeliver.
    """

    @classmethod
    def write_failed(cls, object_ids: list[str]) -> EventStoreError:
        """Create an error for a failed append/upsert transaction."""
        preview = ", ".join(object_ids[:3])
        if len(object_ids) > 3:  # noqa: PLR2004
            preview = f"{preview}, ..."
        return cls(f"failed to store {len(object_ids)} event(s) for {preview}")

    @classmethod
    def unsupported_dialect(cls, dialect: str) -> EventStoreError:
        """Create an error for databases without ``ON CONFLICT`` upserts."""
        return cls(f"canonical object upserts are not supported on {dialect!r}")
