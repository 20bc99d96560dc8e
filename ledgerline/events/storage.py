"""Persistence models for the event log and canonical objects."""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ledgerline.common.time import utcnow
from ledgerline.events.errors import TimezoneAwareRequiredError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Declarative base for Ledgerline tables."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive values and store everything else as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Attach UTC tzinfo to values read back from the database."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


def _new_event_id() -> str:
    return str(uuid.uuid4())


class EventLogRecord(Base):
    """Append-only record of one normalized event.

    ``id`` increases with arrival order; ``occurred_at`` is the time the
    platform reported, which may arrive out of order.
    """

    __tablename__ = "event_log"
    __table_args__ = (
        Index("ix_event_log_object_time", "object_id", "occurred_at"),
        Index("ix_event_log_occurred_at", "occurred_at"),
        Index("ix_event_log_actor", "actor"),
        Index("ix_event_log_repository", "repository"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(36), unique=True, default=_new_event_id
    )
    object_id: Mapped[str] = mapped_column(String(255))
    platform: Mapped[str] = mapped_column(String(32))
    object_type: Mapped[str] = mapped_column(String(32))
    event_type: Mapped[str] = mapped_column(String(128))
    action: Mapped[str] = mapped_column(String(64))
    repository: Mapped[str | None] = mapped_column(String(255), default=None)
    actor: Mapped[str | None] = mapped_column(String(255), default=None)
    diff: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    occurred_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    raw: Mapped[dict[str, typ.Any] | None] = mapped_column(JSON, default=None)
    ingested_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


class CanonicalObject(Base):
    """Current state of one tracked object; overwritten by every event.

    ``version`` starts at 1 and increases with every overwrite, so a vector
    sync can tell whether the row it embedded is still current.
    """

    __tablename__ = "canonical_objects"
    __table_args__ = (
        Index("ix_canonical_objects_type", "object_type"),
        Index("ix_canonical_objects_repository", "repository"),
        Index("ix_canonical_objects_updated_at", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    platform: Mapped[str] = mapped_column(String(32))
    object_type: Mapped[str] = mapped_column(String(32))
    title: Mapped[str] = mapped_column(Text(), default="")
    body: Mapped[str] = mapped_column(Text(), default="")
    actors: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    timestamps: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    properties: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    repository: Mapped[str | None] = mapped_column(String(255), default=None)
    updated_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    search_text: Mapped[str] = mapped_column(Text(), default="")
    raw: Mapped[dict[str, typ.Any] | None] = mapped_column(JSON, default=None)
    indexed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    version: Mapped[int] = mapped_column(Integer(), default=1)


async def init_event_storage(engine: AsyncEngine) -> None:
    """Create the event tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
