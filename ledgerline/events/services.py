"""Event store: append-only event log plus last-writer-wins canonical objects.

Each stored event appends one ``event_log`` row and overwrites the whole
``canonical_objects`` row for its object id in the same transaction. There is
no field-level merge: whichever transaction commits last defines the current
state. Callers that need causal ordering per object must serialize writes
themselves.
"""

from __future__ import annotations

import typing as typ
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from ledgerline.common.time import ensure_utc, isoformat_utc, utcnow
from ledgerline.events.errors import EventStoreError
from ledgerline.events.models import CanonicalObjectView, EventHistoryEntry
from ledgerline.events.storage import CanonicalObject, EventLogRecord
from ledgerline.logging import format_fields, get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql.dml import Insert

    from ledgerline.webhooks.models import InternalEvent

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_BATCH_SIZE = 50


def _without_nones(values: dict[str, typ.Any]) -> dict[str, typ.Any]:
    return {key: value for key, value in values.items() if value is not None}


def build_canonical_row(event: InternalEvent) -> dict[str, typ.Any]:
    """Return the full ``canonical_objects`` row implied by *event*.

    The row replaces any existing state for ``event.object_id``; nothing is
    carried over from earlier events.
    """
    details = event.object
    updated_by = event.actor.login
    created_by = details.author or updated_by
    occurred_at = ensure_utc(event.timestamp)
    created_at = ensure_utc(details.created_at) if details.created_at else occurred_at

    properties = _without_nones(
        {
            "repository": event.repository.full_name,
            "repositoryId": event.repository.id,
            "number": details.number,
            "url": details.url or None,
            "state": details.state,
            "merged": details.merged,
            "draft": details.draft,
            "headRef": details.head_ref,
            "baseRef": details.base_ref,
            "sha": details.sha,
            "parentId": details.parent_id,
            "lastAction": event.action,
            "lastEventType": event.log_event_type,
        }
    )
    participants = sorted({created_by, updated_by})
    search_text = " ".join(
        part
        for part in (
            details.title,
            details.body,
            *participants,
            event.repository.full_name,
        )
        if part
    )
    return {
        "id": event.object_id,
        "platform": event.platform,
        "object_type": event.object_type,
        "title": details.title,
        "body": details.body,
        "actors": {
            "created_by": created_by,
            "updated_by": updated_by,
            "participants": participants,
        },
        "timestamps": {
            "created_at": isoformat_utc(created_at),
            "updated_at": isoformat_utc(occurred_at),
        },
        "properties": properties,
        "repository": event.repository.full_name,
        "updated_at": occurred_at,
        "search_text": search_text,
        "raw": event.raw_payload,
        "indexed_at": None,
    }


def _upsert_statement(dialect_name: str, row: dict[str, typ.Any]) -> Insert:
    """Build ``INSERT ... ON CONFLICT (id) DO UPDATE`` for *dialect_name*."""
    match dialect_name:
        case "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        case "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        case _:
            raise EventStoreError.unsupported_dialect(dialect_name)

    stmt = insert(CanonicalObject).values(**row, version=1)
    overwrite: dict[str, typ.Any] = {
        column: stmt.excluded[column] for column in row if column != "id"
    }
    overwrite["version"] = CanonicalObject.version + 1
    return stmt.on_conflict_do_update(
        index_elements=[CanonicalObject.id],
        set_=overwrite,
    )


def _log_record(event: InternalEvent) -> EventLogRecord:
    return EventLogRecord(
        event_id=str(uuid.uuid4()),
        object_id=event.object_id,
        platform=event.platform,
        object_type=event.object_type,
        event_type=event.log_event_type,
        action=event.action,
        repository=event.repository.full_name,
        actor=event.actor.login,
        diff=dict(event.diff),
        occurred_at=ensure_utc(event.timestamp),
        raw=event.raw_payload,
    )


def to_view(row: CanonicalObject, *, include_raw: bool = False) -> CanonicalObjectView:
    """Detach a canonical object row from its session."""
    return CanonicalObjectView(
        id=row.id,
        platform=row.platform,
        object_type=row.object_type,
        title=row.title or "",
        body=row.body or "",
        actors=dict(row.actors or {}),
        timestamps=dict(row.timestamps or {}),
        properties=dict(row.properties or {}),
        repository=row.repository,
        updated_at=row.updated_at,
        search_text=row.search_text or "",
        indexed_at=row.indexed_at,
        version=row.version,
        raw=row.raw if include_raw else None,
    )


def _history_entry(row: EventLogRecord) -> EventHistoryEntry:
    return EventHistoryEntry(
        event_id=row.event_id,
        object_id=row.object_id,
        platform=row.platform,
        object_type=row.object_type,
        event_type=row.event_type,
        action=row.action,
        actor=row.actor,
        diff=dict(row.diff or {}),
        timestamp=row.occurred_at,
        ingested_at=row.ingested_at,
    )


class EventStore:
    """Persist normalized events and serve canonical object reads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for every operation."""
        self._session_factory = session_factory

    async def store_event(self, event: InternalEvent) -> str:
        """Append *event* and upsert its canonical object atomically.

        Returns
        -------
        str
            The new event-log ``event_id``.

        Raises
        ------
        EventStoreError
            If the transaction fails; nothing is persisted in that case.

        """
        (event_id,) = await self.store_events([event])
        return event_id

    async def store_events(self, events: cabc.Sequence[InternalEvent]) -> list[str]:
        """Store *events* in one all-or-nothing transaction.

        Push deliveries use this so that either every derived commit event is
        stored or none is, and a redelivery of the failed push converges to
        the same state.
        """
        if not events:
            return []

        object_ids = [event.object_id for event in events]
        event_ids: list[str] = []
        async with self._session_factory() as session:
            try:
                dialect_name = session.get_bind().dialect.name
                for event in events:
                    record = _log_record(event)
                    session.add(record)
                    event_ids.append(record.event_id)
                    await session.execute(
                        _upsert_statement(dialect_name, build_canonical_row(event))
                    )
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                context = format_fields(
                    count=len(events), object_ids=",".join(object_ids)
                )
                log_exception(logger, f"Event batch rolled back {context}", exc)
                raise EventStoreError.write_failed(object_ids) from exc

        for event, event_id in zip(events, event_ids, strict=True):
            log_info(
                logger,
                "Stored event %s",
                format_fields(
                    event_id=event_id,
                    object_id=event.object_id,
                    event_type=event.log_event_type,
                ),
            )
        return event_ids

    async def get_canonical_object(self, object_id: str) -> CanonicalObjectView | None:
        """Return the current state of *object_id*, or ``None``."""
        async with self._session_factory() as session:
            row = await session.get(CanonicalObject, object_id)
            return None if row is None else to_view(row, include_raw=True)

    async def get_canonical_objects(
        self, object_ids: cabc.Iterable[str]
    ) -> dict[str, CanonicalObjectView]:
        """Batch-fetch canonical objects keyed by id; unknown ids are absent."""
        unique_ids = list(dict.fromkeys(object_ids))
        if not unique_ids:
            return {}
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(CanonicalObject).where(CanonicalObject.id.in_(unique_ids))
            )
            return {row.id: to_view(row) for row in rows}

    async def get_event_history(
        self, object_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[EventHistoryEntry]:
        """Return logged events for *object_id*, newest first."""
        stmt = (
            select(EventLogRecord)
            .where(EventLogRecord.object_id == object_id)
            .order_by(EventLogRecord.occurred_at.desc(), EventLogRecord.id.desc())
            .limit(max(limit, 1))
        )
        async with self._session_factory() as session:
            rows = await session.scalars(stmt)
            return [_history_entry(row) for row in rows]

    async def iter_canonical_objects(
        self,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        unindexed_only: bool = False,
    ) -> cabc.AsyncIterator[list[CanonicalObjectView]]:
        """Yield every canonical object in id order, one page at a time.

        Pages are read with keyset pagination in short sessions, so rows
        written during iteration may or may not be visited.
        """
        last_id: str | None = None
        while True:
            stmt = select(CanonicalObject).order_by(CanonicalObject.id).limit(batch_size)
            if last_id is not None:
                stmt = stmt.where(CanonicalObject.id > last_id)
            if unindexed_only:
                stmt = stmt.where(CanonicalObject.indexed_at.is_(None))
            async with self._session_factory() as session:
                page = [to_view(row) for row in await session.scalars(stmt)]
            if not page:
                return
            yield page
            last_id = page[-1].id

    async def mark_indexed(
        self,
        objects: cabc.Sequence[CanonicalObjectView],
        indexed_at: dt.datetime | None = None,
    ) -> int:
        """Record a vector sync for *objects*.

        Rows overwritten since the snapshot was read have a newer ``version``
        and keep ``indexed_at`` empty, so the next pending sync picks them up
        even when the overwrite carries the same platform timestamp.

        Returns
        -------
        int
            Number of rows marked.

        """
        when = indexed_at or utcnow()
        marked = 0
        async with self._session_factory() as session:
            for obj in objects:
                result = await session.execute(
                    update(CanonicalObject)
                    .where(
                        CanonicalObject.id == obj.id,
                        CanonicalObject.version == obj.version,
                    )
                    .values(indexed_at=when)
                )
                marked += result.rowcount or 0
            await session.commit()
        return marked

    async def count_objects(self, *, unindexed_only: bool = False) -> int:
        """Return the number of canonical objects."""
        stmt = select(func.count()).select_from(CanonicalObject)
        if unindexed_only:
            stmt = stmt.where(CanonicalObject.indexed_at.is_(None))
        async with self._session_factory() as session:
            return int(await session.scalar(stmt) or 0)
