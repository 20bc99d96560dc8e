"""Chronological view over the event log joined with canonical objects."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

import msgspec
from sqlalchemy import func, select

from ledgerline.events.storage import CanonicalObject, EventLogRecord

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = [
    "MAX_TIMELINE_LIMIT",
    "TimelineEntry",
    "TimelineFilters",
    "TimelineService",
    "TimelineStats",
]

DEFAULT_TIMELINE_LIMIT = 50
MAX_TIMELINE_LIMIT = 100


class TimelineFilters(msgspec.Struct, kw_only=True, frozen=True):
    """Timeline filters; all given filters must match."""

    repository: str | None = None
    object_type: str | None = None
    actor: str | None = None
    limit: int = DEFAULT_TIMELINE_LIMIT
    offset: int = 0


class TimelineEntry(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """One logged event with the current title and URL of its object.

    When the object row is missing the title and URL are empty and
    ``properties`` is an empty mapping.
    """

    event_id: str
    event_type: str
    action: str
    timestamp: dt.datetime
    actor: str | None
    object_id: str
    object_type: str
    platform: str
    title: str
    repository: str
    url: str
    properties: dict[str, typ.Any]


class TimelineStats(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Corpus-wide counts."""

    total_events: int
    total_objects: int
    events_by_type: dict[str, int]
    objects_by_type: dict[str, int]


class TimelineService:
    """Read-only timeline queries.

    Records whatever state progression the platform reports; transitions
    such as reopening a merged pull request are not validated.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory."""
        self._session_factory = session_factory

    async def get_timeline(
        self, filters: TimelineFilters | None = None
    ) -> list[TimelineEntry]:
        """Return logged events, newest first.

        Events sharing a timestamp are ordered by arrival, newest first. The
        limit is clamped to ``1..100`` and the offset to ``>= 0``.
        """
        filters = filters or TimelineFilters()
        limit = min(max(filters.limit, 1), MAX_TIMELINE_LIMIT)
        offset = max(filters.offset, 0)

        stmt = (
            select(EventLogRecord, CanonicalObject)
            .outerjoin(CanonicalObject, EventLogRecord.object_id == CanonicalObject.id)
            .order_by(EventLogRecord.occurred_at.desc(), EventLogRecord.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if filters.repository:
            stmt = stmt.where(EventLogRecord.repository == filters.repository)
        if filters.object_type:
            stmt = stmt.where(EventLogRecord.object_type == filters.object_type)
        if filters.actor:
            stmt = stmt.where(EventLogRecord.actor == filters.actor)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_entry(event, obj) for event, obj in result.all()]

    async def get_stats(self) -> TimelineStats:
        """Return event and object totals, overall and per type."""
        async with self._session_factory() as session:
            total_events = await session.scalar(
                select(func.count()).select_from(EventLogRecord)
            )
            total_objects = await session.scalar(
                select(func.count()).select_from(CanonicalObject)
            )
            events_by_type = await session.execute(
                select(EventLogRecord.event_type, func.count()).group_by(
                    EventLogRecord.event_type
                )
            )
            objects_by_type = await session.execute(
                select(CanonicalObject.object_type, func.count()).group_by(
                    CanonicalObject.object_type
                )
            )
            return TimelineStats(
                total_events=int(total_events or 0),
                total_objects=int(total_objects or 0),
                events_by_type={name: int(count) for name, count in events_by_type.all()},
                objects_by_type={
                    name: int(count) for name, count in objects_by_type.all()
                },
            )


def _entry(event: EventLogRecord, obj: CanonicalObject | None) -> TimelineEntry:
    properties = dict(obj.properties or {}) if obj is not None else {}
    return TimelineEntry(
        event_id=event.event_id,
        event_type=event.event_type,
        action=event.action or "unknown",
        timestamp=event.occurred_at,
        actor=event.actor,
        object_id=event.object_id,
        object_type=event.object_type,
        platform=event.platform,
        title=(obj.title or "") if obj is not None else "",
        repository=(obj.repository if obj is not None else None)
        or event.repository
        or "",
        url=str(properties.get("url") or ""),
        properties=properties,
    )
