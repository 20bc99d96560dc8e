"""Read models returned by :class:`~ledgerline.events.services.EventStore`."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

import msgspec


class CanonicalObjectView(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Detached snapshot of a canonical object row.

    ``raw`` is only populated by single-object reads; batch reads leave it
    unset to keep enrichment queries small.
    """

    id: str
    platform: str
    object_type: str
    title: str
    body: str
    actors: dict[str, typ.Any]
    timestamps: dict[str, typ.Any]
    properties: dict[str, typ.Any]
    repository: str | None
    updated_at: dt.datetime
    search_text: str = ""
    indexed_at: dt.datetime | None = None
    version: int = 1
    raw: dict[str, typ.Any] | None = None

    @property
    def url(self) -> str:
        """Return the platform URL recorded in ``properties``."""
        return str(self.properties.get("url") or "")

    @property
    def created_by(self) -> str | None:
        """Return the creator login recorded in ``actors``."""
        value = self.actors.get("created_by")
        return str(value) if value is not None else None

    @property
    def state(self) -> str | None:
        """Return the platform-asserted state."""
        value = self.properties.get("state")
        return str(value) if value is not None else None


class EventHistoryEntry(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """One event-log row as exposed by history queries."""

    event_id: str
    object_id: str
    platform: str
    object_type: str
    event_type: str
    action: str
    actor: str | None
    diff: dict[str, typ.Any]
    timestamp: dt.datetime
    ingested_at: dt.datetime
