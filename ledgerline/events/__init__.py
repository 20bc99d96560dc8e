"""Event log and canonical object persistence."""

from __future__ import annotations

from .errors import EventStoreError, TimezoneAwareRequiredError
from .models import CanonicalObjectView, EventHistoryEntry
from .services import EventStore, build_canonical_row
from .storage import Base, CanonicalObject, EventLogRecord, init_event_storage

__all__ = [
    "Base",
    "CanonicalObject",
    "CanonicalObjectView",
    "EventHistoryEntry",
    "EventLogRecord",
    "EventStore",
    "EventStoreError",
    "TimezoneAwareRequiredError",
    "build_canonical_row",
    "init_event_storage",
]
