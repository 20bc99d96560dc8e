"""Timeline views over the event log."""

from __future__ import annotations

from .service import (
    MAX_TIMELINE_LIMIT,
    TimelineEntry,
    TimelineFilters,
    TimelineService,
    TimelineStats,
)

__all__ = [
    "MAX_TIMELINE_LIMIT",
    "TimelineEntry",
    "TimelineFilters",
    "TimelineService",
    "TimelineStats",
]
