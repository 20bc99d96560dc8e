"""Timestamp helpers."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Return *value* converted to UTC, treating naive input as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


def isoformat_utc(value: dt.datetime | None) -> str | None:
    """Render *value* as an ISO-8601 UTC string, passing ``None`` through."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()
