"""Platform-agnostic event schema produced by the normalizer."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum
import typing as typ

import msgspec


class EventType(enum.StrEnum):
    """Kinds of tracked objects; also used as the object type."""

    COMMIT = "commit"
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"
    COMMENT = "comment"
    REVIEW = "review"


class RepositoryRef(msgspec.Struct, kw_only=True, frozen=True):
    """Repository an event belongs to."""

    id: int
    full_name: str
    owner: str
    name: str
    url: str = ""


class ActorRef(msgspec.Struct, kw_only=True, frozen=True):
    """Account that caused the event."""

    login: str
    id: int | None = None
    url: str = ""


class ObjectDetails(msgspec.Struct, kw_only=True, frozen=True):
    """Type-specific snapshot of the object an event touched.

    Fields that do not apply to an object type stay ``None``.

    Attributes
    ----------
    number
        Issue or pull request number (the parent's number for comments).
    title
        Display title; the first message line for commits.
    body
        Description, comment text, review text or remaining commit message.
    state
        State as asserted by the platform (``open``, ``closed``, ``deleted``,
        review states...).
    url
        Link to the object on the platform.
    author
        Login of the object's creator when the payload names one.
    created_at
        Creation time when the payload carries one.
    merged, draft, head_ref, base_ref
        Pull request flags and branches.
    sha
        Commit sha, or the reviewed commit for reviews.
    parent_id
        Object id of the issue or pull request a comment or review belongs to.

    """

    title: str = ""
    body: str = ""
    url: str = ""
    number: int | None = None
    state: str | None = None
    author: str | None = None
    created_at: dt.datetime | None = None
    merged: bool | None = None
    draft: bool | None = None
    head_ref: str | None = None
    base_ref: str | None = None
    sha: str | None = None
    parent_id: str | None = None


class InternalEvent(msgspec.Struct, kw_only=True, frozen=True):
    """One normalized event; stored as exactly one event-log row.

    Attributes
    ----------
    event_type
        Object kind the event concerns.
    source_event_name
        ``X-GitHub-Event`` header value that produced the event.
    action
        Action asserted by the platform (``opened``, ``merged``, ``pushed``...).
    timestamp
        When the change happened according to the payload.
    object_id
        Deterministic canonical id of the touched object.
    object_type
        Same value as ``event_type``; kept separate for storage.
    platform
        Source platform name.
    repository, actor, object
        Normalized references and the object snapshot.
    diff
        Shallow, action-relevant snapshot for auditing.
    raw_payload
        The delivery as received.

    """

    event_type: EventType
    source_event_name: str
    action: str
    timestamp: dt.datetime
    object_id: str
    object_type: str
    repository: RepositoryRef
    actor: ActorRef
    object: ObjectDetails
    diff: dict[str, typ.Any] = msgspec.field(default_factory=dict)
    raw_payload: dict[str, typ.Any] = msgspec.field(default_factory=dict)
    platform: str = "github"

    @property
    def log_event_type(self) -> str:
        """Return the event-log type, e.g. ``pull_request.opened``."""
        return f"{self.source_event_name}.{self.action}"
