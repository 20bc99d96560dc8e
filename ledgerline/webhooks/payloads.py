"""Typed views of the GitHub webhook payloads Ledgerline understands.

Each supported ``X-GitHub-Event`` name decodes into its own msgspec Struct;
together with :class:`IgnoredDelivery` they form the :data:`WebhookPayload`
union that the normalizer matches exhaustively. Fields GitHub sends but we
do not use are ignored during decoding.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec

from ledgerline.webhooks.errors import InvalidWebhookPayloadError


class GitHubUser(msgspec.Struct, frozen=True):
    """Account reference embedded in most payload objects."""

    login: str
    id: int | None = None
    html_url: str = ""


class GitHubRepository(msgspec.Struct, frozen=True):
    """Repository that a delivery belongs to."""

    id: int
    name: str
    full_name: str
    owner: GitHubUser
    html_url: str = ""


class GitHubBranchRef(msgspec.Struct, frozen=True):
    """Head or base branch of a pull request."""

    ref: str
    sha: str = ""


class GitHubIssue(msgspec.Struct, frozen=True):
    """Issue object (also used for the parent of issue comments)."""

    id: int
    number: int
    title: str
    state: str
    html_url: str
    created_at: dt.datetime
    updated_at: dt.datetime
    body: str | None = None
    user: GitHubUser | None = None
    closed_at: dt.datetime | None = None
    pull_request: dict[str, typ.Any] | None = None


class GitHubPullRequest(msgspec.Struct, frozen=True):
    """Pull request object."""

    id: int
    number: int
    title: str
    state: str
    html_url: str
    created_at: dt.datetime
    updated_at: dt.datetime
    head: GitHubBranchRef
    base: GitHubBranchRef
    body: str | None = None
    user: GitHubUser | None = None
    draft: bool = False
    merged: bool | None = None
    closed_at: dt.datetime | None = None
    merged_at: dt.datetime | None = None


class GitHubComment(msgspec.Struct, frozen=True):
    """Issue or review comment."""

    id: int
    html_url: str
    created_at: dt.datetime
    updated_at: dt.datetime
    body: str | None = None
    user: GitHubUser | None = None


class GitHubReview(msgspec.Struct, frozen=True):
    """Pull request review."""

    id: int
    state: str
    html_url: str = ""
    body: str | None = None
    user: GitHubUser | None = None
    commit_id: str | None = None
    submitted_at: dt.datetime | None = None


class GitHubCommitAuthor(msgspec.Struct, frozen=True):
    """Author block of a pushed commit."""

    name: str
    email: str | None = None
    username: str | None = None


class GitHubPushCommit(msgspec.Struct, frozen=True):
    """Commit contained in a push delivery."""

    id: str
    message: str
    timestamp: dt.datetime
    url: str
    author: GitHubCommitAuthor
    added: list[str] = msgspec.field(default_factory=list)
    removed: list[str] = msgspec.field(default_factory=list)
    modified: list[str] = msgspec.field(default_factory=list)


class IssuesEvent(msgspec.Struct, frozen=True):
    """``issues`` delivery."""

    action: str
    issue: GitHubIssue
    repository: GitHubRepository
    sender: GitHubUser


class PullRequestEvent(msgspec.Struct, frozen=True):
    """``pull_request`` delivery."""

    action: str
    pull_request: GitHubPullRequest
    repository: GitHubRepository
    sender: GitHubUser


class IssueCommentEvent(msgspec.Struct, frozen=True):
    """``issue_comment`` delivery."""

    action: str
    issue: GitHubIssue
    comment: GitHubComment
    repository: GitHubRepository
    sender: GitHubUser


class PullRequestReviewCommentEvent(msgspec.Struct, frozen=True):
    """``pull_request_review_comment`` delivery."""

    action: str
    comment: GitHubComment
    pull_request: GitHubPullRequest
    repository: GitHubRepository
    sender: GitHubUser


class PullRequestReviewEvent(msgspec.Struct, frozen=True):
    """``pull_request_review`` delivery."""

    action: str
    review: GitHubReview
    pull_request: GitHubPullRequest
    repository: GitHubRepository
    sender: GitHubUser


class PushEvent(msgspec.Struct, frozen=True):
    """``push`` delivery; fans out into one event per commit."""

    ref: str
    repository: GitHubRepository
    sender: GitHubUser
    commits: list[GitHubPushCommit] = msgspec.field(default_factory=list)
    before: str = ""
    after: str = ""


class IgnoredDelivery(msgspec.Struct, frozen=True):
    """Delivery for an event name Ledgerline does not track."""

    event_name: str


type SupportedPayload = (
    IssuesEvent
    | PullRequestEvent
    | IssueCommentEvent
    | PullRequestReviewCommentEvent
    | PullRequestReviewEvent
    | PushEvent
)
type WebhookPayload = SupportedPayload | IgnoredDelivery

PAYLOAD_TYPES: dict[str, type[SupportedPayload]] = {
    "issues": IssuesEvent,
    "pull_request": PullRequestEvent,
    "issue_comment": IssueCommentEvent,
    "pull_request_review_comment": PullRequestReviewCommentEvent,
    "pull_request_review": PullRequestReviewEvent,
    "push": PushEvent,
}

SUPPORTED_EVENTS: tuple[str, ...] = tuple(PAYLOAD_TYPES)


def is_supported_event(event_name: str) -> bool:
    """Return whether deliveries named *event_name* are stored."""
    return event_name in PAYLOAD_TYPES


def decode_body(raw_body: bytes) -> dict[str, typ.Any]:
    """Decode a delivery body into a JSON object.

    Raises
    ------
    InvalidWebhookPayloadError
        If the body is not JSON or not a JSON object.

    """
    try:
        decoded = msgspec.json.decode(raw_body)
    except msgspec.DecodeError as exc:
        raise InvalidWebhookPayloadError.invalid_json(str(exc)) from exc
    if not isinstance(decoded, dict):
        raise InvalidWebhookPayloadError.invalid_json("top-level value must be an object")
    return typ.cast("dict[str, typ.Any]", decoded)


def parse_payload(event_name: str, payload: dict[str, typ.Any]) -> WebhookPayload:
    """Convert a decoded delivery into its typed variant.

    Parameters
    ----------
    event_name
        Value of the ``X-GitHub-Event`` header.
    payload
        Decoded JSON object.

    Returns
    -------
    WebhookPayload
        The matching Struct, or :class:`IgnoredDelivery` for unknown names.

    Raises
    ------
    InvalidWebhookPayloadError
        If a supported event is missing required fields.

    """
    model = PAYLOAD_TYPES.get(event_name)
    if model is None:
        return IgnoredDelivery(event_name=event_name)
    try:
        return msgspec.convert(payload, type=model)
    except msgspec.ValidationError as exc:
        raise InvalidWebhookPayloadError.invalid_shape(event_name, str(exc)) from exc
