"""Map GitHub webhook payloads onto :class:`InternalEvent` records.

Every supported delivery becomes one event, except ``push`` which fans out
into one ``commit`` event per contained commit. Unknown event names produce
no events; callers acknowledge them without storing anything.
"""

from __future__ import annotations

import typing as typ

from ledgerline.common.identity import object_id as make_object_id
from ledgerline.webhooks.models import (
    ActorRef,
    EventType,
    InternalEvent,
    ObjectDetails,
    RepositoryRef,
)
from ledgerline.webhooks.payloads import (
    GitHubIssue,
    GitHubPullRequest,
    GitHubRepository,
    GitHubUser,
    IgnoredDelivery,
    IssueCommentEvent,
    IssuesEvent,
    PullRequestEvent,
    PullRequestReviewCommentEvent,
    PullRequestReviewEvent,
    PushEvent,
    WebhookPayload,
    parse_payload,
)

if typ.TYPE_CHECKING:
    import datetime as dt

MERGED_ACTION = "merged"
PUSHED_ACTION = "pushed"
DELETED_STATE = "deleted"


def normalize(event_name: str, payload: dict[str, typ.Any]) -> list[InternalEvent]:
    """Decode and normalize one delivery.

    Parameters
    ----------
    event_name
        ``X-GitHub-Event`` header value.
    payload
        Decoded JSON body.

    Returns
    -------
    list[InternalEvent]
        Normalized events; empty for ignored deliveries and empty pushes.

    Raises
    ------
    InvalidWebhookPayloadError
        If a supported event's payload is malformed.

    """
    return normalize_payload(parse_payload(event_name, payload), payload)


def normalize_payload(
    parsed: WebhookPayload, raw: dict[str, typ.Any]
) -> list[InternalEvent]:
    """Normalize an already-decoded payload variant."""
    match parsed:
        case IssuesEvent():
            return [_from_issues(parsed, raw)]
        case PullRequestEvent():
            return [_from_pull_request(parsed, raw)]
        case IssueCommentEvent():
            return [_from_issue_comment(parsed, raw)]
        case PullRequestReviewCommentEvent():
            return [_from_review_comment(parsed, raw)]
        case PullRequestReviewEvent():
            return [_from_review(parsed, raw)]
        case PushEvent():
            return _from_push(parsed, raw)
        case IgnoredDelivery():
            return []
        case _:
            typ.assert_never(parsed)


def _repository_ref(repository: GitHubRepository) -> RepositoryRef:
    return RepositoryRef(
        id=repository.id,
        full_name=repository.full_name,
        owner=repository.owner.login,
        name=repository.name,
        url=repository.html_url,
    )


def _actor_ref(user: GitHubUser) -> ActorRef:
    return ActorRef(login=user.login, id=user.id, url=user.html_url)


def _login(user: GitHubUser | None) -> str | None:
    return user.login if user is not None else None


def _event(  # noqa: PLR0913 - mirrors the InternalEvent fields
    *,
    event_type: EventType,
    source_event_name: str,
    action: str,
    timestamp: dt.datetime,
    key: int | str,
    repository: GitHubRepository,
    sender: GitHubUser,
    details: ObjectDetails,
    diff: dict[str, typ.Any],
    raw: dict[str, typ.Any],
) -> InternalEvent:
    return InternalEvent(
        event_type=event_type,
        source_event_name=source_event_name,
        action=action,
        timestamp=timestamp,
        object_id=make_object_id(repository.full_name, event_type.value, key),
        object_type=event_type.value,
        repository=_repository_ref(repository),
        actor=_actor_ref(sender),
        object=details,
        diff={"action": action, **diff},
        raw_payload=raw,
    )


def _issue_parent_id(repository: GitHubRepository, issue: GitHubIssue) -> str:
    """Return the id of a comment's parent, which may be a pull request."""
    parent_type = (
        EventType.PULL_REQUEST if issue.pull_request is not None else EventType.ISSUE
    )
    return make_object_id(repository.full_name, parent_type.value, issue.number)


def _pull_request_details(pr: GitHubPullRequest) -> ObjectDetails:
    return ObjectDetails(
        number=pr.number,
        title=pr.title,
        body=pr.body or "",
        state=pr.state,
        url=pr.html_url,
        author=_login(pr.user),
        created_at=pr.created_at,
        merged=pr.merged_at is not None,
        draft=pr.draft,
        head_ref=pr.head.ref,
        base_ref=pr.base.ref,
        sha=pr.head.sha or None,
    )


def _from_issues(event: IssuesEvent, raw: dict[str, typ.Any]) -> InternalEvent:
    issue = event.issue
    body = issue.body or ""
    return _event(
        event_type=EventType.ISSUE,
        source_event_name="issues",
        action=event.action,
        timestamp=issue.updated_at,
        key=issue.number,
        repository=event.repository,
        sender=event.sender,
        details=ObjectDetails(
            number=issue.number,
            title=issue.title,
            body=body,
            state=issue.state,
            url=issue.html_url,
            author=_login(issue.user),
            created_at=issue.created_at,
        ),
        diff={"title": issue.title, "state": issue.state, "body": body},
        raw=raw,
    )


def _from_pull_request(
    event: PullRequestEvent, raw: dict[str, typ.Any]
) -> InternalEvent:
    pr = event.pull_request
    details = _pull_request_details(pr)
    action = event.action
    if action == "closed" and pr.merged_at is not None:
        action = MERGED_ACTION
    return _event(
        event_type=EventType.PULL_REQUEST,
        source_event_name="pull_request",
        action=action,
        timestamp=pr.updated_at,
        key=pr.number,
        repository=event.repository,
        sender=event.sender,
        details=details,
        diff={
            "title": pr.title,
            "state": pr.state,
            "body": details.body,
            "draft": pr.draft,
            "merged": details.merged,
        },
        raw=raw,
    )


def _comment_state(action: str) -> str:
    return DELETED_STATE if action == "deleted" else "active"


def _from_issue_comment(
    event: IssueCommentEvent, raw: dict[str, typ.Any]
) -> InternalEvent:
    comment = event.comment
    body = comment.body or ""
    return _event(
        event_type=EventType.COMMENT,
        source_event_name="issue_comment",
        action=event.action,
        timestamp=comment.updated_at,
        key=comment.id,
        repository=event.repository,
        sender=event.sender,
        details=ObjectDetails(
            number=event.issue.number,
            title=event.issue.title,
            body=body,
            state=_comment_state(event.action),
            url=comment.html_url,
            author=_login(comment.user),
            created_at=comment.created_at,
            parent_id=_issue_parent_id(event.repository, event.issue),
        ),
        diff={"comment_id": comment.id, "comment_body": body},
        raw=raw,
    )


def _from_review_comment(
    event: PullRequestReviewCommentEvent, raw: dict[str, typ.Any]
) -> InternalEvent:
    comment = event.comment
    pr = event.pull_request
    body = comment.body or ""
    return _event(
        event_type=EventType.COMMENT,
        source_event_name="pull_request_review_comment",
        action=event.action,
        timestamp=comment.updated_at,
        key=comment.id,
        repository=event.repository,
        sender=event.sender,
        details=ObjectDetails(
            number=pr.number,
            title=pr.title,
            body=body,
            state=_comment_state(event.action),
            url=comment.html_url,
            author=_login(comment.user),
            created_at=comment.created_at,
            parent_id=make_object_id(
                event.repository.full_name, EventType.PULL_REQUEST.value, pr.number
            ),
        ),
        diff={"comment_id": comment.id, "comment_body": body},
        raw=raw,
    )


def _from_review(
    event: PullRequestReviewEvent, raw: dict[str, typ.Any]
) -> InternalEvent:
    review = event.review
    pr = event.pull_request
    body = review.body or ""
    submitted_at = review.submitted_at or pr.updated_at
    return _event(
        event_type=EventType.REVIEW,
        source_event_name="pull_request_review",
        action=event.action,
        timestamp=submitted_at,
        key=review.id,
        repository=event.repository,
        sender=event.sender,
        details=ObjectDetails(
            number=pr.number,
            title=pr.title,
            body=body,
            state=review.state.lower(),
            url=review.html_url or pr.html_url,
            author=_login(review.user),
            created_at=submitted_at,
            sha=review.commit_id,
            parent_id=make_object_id(
                event.repository.full_name, EventType.PULL_REQUEST.value, pr.number
            ),
        ),
        diff={"review_id": review.id, "review_state": review.state.lower(), "body": body},
        raw=raw,
    )


def _from_push(event: PushEvent, raw: dict[str, typ.Any]) -> list[InternalEvent]:
    branch = event.ref.removeprefix("refs/heads/")
    events: list[InternalEvent] = []
    for commit in event.commits:
        title, _, rest = commit.message.partition("\n")
        author = commit.author.username or commit.author.name
        events.append(
            _event(
                event_type=EventType.COMMIT,
                source_event_name="push",
                action=PUSHED_ACTION,
                timestamp=commit.timestamp,
                key=commit.id,
                repository=event.repository,
                sender=event.sender,
                details=ObjectDetails(
                    title=title.strip(),
                    body=rest.strip(),
                    state="committed",
                    url=commit.url,
                    author=author,
                    created_at=commit.timestamp,
                    head_ref=branch,
                    sha=commit.id,
                ),
                diff={
                    "sha": commit.id,
                    "message": commit.message,
                    "ref": event.ref,
                    "added": list(commit.added),
                    "removed": list(commit.removed),
                    "modified": list(commit.modified),
                },
                raw=raw,
            )
        )
    return events
