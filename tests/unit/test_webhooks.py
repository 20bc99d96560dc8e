"""Unit tests for webhook signature checks, decoding and normalization."""

from __future__ import annotations

import datetime as dt

import pytest

from ledgerline.webhooks import (
    EventType,
    InvalidWebhookPayloadError,
    compute_signature,
    decode_body,
    is_supported_event,
    normalize,
    verify_signature,
)
from tests.helpers.github_payloads import (
    encode,
    issue_comment_payload,
    issue_payload,
    pull_request_payload,
    push_payload,
    review_payload,
)

SECRET = "s3cret"  # noqa: S105 - test fixture value


class TestVerifySignature:
    """HMAC-SHA256 verification over the raw body."""

    def test_accepts_matching_signature(self) -> None:
        """A signature computed with the shared secret verifies."""
        body = b'{"zen": "Keep it logically awesome."}'
        assert verify_signature(body, compute_signature(body, SECRET), SECRET)

    def test_rejects_wrong_secret(self) -> None:
        """A well-formed body signed with another secret fails."""
        body = b'{"zen": "Keep it logically awesome."}'
        assert not verify_signature(body, compute_signature(body, "other"), SECRET)

    def test_rejects_modified_body(self) -> None:
        """Re-serialized JSON with different whitespace no longer verifies."""
        signature = compute_signature(b'{"a":1}', SECRET)
        assert not verify_signature(b'{"a": 1}', signature, SECRET)

    @pytest.mark.parametrize(
        ("body", "header", "secret"),
        [
            (b"{}", None, SECRET),
            (b"{}", "", SECRET),
            (None, "sha256=00", SECRET),
            (b"{}", "sha256=00", None),
            (b"{}", "sha256=00", ""),
        ],
    )
    def test_fails_closed_on_missing_inputs(
        self, body: bytes | None, header: str | None, secret: str | None
    ) -> None:
        """Any missing input is a failed verification."""
        assert not verify_signature(body, header, secret)

    def test_rejects_header_without_prefix(self) -> None:
        """The digest alone, without ``sha256=``, is rejected."""
        body = b"{}"
        digest = compute_signature(body, SECRET).removeprefix("sha256=")
        assert not verify_signature(body, digest, SECRET)


class TestDecodeBody:
    """Raw body decoding."""

    def test_returns_object(self) -> None:
        """JSON objects decode to dicts."""
        assert decode_body(b'{"action": "opened"}') == {"action": "opened"}

    @pytest.mark.parametrize("body", [b"not json", b"[]", b'"text"'])
    def test_rejects_non_objects(self, body: bytes) -> None:
        """Invalid JSON and non-object values are rejected."""
        with pytest.raises(InvalidWebhookPayloadError):
            decode_body(body)


def test_supported_events() -> None:
    """Only tracked event names are supported."""
    assert is_supported_event("pull_request")
    assert not is_supported_event("star")


class TestNormalizeIssues:
    """``issues`` deliveries."""

    def test_produces_one_issue_event(self) -> None:
        """An opened issue becomes one issue event keyed by its number."""
        (event,) = normalize("issues", issue_payload(number=7, title="Crash"))
        assert event.event_type is EventType.ISSUE
        assert event.object_id == "github:repo:octo/widgets:issue:7"
        assert event.log_event_type == "issues.opened"
        assert event.object.title == "Crash"
        assert event.actor.login == "octocat"
        assert event.timestamp == dt.datetime(2024, 7, 1, 10, 0, tzinfo=dt.UTC)

    def test_diff_carries_action(self) -> None:
        """The audit diff always records the action."""
        (event,) = normalize("issues", issue_payload(action="closed", state="closed"))
        assert event.diff["action"] == "closed"
        assert event.diff["state"] == "closed"

    def test_null_body_becomes_empty_string(self) -> None:
        """Issues without a description normalize to an empty body."""
        (event,) = normalize("issues", issue_payload(body=None))
        assert event.object.body == ""


class TestNormalizePullRequests:
    """``pull_request`` deliveries."""

    def test_closed_with_merge_becomes_merged(self) -> None:
        """A closed pull request with ``merged_at`` is reported as merged."""
        payload = pull_request_payload(action="closed", state="closed", merged=True)
        (event,) = normalize("pull_request", payload)
        assert event.action == "merged"
        assert event.log_event_type == "pull_request.merged"
        assert event.object.merged is True

    def test_closed_without_merge_stays_closed(self) -> None:
        """A closed, unmerged pull request keeps the ``closed`` action."""
        payload = pull_request_payload(action="closed", state="closed")
        (event,) = normalize("pull_request", payload)
        assert event.action == "closed"
        assert event.object.merged is False

    def test_branches_are_recorded(self) -> None:
        """Head and base refs are copied onto the snapshot."""
        (event,) = normalize("pull_request", pull_request_payload())
        assert event.object.head_ref == "feature/retries"
        assert event.object.base_ref == "main"


class TestNormalizeComments:
    """``issue_comment`` deliveries."""

    def test_comment_on_pull_request_links_parent(self) -> None:
        """Comments on pull requests point at the pull request object."""
        payload = issue_comment_payload(issue_number=3, is_pull_request=True)
        (event,) = normalize("issue_comment", payload)
        assert event.object_id == "github:repo:octo/widgets:comment:500"
        assert event.object.parent_id == "github:repo:octo/widgets:pull_request:3"
        assert event.object.state == "active"

    def test_deleted_comment_state(self) -> None:
        """Deleted comments are marked as such."""
        (event,) = normalize("issue_comment", issue_comment_payload(action="deleted"))
        assert event.object.state == "deleted"
        assert event.object.parent_id == "github:repo:octo/widgets:issue:1"


class TestNormalizeReviews:
    """``pull_request_review`` deliveries."""

    def test_review_state_is_lowercased(self) -> None:
        """Review states are stored lowercase with the reviewed commit."""
        (event,) = normalize("pull_request_review", review_payload())
        assert event.object_type == "review"
        assert event.object.state == "approved"
        assert event.object.sha == "abc123"
        assert event.object.parent_id == "github:repo:octo/widgets:pull_request:42"

    def test_missing_submitted_at_uses_pull_request_time(self) -> None:
        """Pending reviews fall back to the pull request's update time."""
        (event,) = normalize("pull_request_review", review_payload(submitted_at=None))
        assert event.timestamp == dt.datetime(2024, 7, 1, 10, 0, tzinfo=dt.UTC)


class TestNormalizePush:
    """``push`` deliveries."""

    def test_fans_out_one_event_per_commit(self) -> None:
        """Each commit becomes its own commit event."""
        events = normalize("push", push_payload())
        assert [event.object_id for event in events] == [
            "github:repo:octo/widgets:commit:a1b2c3",
            "github:repo:octo/widgets:commit:d4e5f6",
        ]
        assert {event.log_event_type for event in events} == {"push.pushed"}

    def test_splits_commit_message(self) -> None:
        """The first message line is the title and the rest the body."""
        first, _ = normalize("push", push_payload())
        assert first.object.title == "Fix flaky test"
        assert first.object.body == "Retry the network call once."
        assert first.object.head_ref == "main"
        assert first.object.author == "octocat"

    def test_empty_push_produces_no_events(self) -> None:
        """Pushes without commits (e.g. branch deletes) store nothing."""
        assert normalize("push", push_payload(commits=())) == []


class TestNormalizeUnsupported:
    """Unknown event names and malformed payloads."""

    def test_unknown_event_is_ignored(self) -> None:
        """Untracked event names yield no events."""
        assert normalize("star", {"action": "created"}) == []

    def test_malformed_payload_raises(self) -> None:
        """A supported event missing required fields is rejected."""
        payload = issue_payload()
        del payload["issue"]
        with pytest.raises(InvalidWebhookPayloadError, match="issues"):
            normalize("issues", payload)

    def test_round_trip_through_raw_body(self) -> None:
        """Payloads survive encoding to bytes and decoding again."""
        payload = pull_request_payload(number=999, title="Test PR")
        (event,) = normalize("pull_request", decode_body(encode(payload)))
        assert event.object_id.endswith(":pull_request:999")
