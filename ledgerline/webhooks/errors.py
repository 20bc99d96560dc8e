"""Errors raised while authenticating and decoding webhook deliveries."""

from __future__ import annotations

_PREVIEW_LIMIT = 200


class WebhookError(Exception):
    """Base class for webhook ingestion failures."""


class AuthenticationError(WebhookError):
    """Raised when a delivery's signature is missing or does not match.

    Authentication failures are final; the sender must fix its secret.
    """

    @classmethod
    def missing_signature(cls) -> AuthenticationError:
        """Create an error for deliveries without ``X-Hub-Signature-256``."""
        return cls("Missing X-Hub-Signature-256 header")

    @classmethod
    def invalid_signature(cls) -> AuthenticationError:
        """Create an error for signatures that fail verification."""
        return cls("Webhook signature does not match payload")


class WebhookSecretNotConfiguredError(WebhookError):
    """Raised when deliveries arrive but no verification secret is set."""

    def __init__(self) -> None:
        """Name the environment variable operators need to set."""
        super().__init__(
            "LEDGERLINE_GITHUB_WEBHOOK_SECRET is not configured; "
            "refusing to accept unverified deliveries"
        )


class RawBodyUnavailableError(WebhookError):
    """Raised when the exact request bytes cannot be read for verification."""

    def __init__(self) -> None:
        """Attach a fixed message."""
        super().__init__("Raw request body unavailable for signature verification")


class InvalidWebhookPayloadError(WebhookError):
    """Raised when a supported event carries a malformed payload.

    Attributes
    ----------
    event_name
        ``X-GitHub-Event`` value of the rejected delivery, when known.

    """

    def __init__(self, message: str, *, event_name: str | None = None) -> None:
        """Store the event name alongside the message."""
        self.event_name = event_name
        super().__init__(message)

    @classmethod
    def invalid_json(cls, detail: str) -> InvalidWebhookPayloadError:
        """Create an error for bodies that are not a JSON object."""
        return cls(f"Webhook body is not valid JSON: {detail[:_PREVIEW_LIMIT]}")

    @classmethod
    def invalid_shape(cls, event_name: str, detail: str) -> InvalidWebhookPayloadError:
        """Create an error for payloads missing fields the event requires."""
        return cls(
            f"Malformed {event_name} payload: {detail[:_PREVIEW_LIMIT]}",
            event_name=event_name,
        )
