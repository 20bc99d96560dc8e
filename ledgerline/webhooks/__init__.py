"""GitHub webhook authentication, decoding and normalization."""

from __future__ import annotations

from .config import WebhookConfig
from .errors import (
    AuthenticationError,
    InvalidWebhookPayloadError,
    RawBodyUnavailableError,
    WebhookError,
    WebhookSecretNotConfiguredError,
)
from .models import ActorRef, EventType, InternalEvent, ObjectDetails, RepositoryRef
from .normalizer import normalize, normalize_payload
from .payloads import (
    SUPPORTED_EVENTS,
    IgnoredDelivery,
    WebhookPayload,
    decode_body,
    is_supported_event,
    parse_payload,
)
from .signature import SIGNATURE_HEADER, compute_signature, verify_signature

__all__ = [
    "SIGNATURE_HEADER",
    "SUPPORTED_EVENTS",
    "ActorRef",
    "AuthenticationError",
    "EventType",
    "IgnoredDelivery",
    "InternalEvent",
    "InvalidWebhookPayloadError",
    "ObjectDetails",
    "RawBodyUnavailableError",
    "RepositoryRef",
    "WebhookConfig",
    "WebhookError",
    "WebhookPayload",
    "WebhookSecretNotConfiguredError",
    "compute_signature",
    "decode_body",
    "is_supported_event",
    "normalize",
    "normalize_payload",
    "parse_payload",
    "verify_signature",
]
