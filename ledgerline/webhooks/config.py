"""Webhook ingestion settings."""

from __future__ import annotations

import dataclasses as dc
import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


@dc.dataclass(frozen=True, slots=True)
class WebhookConfig:
    """Configuration for ``POST /webhooks/github``.

    Attributes
    ----------
    secret
        Shared HMAC secret. ``None`` makes every delivery fail with 500.
    sync_vectors_on_ingest
        Upsert vectors for touched objects right after each stored delivery.

    """

    secret: str | None = None
    sync_vectors_on_ingest: bool = False

    @classmethod
    def from_env(cls) -> WebhookConfig:
        """Read ``LEDGERLINE_GITHUB_WEBHOOK_SECRET`` and ``LEDGERLINE_SYNC_VECTORS_ON_INGEST``."""
        secret = os.environ.get("LEDGERLINE_GITHUB_WEBHOOK_SECRET", "").strip()
        return cls(
            secret=secret or None,
            sync_vectors_on_ingest=_env_flag("LEDGERLINE_SYNC_VECTORS_ON_INGEST"),
        )
