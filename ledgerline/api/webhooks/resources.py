"""GitHub webhook ingestion endpoint.

``POST /webhooks/github`` checks, in order: a secret is configured (500),
the signature matches the raw body (401) and ``X-GitHub-Event`` is present
(400). Unsupported events are acknowledged with ``ignored: true`` without
looking at the body. Supported ones must carry a JSON object (400) and are
normalized and stored in one transaction.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon
from sqlalchemy.exc import SQLAlchemyError

from ledgerline.api.errors import InvalidInputError
from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.events.errors import EventStoreError
from ledgerline.logging import format_fields, get_logger, log_info, log_warning
from ledgerline.webhooks import (
    SIGNATURE_HEADER,
    SUPPORTED_EVENTS,
    AuthenticationError,
    RawBodyUnavailableError,
    WebhookConfig,
    WebhookSecretNotConfiguredError,
    decode_body,
    is_supported_event,
    normalize,
    verify_signature,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ledgerline.events.services import EventStore
    from ledgerline.vectors.sync import VectorSyncService

__all__ = ["GitHubWebhookResource", "WebhookResourceDependencies"]

logger = get_logger(__name__)

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"


@dc.dataclass(frozen=True, slots=True)
class WebhookResourceDependencies:
    """Collaborators for :class:`GitHubWebhookResource`.

    Attributes
    ----------
    event_store
        Destination for normalized events.
    config
        Secret and ingest-time vector sync flag.
    vector_sync
        Used for ingest-time vector upserts when enabled and configured.

    """

    event_store: EventStore
    config: WebhookConfig
    vector_sync: VectorSyncService | None = None


class GitHubWebhookResource:
    """Receive, verify and store GitHub webhook deliveries."""

    def __init__(self, dependencies: WebhookResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._event_store = dependencies.event_store
        self._config = dependencies.config
        self._vector_sync = dependencies.vector_sync

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Report that the endpoint is mounted and which events it stores."""
        resp.media = {
            "success": True,
            "message": "GitHub webhook endpoint is ready",
            "supportedEvents": list(SUPPORTED_EVENTS),
            "secretConfigured": self._config.secret is not None,
        }
        resp.status = falcon.HTTP_200

    async def on_post(self, req: Request, resp: Response) -> None:
        """Verify and ingest one delivery."""
        secret = self._config.secret
        if secret is None:
            raise WebhookSecretNotConfiguredError

        raw_body = await self._read_body(req)
        signature = req.get_header(SIGNATURE_HEADER)
        if not signature:
            raise AuthenticationError.missing_signature()
        if not verify_signature(raw_body, signature, secret):
            raise AuthenticationError.invalid_signature()

        event_name = req.get_header(EVENT_HEADER)
        if not event_name:
            raise InvalidInputError.missing_header(EVENT_HEADER)
        delivery = req.get_header(DELIVERY_HEADER)

        if not is_supported_event(event_name):
            log_info(
                logger,
                "Ignored webhook delivery %s",
                format_fields(event=event_name, delivery=delivery),
            )
            resp.media = {
                "success": True,
                "ignored": True,
                "message": f"Event type '{event_name}' is not tracked",
                "eventType": event_name,
            }
            resp.status = falcon.HTTP_200
            return

        payload = decode_body(raw_body)
        action = payload.get("action")
        events = normalize(event_name, payload)
        event_ids = await self._event_store.store_events(events)
        object_ids = list(dict.fromkeys(event.object_id for event in events))
        log_info(
            logger,
            "Stored webhook delivery %s",
            format_fields(
                event=event_name,
                action=action,
                delivery=delivery,
                events=len(event_ids),
            ),
        )

        if object_ids and self._config.sync_vectors_on_ingest and self._vector_sync:
            await self._sync_vectors(self._vector_sync, object_ids)

        resp.media = {
            "success": True,
            "message": f"Stored {len(event_ids)} event(s)",
            "eventIds": event_ids,
            "objectIds": object_ids,
            "eventType": event_name,
            "action": action if action is not None else (events[0].action if events else None),
        }
        resp.status = falcon.HTTP_200

    @staticmethod
    async def _read_body(req: Request) -> bytes:
        try:
            return await req.stream.read()
        except (OSError, RuntimeError) as exc:
            raise RawBodyUnavailableError from exc

    @staticmethod
    async def _sync_vectors(
        vector_sync: VectorSyncService, object_ids: list[str]
    ) -> None:
        """Upsert vectors for freshly stored objects without failing the delivery.

        The events are already committed; a failure here leaves the objects
        pending for the next resync.
        """
        try:
            await vector_sync.sync_objects(object_ids)
        except (SQLAlchemyError, EventStoreError, DependencyUnavailableError) as exc:
            log_warning(
                logger,
                "Ingest-time vector sync failed %s",
                format_fields(objects=len(object_ids), error=exc),
                exc_info=exc,
            )
