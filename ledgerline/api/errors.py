"""Domain exceptions and Falcon error handlers for the API layer.

Every handler answers with ``{"success": false, "title", "description"}``
plus fields specific to the failure.

Usage
-----
Register every handler on the Falcon app::

    from ledgerline.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.events.errors import EventStoreError
from ledgerline.logging import format_fields, get_logger, log_warning
from ledgerline.webhooks.errors import (
    AuthenticationError,
    InvalidWebhookPayloadError,
    RawBodyUnavailableError,
    WebhookSecretNotConfiguredError,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "ObjectNotFoundError",
    "register_error_handlers",
]

logger = get_logger(__name__)


class ObjectNotFoundError(Exception):
    """Raised when no canonical object exists for an id.

    Attributes
    ----------
    object_id
        The id that was looked up.

    """

    def __init__(self, object_id: str) -> None:
        """Initialize with the missing object id."""
        self.object_id = object_id
        super().__init__(f"No object with id '{object_id}' exists.")


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Only intentional validation failures use this type, so programming
    errors still surface as 500s.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)

    @classmethod
    def missing_parameter(cls, name: str) -> InvalidInputError:
        """Create error for a required query parameter that is absent or blank."""
        return cls(f"Query parameter '{name}' is required", field=name)

    @classmethod
    def invalid_parameter(cls, name: str, expected: str) -> InvalidInputError:
        """Create error for a parameter that fails to parse."""
        return cls(f"Query parameter '{name}' must be {expected}", field=name)

    @classmethod
    def missing_header(cls, name: str) -> InvalidInputError:
        """Create error for a required request header that is absent."""
        return cls(f"Missing {name} header", field=name)


def _body(title: str, description: str, **extra: object) -> dict[str, object]:
    return {"success": False, "title": title, "description": description, **extra}


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media = _body("Invalid input", ex.reason)
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_invalid_payload(
    _req: Request,
    resp: Response,
    ex: InvalidWebhookPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Map undecodable webhook bodies to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = _body("Invalid webhook payload", str(ex))


async def handle_authentication_error(
    req: Request,
    resp: Response,
    ex: AuthenticationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map signature failures to HTTP 401."""
    log_warning(
        logger,
        "Rejected webhook delivery %s",
        format_fields(
            path=req.path,
            delivery=req.get_header("X-GitHub-Delivery"),
            reason=ex,
        ),
    )
    resp.status = falcon.HTTP_401
    resp.media = _body("Unauthorized", str(ex))


async def handle_object_not_found(
    _req: Request,
    resp: Response,
    ex: ObjectNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ObjectNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = _body("Object not found", str(ex), id=ex.object_id)


async def handle_server_error(
    _req: Request,
    resp: Response,
    ex: WebhookSecretNotConfiguredError | RawBodyUnavailableError | EventStoreError,
    _params: dict[str, typ.Any],
) -> None:
    """Map configuration, request-body and storage failures to HTTP 500.

    Storage failures are logged where they occur; the sender retries.
    """
    resp.status = falcon.HTTP_500
    resp.media = _body("Internal server error", str(ex))


async def handle_dependency_unavailable(
    _req: Request,
    resp: Response,
    ex: DependencyUnavailableError,
    _params: dict[str, typ.Any],
) -> None:
    """Map embedding and vector store failures to HTTP 503.

    The body names the failing dependency and points at lexical search,
    which does not depend on it.
    """
    log_warning(
        logger,
        "Dependency unavailable %s",
        format_fields(dependency=ex.dependency, error=ex),
    )
    resp.status = falcon.HTTP_503
    resp.media = _body(
        "Service degraded",
        str(ex),
        dependency=ex.dependency,
        fallback="/api/search",
    )


def register_error_handlers(app: App) -> None:
    """Register every domain error handler on *app*."""
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(InvalidWebhookPayloadError, handle_invalid_payload)
    app.add_error_handler(RawBodyUnavailableError, handle_server_error)
    app.add_error_handler(AuthenticationError, handle_authentication_error)
    app.add_error_handler(ObjectNotFoundError, handle_object_not_found)
    app.add_error_handler(WebhookSecretNotConfiguredError, handle_server_error)
    app.add_error_handler(EventStoreError, handle_server_error)
    app.add_error_handler(DependencyUnavailableError, handle_dependency_unavailable)
