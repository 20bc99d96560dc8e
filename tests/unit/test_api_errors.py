"""Unit tests for the API error handlers."""

from __future__ import annotations

import typing as typ

import falcon
import falcon.asgi
import falcon.testing
import pytest

from ledgerline.api.errors import (
    InvalidInputError,
    ObjectNotFoundError,
    register_error_handlers,
)
from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.events.errors import EventStoreError
from ledgerline.webhooks.errors import (
    AuthenticationError,
    InvalidWebhookPayloadError,
    RawBodyUnavailableError,
    WebhookSecretNotConfiguredError,
)


class _RaisingResource:
    """Resource that raises whatever exception it was built with."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        """Raise the configured exception."""
        raise self._exc


def _client(exc: Exception) -> falcon.testing.TestClient:
    app = falcon.asgi.App()
    register_error_handlers(app)
    app.add_route("/boom", _RaisingResource(exc))
    return falcon.testing.TestClient(app)


@pytest.mark.parametrize(
    ("exc", "status", "title"),
    [
        (InvalidInputError.missing_parameter("q"), 400, "Invalid input"),
        (
            InvalidWebhookPayloadError.invalid_json("unexpected end"),
            400,
            "Invalid webhook payload",
        ),
        (AuthenticationError.missing_signature(), 401, "Unauthorized"),
        (ObjectNotFoundError("github:repo:o/r:issue:1"), 404, "Object not found"),
        (WebhookSecretNotConfiguredError(), 500, "Internal server error"),
        (RawBodyUnavailableError(), 500, "Internal server error"),
        (EventStoreError.write_failed(["a", "b"]), 500, "Internal server error"),
        (
            DependencyUnavailableError("qdrant down", dependency="vector_store"),
            503,
            "Service degraded",
        ),
    ],
)
def test_handlers_map_status_and_body(exc: Exception, status: int, title: str) -> None:
    """Each domain error answers its status with the common error body."""
    result = _client(exc).simulate_get("/boom")

    assert result.status_code == status, f"expected {status} for {type(exc).__name__}"
    assert result.json["success"] is False
    assert result.json["title"] == title
    assert result.json["description"] in str(exc), "description should come from the error"


def test_invalid_input_names_field() -> None:
    """Validation errors carry the offending field."""
    result = _client(InvalidInputError.invalid_parameter("limit", "an integer")).simulate_get(
        "/boom"
    )
    assert result.json["field"] == "limit"
    assert "must be an integer" in result.json["description"]


def test_not_found_echoes_id() -> None:
    """404 bodies echo the requested id."""
    result = _client(ObjectNotFoundError("github:repo:o/r:issue:7")).simulate_get("/boom")
    assert result.json["id"] == "github:repo:o/r:issue:7"


def test_dependency_unavailable_points_at_lexical_search() -> None:
    """503 bodies name the dependency and the lexical fallback."""
    body = typ.cast(
        "dict[str, typ.Any]",
        _client(
            DependencyUnavailableError("no backend", dependency="embedding")
        ).simulate_get("/boom").json,
    )
    assert body["dependency"] == "embedding"
    assert body["fallback"] == "/api/search"


def test_unmapped_errors_stay_server_errors() -> None:
    """Programming errors are not turned into client errors."""
    result = _client(RuntimeError("bug")).simulate_get("/boom")
    assert result.status_code == 500
