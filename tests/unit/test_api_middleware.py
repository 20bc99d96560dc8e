"""Unit tests for ledgerline.api.middleware."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus
from unittest import mock

import falcon.asgi
import falcon.testing
import pytest

from ledgerline.api import middleware
from ledgerline.api.middleware import LifespanMiddleware, RequestLoggingMiddleware
from ledgerline.common.errors import DependencyUnavailableError


class _EchoResource:
    """Resource that reports whether a start time was recorded."""

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        """Echo whether the logging middleware ran first."""
        resp.media = {"timed": hasattr(req.context, "started_at")}
        resp.status = HTTPStatus.OK


class TestRequestLoggingMiddleware:
    """Access logging."""

    def test_records_start_and_logs_response(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """One log line per request carries method, path and status."""
        log_info = mock.MagicMock()
        monkeypatch.setattr(middleware, "log_info", log_info)
        app = falcon.asgi.App(middleware=[RequestLoggingMiddleware()])
        app.add_route("/echo", _EchoResource())

        result = falcon.testing.TestClient(app).simulate_get("/echo")

        assert result.json == {"timed": True}
        (call,) = log_info.call_args_list
        fields = call.args[2]
        assert "method=GET" in fields
        assert "path=/echo" in fields
        assert "status=200" in fields


class TestLifespanMiddleware:
    """Startup and shutdown hooks."""

    @pytest.mark.asyncio
    async def test_startup_and_shutdown_manage_resources(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Startup creates tables and the collection; shutdown closes both."""
        init_storage = mock.AsyncMock()
        monkeypatch.setattr(middleware, "init_event_storage", init_storage)
        engine = mock.MagicMock()
        engine.dispose = mock.AsyncMock()
        store = mock.MagicMock()
        store.ensure_collection = mock.AsyncMock(return_value=True)
        store.aclose = mock.AsyncMock()
        lifespan = LifespanMiddleware(
            engine=typ.cast("typ.Any", engine), vector_store=typ.cast("typ.Any", store)
        )

        await lifespan.process_startup({}, {})
        await lifespan.process_shutdown({}, {})

        init_storage.assert_awaited_once_with(engine)
        store.ensure_collection.assert_awaited_once_with()
        store.aclose.assert_awaited_once_with()
        engine.dispose.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_unreachable_vector_store_does_not_block_startup(self) -> None:
        """An unavailable collection is logged and startup completes."""
        store = mock.MagicMock()
        store.ensure_collection = mock.AsyncMock(
            side_effect=DependencyUnavailableError("down", dependency="vector_store")
        )
        lifespan = LifespanMiddleware(vector_store=typ.cast("typ.Any", store))

        await lifespan.process_startup({}, {})

        store.ensure_collection.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_no_resources_is_a_no_op(self) -> None:
        """Health-only apps have nothing to start or stop."""
        lifespan = LifespanMiddleware()
        await lifespan.process_startup({}, {})
        await lifespan.process_shutdown({}, {})
