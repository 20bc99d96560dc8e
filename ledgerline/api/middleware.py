"""Falcon ASGI middleware: request logging and resource lifespan.

Usage
-----
Register the middleware when creating the Falcon app::

    app = falcon.asgi.App(
        middleware=[
            RequestLoggingMiddleware(),
            LifespanMiddleware(engine=engine, vector_store=vector_store),
        ]
    )

"""

from __future__ import annotations

import time
import typing as typ

from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.events.storage import init_event_storage
from ledgerline.logging import (
    format_fields,
    get_logger,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncEngine

    from ledgerline.vectors.store import VectorStore

__all__ = ["LifespanMiddleware", "RequestLoggingMiddleware"]

logger = get_logger(__name__)


class RequestLoggingMiddleware:
    """Log one line per request with method, path, status and duration."""

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Record the request start time on ``req.context``."""
        req.context.started_at = time.perf_counter()

    async def process_response(
        self,
        req: Request,
        resp: Response,
        _resource: object,
        req_succeeded: bool,  # noqa: FBT001 - Falcon middleware signature
    ) -> None:
        """Emit the access log line."""
        started_at = getattr(req.context, "started_at", None)
        duration_ms = (
            (time.perf_counter() - started_at) * 1000 if started_at is not None else 0.0
        )
        log_info(
            logger,
            "Handled request %s",
            format_fields(
                method=req.method,
                path=req.path,
                status=str(resp.status).split(" ", 1)[0],
                duration_ms=f"{duration_ms:.1f}",
                succeeded=req_succeeded,
            ),
        )


class LifespanMiddleware:
    """Prepare storage on startup and release clients on shutdown.

    Parameters
    ----------
    engine
        Database engine; tables are created at startup and the pool is
        disposed at shutdown.
    vector_store
        Optional vector index; its collection is ensured at startup and its
        clients closed at shutdown. An unreachable index is logged and the
        app starts with lexical search only.

    """

    def __init__(
        self,
        *,
        engine: AsyncEngine | None = None,
        vector_store: VectorStore | None = None,
    ) -> None:
        """Store the resources whose lifecycle this middleware owns."""
        self._engine = engine
        self._vector_store = vector_store

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create tables and the vector collection."""
        if self._engine is not None:
            await init_event_storage(self._engine)
        if self._vector_store is not None:
            try:
                await self._vector_store.ensure_collection()
            except DependencyUnavailableError as exc:
                log_warning(
                    logger,
                    "Vector collection unavailable at startup %s",
                    format_fields(dependency=exc.dependency, error=exc),
                )
        log_info(logger, "Ledgerline API started")

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Close the vector store clients and dispose of the engine."""
        if self._vector_store is not None:
            await self._vector_store.aclose()
        if self._engine is not None:
            await self._engine.dispose()
        log_info(logger, "Ledgerline API stopped")
