"""Liveness and readiness probe resources.

``/health`` only proves the process is serving requests. ``/ready`` probes
the backing services: an unreachable database answers 503 because nothing
but the probes works without it, while an unreachable vector index only
degrades search and still answers 200.

Usage
-----
Register probes on the Falcon app::

    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready",
        ReadyResource(session_factory=session_factory, vector_store=vector_store),
    )

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.logging import format_fields, get_logger, log_warning

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ledgerline.vectors.store import VectorStore

__all__ = ["HealthResource", "ReadyResource"]

logger = get_logger(__name__)

CONNECTED = "connected"
DISCONNECTED = "disconnected"
NOT_CONFIGURED = "not_configured"


class HealthResource:
    """Liveness probe; always answers ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe that checks the database and the vector index.

    Parameters
    ----------
    session_factory
        Event database sessions; ``None`` in health-only mode.
    vector_store
        Semantic index; ``None`` when no embedding backend is configured.

    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        vector_store: VectorStore | None = None,
    ) -> None:
        """Store the services to probe."""
        self._session_factory = session_factory
        self._vector_store = vector_store

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        database = await self._database_status()
        vector_search = await self._vector_status()
        healthy = database != DISCONNECTED
        resp.media = {
            "status": "ready" if healthy else "unhealthy",
            "database": database,
            "vectorSearch": vector_search,
        }
        resp.status = HTTPStatus.OK if healthy else HTTPStatus.SERVICE_UNAVAILABLE

    async def _database_status(self) -> str:
        if self._session_factory is None:
            return NOT_CONFIGURED
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            log_warning(logger, "Readiness database probe failed %s", format_fields(error=exc))
            return DISCONNECTED
        return CONNECTED

    async def _vector_status(self) -> str:
        if self._vector_store is None:
            return NOT_CONFIGURED
        try:
            await self._vector_store.count()
        except DependencyUnavailableError as exc:
            log_warning(
                logger,
                "Readiness vector probe failed %s",
                format_fields(dependency=exc.dependency, error=exc),
            )
            return DISCONNECTED
        return CONNECTED
