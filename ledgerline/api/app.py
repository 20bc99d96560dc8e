"""Application factory for the Ledgerline Falcon ASGI application.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with ingestion and query endpoints::

    from ledgerline.api.app import AppDependencies, create_app

    deps = AppDependencies(session_factory=session_factory, engine=engine)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from ledgerline.api.errors import register_error_handlers
from ledgerline.api.health.resources import HealthResource, ReadyResource
from ledgerline.api.middleware import LifespanMiddleware, RequestLoggingMiddleware

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from ledgerline.search.config import SearchConfig
    from ledgerline.vectors.store import VectorStore
    from ledgerline.webhooks.config import WebhookConfig

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    session_factory
        Async session factory for the event database.
    engine
        Engine behind ``session_factory``; when given, tables are created on
        startup and the pool is disposed on shutdown.
    webhook_config
        Webhook secret and ingest-time sync flag; read from the environment
        when omitted.
    search_config
        Search defaults; read from the environment when omitted.
    vector_store
        Semantic index, or ``None`` to run with lexical search only.

    """

    session_factory: async_sessionmaker[AsyncSession]
    engine: AsyncEngine | None = None
    webhook_config: WebhookConfig | None = None
    search_config: SearchConfig | None = None
    vector_store: VectorStore | None = None


def _add_domain_routes(app: falcon.asgi.App, deps: AppDependencies) -> None:
    from ledgerline.api.query.resources import (
        AutocompleteResource,
        HybridSearchResource,
        ObjectResource,
        PopularTermsResource,
        QueryDependencies,
        SearchResource,
        SemanticSearchResource,
        TimelineResource,
    )
    from ledgerline.api.webhooks.resources import (
        GitHubWebhookResource,
        WebhookResourceDependencies,
    )
    from ledgerline.events import EventStore
    from ledgerline.search import HybridSearchService, LexicalIndex, SearchConfig
    from ledgerline.timeline import TimelineService
    from ledgerline.vectors.sync import VectorSyncService
    from ledgerline.webhooks import WebhookConfig

    search_config = deps.search_config or SearchConfig.from_env()
    event_store = EventStore(deps.session_factory)
    lexical = LexicalIndex(deps.session_factory, language=search_config.language)
    query_deps = QueryDependencies(
        event_store=event_store,
        timeline=TimelineService(deps.session_factory),
        lexical=lexical,
        hybrid=HybridSearchService(
            lexical, deps.vector_store, event_store, search_config
        ),
        vector_store=deps.vector_store,
    )
    vector_sync = (
        VectorSyncService(event_store, deps.vector_store)
        if deps.vector_store is not None
        else None
    )

    app.add_route(
        "/webhooks/github",
        GitHubWebhookResource(
            WebhookResourceDependencies(
                event_store=event_store,
                config=deps.webhook_config or WebhookConfig.from_env(),
                vector_sync=vector_sync,
            )
        ),
    )
    app.add_route("/api/timeline", TimelineResource(query_deps))
    app.add_route("/api/search", SearchResource(query_deps))
    app.add_route("/api/search/autocomplete", AutocompleteResource(query_deps))
    app.add_route("/api/search/popular", PopularTermsResource(query_deps))
    app.add_route("/api/search/semantic", SemanticSearchResource(query_deps))
    app.add_route("/api/search/hybrid", HybridSearchResource(query_deps))
    app.add_route("/api/objects/{object_id:path}", ObjectResource(query_deps))


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Without *dependencies* only ``/health`` and ``/ready`` are registered.
    With them the app also serves webhook ingestion, the timeline, search
    and object lookups.

    Parameters
    ----------
    dependencies
        Optional application dependencies.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = [RequestLoggingMiddleware()]
    if dependencies is not None:
        middleware.append(
            LifespanMiddleware(
                engine=dependencies.engine, vector_store=dependencies.vector_store
            )
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready",
        ReadyResource(
            session_factory=dependencies.session_factory if dependencies else None,
            vector_store=dependencies.vector_store if dependencies else None,
        ),
    )

    if dependencies is not None:
        _add_domain_routes(app, dependencies)

    register_error_handlers(app)
    return app
