"""Build :class:`AppDependencies` from environment configuration.

Usage
-----
Build dependencies for the runtime::

    from ledgerline.api.factory import build_app_dependencies

    deps = build_app_dependencies("postgresql+asyncpg://...")

"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ledgerline.api.app import AppDependencies
from ledgerline.logging import format_fields, get_logger, log_info
from ledgerline.search.config import SearchConfig
from ledgerline.vectors.factory import create_embedding_provider, create_vector_store
from ledgerline.webhooks.config import WebhookConfig

__all__ = ["build_app_dependencies"]

logger = get_logger(__name__)


def build_app_dependencies(database_url: str) -> AppDependencies:
    """Create the engine, session factory and optional vector store.

    Semantic search is enabled only when ``LEDGERLINE_EMBEDDING_BACKEND`` is
    set. Configuration errors propagate so the process fails at startup.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL for the event database.

    Returns
    -------
    AppDependencies
        Dependencies for :func:`ledgerline.api.app.create_app`.

    """
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    embedder = create_embedding_provider()
    vector_store = create_vector_store(embedder) if embedder is not None else None
    webhook_config = WebhookConfig.from_env()
    log_info(
        logger,
        "Configured API dependencies %s",
        format_fields(
            dialect=engine.dialect.name,
            vector_search=vector_store is not None,
            webhook_secret=webhook_config.secret is not None,
            sync_on_ingest=webhook_config.sync_vectors_on_ingest,
        ),
    )
    return AppDependencies(
        session_factory=session_factory,
        engine=engine,
        webhook_config=webhook_config,
        search_config=SearchConfig.from_env(),
        vector_store=vector_store,
    )
