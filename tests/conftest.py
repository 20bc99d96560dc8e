"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ledgerline.events import EventStore, init_event_storage
from ledgerline.vectors import HashingEmbeddingProvider, VectorStore, VectorStoreConfig

if typ.TYPE_CHECKING:
    from pathlib import Path

# Wide enough that unrelated test texts practically never share a bucket.
TEST_EMBEDDING_DIMENSIONS = 4096


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise the event tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledgerline_test.db'}"
    )
    try:
        await init_event_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    tmp_path: Path,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by sqlite."""
    engine = await _setup_sqlite(tmp_path)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def event_store(session_factory: async_sessionmaker[AsyncSession]) -> EventStore:
    """Return an event store over the test database."""
    return EventStore(session_factory)


@pytest.fixture
def embedder() -> HashingEmbeddingProvider:
    """Return a deterministic offline embedder."""
    return HashingEmbeddingProvider(TEST_EMBEDDING_DIMENSIONS)


@pytest_asyncio.fixture
async def vector_store(
    embedder: HashingEmbeddingProvider,
) -> typ.AsyncIterator[VectorStore]:
    """Yield a vector store over an in-process Qdrant collection."""
    config = VectorStoreConfig(url=":memory:", collection="test_objects")
    store = VectorStore(AsyncQdrantClient(location=":memory:"), embedder, config)
    await store.ensure_collection()
    try:
        yield store
    finally:
        await store.aclose()
