"""Copy canonical objects from the event store into the vector index.

The copy is not transactional with ingestion. A resync pages through the
canonical table and re-embeds every object; objects written while it runs
may be embedded twice or left for the next run.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.events.services import DEFAULT_BATCH_SIZE
from ledgerline.logging import format_fields, get_logger, log_info, log_warning
from ledgerline.vectors.errors import EmbeddingConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ledgerline.events.models import CanonicalObjectView
    from ledgerline.events.services import EventStore
    from ledgerline.vectors.store import VectorStore

__all__ = ["SyncStats", "VectorSyncService", "resync_from_url"]

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class SyncStats:
    """Outcome of a sync run.

    Attributes
    ----------
    total
        Objects visited.
    synced
        Objects embedded and upserted.
    failed
        Objects in batches that could not be embedded or upserted.

    """

    total: int = 0
    synced: int = 0
    failed: int = 0

    def __add__(self, other: SyncStats) -> SyncStats:
        """Return the element-wise sum of two results."""
        return SyncStats(
            total=self.total + other.total,
            synced=self.synced + other.synced,
            failed=self.failed + other.failed,
        )


class VectorSyncService:
    """Embed canonical objects in batches and upsert them into the index."""

    def __init__(
        self,
        event_store: EventStore,
        vector_store: VectorStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Store collaborators and the page size."""
        if batch_size < 1:
            msg = f"batch_size must be >= 1, got {batch_size}"
            raise ValueError(msg)
        self._event_store = event_store
        self._vector_store = vector_store
        self._batch_size = batch_size

    async def sync_all(self) -> SyncStats:
        """Re-embed every canonical object."""
        return await self._sync_pages(unindexed_only=False)

    async def sync_pending(self) -> SyncStats:
        """Embed only objects written since their last successful sync."""
        return await self._sync_pages(unindexed_only=True)

    async def sync_objects(self, object_ids: cabc.Iterable[str]) -> SyncStats:
        """Embed the named objects; unknown ids are skipped."""
        objects = await self._event_store.get_canonical_objects(object_ids)
        return await self._sync_batch(list(objects.values()), batch_number=1)

    async def _sync_pages(self, *, unindexed_only: bool) -> SyncStats:
        await self._vector_store.ensure_collection()
        stats = SyncStats()
        batch_number = 0
        async for page in self._event_store.iter_canonical_objects(
            batch_size=self._batch_size, unindexed_only=unindexed_only
        ):
            batch_number += 1
            stats += await self._sync_batch(page, batch_number=batch_number)

        log_info(
            logger,
            "Vector sync finished %s",
            format_fields(
                mode="pending" if unindexed_only else "all",
                total=stats.total,
                synced=stats.synced,
                failed=stats.failed,
            ),
        )
        return stats

    async def _sync_batch(
        self, objects: cabc.Sequence[CanonicalObjectView], *, batch_number: int
    ) -> SyncStats:
        if not objects:
            return SyncStats()
        try:
            await self._vector_store.store_objects(objects)
        except DependencyUnavailableError as exc:
            log_warning(
                logger,
                "Vector sync batch failed %s",
                format_fields(
                    batch=batch_number,
                    size=len(objects),
                    first_id=objects[0].id,
                    dependency=exc.dependency,
                    error=exc,
                ),
            )
            return SyncStats(total=len(objects), failed=len(objects))

        await self._event_store.mark_indexed(objects)
        return SyncStats(total=len(objects), synced=len(objects))


async def resync_from_url(
    database_url: str,
    *,
    reset: bool = False,
    pending: bool = False,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> SyncStats:
    """Build stores from *database_url* and the environment, then sync.

    Parameters
    ----------
    database_url
        SQLAlchemy async URL of the event database.
    reset
        Drop and recreate the collection first; implies a full sync.
    pending
        Only embed objects not indexed since their last write.
    batch_size
        Objects embedded per request.

    Raises
    ------
    EmbeddingConfigError
        If no embedding backend is configured.

    """
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from ledgerline.events import EventStore, init_event_storage
    from ledgerline.vectors.factory import create_embedding_provider, create_vector_store

    embedder = create_embedding_provider()
    if embedder is None:
        raise EmbeddingConfigError.missing_backend()

    engine = create_async_engine(database_url)
    vector_store = create_vector_store(embedder)
    try:
        await init_event_storage(engine)
        event_store = EventStore(async_sessionmaker(engine, expire_on_commit=False))
        service = VectorSyncService(event_store, vector_store, batch_size=batch_size)
        if reset:
            await vector_store.reset_collection()
            return await service.sync_all()
        return await (service.sync_pending() if pending else service.sync_all())
    finally:
        await vector_store.aclose()
        await engine.dispose()
