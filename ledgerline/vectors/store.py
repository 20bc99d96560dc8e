"""Qdrant-backed vector index for canonical objects.

Point ids are derived from object ids with
:func:`~ledgerline.common.identity.embedding_point_id`, so re-syncing an
object overwrites its point instead of adding a duplicate.
"""

from __future__ import annotations

import asyncio
import typing as typ

from qdrant_client import models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from ledgerline.common.identity import embedding_point_id
from ledgerline.common.time import isoformat_utc
from ledgerline.logging import format_fields, get_logger, log_info
from ledgerline.search.models import SearchFilters, VectorResult
from ledgerline.vectors.config import VectorDistance, VectorStoreConfig
from ledgerline.vectors.embedding import prepare_for_embedding
from ledgerline.vectors.errors import VectorStoreUnavailableError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from qdrant_client import AsyncQdrantClient

    from ledgerline.events.models import CanonicalObjectView
    from ledgerline.vectors.embedding import EmbeddingProvider

__all__ = ["INDEXED_PAYLOAD_FIELDS", "VectorStore"]

logger = get_logger(__name__)

INDEXED_PAYLOAD_FIELDS = ("object_type", "repository", "created_by", "state")

_DISTANCES = {
    VectorDistance.COSINE: models.Distance.COSINE,
    VectorDistance.DOT: models.Distance.DOT,
    VectorDistance.EUCLID: models.Distance.EUCLID,
}

_QDRANT_ERRORS = (UnexpectedResponse, ResponseHandlingException, ConnectionError)

T = typ.TypeVar("T")


def _payload(obj: CanonicalObjectView) -> dict[str, typ.Any]:
    return {
        "object_id": obj.id,
        "object_type": obj.object_type,
        "platform": obj.platform,
        "repository": obj.repository,
        "created_by": obj.created_by,
        "state": obj.state,
        "title": obj.title,
        "created_at": obj.timestamps.get("created_at"),
        "updated_at": isoformat_utc(obj.updated_at),
    }


def _query_filter(filters: SearchFilters | None) -> models.Filter | None:
    if filters is None:
        return None
    conditions: list[models.FieldCondition] = [
        models.FieldCondition(key=key, match=models.MatchValue(value=value))
        for key, value in (
            ("object_type", filters.object_type),
            ("repository", filters.repository),
        )
        if value
    ]
    return models.Filter(must=conditions) if conditions else None


def _to_result(point: models.ScoredPoint) -> VectorResult | None:
    payload = point.payload or {}
    object_id = payload.get("object_id")
    if not object_id:
        return None
    return VectorResult(
        object_id=str(object_id),
        score=float(point.score),
        object_type=payload.get("object_type"),
        platform=payload.get("platform"),
        repository=payload.get("repository"),
        title=payload.get("title"),
        created_by=payload.get("created_by"),
        state=payload.get("state"),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
    )


class VectorStore:
    """Semantic index of canonical objects in a Qdrant collection.

    Parameters
    ----------
    client
        Qdrant client; the store closes it in :meth:`aclose`.
    embedder
        Provider used for both object blobs and queries.
    config
        Collection name, distance metric and per-call timeout.

    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        embedder: EmbeddingProvider,
        config: VectorStoreConfig | None = None,
    ) -> None:
        """Store the client, embedder and configuration."""
        self._client = client
        self._embedder = embedder
        self._config = config or VectorStoreConfig()

    @property
    def collection(self) -> str:
        """Return the collection name."""
        return self._config.collection

    @property
    def embedder(self) -> EmbeddingProvider:
        """Return the embedding provider."""
        return self._embedder

    async def _call(self, operation: str, awaitable: cabc.Awaitable[T]) -> T:
        """Await a Qdrant call within the configured time budget."""
        try:
            async with asyncio.timeout(self._config.timeout_s):
                return await awaitable
        except TimeoutError as exc:
            raise VectorStoreUnavailableError.timeout(
                operation, self._config.timeout_s
            ) from exc
        except _QDRANT_ERRORS as exc:
            raise VectorStoreUnavailableError.unreachable(operation, str(exc)) from exc

    async def ensure_collection(self) -> bool:
        """Create the collection and its payload indexes if absent.

        Returns
        -------
        bool
            ``True`` when the collection was created by this call.

        """
        if await self._call(
            "collection_exists", self._client.collection_exists(self.collection)
        ):
            return False
        await self._call(
            "create_collection",
            self._client.create_collection(
                collection_name=self.collection,
                vectors_config=models.VectorParams(
                    size=self._embedder.dimensions,
                    distance=_DISTANCES[self._config.distance],
                ),
            ),
        )
        for field_name in INDEXED_PAYLOAD_FIELDS:
            await self._call(
                "create_payload_index",
                self._client.create_payload_index(
                    collection_name=self.collection,
                    field_name=field_name,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                ),
            )
        log_info(
            logger,
            "Created vector collection %s",
            format_fields(
                collection=self.collection,
                dimensions=self._embedder.dimensions,
                distance=self._config.distance,
            ),
        )
        return True

    async def reset_collection(self) -> None:
        """Drop and recreate the collection."""
        if await self._call(
            "collection_exists", self._client.collection_exists(self.collection)
        ):
            await self._call(
                "delete_collection", self._client.delete_collection(self.collection)
            )
        await self.ensure_collection()

    async def store_object(self, obj: CanonicalObjectView) -> str:
        """Embed and upsert *obj*, returning its point id."""
        (point_id,) = await self.store_objects([obj])
        return point_id

    async def store_objects(self, objects: cabc.Sequence[CanonicalObjectView]) -> list[str]:
        """Embed *objects* in one batch and upsert them.

        Raises
        ------
        DependencyUnavailableError
            If embedding or the upsert fails.

        """
        if not objects:
            return []
        vectors = await self._embedder.embed_batch(
            [prepare_for_embedding(obj) for obj in objects]
        )
        points = [
            models.PointStruct(
                id=embedding_point_id(obj.id), vector=vector, payload=_payload(obj)
            )
            for obj, vector in zip(objects, vectors, strict=True)
        ]
        await self._call(
            "upsert",
            self._client.upsert(collection_name=self.collection, points=points, wait=True),
        )
        return [str(point.id) for point in points]

    async def delete_object(self, object_id: str) -> None:
        """Remove the point for *object_id*, if present."""
        await self._call(
            "delete",
            self._client.delete(
                collection_name=self.collection,
                points_selector=models.PointIdsList(points=[embedding_point_id(object_id)]),
            ),
        )

    async def semantic_search(
        self,
        query: str,
        *,
        limit: int = 10,
        filters: SearchFilters | None = None,
        score_threshold: float | None = None,
    ) -> list[VectorResult]:
        """Return nearest neighbours of *query* scoring at least *score_threshold*.

        Queries that embed to an all-zero vector (for example only stopwords)
        return no results.
        """
        if not query or not query.strip():
            return []
        vector = await self._embedder.embed(query)
        if not any(vector):
            return []
        response = await self._call(
            "query_points",
            self._client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=max(limit, 1),
                query_filter=_query_filter(filters),
                score_threshold=score_threshold,
                with_payload=True,
            ),
        )
        return [
            result for point in response.points if (result := _to_result(point)) is not None
        ]

    async def count(self) -> int:
        """Return the number of points in the collection."""
        result = await self._call(
            "count", self._client.count(collection_name=self.collection, exact=True)
        )
        return result.count

    async def aclose(self) -> None:
        """Close the Qdrant client and the embedding provider."""
        await self._client.close()
        await self._embedder.aclose()
