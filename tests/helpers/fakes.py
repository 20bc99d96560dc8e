"""Test doubles for the semantic index."""

from __future__ import annotations

import typing as typ

from ledgerline.search import VectorResult

if typ.TYPE_CHECKING:
    from ledgerline.search import SearchFilters


class FakeVectorStore:
    """Return canned semantic hits and record every search call.

    Hits score ``0.9``, ``0.8`` and so on in list order. When *error* is set
    every search raises it instead.
    """

    def __init__(
        self,
        hits: list[str] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.hits = hits or []
        self.error = error
        self.calls: list[dict[str, typ.Any]] = []
        self.closed = False

    async def semantic_search(
        self,
        query: str,
        *,
        limit: int = 10,
        filters: SearchFilters | None = None,
        score_threshold: float | None = None,
    ) -> list[VectorResult]:
        self.calls.append(
            {
                "query": query,
                "limit": limit,
                "filters": filters,
                "score_threshold": score_threshold,
            }
        )
        if self.error is not None:
            raise self.error
        return [
            VectorResult(object_id=object_id, score=round(0.9 - index * 0.1, 2))
            for index, object_id in enumerate(self.hits[:limit])
        ]

    async def ensure_collection(self) -> bool:
        return False

    async def aclose(self) -> None:
        self.closed = True

    async def count(self) -> int:
        return len(self.hits)
