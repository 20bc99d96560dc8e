"""Read-only query endpoints: timeline, search and object lookups.

Page sizes are clamped server-side: timeline and lexical search to 100,
semantic and hybrid search to 50.

Usage
-----
Register the resources on the Falcon app::

    deps = QueryDependencies(...)
    app.add_route("/api/timeline", TimelineResource(deps))
    app.add_route("/api/search", SearchResource(deps))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon
import msgspec

from ledgerline.api.errors import ObjectNotFoundError
from ledgerline.api.params import (
    bool_param,
    int_param,
    optional_float,
    optional_int,
    optional_str,
    repository_param,
    required_str,
)
from ledgerline.events.services import DEFAULT_HISTORY_LIMIT
from ledgerline.search.hybrid import MAX_HYBRID_LIMIT, HybridSearchOptions
from ledgerline.search.lexical import MAX_LEXICAL_LIMIT
from ledgerline.search.models import SearchFilters
from ledgerline.timeline import MAX_TIMELINE_LIMIT, TimelineFilters
from ledgerline.vectors.errors import EmbeddingConfigError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ledgerline.events.services import EventStore
    from ledgerline.search.hybrid import HybridSearchService
    from ledgerline.search.lexical import LexicalIndex
    from ledgerline.timeline import TimelineService
    from ledgerline.vectors.store import VectorStore

__all__ = [
    "AutocompleteResource",
    "HybridSearchResource",
    "ObjectResource",
    "PopularTermsResource",
    "QueryDependencies",
    "SearchResource",
    "SemanticSearchResource",
    "TimelineResource",
]

DEFAULT_SEMANTIC_LIMIT = 10
MAX_SEMANTIC_LIMIT = 50
DEFAULT_PAGE_SIZE = 50


@dc.dataclass(frozen=True, slots=True)
class QueryDependencies:
    """Services backing the query endpoints.

    ``vector_store`` is ``None`` when no embedding backend is configured;
    semantic and hybrid endpoints then answer 503.
    """

    event_store: EventStore
    timeline: TimelineService
    lexical: LexicalIndex
    hybrid: HybridSearchService
    vector_store: VectorStore | None = None


def _pagination(limit: int, offset: int, count: int, **extra: int) -> dict[str, int]:
    return {"limit": limit, "offset": offset, "count": count, **extra}


class TimelineResource:
    """``GET /api/timeline``: newest-first events with object context."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._timeline = dependencies.timeline

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return one page of the timeline, optionally with corpus stats."""
        filters = TimelineFilters(
            repository=repository_param(req),
            object_type=optional_str(req, "objectType"),
            actor=optional_str(req, "actor"),
            limit=int_param(
                req, "limit", DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_TIMELINE_LIMIT
            ),
            offset=int_param(req, "offset", 0, minimum=0),
        )
        entries = await self._timeline.get_timeline(filters)
        media: dict[str, typ.Any] = {
            "success": True,
            "data": msgspec.to_builtins(entries),
            "pagination": _pagination(filters.limit, filters.offset, len(entries)),
        }
        if bool_param(req, "stats"):
            media["stats"] = msgspec.to_builtins(await self._timeline.get_stats())
        resp.media = media
        resp.status = falcon.HTTP_200


class SearchResource:
    """``GET /api/search``: full-text search over canonical objects."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._lexical = dependencies.lexical

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return lexical matches for ``q``."""
        query = required_str(req, "q")
        filters = SearchFilters(
            object_type=optional_str(req, "objectType"),
            repository=repository_param(req),
            limit=int_param(
                req, "limit", DEFAULT_PAGE_SIZE, minimum=1, maximum=MAX_LEXICAL_LIMIT
            ),
            offset=int_param(req, "offset", 0, minimum=0),
        )
        results = await self._lexical.search_objects(query, filters)
        resp.media = {
            "success": True,
            "query": query,
            "data": msgspec.to_builtins(results),
            "pagination": _pagination(filters.limit, filters.offset, len(results)),
        }
        resp.status = falcon.HTTP_200


class AutocompleteResource:
    """``GET /api/search/autocomplete``: title suggestions for a prefix."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._lexical = dependencies.lexical

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return up to ``limit`` titles containing ``q``."""
        query = optional_str(req, "q") or ""
        limit = int_param(req, "limit", 10, minimum=1, maximum=MAX_LEXICAL_LIMIT)
        resp.media = {
            "success": True,
            "query": query,
            "data": await self._lexical.autocomplete(query, limit),
        }
        resp.status = falcon.HTTP_200


class PopularTermsResource:
    """``GET /api/search/popular``: the most common words in object titles."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._lexical = dependencies.lexical

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return up to ``limit`` terms with their title counts."""
        limit = int_param(req, "limit", 10, minimum=1, maximum=MAX_LEXICAL_LIMIT)
        terms = await self._lexical.popular_terms(limit)
        resp.media = {"success": True, "data": msgspec.to_builtins(terms)}
        resp.status = falcon.HTTP_200


class SemanticSearchResource:
    """``GET /api/search/semantic``: nearest neighbours by embedding."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._vector_store = dependencies.vector_store
        self._default_threshold = dependencies.hybrid.config.semantic_threshold

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return vector matches for ``q`` above ``threshold``."""
        query = required_str(req, "q")
        if self._vector_store is None:
            raise EmbeddingConfigError.missing_backend()
        limit = int_param(
            req, "limit", DEFAULT_SEMANTIC_LIMIT, minimum=1, maximum=MAX_SEMANTIC_LIMIT
        )
        threshold = optional_float(req, "threshold", minimum=0.0, maximum=1.0)
        results = await self._vector_store.semantic_search(
            query,
            limit=limit,
            filters=SearchFilters(
                object_type=optional_str(req, "objectType"),
                repository=repository_param(req),
            ),
            score_threshold=self._default_threshold if threshold is None else threshold,
        )
        resp.media = {
            "success": True,
            "query": query,
            "data": msgspec.to_builtins(results),
        }
        resp.status = falcon.HTTP_200


class HybridSearchResource:
    """``GET /api/search/hybrid``: lexical and semantic results fused with RRF."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._hybrid = dependencies.hybrid

    async def on_get(self, req: Request, resp: Response) -> None:
        """Return one page of fused results, optionally with diagnostics."""
        query = required_str(req, "q")
        options = HybridSearchOptions(
            object_type=optional_str(req, "objectType"),
            repository=repository_param(req),
            limit=int_param(req, "limit", 10, minimum=1, maximum=MAX_HYBRID_LIMIT),
            offset=int_param(req, "offset", 0, minimum=0),
            rrf_k=optional_int(req, "rrfK", minimum=1),
            min_sources=int_param(req, "minSources", 1, minimum=1, maximum=2),
            semantic_threshold=optional_float(req, "threshold", minimum=0.0, maximum=1.0),
            include_stats=bool_param(req, "stats"),
        ).clamped()
        page = await self._hybrid.search(query, options)
        media: dict[str, typ.Any] = {
            "success": True,
            "query": query,
            "data": msgspec.to_builtins(page.results),
            "pagination": _pagination(
                options.limit, options.offset, len(page.results), total=page.total
            ),
        }
        if page.stats is not None:
            media["stats"] = msgspec.to_builtins(page.stats)
        resp.media = media
        resp.status = falcon.HTTP_200


class ObjectResource:
    """``GET /api/objects/{object_id}``: current state of one object."""

    def __init__(self, dependencies: QueryDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._event_store = dependencies.event_store

    async def on_get(self, req: Request, resp: Response, *, object_id: str) -> None:
        """Return the object, plus its event history when ``history=true``."""
        obj = await self._event_store.get_canonical_object(object_id)
        if obj is None:
            raise ObjectNotFoundError(object_id)
        media: dict[str, typ.Any] = {"success": True, "data": msgspec.to_builtins(obj)}
        if bool_param(req, "history"):
            history = await self._event_store.get_event_history(
                object_id,
                limit=int_param(
                    req,
                    "historyLimit",
                    DEFAULT_HISTORY_LIMIT,
                    minimum=1,
                    maximum=DEFAULT_HISTORY_LIMIT,
                ),
            )
            media["history"] = msgspec.to_builtins(history)
        resp.media = media
        resp.status = falcon.HTTP_200
