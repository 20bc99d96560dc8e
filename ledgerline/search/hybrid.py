"""Hybrid search: lexical and semantic candidates fused with RRF.

The service queries both backends concurrently, fuses their ranked lists,
drops low-scoring fused results and enriches the survivors with canonical
object data before paginating.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

import msgspec

from ledgerline.common.errors import DependencyUnavailableError
from ledgerline.logging import format_fields, get_logger, log_info, log_warning
from ledgerline.search import rrf
from ledgerline.search.config import SearchConfig
from ledgerline.search.errors import SearchDegradedError
from ledgerline.search.models import (
    HybridResult,
    HybridSearchPage,
    HybridSearchStats,
    SearchFilters,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ledgerline.events.models import CanonicalObjectView
    from ledgerline.events.services import EventStore
    from ledgerline.search.lexical import LexicalIndex
    from ledgerline.search.models import LexicalResult, VectorResult
    from ledgerline.vectors.store import VectorStore

__all__ = ["HybridSearchOptions", "HybridSearchService"]

logger = get_logger(__name__)

DEFAULT_HYBRID_LIMIT = 10
MAX_HYBRID_LIMIT = 50
DEFAULT_CANDIDATE_LIMIT = 50
MAX_CANDIDATE_LIMIT = 100


@dc.dataclass(frozen=True, slots=True)
class HybridSearchOptions:
    """Per-request hybrid search parameters.

    ``None`` for ``rrf_k`` or ``semantic_threshold`` means "use the service
    configuration". Use :meth:`clamped` to bring caller-supplied values into
    their supported ranges.
    """

    object_type: str | None = None
    repository: str | None = None
    limit: int = DEFAULT_HYBRID_LIMIT
    offset: int = 0
    rrf_k: int | None = None
    keyword_limit: int = DEFAULT_CANDIDATE_LIMIT
    semantic_limit: int = DEFAULT_CANDIDATE_LIMIT
    min_sources: int = 1
    semantic_threshold: float | None = None
    include_stats: bool = False

    def clamped(self) -> HybridSearchOptions:
        """Return a copy with every numeric option inside its range."""
        return dc.replace(
            self,
            object_type=self.object_type or None,
            repository=self.repository or None,
            limit=min(max(self.limit, 1), MAX_HYBRID_LIMIT),
            offset=max(self.offset, 0),
            rrf_k=None if self.rrf_k is None else max(self.rrf_k, 1),
            keyword_limit=min(max(self.keyword_limit, 1), MAX_CANDIDATE_LIMIT),
            semantic_limit=min(max(self.semantic_limit, 1), MAX_CANDIDATE_LIMIT),
            min_sources=min(max(self.min_sources, 1), 2),
            semantic_threshold=(
                None
                if self.semantic_threshold is None
                else min(max(self.semantic_threshold, 0.0), 1.0)
            ),
        )


def _enrich(obj: CanonicalObjectView, fused: rrf.FusedResult) -> HybridResult:
    keyword = fused.contribution_from(rrf.SearchSource.KEYWORD)
    semantic = fused.contribution_from(rrf.SearchSource.SEMANTIC)
    return HybridResult(
        object_id=obj.id,
        platform=obj.platform,
        object_type=obj.object_type,
        title=obj.title,
        body=obj.body,
        repository=obj.repository or "",
        url=obj.url,
        actors=obj.actors,
        timestamps=obj.timestamps,
        properties=obj.properties,
        rrf_score=fused.rrf_score,
        normalized_score=fused.normalized_score or 0.0,
        match_type=rrf.match_type(fused.contributions).value,
        keyword_rank=keyword.rank if keyword else None,
        semantic_rank=semantic.rank if semantic else None,
        keyword_score=keyword.original_score if keyword else None,
        semantic_score=semantic.original_score if semantic else None,
    )


def _empty_stats(keyword_count: int, semantic_count: int) -> HybridSearchStats:
    return HybridSearchStats(
        keyword_candidates=keyword_count,
        semantic_candidates=semantic_count,
        fused=0,
        after_score_filter=0,
        enriched=0,
        keyword_only=0,
        semantic_only=0,
        hybrid=0,
        average_rrf_score=0.0,
        short_circuited=True,
    )


class HybridSearchService:
    """Combine lexical and semantic search with Reciprocal Rank Fusion.

    Parameters
    ----------
    lexical
        Full-text index over canonical objects.
    vector_store
        Semantic index, or ``None`` when no embedding backend is configured.
        Searches then raise :class:`SearchDegradedError`.
    event_store
        Source of canonical object data used to enrich fused ids.
    config
        Service-wide defaults; read from the environment when omitted.

    """

    def __init__(
        self,
        lexical: LexicalIndex,
        vector_store: VectorStore | None,
        event_store: EventStore,
        config: SearchConfig | None = None,
    ) -> None:
        """Store collaborators and configuration."""
        self._lexical = lexical
        self._vector_store = vector_store
        self._event_store = event_store
        self._config = config or SearchConfig.from_env()

    @property
    def config(self) -> SearchConfig:
        """Return the service defaults."""
        return self._config

    async def search(
        self, query: str, options: HybridSearchOptions | None = None
    ) -> HybridSearchPage:
        """Run a hybrid search for *query*.

        Raises
        ------
        SearchDegradedError
            If the semantic backend is missing, misconfigured or unreachable.

        """
        if self._vector_store is None:
            raise SearchDegradedError.vector_search_disabled()
        opts = (options or HybridSearchOptions()).clamped()
        if not query or not query.strip():
            return HybridSearchPage(results=[], total=0)

        keyword_hits, semantic_hits = await self._gather_candidates(
            self._vector_store, query, opts
        )

        if not keyword_hits and len(semantic_hits) < self._config.min_semantic_hits:
            log_info(
                logger,
                "Hybrid search short-circuited %s",
                format_fields(
                    keyword=len(keyword_hits), semantic=len(semantic_hits)
                ),
            )
            stats = _empty_stats(len(keyword_hits), len(semantic_hits))
            return HybridSearchPage(
                results=[], total=0, stats=stats if opts.include_stats else None
            )

        fused = rrf.normalize_scores(
            rrf.fuse(
                [
                    rrf.RankedList(
                        rrf.SearchSource.KEYWORD,
                        [rrf.RankedItem(hit.object_id, hit.rank) for hit in keyword_hits],
                    ),
                    rrf.RankedList(
                        rrf.SearchSource.SEMANTIC,
                        [rrf.RankedItem(hit.object_id, hit.score) for hit in semantic_hits],
                    ),
                ],
                k=opts.rrf_k or self._config.rrf_k,
                min_sources=opts.min_sources,
            )
        )
        kept = [r for r in fused if r.rrf_score >= self._config.min_rrf_score]
        enriched = await self._enrich_all(kept)
        page = enriched[opts.offset : opts.offset + opts.limit]

        analysis = rrf.analyze(kept)
        log_info(
            logger,
            "Hybrid search completed %s",
            format_fields(
                keyword=len(keyword_hits),
                semantic=len(semantic_hits),
                fused=len(fused),
                kept=len(kept),
                returned=len(page),
            ),
        )
        stats = None
        if opts.include_stats:
            stats = HybridSearchStats(
                keyword_candidates=len(keyword_hits),
                semantic_candidates=len(semantic_hits),
                fused=len(fused),
                after_score_filter=len(kept),
                enriched=len(enriched),
                keyword_only=analysis.keyword_only,
                semantic_only=analysis.semantic_only,
                hybrid=analysis.hybrid,
                average_rrf_score=analysis.average_rrf_score,
            )
        return HybridSearchPage(results=page, total=len(enriched), stats=stats)

    async def _gather_candidates(
        self, vector_store: VectorStore, query: str, opts: HybridSearchOptions
    ) -> tuple[list[LexicalResult], list[VectorResult]]:
        filters = SearchFilters(object_type=opts.object_type, repository=opts.repository)
        threshold = (
            self._config.semantic_threshold
            if opts.semantic_threshold is None
            else opts.semantic_threshold
        )
        keyword_task = self._lexical.search_objects(
            query, msgspec.structs.replace(filters, limit=opts.keyword_limit)
        )
        semantic_task = vector_store.semantic_search(
            query,
            limit=opts.semantic_limit,
            filters=filters,
            score_threshold=threshold,
        )
        keyword_hits, semantic_hits = await asyncio.gather(
            keyword_task, semantic_task, return_exceptions=True
        )
        if isinstance(semantic_hits, DependencyUnavailableError):
            log_warning(
                logger,
                "Hybrid search degraded %s",
                format_fields(dependency=semantic_hits.dependency, error=semantic_hits),
            )
            raise SearchDegradedError.from_dependency(semantic_hits) from semantic_hits
        if isinstance(keyword_hits, BaseException):
            raise keyword_hits
        if isinstance(semantic_hits, BaseException):
            raise semantic_hits
        return keyword_hits, semantic_hits

    async def _enrich_all(
        self, fused: cabc.Sequence[rrf.FusedResult]
    ) -> list[HybridResult]:
        objects = await self._event_store.get_canonical_objects(r.id for r in fused)
        results: list[HybridResult] = []
        for item in fused:
            obj = objects.get(item.id)
            if obj is None:
                log_warning(
                    logger,
                    "Fused result missing from event store %s",
                    format_fields(object_id=item.id),
                )
                continue
            results.append(_enrich(obj, item))
        return results

