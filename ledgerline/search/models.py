"""Request and result types for lexical, semantic and hybrid search."""

from __future__ import annotations

import typing as typ

import msgspec


class PopularTerm(msgspec.Struct, kw_only=True, frozen=True):
    """A title word and the number of titles that contain it."""

    term: str
    count: int


class SearchFilters(msgspec.Struct, kw_only=True, frozen=True):
    """Filters shared by every search backend; all given filters must match."""

    object_type: str | None = None
    repository: str | None = None
    limit: int = 50
    offset: int = 0


class LexicalResult(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Full-text match with its relevance rank."""

    object_id: str
    platform: str
    object_type: str
    title: str
    body: str
    repository: str
    url: str
    actors: dict[str, typ.Any]
    timestamps: dict[str, typ.Any]
    properties: dict[str, typ.Any]
    rank: float


class VectorResult(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Nearest-neighbour match read from the vector payload."""

    object_id: str
    score: float
    object_type: str | None = None
    platform: str | None = None
    repository: str | None = None
    title: str | None = None
    created_by: str | None = None
    state: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class HybridResult(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Fused result enriched with canonical object data."""

    object_id: str
    platform: str
    object_type: str
    title: str
    body: str
    repository: str
    url: str
    actors: dict[str, typ.Any]
    timestamps: dict[str, typ.Any]
    properties: dict[str, typ.Any]
    rrf_score: float
    normalized_score: float
    match_type: str
    keyword_rank: int | None = None
    semantic_rank: int | None = None
    keyword_score: float | None = None
    semantic_score: float | None = None


class HybridSearchStats(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Diagnostics describing how a hybrid result page was produced."""

    keyword_candidates: int
    semantic_candidates: int
    fused: int
    after_score_filter: int
    enriched: int
    keyword_only: int
    semantic_only: int
    hybrid: int
    average_rrf_score: float
    short_circuited: bool = False


class HybridSearchPage(msgspec.Struct, kw_only=True, frozen=True):
    """One page of hybrid results.

    ``total`` counts enriched results before ``offset``/``limit`` were applied.
    """

    results: list[HybridResult]
    total: int
    stats: HybridSearchStats | None = None
