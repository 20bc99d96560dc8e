"""Reciprocal Rank Fusion (RRF).

Combines independently ranked lists by summing ``1 / (k + rank)`` for every
list an item appears in (Cormack, Clarke and Buettcher, 2009). Only ranks
matter; the sources' raw scores are carried along for diagnostics.

Example:
>>> keyword = RankedList("keyword", [RankedItem("A", 3.0), RankedItem("B", 2.0)])
>>> semantic = RankedList("semantic", [RankedItem("B", 0.9)])
>>> [result.id for result in fuse([keyword, semantic])]
['B', 'A']

"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum

DEFAULT_RRF_K = 60


class SearchSource(enum.StrEnum):
    """Ranked-list sources used by hybrid search."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"


class MatchType(enum.StrEnum):
    """Which sources produced a fused result."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dc.dataclass(frozen=True, slots=True)
class RankedItem:
    """Item in a source list together with the source's own score."""

    id: str
    score: float


@dc.dataclass(frozen=True, slots=True)
class RankedList:
    """Items from one source, already ordered best first."""

    source: str
    items: cabc.Sequence[RankedItem]


@dc.dataclass(frozen=True, slots=True)
class SourceContribution:
    """How one source contributed to a fused score."""

    source: str
    rank: int
    original_score: float
    contribution: float


@dc.dataclass(frozen=True, slots=True)
class FusedResult:
    """Fused score for one id and the per-source breakdown."""

    id: str
    rrf_score: float
    contributions: tuple[SourceContribution, ...]
    normalized_score: float | None = None

    def contribution_from(self, source: str) -> SourceContribution | None:
        """Return the contribution from *source*, if it ranked this id."""
        return next((c for c in self.contributions if c.source == source), None)

    @property
    def sources(self) -> frozenset[str]:
        """Return the distinct sources that ranked this id."""
        return frozenset(c.source for c in self.contributions)


@dc.dataclass(frozen=True, slots=True)
class FusionAnalysis:
    """Summary of how results split between sources."""

    total: int
    keyword_only: int
    semantic_only: int
    hybrid: int
    average_rrf_score: float


def rrf_contribution(rank: int, k: int = DEFAULT_RRF_K) -> float:
    """Return ``1 / (k + rank)`` for a 1-based *rank*.

    Raises
    ------
    ValueError
        If *rank* is below 1 or *k* is negative.

    """
    if rank < 1:
        msg = f"rank must be >= 1, got {rank}"
        raise ValueError(msg)
    if k < 0:
        msg = f"k must be >= 0, got {k}"
        raise ValueError(msg)
    return 1.0 / (k + rank)


def fuse(
    ranked_lists: cabc.Iterable[RankedList],
    *,
    k: int = DEFAULT_RRF_K,
    min_sources: int = 1,
    limit: int | None = None,
) -> list[FusedResult]:
    """Fuse *ranked_lists* into one list ordered by RRF score.

    Parameters
    ----------
    ranked_lists
        Source lists, each ordered best first. An id repeated within one
        list counts once, at its best rank.
    k
        Smoothing constant; larger values flatten the advantage of top ranks.
    min_sources
        Minimum number of distinct sources an id must appear in. ``1`` keeps
        the union, ``2`` the intersection of two sources.
    limit
        Optional cap on the number of results returned.

    Returns
    -------
    list[FusedResult]
        Results sorted by descending score, ties broken by ascending id.

    """
    scores: dict[str, float] = {}
    contributions: dict[str, list[SourceContribution]] = {}

    for ranked in ranked_lists:
        seen: set[str] = set()
        for position, item in enumerate(ranked.items, start=1):
            if item.id in seen:
                continue
            seen.add(item.id)
            contribution = rrf_contribution(position, k)
            scores[item.id] = scores.get(item.id, 0.0) + contribution
            contributions.setdefault(item.id, []).append(
                SourceContribution(
                    source=ranked.source,
                    rank=position,
                    original_score=item.score,
                    contribution=contribution,
                )
            )

    results = [
        FusedResult(id=item_id, rrf_score=score, contributions=tuple(contributions[item_id]))
        for item_id, score in scores.items()
        if len({c.source for c in contributions[item_id]}) >= min_sources
    ]
    results.sort(key=lambda result: (-result.rrf_score, result.id))
    return results if limit is None else results[: max(limit, 0)]


def normalize_scores(results: cabc.Sequence[FusedResult]) -> list[FusedResult]:
    """Min-max scale RRF scores into ``[0, 1]``.

    When every score is equal (including a single result) each result gets
    ``1.0``.
    """
    if not results:
        return []
    highest = max(result.rrf_score for result in results)
    lowest = min(result.rrf_score for result in results)
    spread = highest - lowest
    if spread == 0:
        return [dc.replace(result, normalized_score=1.0) for result in results]
    return [
        dc.replace(result, normalized_score=(result.rrf_score - lowest) / spread)
        for result in results
    ]


def match_type(contributions: cabc.Iterable[SourceContribution]) -> MatchType:
    """Classify a result by the sources that contributed to it."""
    sources = {c.source for c in contributions}
    has_keyword = SearchSource.KEYWORD in sources
    has_semantic = SearchSource.SEMANTIC in sources
    if has_keyword and has_semantic:
        return MatchType.HYBRID
    if has_semantic:
        return MatchType.SEMANTIC
    if has_keyword:
        return MatchType.KEYWORD
    return MatchType.HYBRID if len(sources) > 1 else MatchType.KEYWORD


def analyze(results: cabc.Sequence[FusedResult]) -> FusionAnalysis:
    """Count results by match type and average their fused scores."""
    counts = {kind: 0 for kind in MatchType}
    for result in results:
        counts[match_type(result.contributions)] += 1
    average = sum(r.rrf_score for r in results) / len(results) if results else 0.0
    return FusionAnalysis(
        total=len(results),
        keyword_only=counts[MatchType.KEYWORD],
        semantic_only=counts[MatchType.SEMANTIC],
        hybrid=counts[MatchType.HYBRID],
        average_rrf_score=average,
    )
