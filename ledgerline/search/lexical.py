"""Full-text search over canonical objects.

On PostgreSQL the ranking is delegated to ``to_tsvector``/``plainto_tsquery``
and ``ts_rank``. Other databases (SQLite in development and tests) use an
in-process BM25 ranking over stemmed, stopword-filtered tokens with the same
all-terms-must-match semantics as ``plainto_tsquery``.
"""

from __future__ import annotations

import dataclasses as dc
import math
import typing as typ
from collections import Counter

from sqlalchemy import cast, func, literal, or_, select
from sqlalchemy.dialects.postgresql import REGCONFIG

from ledgerline.events.storage import CanonicalObject
from ledgerline.search.config import DEFAULT_LANGUAGE
from ledgerline.search.models import LexicalResult, PopularTerm, SearchFilters
from ledgerline.search.text import analyze, match_prefix, tokenize

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql.elements import ColumnElement

MAX_LEXICAL_LIMIT = 100
MIN_AUTOCOMPLETE_LENGTH = 2
DEFAULT_AUTOCOMPLETE_LIMIT = 10
DEFAULT_POPULAR_LIMIT = 10
MIN_POPULAR_TERM_LENGTH = 4

# BM25 tuning constants
BM25_K1 = 1.2
BM25_B = 0.75


def clamp_filters(filters: SearchFilters | None) -> SearchFilters:
    """Return *filters* with limit in ``1..100`` and a non-negative offset."""
    filters = filters or SearchFilters()
    return SearchFilters(
        object_type=filters.object_type or None,
        repository=filters.repository or None,
        limit=min(max(filters.limit, 1), MAX_LEXICAL_LIMIT),
        offset=max(filters.offset, 0),
    )


def _filter_clauses(filters: SearchFilters) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if filters.object_type:
        clauses.append(CanonicalObject.object_type == filters.object_type)
    if filters.repository:
        clauses.append(CanonicalObject.repository == filters.repository)
    return clauses


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_result(row: CanonicalObject, rank: float) -> LexicalResult:
    properties = dict(row.properties or {})
    return LexicalResult(
        object_id=row.id,
        platform=row.platform,
        object_type=row.object_type,
        title=row.title or "",
        body=row.body or "",
        repository=row.repository or "",
        url=str(properties.get("url") or ""),
        actors=dict(row.actors or {}),
        timestamps=dict(row.timestamps or {}),
        properties=properties,
        rank=float(rank),
    )


@dc.dataclass(slots=True)
class _Candidate:
    row: CanonicalObject
    term_counts: Counter[str]
    length: int


def _bm25_rank(
    candidates: list[_Candidate], terms: list[str], corpus_size: int
) -> list[tuple[_Candidate, float]]:
    """Score candidates containing every term with BM25."""
    document_frequency = {
        term: sum(1 for candidate in candidates if candidate.term_counts[term])
        for term in terms
    }
    matching = [c for c in candidates if all(c.term_counts[term] for term in terms)]
    if not matching:
        return []

    average_length = sum(c.length for c in candidates) / len(candidates) or 1.0
    scored: list[tuple[_Candidate, float]] = []
    for candidate in matching:
        score = 0.0
        for term in terms:
            df = document_frequency[term]
            idf = math.log((corpus_size - df + 0.5) / (df + 0.5) + 1.0)
            tf = candidate.term_counts[term]
            norm = 1 - BM25_B + BM25_B * candidate.length / average_length
            score += idf * tf * (BM25_K1 + 1) / (tf + BM25_K1 * norm)
        scored.append((candidate, score))
    return scored


class LexicalIndex:
    """Relevance-ranked keyword search over ``canonical_objects.search_text``.

    Parameters
    ----------
    session_factory
        Async session factory bound to the event database.
    language
        PostgreSQL text-search configuration name.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        """Store the session factory and text-search language."""
        self._session_factory = session_factory
        self._language = language

    async def search_objects(
        self, query: str, filters: SearchFilters | None = None
    ) -> list[LexicalResult]:
        """Return objects matching every query term, best first.

        Ties are broken by the most recently updated object, then by id. A
        blank query returns an empty list.
        """
        if not query or not query.strip():
            return []
        filters = clamp_filters(filters)
        async with self._session_factory() as session:
            if session.get_bind().dialect.name == "postgresql":
                return await self._search_postgres(session, query, filters)
            return await self._search_portable(session, query, filters)

    async def _search_postgres(
        self, session: AsyncSession, query: str, filters: SearchFilters
    ) -> list[LexicalResult]:
        config = cast(literal(self._language), REGCONFIG)
        document = func.to_tsvector(config, func.coalesce(CanonicalObject.search_text, ""))
        ts_query = func.plainto_tsquery(config, query)
        rank = func.ts_rank(document, ts_query).label("rank")
        stmt = (
            select(CanonicalObject, rank)
            .where(document.op("@@")(ts_query), *_filter_clauses(filters))
            .order_by(rank.desc(), CanonicalObject.updated_at.desc(), CanonicalObject.id)
            .limit(filters.limit)
            .offset(filters.offset)
        )
        result = await session.execute(stmt)
        return [_to_result(row, score) for row, score in result.all()]

    async def _search_portable(
        self, session: AsyncSession, query: str, filters: SearchFilters
    ) -> list[LexicalResult]:
        terms = list(dict.fromkeys(analyze(query)))
        if not terms:
            return []

        clauses = _filter_clauses(filters)
        corpus_size = await session.scalar(
            select(func.count()).select_from(CanonicalObject).where(*clauses)
        )
        prefilter = or_(
            *(
                CanonicalObject.search_text.ilike(
                    f"%{_escape_like(match_prefix(term))}%", escape="\\"
                )
                for term in terms
            )
        )
        rows = await session.scalars(
            select(CanonicalObject).where(prefilter, *clauses)
        )
        candidates = []
        for row in rows:
            tokens = analyze(row.search_text or "")
            candidates.append(_Candidate(row, Counter(tokens), len(tokens)))

        scored = _bm25_rank(candidates, terms, int(corpus_size or 0))
        scored.sort(
            key=lambda item: (
                -item[1],
                -item[0].row.updated_at.timestamp(),
                item[0].row.id,
            )
        )
        page = scored[filters.offset : filters.offset + filters.limit]
        return [_to_result(candidate.row, score) for candidate, score in page]

    async def autocomplete(
        self, prefix: str, limit: int = DEFAULT_AUTOCOMPLETE_LIMIT
    ) -> list[str]:
        """Return distinct titles containing *prefix*, most recent first.

        Inputs shorter than two characters return an empty list.
        """
        text = (prefix or "").strip()
        if len(text) < MIN_AUTOCOMPLETE_LENGTH:
            return []
        latest = func.max(CanonicalObject.updated_at)
        stmt = (
            select(CanonicalObject.title)
            .where(
                CanonicalObject.title.ilike(f"%{_escape_like(text)}%", escape="\\"),
                CanonicalObject.title != "",
            )
            .group_by(CanonicalObject.title)
            .order_by(latest.desc(), CanonicalObject.title)
            .limit(min(max(limit, 1), MAX_LEXICAL_LIMIT))
        )
        async with self._session_factory() as session:
            return list(await session.scalars(stmt))

    async def popular_terms(self, limit: int = DEFAULT_POPULAR_LIMIT) -> list[PopularTerm]:
        """Return the title words shared by the most objects.

        Words are lowercased, stopwords and words under four characters are
        skipped, and each title counts a word once. Equal counts are ordered
        alphabetically.
        """
        async with self._session_factory() as session:
            titles = await session.scalars(
                select(CanonicalObject.title).where(CanonicalObject.title != "")
            )
            counts: Counter[str] = Counter()
            for title in titles:
                counts.update(
                    {
                        token
                        for token in tokenize(title or "")
                        if len(token) >= MIN_POPULAR_TERM_LENGTH
                    }
                )
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        size = min(max(limit, 1), MAX_LEXICAL_LIMIT)
        return [PopularTerm(term=term, count=count) for term, count in ranked[:size]]
