"""Lexical, semantic and hybrid search over canonical objects."""

from __future__ import annotations

from .config import SearchConfig
from .errors import SearchDegradedError
from .hybrid import HybridSearchOptions, HybridSearchService
from .lexical import LexicalIndex
from .models import (
    HybridResult,
    HybridSearchPage,
    HybridSearchStats,
    LexicalResult,
    PopularTerm,
    SearchFilters,
    VectorResult,
)

__all__ = [
    "HybridResult",
    "HybridSearchOptions",
    "HybridSearchPage",
    "HybridSearchService",
    "HybridSearchStats",
    "LexicalIndex",
    "LexicalResult",
    "PopularTerm",
    "SearchConfig",
    "SearchDegradedError",
    "SearchFilters",
    "VectorResult",
]
