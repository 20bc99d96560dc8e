"""Search tuning read from the environment."""

from __future__ import annotations

import dataclasses as dc

from ledgerline.common.env import env_float, env_int, env_str

DEFAULT_LANGUAGE = "english"
DEFAULT_SEMANTIC_THRESHOLD = 0.35
DEFAULT_RRF_K = 60
DEFAULT_MIN_RRF_SCORE = 0.005
DEFAULT_MIN_SEMANTIC_HITS = 3


@dc.dataclass(frozen=True, slots=True)
class SearchConfig:
    """Defaults applied by the lexical index and hybrid search.

    Attributes
    ----------
    language
        PostgreSQL text-search configuration used for stemming and stopwords.
    semantic_threshold
        Minimum similarity for a semantic hit when a request gives none.
    rrf_k
        Default Reciprocal Rank Fusion constant.
    min_rrf_score
        Fused results scoring below this are dropped as long-tail noise.
    min_semantic_hits
        With no lexical hits, fewer semantic hits than this yield no results.

    """

    language: str = DEFAULT_LANGUAGE
    semantic_threshold: float = DEFAULT_SEMANTIC_THRESHOLD
    rrf_k: int = DEFAULT_RRF_K
    min_rrf_score: float = DEFAULT_MIN_RRF_SCORE
    min_semantic_hits: int = DEFAULT_MIN_SEMANTIC_HITS

    @classmethod
    def from_env(cls) -> SearchConfig:
        """Build configuration from ``LEDGERLINE_*`` variables.

        Reads ``LEDGERLINE_SEARCH_LANGUAGE``, ``LEDGERLINE_SEMANTIC_THRESHOLD``,
        ``LEDGERLINE_RRF_K`` and ``LEDGERLINE_MIN_RRF_SCORE``.

        Raises
        ------
        ConfigurationError
            If a numeric value is malformed or out of range.

        """
        return cls(
            language=env_str("LEDGERLINE_SEARCH_LANGUAGE", DEFAULT_LANGUAGE)
            or DEFAULT_LANGUAGE,
            semantic_threshold=env_float(
                "LEDGERLINE_SEMANTIC_THRESHOLD",
                DEFAULT_SEMANTIC_THRESHOLD,
                maximum=1.0,
            ),
            rrf_k=env_int("LEDGERLINE_RRF_K", DEFAULT_RRF_K),
            min_rrf_score=env_float("LEDGERLINE_MIN_RRF_SCORE", DEFAULT_MIN_RRF_SCORE),
        )
