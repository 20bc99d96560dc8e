"""Tokenization, stopwords and a light English stemmer.

Used by the portable lexical ranking path and the hashing embedder. The
stemmer only strips common inflectional suffixes; it is deliberately small
and deterministic rather than a full Porter implementation.
"""

from __future__ import annotations

import re

STOPWORDS: frozenset[str] = frozenset(
    {
        "a", "about", "all", "also", "an", "and", "any", "are", "as", "at",
        "be", "been", "being", "but", "by", "can", "could", "did", "do",
        "does", "each", "for", "from", "had", "has", "have", "he", "her",
        "his", "how", "i", "if", "in", "into", "is", "it", "its", "just",
        "may", "me", "might", "more", "my", "no", "not", "of", "on", "or",
        "our", "she", "should", "so", "some", "than", "that", "the", "their",
        "them", "then", "there", "these", "they", "this", "those", "to",
        "very", "was", "we", "were", "what", "when", "where", "which", "who",
        "will", "with", "would", "you", "your",
    }
)  # fmt: skip

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")
_MIN_TOKEN_LENGTH = 2
_MIN_STEM_LENGTH = 3
_NO_UNDOUBLE = frozenset("lsz")


def tokenize(text: str) -> list[str]:
    """Split *text* into lowercase alphanumeric tokens without stopwords.

    Examples
    --------
    >>> tokenize("Fix the login-page crash")
    ['fix', 'login', 'page', 'crash']

    """
    return [
        token
        for token in _TOKEN_PATTERN.findall(text.casefold())
        if len(token) >= _MIN_TOKEN_LENGTH and token not in STOPWORDS
    ]


def _strip_plural(token: str) -> str:
    if token.endswith("ies") and len(token) > 4:  # noqa: PLR2004
        return f"{token[:-3]}y"
    if token.endswith("sses"):
        return token[:-2]
    if token.endswith("s") and not token.endswith(("ss", "us", "is")):
        return token[:-1]
    return token


def _strip_verb_suffix(token: str) -> str:
    for suffix in ("ing", "ed"):
        stem = token.removesuffix(suffix)
        if stem != token and len(stem) >= _MIN_STEM_LENGTH:
            if len(stem) > _MIN_STEM_LENGTH and stem[-1] == stem[-2] and stem[-1] not in _NO_UNDOUBLE:
                return stem[:-1]
            return stem
    return token


def stem(token: str) -> str:
    """Reduce *token* to a crude stem so inflections compare equal.

    Examples
    --------
    >>> [stem(word) for word in ("issues", "issue", "merged", "merge", "running")]
    ['issu', 'issu', 'merg', 'merg', 'run']

    """
    if len(token) <= _MIN_STEM_LENGTH or token.isdigit():
        return token
    result = _strip_verb_suffix(_strip_plural(token))
    if result.endswith("ly") and len(result) - 2 >= _MIN_STEM_LENGTH:
        result = result[:-2]
    if result.endswith("e") and len(result) > _MIN_STEM_LENGTH:
        result = result[:-1]
    return result


def analyze(text: str) -> list[str]:
    """Tokenize and stem *text*."""
    return [stem(token) for token in tokenize(text)]


def match_prefix(term: str) -> str:
    """Return a substring every word stemming to *term* starts with.

    Only the ``ies`` to ``y`` rule rewrites letters, so dropping a trailing
    ``y`` is enough for SQL ``LIKE`` pre-filtering.

    Examples
    --------
    >>> [match_prefix(term) for term in ("try", "query", "crash")]
    ['tr', 'quer', 'crash']

    """
    if term.endswith("y") and len(term) >= _MIN_STEM_LENGTH:
        return term[:-1]
    return term
