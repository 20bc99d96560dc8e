"""Deterministic identifiers for tracked objects.

An object id is derived only from where the object lives and what it is, so
redelivered webhooks always resolve to the same canonical row and the same
vector point.
"""

from __future__ import annotations

import hashlib
import uuid

DEFAULT_PLATFORM = "github"


def object_id(
    repository: str,
    object_type: str,
    key: int | str,
    *,
    platform: str = DEFAULT_PLATFORM,
) -> str:
    """Return the canonical id for an object.

    Parameters
    ----------
    repository
        Repository slug in ``owner/name`` form.
    object_type
        Object type such as ``issue`` or ``pull_request``.
    key
        Issue or pull request number, comment or review id, or commit sha.
    platform
        Source platform name.

    Examples
    --------
    >>> object_id("o/r", "pull_request", 42)
    'github:repo:o/r:pull_request:42'

    """
    return f"{platform}:repo:{repository}:{object_type}:{key}"


def embedding_point_id(object_id: str) -> str:
    """Return the vector point UUID for *object_id*.

    The first 16 bytes of the SHA-256 digest are formatted as an RFC 4122
    version 4 UUID, which the vector store accepts as a point id.
    """
    digest = hashlib.sha256(object_id.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=4))
