"""Repository slug utilities.

Repository slugs are GitHub ``owner/name`` identifiers. They appear in
object ids, filter parameters and vector payloads, and are parsed here rather
than with ``pathlib`` because they are not filesystem paths.
"""

from __future__ import annotations


class InvalidRepositorySlugError(ValueError):
    """Raised when a string is not in ``owner/name`` form."""

    def __init__(self, slug: str) -> None:
        """Record the offending slug in the message."""
        self.slug = slug
        super().__init__(f"expected 'owner/name', got {slug!r}")


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Split a slug into ``(owner, name)``.

    Raises
    ------
    InvalidRepositorySlugError
        If *slug* does not contain exactly one ``/`` with text on both sides.

    Examples
    --------
    >>> parse_repo_slug("octocat/hello-world")
    ('octocat', 'hello-world')

    """
    owner, sep, name = slug.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise InvalidRepositorySlugError(slug)
    return owner, name
