"""Query-string parsing with server-side clamping.

Malformed values raise :class:`~ledgerline.api.errors.InvalidInputError`;
well-formed values outside their range are clamped rather than rejected.
"""

from __future__ import annotations

import math
import typing as typ

from ledgerline.api.errors import InvalidInputError
from ledgerline.common.slug import InvalidRepositorySlugError, parse_repo_slug

if typ.TYPE_CHECKING:
    from falcon.asgi import Request

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _clamp[N: (int, float)](value: N, minimum: N | None, maximum: N | None) -> N:
    if minimum is not None and value < minimum:
        value = minimum
    if maximum is not None and value > maximum:
        value = maximum
    return value


def optional_str(req: Request, name: str) -> str | None:
    """Return the stripped parameter, or ``None`` when absent or blank."""
    raw = req.get_param(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def required_str(req: Request, name: str) -> str:
    """Return the stripped parameter or raise a 400 naming it."""
    value = optional_str(req, name)
    if value is None:
        raise InvalidInputError.missing_parameter(name)
    return value


def repository_param(req: Request, name: str = "repository") -> str | None:
    """Return an ``owner/name`` filter, or ``None`` when absent."""
    value = optional_str(req, name)
    if value is None:
        return None
    try:
        parse_repo_slug(value)
    except InvalidRepositorySlugError as exc:
        raise InvalidInputError.invalid_parameter(name, "an 'owner/name' slug") from exc
    return value


def int_param(
    req: Request,
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    """Return an integer parameter clamped into ``[minimum, maximum]``."""
    raw = optional_str(req, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidInputError.invalid_parameter(name, "an integer") from exc
    return _clamp(value, minimum, maximum)


def optional_int(
    req: Request,
    name: str,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    """Return a clamped integer parameter, or ``None`` when absent."""
    if optional_str(req, name) is None:
        return None
    return int_param(req, name, 0, minimum=minimum, maximum=maximum)


def optional_float(
    req: Request,
    name: str,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    """Return a clamped float parameter, or ``None`` when absent."""
    raw = optional_str(req, name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise InvalidInputError.invalid_parameter(name, "a number") from exc
    if not math.isfinite(value):
        raise InvalidInputError.invalid_parameter(name, "a finite number")
    return _clamp(value, minimum, maximum)


def bool_param(req: Request, name: str, *, default: bool = False) -> bool:
    """Return a boolean parameter spelled ``true``/``false``, ``1``/``0`` and so on."""
    raw = optional_str(req, name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidInputError.invalid_parameter(name, "a boolean")
