"""Typed readers for ``LEDGERLINE_*`` environment variables."""

from __future__ import annotations

import math
import os

from ledgerline.common.errors import ConfigurationError


def env_str(name: str, default: str | None = None) -> str | None:
    """Return the stripped value of *name*, or *default* when unset or blank."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def env_int(name: str, default: int, *, minimum: int = 1) -> int:
    """Return *name* parsed as an integer no smaller than *minimum*.

    Raises
    ------
    ConfigurationError
        If the value is not an integer or is below *minimum*.

    """
    raw = env_str(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_parameter(
            name, raw, f"Must be an integer >= {minimum}"
        ) from exc
    if value < minimum:
        raise ConfigurationError.invalid_parameter(
            name, raw, f"Must be an integer >= {minimum}"
        )
    return value


def env_float(
    name: str,
    default: float,
    *,
    minimum: float = 0.0,
    maximum: float | None = None,
) -> float:
    """Return *name* parsed as a float within ``[minimum, maximum]``.

    Raises
    ------
    ConfigurationError
        If the value is not a number or falls outside the range.

    """
    raw = env_str(name)
    if raw is None:
        return default
    upper = "" if maximum is None else f" and <= {maximum}"
    constraint = f"Must be a number >= {minimum}{upper}"
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_parameter(name, raw, constraint) from exc
    if (
        not math.isfinite(value)
        or value < minimum
        or (maximum is not None and value > maximum)
    ):
        raise ConfigurationError.invalid_parameter(name, raw, constraint)
    return value
