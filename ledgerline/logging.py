"""femtologging helpers shared by every Ledgerline module.

Messages are formatted eagerly with percent-style interpolation and handed to
femtologging as finished strings. Identifiers that operators grep for
(``object_id``, ``event_type`` and friends) are rendered with
:func:`format_fields` so every subsystem spells them the same way.

Example:
>>> from ledgerline.logging import format_fields, get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Stored event %s", format_fields(object_id="github:repo:o/r:issue:1"))

"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger


class LogLevel(enum.StrEnum):
    """Levels accepted by ``LEDGERLINE_LOG_LEVEL``."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_DEFAULT_LEVEL = LogLevel.INFO.value


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Return the canonical spelling of *level* and whether it was rejected.

    Parameters
    ----------
    level : str | None
        Raw value, usually taken from the environment.

    Returns
    -------
    tuple[str, bool]
        ``(level, invalid)``; unknown or empty input yields ``("INFO", True)``.

    """
    candidate = (level or "").strip().upper()
    if candidate in LogLevel.__members__:
        return (candidate, False)
    return (_DEFAULT_LEVEL, True)


def configure_logging(level: str, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging root configuration for the process.

    Parameters
    ----------
    level : str
        Requested log level.
    force : bool, optional
        Replace handlers that an earlier call installed.

    Returns
    -------
    tuple[str, bool]
        The level actually applied and whether the request was invalid.

    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate *args* into *template* using ``%`` formatting."""
    return template % args if args else template


def format_fields(**fields: object) -> str:
    """Render keyword fields as ``key=value`` pairs in call order.

    ``None`` values are skipped so optional context does not clutter lines.

    Examples
    --------
    >>> format_fields(object_id="x", count=2, repository=None)
    'object_id=x count=2'

    """
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)


class _SupportsLog(typ.Protocol):
    """Subset of the femtologging logger API used here."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit a DEBUG record."""
    _emit(logger, "DEBUG", template, args, exc_info)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an INFO record.

    Parameters
    ----------
    logger : _SupportsLog
        Destination logger.
    template : str
        ``%``-style message template.
    *args : object
        Values interpolated into *template*.
    exc_info : object | None, optional
        Exception details attached to the record.

    """
    _emit(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit a WARNING record; see :func:`log_info` for parameters."""
    _emit(logger, "WARNING", template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an ERROR record; see :func:`log_info` for parameters."""
    _emit(logger, "ERROR", template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Emit an ERROR record carrying *exc* as ``exc_info``.

    *message* is logged verbatim, without interpolation.
    """
    logger.log("ERROR", message, exc_info=exc, stack_info=False)


__all__ = [
    "LogLevel",
    "configure_logging",
    "format_fields",
    "format_log_message",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
