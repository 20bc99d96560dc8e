"""Ledgerline runtime entrypoint.

Keeps ``ledgerline.runtime:create_app`` stable as the Granian factory
target and delegates construction to :func:`ledgerline.api.app.create_app`.

When ``LEDGERLINE_DATABASE_URL`` is set, the runtime builds full
``AppDependencies`` so the app serves ingestion, timeline and search.
Otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``LEDGERLINE_HOST``: Bind address (default ``0.0.0.0``)
- ``LEDGERLINE_PORT``: Listen port (default ``8080``)
- ``LEDGERLINE_LOG_LEVEL``: Log level (default ``INFO``)
- ``LEDGERLINE_DATABASE_URL``: Database connection URL (optional)

Run the service directly with ``python -m ledgerline.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from ledgerline.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid LEDGERLINE_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Full application when ``LEDGERLINE_DATABASE_URL`` is set, otherwise
        one serving only ``/health`` and ``/ready``.

    """
    from ledgerline.api.app import create_app as _create_api_app

    database_url = os.environ.get("LEDGERLINE_DATABASE_URL")
    if not database_url:
        return _create_api_app()

    from ledgerline.api.factory import build_app_dependencies

    return _create_api_app(build_app_dependencies(database_url))


def main() -> None:
    """Start the Ledgerline server using Granian.

    Reads ``LEDGERLINE_HOST``, ``LEDGERLINE_PORT`` and
    ``LEDGERLINE_LOG_LEVEL`` from the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("LEDGERLINE_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("LEDGERLINE_PORT", "8080"))
    log_level_str = os.environ.get("LEDGERLINE_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid LEDGERLINE_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Ledgerline on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "ledgerline.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
