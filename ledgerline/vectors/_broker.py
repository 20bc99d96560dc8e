"""Dramatiq broker bootstrap for the vector sync actor."""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_broker_configured = False

_TRUTHY = frozenset({"1", "true", "yes"})
_PYTEST_VARIABLES = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")


def _is_running_tests() -> bool:
    """Return whether the process is running under pytest."""
    return "pytest" in sys.modules or any(key in os.environ for key in _PYTEST_VARIABLES)


def _should_use_stub_broker() -> bool:
    """Return whether a ``StubBroker`` may stand in for a real broker.

    True when ``LEDGERLINE_ALLOW_STUB_BROKER`` is truthy or under pytest.
    """
    allow_stub = os.environ.get("LEDGERLINE_ALLOW_STUB_BROKER", "")
    return allow_stub.strip().lower() in _TRUTHY or _is_running_tests()


def ensure_broker_configured() -> None:
    """Ensure a Dramatiq broker exists before actors are declared or run.

    Idempotent and thread-safe, since Dramatiq workers call actors from
    several threads.

    Raises
    ------
    RuntimeError
        If no broker is configured outside a test or stub-allowed context.

    """
    global _broker_configured

    if _broker_configured:
        return

    with _BROKER_LOCK:
        if _broker_configured:
            return

        try:
            current_broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: the default RabbitMQ broker's client is not installed
            current_broker = None

        if current_broker is None:
            if not _should_use_stub_broker():
                message = (
                    "No Dramatiq broker configured. "
                    "Set LEDGERLINE_ALLOW_STUB_BROKER=1 for "
                    "local/test runs or configure a real broker."
                )
                raise RuntimeError(message)
            dramatiq.set_broker(StubBroker())

        _broker_configured = True
