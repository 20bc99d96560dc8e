"""Dramatiq actor for full or pending vector resyncs.

Usage
-----
Queue a resync of objects written since their last sync:

>>> sync_vectors_job.send(
...     database_url="postgresql+asyncpg://...",
...     pending=True,
... )

"""

from __future__ import annotations

import asyncio
import dataclasses as dc

import dramatiq

from ledgerline.events.services import DEFAULT_BATCH_SIZE
from ledgerline.vectors._broker import ensure_broker_configured
from ledgerline.vectors.sync import resync_from_url

__all__ = ["sync_vectors_job"]

# Actors bind to the global broker when declared.
ensure_broker_configured()


@dramatiq.actor
def sync_vectors_job(
    database_url: str,
    *,
    reset: bool = False,
    pending: bool = False,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> dict[str, int]:
    """Re-embed canonical objects into the vector index.

    Parameters
    ----------
    database_url
        SQLAlchemy URL for the event database.
    reset
        Drop and recreate the collection before a full sync.
    pending
        Only sync objects written since their last successful sync.
    batch_size
        Objects embedded per request.

    Returns
    -------
    dict[str, int]
        ``total``, ``synced`` and ``failed`` counts.

    """
    ensure_broker_configured()
    stats = asyncio.run(
        resync_from_url(
            database_url, reset=reset, pending=pending, batch_size=batch_size
        )
    )
    return dc.asdict(stats)
