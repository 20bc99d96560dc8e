"""Re-embed canonical objects into the Qdrant collection."""

from __future__ import annotations

import argparse
import asyncio

from ledgerline.common.env import env_str
from ledgerline.common.errors import ConfigurationError, DependencyUnavailableError
from ledgerline.events.services import DEFAULT_BATCH_SIZE
from ledgerline.logging import configure_logging
from ledgerline.vectors.sync import resync_from_url


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"expected a positive integer, got {raw!r}"
        raise argparse.ArgumentTypeError(msg) from exc
    if value < 1:
        msg = f"expected a positive integer, got {raw!r}"
        raise argparse.ArgumentTypeError(msg)
    return value


def main(argv: list[str] | None = None) -> int:
    """Sync vectors for every (or every pending) canonical object.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        0 when every batch synced, 1 when some batches failed, 2 on
        configuration errors.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy async URL (defaults to LEDGERLINE_DATABASE_URL)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate the collection before syncing everything",
    )
    mode.add_argument(
        "--pending",
        action="store_true",
        help="Only sync objects written since their last successful sync",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Objects embedded per request (default {DEFAULT_BATCH_SIZE})",
    )
    args = parser.parse_args(argv)

    configure_logging(env_str("LEDGERLINE_LOG_LEVEL", "INFO") or "INFO")
    database_url = args.database_url or env_str("LEDGERLINE_DATABASE_URL")
    if database_url is None:
        print("LEDGERLINE_DATABASE_URL or --database-url is required")
        return 2

    try:
        stats = asyncio.run(
            resync_from_url(
                database_url,
                reset=args.reset,
                pending=args.pending,
                batch_size=args.batch_size,
            )
        )
    except (ConfigurationError, DependencyUnavailableError) as exc:
        print(f"Vector sync failed: {exc}")
        return 2

    print(f"vector sync: {stats.synced}/{stats.total} synced, {stats.failed} failed")
    return 1 if stats.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
