from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ledgersync.app import sync_billing_ledger
from ledgersync.config import configure_logging, get_sync_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {value}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile a CRM subscription snapshot against the billing ledger"
    )
    parser.add_argument(
        "--snapshot-dir",
        type=Path,
        help="Directory holding the customer and cancellation exports "
        "(defaults to LEDGERSYNC_SNAPSHOT_DIR or the working directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the ledger calls that would be issued without sending them",
    )
    parser.add_argument(
        "--no-crm",
        action="store_true",
        help="Skip pushing paid/unpaid status back to the CRM",
    )
    parser.add_argument(
        "--max-concurrency",
        type=_positive_int,
        help="Maximum number of customers reconciled at the same time (defaults to config)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: %(default)s)",
    )
    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=getattr(logging, parsed_args.log_level), force=True)

    try:
        sync_config = get_sync_config()
        if parsed_args.max_concurrency is not None:
            sync_config = dataclasses.replace(
                sync_config, max_concurrency=parsed_args.max_concurrency
            )
        result = sync_billing_ledger(
            snapshot_dir=parsed_args.snapshot_dir,
            sync_config=sync_config,
            dry_run=parsed_args.dry_run,
            publish_crm=not parsed_args.no_crm,
        )
    except Exception:
        log.exception("Fatal error during billing sync")
        sys.exit(1)

    log.info(
        "Billing sync finished: rows=%s, attempted=%s, succeeded=%s, failed=%s, "
        "ignored_plans=%s",
        result.rows,
        result.attempted,
        result.succeeded,
        result.failed,
        len(result.ignored_plans),
    )


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
