#!/usr/bin/env python3
"""
Run batch settlement once.

Manual trigger for the daily job: settles every account whose earnings
were not settled within the stale threshold.

Usage:
    python scripts/settle_stale_accounts.py
    python scripts/settle_stale_accounts.py --hours 12 --no-lock
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from app.config.logging import setup_logging
from app.services.settlement.runner import run_stale_settlement
from app.utils.datetime_utils import ensure_utc


def main() -> int:
    parser = argparse.ArgumentParser(description="Settle stale member accounts")
    parser.add_argument(
        "--hours",
        type=int,
        default=None,
        help="Stale threshold in hours (default from settings)",
    )
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Settlement instant, ISO 8601 with timezone (default: current time)",
    )
    parser.add_argument(
        "--no-lock",
        action="store_true",
        help="Skip the Redis lock (Redis not available)",
    )
    args = parser.parse_args()

    if args.hours is not None and args.hours <= 0:
        parser.error("--hours must be positive")

    now = None
    if args.now is not None:
        try:
            now = ensure_utc(args.now)
        except ValueError as e:
            parser.error(str(e))

    setup_logging()

    report = asyncio.run(
        run_stale_settlement(
            now=now,
            stale_threshold_hours=args.hours,
            use_lock=not args.no_lock,
        )
    )
    if report is None:
        logger.warning("Another worker holds the settlement lock")
        return 1

    for failure in report.failures:
        logger.error(f"  {failure.account_id}: {failure.error}")

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
