"""
Earnings settlement task.

Settles every account whose earnings were not settled for longer than
the stale threshold. Scheduled once a day.
"""

import asyncio

import dramatiq
from loguru import logger

from app.services.settlement.runner import run_stale_settlement
from jobs.broker import SETTLEMENT_MAX_RETRIES, SETTLEMENT_TIME_LIMIT_MS, broker


@dramatiq.actor(
    broker=broker,
    max_retries=SETTLEMENT_MAX_RETRIES,
    time_limit=SETTLEMENT_TIME_LIMIT_MS,
)
def settle_stale_accounts(stale_threshold_hours: int | None = None) -> None:
    """
    Settle stale accounts.

    Args:
        stale_threshold_hours: Override for the configured threshold
    """
    logger.info("Starting earnings settlement...")

    try:
        report = asyncio.run(
            run_stale_settlement(stale_threshold_hours=stale_threshold_hours)
        )
    except Exception as e:
        logger.exception(f"Earnings settlement failed: {e}")
        raise

    if report is None:
        return

    if report.failed:
        logger.warning(
            f"Earnings settlement complete with {report.failed} failures: "
            f"{', '.join(f.account_id for f in report.failures)}"
        )
    else:
        logger.info(
            f"Earnings settlement complete: {report.settled} settled, "
            f"{report.skipped} skipped"
        )
