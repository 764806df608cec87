"""
Accrual engine.

Pure settlement of time-based earnings. The caller always supplies
``now``; nothing here reads the clock or touches storage.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from loguru import logger

from engine.constants import SECONDS_PER_DAY, ZERO
from engine.core.errors import ErrorKind
from engine.core.models import Account, Settlement
from engine.core.tiers import TierTable


def elapsed_seconds(start: datetime, end: datetime) -> Decimal:
    """
    Exact number of seconds between two datetimes as a Decimal.

    May be negative when ``end`` precedes ``start``.
    """
    delta: timedelta = end - start
    return (
        Decimal(delta.days) * SECONDS_PER_DAY
        + Decimal(delta.seconds)
        + Decimal(delta.microseconds) / Decimal(1_000_000)
    )


def accrue(base: Decimal, daily_rate: Decimal, seconds: Decimal) -> Decimal:
    """
    Simple interest over an interval.

    Formula: base * daily_rate * seconds / 86400

    Returns:
        Accrued amount (0 for non-positive inputs)
    """
    if base <= 0 or daily_rate <= 0 or seconds <= 0:
        return ZERO
    return base * daily_rate * seconds / SECONDS_PER_DAY


def settle(account: Account, now: datetime, tiers: TierTable) -> Settlement:
    """
    Compute earnings accrued since the account's last settlement.

    Calling twice with the same ``now`` is a no-op the second time.
    A ``now`` earlier than ``last_settled_at`` is treated as zero elapsed
    time and leaves ``last_settled_at`` where it was.

    Args:
        account: Current account snapshot
        now: Settlement instant
        tiers: Tier table used to resolve the daily rate

    Returns:
        Settlement with the new earnings balance and timestamp
    """
    seconds = elapsed_seconds(account.last_settled_at, now)
    settled_at = now

    if seconds < 0:
        logger.warning(
            "Negative elapsed time, clamping to zero",
            extra={
                "account_id": account.id,
                "kind": ErrorKind.NEGATIVE_ELAPSED_TIME.value,
                "last_settled_at": account.last_settled_at.isoformat(),
                "now": now.isoformat(),
            },
        )
        seconds = ZERO
        settled_at = account.last_settled_at

    tier = tiers.resolve(account.principal)

    if tier.daily_return_rate == 0 or account.principal == 0:
        accrued = ZERO
    else:
        base = account.principal
        if account.auto_compound:
            base += account.earnings_balance
        accrued = accrue(base, tier.daily_return_rate, seconds)

    return Settlement(
        earnings_balance=account.earnings_balance + accrued,
        last_settled_at=settled_at,
        accrued=accrued,
        elapsed_seconds=seconds,
        tier_name=tier.name,
    )


def apply_settlement(account: Account, settlement: Settlement) -> Account:
    """Return a copy of the account with the settlement folded in."""
    return account.model_copy(
        update={
            "earnings_balance": settlement.earnings_balance,
            "last_settled_at": settlement.last_settled_at,
            "tier_name": settlement.tier_name,
        }
    )


def settle_account(account: Account, now: datetime, tiers: TierTable) -> Account:
    """Settle and apply in one step."""
    return apply_settlement(account, settle(account, now, tiers))


def is_stale(account: Account, now: datetime, threshold: timedelta) -> bool:
    """Whether the last settlement is older than ``threshold``."""
    return now - account.last_settled_at > threshold
