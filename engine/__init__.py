"""
Earnings engine.

Standalone package with the pure membership-earnings logic: tier
resolution, time-based accrual, and deposit/withdrawal/referral rules.

Example:
    >>> from datetime import UTC, datetime, timedelta
    >>> from decimal import Decimal
    >>> from engine import Account, TierTable, settle
    >>>
    >>> tiers = TierTable.from_config([
    ...     {"name": "Observer", "min_deposit": "0", "max_deposit": "800", "daily_return_rate": "0"},
    ...     {"name": "Member", "min_deposit": "800", "max_deposit": None, "daily_return_rate": "0.015"},
    ... ])
    >>> start = datetime(2026, 1, 1, tzinfo=UTC)
    >>> account = Account(id="alice", principal=Decimal("10000"),
    ...                   tier_name="Member", last_settled_at=start,
    ...                   auto_compound=False)
    >>> settle(account, start + timedelta(days=1), tiers).accrued
    Decimal('150.000')
"""

from engine.constants import INFINITY, SECONDS_PER_DAY, ZERO, ZERO_TIER_NAME
from engine.core.accrual import apply_settlement, is_stale, settle, settle_account
from engine.core.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    BelowMinimumWithdrawal,
    ErrorKind,
    InsufficientFunds,
    InvalidAmount,
    InvalidReferral,
    LedgerError,
    TierConfigurationError,
    TransactionConflict,
)
from engine.core.ledger import (
    apply_deposit,
    apply_withdrawal,
    calculate_referral_bonus,
    credit_referral_bonus,
    plan_withdrawal,
)
from engine.core.models import (
    Account,
    DepositOutcome,
    ReferralCredit,
    ReferralRecord,
    Settlement,
    Tier,
    WithdrawalBreakdown,
    WithdrawalOutcome,
    WithdrawalPolicy,
)
from engine.core.tiers import TierTable


__version__ = "1.0.0"
__all__ = [
    # Constants
    "INFINITY",
    "SECONDS_PER_DAY",
    "ZERO",
    "ZERO_TIER_NAME",
    # Models
    "Account",
    "DepositOutcome",
    "ReferralCredit",
    "ReferralRecord",
    "Settlement",
    "Tier",
    "TierTable",
    "WithdrawalBreakdown",
    "WithdrawalOutcome",
    "WithdrawalPolicy",
    # Accrual
    "apply_settlement",
    "is_stale",
    "settle",
    "settle_account",
    # Ledger rules
    "apply_deposit",
    "apply_withdrawal",
    "calculate_referral_bonus",
    "credit_referral_bonus",
    "plan_withdrawal",
    # Errors
    "AccountAlreadyExists",
    "AccountNotFound",
    "BelowMinimumWithdrawal",
    "ErrorKind",
    "InsufficientFunds",
    "InvalidAmount",
    "InvalidReferral",
    "LedgerError",
    "TierConfigurationError",
    "TransactionConflict",
]
