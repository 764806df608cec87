"""Typed results of ledger operations."""

from dataclasses import dataclass
from decimal import Decimal

from engine.constants import ZERO
from engine.core.errors import ErrorKind, LedgerError
from engine.core.models import Account, Settlement, WithdrawalBreakdown


@dataclass
class LedgerResult:
    """
    Result of a deposit, withdrawal or settlement.

    On failure ``error`` carries the kind of rejection and nothing was
    written; on success ``account`` is the committed snapshot.
    """

    success: bool
    account: Account | None = None
    error: ErrorKind | None = None
    error_message: str | None = None
    settlement: Settlement | None = None
    breakdown: WithdrawalBreakdown | None = None
    previous_tier: str | None = None
    referrer_id: str | None = None
    referral_bonus: Decimal = ZERO

    @classmethod
    def failure(cls, error: LedgerError) -> "LedgerResult":
        """Build a failed result from a ledger error."""
        return cls(success=False, error=error.kind, error_message=error.message)

    @property
    def tier_changed(self) -> bool:
        if not self.success or self.account is None or self.previous_tier is None:
            return False
        return self.account.tier_name != self.previous_tier
