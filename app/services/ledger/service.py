"""
Ledger service.

Deposits, withdrawals and explicit settlement against the account
store. Each operation is one optimistic transaction: read the account,
apply the pure ledger rule (which settles accrued interest first), write
it back. A deposit by a referred member credits the referrer in the same
transaction.

Rejections never raise: they come back as ``LedgerResult`` with an
``ErrorKind``. Unexpected exceptions propagate.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from loguru import logger

from app.config.settings import settings
from app.config.tiers import get_tier_table
from app.services.account.session import MemberSession, resolve_account_id
from app.services.ledger.results import LedgerResult
from app.services.referral.service import ReferralService
from app.store.base import AccountStore, StoreTransaction
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import is_caller_error
from app.utils.validation import parse_amount
from engine.core.accrual import apply_settlement, settle
from engine.core.errors import AccountNotFound, LedgerError
from engine.core.ledger import apply_deposit, apply_withdrawal, validate_deposit_amount
from engine.core.models import WithdrawalPolicy
from engine.core.tiers import TierTable


class LedgerService:
    """Balance operations on member accounts."""

    def __init__(
        self,
        store: AccountStore,
        tiers: TierTable | None = None,
        *,
        referral_service: ReferralService | None = None,
        referral_bonus_rate: Decimal | None = None,
        policy: WithdrawalPolicy | None = None,
        min_deposit: Decimal | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize ledger service.

        Args:
            store: Account store
            tiers: Tier table (defaults to the configured one)
            referral_service: Bonus crediting (built from the store if omitted)
            referral_bonus_rate: Overrides ``settings.referral_bonus_rate``
            policy: Withdrawal floor and fee (defaults to settings)
            min_deposit: Deposit floor (defaults to settings)
            clock: Source of ``now`` when the caller passes none
        """
        self.store = store
        self.tiers = tiers or get_tier_table()
        self.policy = policy or settings.withdrawal_policy()
        self.min_deposit = settings.min_deposit if min_deposit is None else min_deposit
        self.referral_service = referral_service or ReferralService(
            store, self.tiers, bonus_rate=referral_bonus_rate
        )
        self.clock = clock

    async def deposit(
        self,
        target: str | MemberSession,
        amount: Decimal | int | str,
        now: datetime | None = None,
    ) -> LedgerResult:
        """
        Deposit into an account.

        Args:
            target: Account id or member session
            amount: Deposit amount (> 0)
            now: Operation instant (clock if omitted)

        Returns:
            LedgerResult with the committed account and referral bonus
        """
        account_id = resolve_account_id(target)
        at = self._at(now)

        try:
            value = parse_amount(amount)
            validate_deposit_amount(value, self.min_deposit)

            async def _deposit(txn: StoreTransaction):
                current = await txn.get(account_id)
                if current is None:
                    raise AccountNotFound(account_id)

                outcome = apply_deposit(
                    current, value, at, self.tiers, self.min_deposit
                )
                stored = txn.put(outcome.account)
                bonus = await self.referral_service.apply_deposit_bonus(
                    txn, stored, value, at
                )
                return outcome, stored, bonus

            outcome, stored, bonus = await self.store.run_transaction(_deposit)
        except LedgerError as e:
            return self._rejected("Deposit", account_id, amount, e)

        logger.info(
            "Deposit applied",
            extra={
                "account_id": account_id,
                "amount": str(value),
                "accrued": str(outcome.settlement.accrued),
                "principal_after": str(stored.principal),
                "tier_before": outcome.previous_tier,
                "tier_after": stored.tier_name,
                "referrer_id": bonus.referrer_id,
                "referral_bonus": str(bonus.bonus),
            },
        )

        return LedgerResult(
            success=True,
            account=stored,
            settlement=outcome.settlement,
            previous_tier=outcome.previous_tier,
            referrer_id=None if bonus.skipped else bonus.referrer_id,
            referral_bonus=bonus.bonus,
        )

    async def withdraw(
        self,
        target: str | MemberSession,
        amount: Decimal | int | str,
        now: datetime | None = None,
    ) -> LedgerResult:
        """
        Withdraw from an account, earnings first.

        Args:
            target: Account id or member session
            amount: Requested amount; the fee is deducted on top
            now: Operation instant (clock if omitted)

        Returns:
            LedgerResult with the committed account and the breakdown
        """
        account_id = resolve_account_id(target)
        at = self._at(now)

        try:
            value = parse_amount(amount)

            async def _withdraw(txn: StoreTransaction):
                current = await txn.get(account_id)
                if current is None:
                    raise AccountNotFound(account_id)

                outcome = apply_withdrawal(current, value, at, self.tiers, self.policy)
                return outcome, txn.put(outcome.account)

            outcome, stored = await self.store.run_transaction(_withdraw)
        except LedgerError as e:
            return self._rejected("Withdrawal", account_id, amount, e)

        breakdown = outcome.breakdown
        logger.info(
            "Withdrawal applied",
            extra={
                "account_id": account_id,
                "amount": str(breakdown.amount),
                "fee": str(breakdown.fee),
                "from_earnings": str(breakdown.from_earnings),
                "from_principal": str(breakdown.from_principal),
                "tier_before": outcome.previous_tier,
                "tier_after": stored.tier_name,
            },
        )

        return LedgerResult(
            success=True,
            account=stored,
            settlement=outcome.settlement,
            breakdown=breakdown,
            previous_tier=outcome.previous_tier,
        )

    async def settle(
        self,
        target: str | MemberSession,
        now: datetime | None = None,
    ) -> LedgerResult:
        """
        Persist accrued earnings up to ``now``.

        Settling twice at the same instant writes nothing the second time.
        """
        account_id = resolve_account_id(target)
        at = self._at(now)

        async def _settle(txn: StoreTransaction):
            current = await txn.get(account_id)
            if current is None:
                raise AccountNotFound(account_id)

            settlement = settle(current, at, self.tiers)
            updated = apply_settlement(current, settlement)
            if updated == current:
                return settlement, current
            return settlement, txn.put(updated)

        try:
            settlement, stored = await self.store.run_transaction(_settle)
        except LedgerError as e:
            return self._rejected("Settlement", account_id, None, e)

        if settlement.accrued > 0:
            logger.info(
                "Earnings settled",
                extra={
                    "account_id": account_id,
                    "accrued": str(settlement.accrued),
                    "elapsed_seconds": str(settlement.elapsed_seconds),
                    "earnings_after": str(stored.earnings_balance),
                },
            )

        return LedgerResult(
            success=True,
            account=stored,
            settlement=settlement,
            previous_tier=stored.tier_name,
        )

    def _at(self, now: datetime | None) -> datetime:
        return self.clock() if now is None else ensure_utc(now)

    def _rejected(
        self,
        operation: str,
        account_id: str,
        amount: object,
        error: LedgerError,
    ) -> LedgerResult:
        extra = {
            "account_id": account_id,
            "kind": error.kind.value,
            "amount": None if amount is None else str(amount),
        }
        if is_caller_error(error):
            logger.warning("{} rejected: {}", operation, error.message, extra=extra)
        else:
            logger.error("{} failed: {}", operation, error.message, extra=extra)
        return LedgerResult.failure(error)
