"""
Referral service.

Credits the referral bonus that accompanies a deposit and reads the
referral sub-collection. Bonus crediting runs inside the depositor's
store transaction, so the deposit, the referrer's bonus and the
referral record commit together or not at all.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger

from app.config.settings import settings
from app.config.tiers import get_tier_table
from app.store.base import AccountStore, StoreTransaction
from engine.constants import ZERO
from engine.core.ledger import credit_referral_bonus
from engine.core.models import Account, ReferralRecord
from engine.core.tiers import TierTable


@dataclass
class ReferralBonusResult:
    """Outcome of the bonus step of a deposit."""

    referrer_id: str | None
    bonus: Decimal = ZERO
    skipped: bool = False
    referrer: Account | None = None


class ReferralService:
    """Referral bonus settlement and listing."""

    def __init__(
        self,
        store: AccountStore,
        tiers: TierTable | None = None,
        bonus_rate: Decimal | None = None,
    ) -> None:
        """
        Initialize referral service.

        Args:
            store: Account store
            tiers: Tier table (defaults to the configured one)
            bonus_rate: Share of the deposit credited to the referrer
        """
        self.store = store
        self.tiers = tiers or get_tier_table()
        self.bonus_rate = (
            settings.referral_bonus_rate if bonus_rate is None else bonus_rate
        )

    async def apply_deposit_bonus(
        self,
        txn: StoreTransaction,
        referred: Account,
        deposit_amount: Decimal,
        now: datetime,
    ) -> ReferralBonusResult:
        """
        Credit the referrer of ``referred`` for a deposit.

        Settles the referrer up to ``now``, adds the bonus to their
        earnings balance and merges the deposit into the referral record.
        A missing referrer is skipped with a warning.

        Args:
            txn: Open transaction of the deposit
            referred: Depositing account (as staged in ``txn``)
            deposit_amount: Deposited amount
            now: Operation instant

        Returns:
            ReferralBonusResult
        """
        referrer_id = referred.referred_by
        if not referrer_id:
            return ReferralBonusResult(referrer_id=None, skipped=True)

        referrer = await txn.get(referrer_id)
        if referrer is None:
            logger.warning(
                "Referrer {} of {} not found, bonus skipped",
                referrer_id,
                referred.id,
                extra={
                    "referred_id": referred.id,
                    "referrer_id": referrer_id,
                    "deposit_amount": str(deposit_amount),
                },
            )
            return ReferralBonusResult(referrer_id=referrer_id, skipped=True)

        credit = credit_referral_bonus(
            referrer, deposit_amount, self.bonus_rate, now, self.tiers
        )
        stored = txn.put(credit.referrer)

        await txn.upsert_referral(
            referrer_id,
            referred.id,
            deposit_delta=deposit_amount,
            bonus_delta=credit.bonus,
            now=now,
        )

        return ReferralBonusResult(
            referrer_id=referrer_id,
            bonus=credit.bonus,
            referrer=stored,
        )

    async def link_referral(
        self, referrer_id: str, referred_id: str, now: datetime
    ) -> bool:
        """
        Open an empty referral record for a newly registered member.

        Deposits later merge their volume and bonus into this record.

        Args:
            referrer_id: Referrer account id
            referred_id: New member account id
            now: Registration instant

        Returns:
            False if the referrer does not exist (no record is created)
        """

        async def _link(txn: StoreTransaction) -> bool:
            if await txn.get(referrer_id) is None:
                return False
            await txn.upsert_referral(
                referrer_id,
                referred_id,
                deposit_delta=ZERO,
                bonus_delta=ZERO,
                now=now,
            )
            return True

        linked = await self.store.run_transaction(_link)
        if not linked:
            logger.warning(
                "Referrer {} of {} not found, referral record not created",
                referrer_id,
                referred_id,
                extra={"referrer_id": referrer_id, "referred_id": referred_id},
            )
        return linked

    async def list_referrals(self, referrer_id: str) -> list[ReferralRecord]:
        """
        Get referral records of a referrer.

        Args:
            referrer_id: Referrer account id

        Returns:
            Records ordered by registration of the referred member
        """
        return await self.store.get_referrals(referrer_id)

    async def total_bonus(self, referrer_id: str) -> Decimal:
        """Sum of bonuses credited to a referrer."""
        records = await self.list_referrals(referrer_id)
        return sum((record.total_bonus for record in records), ZERO)
