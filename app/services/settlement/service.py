"""
Batch settlement service.

Authoritative settlement of every account whose last settlement is older
than the stale threshold. Accounts are processed one by one, each in its
own transaction; a failure is logged and recorded and the batch moves on.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from loguru import logger

from app.config.settings import settings
from app.config.tiers import get_tier_table
from app.store.base import AccountStore
from app.utils.datetime_utils import ensure_utc
from engine.constants import ZERO
from engine.core.accrual import apply_settlement, is_stale, settle
from engine.core.errors import AccountNotFound
from engine.core.models import Account
from engine.core.tiers import TierTable


@dataclass
class SettlementFailure:
    """One account the batch could not settle."""

    account_id: str
    error: str


@dataclass
class BatchSettlementReport:
    """Summary of one batch run."""

    processed: int = 0
    settled: int = 0
    skipped: int = 0
    failed: int = 0
    failures: list[SettlementFailure] = field(default_factory=list)
    total_accrued: Decimal = ZERO


class BatchSettlementService:
    """Settles stale accounts in bulk."""

    def __init__(self, store: AccountStore, tiers: TierTable | None = None) -> None:
        """
        Initialize batch settlement service.

        Args:
            store: Account store
            tiers: Tier table (defaults to the configured one)
        """
        self.store = store
        self.tiers = tiers or get_tier_table()

    async def settle_all_stale(
        self,
        now: datetime,
        stale_threshold_hours: int | None = None,
    ) -> BatchSettlementReport:
        """
        Settle every account not settled within the threshold.

        Args:
            now: Settlement instant for the whole batch
            stale_threshold_hours: Staleness threshold (defaults to settings)

        Returns:
            BatchSettlementReport
        """
        now = ensure_utc(now)
        hours = (
            settings.settlement_stale_threshold_hours
            if stale_threshold_hours is None
            else stale_threshold_hours
        )
        threshold = timedelta(hours=hours)

        account_ids = await self.store.list_account_ids(settled_before=now - threshold)
        report = BatchSettlementReport()

        logger.info(f"Batch settlement started: {len(account_ids)} stale accounts")

        for account_id in account_ids:
            report.processed += 1
            try:
                accrued = await self._settle_one(account_id, now, threshold)
            except AccountNotFound:
                logger.warning(f"Account {account_id} disappeared before settlement")
                report.skipped += 1
                continue
            except Exception as e:
                logger.exception(f"Failed to settle account {account_id}: {e}")
                report.failed += 1
                report.failures.append(
                    SettlementFailure(account_id=account_id, error=str(e))
                )
                continue

            if accrued is None:
                report.skipped += 1
            else:
                report.settled += 1
                report.total_accrued += accrued

        logger.info(
            f"Batch settlement finished: processed={report.processed}, "
            f"settled={report.settled}, skipped={report.skipped}, "
            f"failed={report.failed}, accrued={report.total_accrued}"
        )
        return report

    async def _settle_one(
        self, account_id: str, now: datetime, threshold: timedelta
    ) -> Decimal | None:
        """
        Settle one account.

        Returns:
            Accrued amount, or None when the account was no longer stale
        """
        accrued: list[Decimal] = []

        def _mutate(current: Account) -> Account:
            # Re-check: another writer may have settled it since listing
            accrued.clear()
            if not is_stale(current, now, threshold):
                return current
            settlement = settle(current, now, self.tiers)
            accrued.append(settlement.accrued)
            return apply_settlement(current, settlement)

        await self.store.transactional_update(account_id, _mutate)
        return accrued[0] if accrued else None
