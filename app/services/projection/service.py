"""
Live earnings projection.

Read-only view of what an account has earned "right now": the persisted
state settled speculatively up to the current instant. Nothing here
writes to the store; persisted settlement only happens through the
ledger service and the batch job.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger

from app.config.settings import settings
from app.config.tiers import get_tier_table
from app.services.account.session import MemberSession
from app.store.base import AccountStore
from app.utils.datetime_utils import utc_now
from engine.core.accrual import settle
from engine.core.models import Account
from engine.core.tiers import TierTable
from engine.utils.formatters import format_currency, format_rate


@dataclass(frozen=True)
class EarningsSnapshot:
    """Account summary at one instant."""

    account_id: str
    as_of: datetime
    tier_name: str
    tier_color: str
    daily_return_rate: Decimal
    apy: Decimal
    principal: Decimal
    persisted_earnings: Decimal
    projected_earnings: Decimal
    auto_compound: bool

    @property
    def pending_earnings(self) -> Decimal:
        """Accrued since the last persisted settlement."""
        return self.projected_earnings - self.persisted_earnings

    @property
    def total_balance(self) -> Decimal:
        return self.principal + self.projected_earnings

    def format_lines(self, currency: str = "Br") -> list[str]:
        """Human-readable summary lines."""
        return [
            f"Tier: {self.tier_name} ({format_rate(self.daily_return_rate)} daily, "
            f"APY {format_rate(self.apy)})",
            f"Principal: {format_currency(self.principal, currency)}",
            f"Earnings: {format_currency(self.projected_earnings, currency, decimals=6)}",
            f"Total: {format_currency(self.total_balance, currency)}",
        ]


class EarningsProjector:
    """Builds snapshots from persisted account state."""

    def __init__(self, tiers: TierTable | None = None) -> None:
        self.tiers = tiers or get_tier_table()

    def snapshot(self, account: Account, now: datetime) -> EarningsSnapshot:
        """
        Project an account's earnings up to ``now`` without persisting.

        Args:
            account: Last persisted state
            now: Projection instant

        Returns:
            EarningsSnapshot
        """
        settlement = settle(account, now, self.tiers)
        tier = self.tiers.get(settlement.tier_name)

        return EarningsSnapshot(
            account_id=account.id,
            as_of=now,
            tier_name=tier.name,
            tier_color=tier.color,
            daily_return_rate=tier.daily_return_rate,
            apy=tier.apy,
            principal=account.principal,
            persisted_earnings=account.earnings_balance,
            projected_earnings=settlement.earnings_balance,
            auto_compound=account.auto_compound,
        )


class EarningsTicker:
    """
    Async iterator of snapshots at a fixed cadence.

    Loads the account once, then follows committed changes through
    ``store.watch``. Usage:

        async with EarningsTicker(store, session) as ticker:
            async for snapshot in ticker:
                render(snapshot)
    """

    def __init__(
        self,
        store: AccountStore,
        session: MemberSession,
        projector: EarningsProjector | None = None,
        interval: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.session = session
        self.projector = projector or EarningsProjector()
        self.interval = settings.ticker_interval_seconds if interval is None else interval
        self.clock = clock
        self._account: Account | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._closed = False
        self._emitted = False

    @property
    def account(self) -> Account | None:
        """Latest persisted state seen by the ticker."""
        return self._account

    async def start(self) -> None:
        """Load the account and subscribe to its changes."""
        if self._unsubscribe is not None:
            return
        self._account = await self.store.get(self.session.account_id)
        self._unsubscribe = self.store.watch(self.session.account_id, self._on_change)
        logger.debug(f"Earnings ticker started for {self.session.account_id}")

    def close(self) -> None:
        """Stop ticking and drop the subscription."""
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, account: Account) -> None:
        if self._account is None or account.version >= self._account.version:
            self._account = account

    def __aiter__(self) -> "EarningsTicker":
        return self

    async def __anext__(self) -> EarningsSnapshot:
        if self._closed:
            raise StopAsyncIteration

        await self.start()
        if self._emitted:
            await asyncio.sleep(self.interval)
            if self._closed:
                raise StopAsyncIteration

        self._emitted = True
        return self.projector.snapshot(self._account, self.clock())

    async def __aenter__(self) -> "EarningsTicker":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
