"""
Tests for LedgerService.

Every operation returns a LedgerResult; rejections carry an ErrorKind and
leave the store untouched.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.account.session import MemberSession
from app.services.ledger.service import LedgerService
from app.store.memory import InMemoryAccountStore
from engine.core.errors import ErrorKind, TransactionConflict
from engine.core.models import WithdrawalPolicy


class ConflictingStore(InMemoryAccountStore):
    """Store whose every commit loses a race."""

    async def _commit(self, txn):
        raise TransactionConflict("forced conflict")


class TestDeposit:
    """Test deposits through the service."""

    @pytest.mark.asyncio
    async def test_deposit_success(self, store, accounts, ledger, now):
        await accounts.register("alice", now=now)

        result = await ledger.deposit("alice", Decimal("3000"), now=now)

        assert result.success is True
        assert result.error is None
        assert result.account.principal == Decimal("3000")
        assert result.account.tier_name == "Gold asset 2"
        assert result.previous_tier == "Observer"
        assert result.tier_changed is True
        assert await store.get("alice") == result.account

    @pytest.mark.asyncio
    async def test_deposit_accepts_string_amount(self, accounts, ledger, now):
        await accounts.register("alice", now=now)

        result = await ledger.deposit("alice", "1200.50", now=now)

        assert result.account.principal == Decimal("1200.50")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), "abc", 10.5])
    async def test_invalid_amount(self, store, accounts, ledger, now, amount):
        await accounts.register("alice", now=now)

        result = await ledger.deposit("alice", amount, now=now)

        assert result.success is False
        assert result.error == ErrorKind.INVALID_AMOUNT
        assert result.error_message
        assert (await store.get("alice")).version == 1

    @pytest.mark.asyncio
    async def test_deposit_below_configured_floor(self, store, accounts, tiers, clock, now):
        await accounts.register("alice", now=now)
        service = LedgerService(store, tiers, min_deposit=Decimal("1"), clock=clock)

        result = await service.deposit("alice", Decimal("0.5"), now=now)

        assert result.error == ErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_deposit_missing_account(self, ledger, now):
        result = await ledger.deposit("nobody", Decimal("10"), now=now)

        assert result.success is False
        assert result.error == ErrorKind.ACCOUNT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_deposit_uses_clock_when_now_omitted(self, accounts, ledger, clock):
        await accounts.register("alice")
        later = clock.advance(hours=3)

        result = await ledger.deposit("alice", Decimal("100"))

        assert result.account.last_settled_at == later

    @pytest.mark.asyncio
    async def test_member_session_target(self, accounts, ledger, now):
        await accounts.register("alice", now=now)

        result = await ledger.deposit(MemberSession("alice"), Decimal("100"), now=now)

        assert result.account.id == "alice"

    @pytest.mark.asyncio
    async def test_concurrent_deposits_lose_nothing(self, store, accounts, ledger, now):
        await accounts.register("alice", now=now)

        results = await asyncio.gather(
            *(ledger.deposit("alice", Decimal("100"), now=now) for _ in range(10))
        )

        assert all(result.success for result in results)
        assert (await store.get("alice")).principal == Decimal("1000")

    @pytest.mark.asyncio
    async def test_conflict_after_retries_is_reported(self, tiers, make_account, now):
        store = ConflictingStore(max_attempts=2, retry_base_delay=0)
        await store.create(make_account("alice"))
        service = LedgerService(store, tiers)

        result = await service.deposit("alice", Decimal("10"), now=now)

        assert result.success is False
        assert result.error == ErrorKind.TRANSACTION_CONFLICT


class TestWithdraw:
    """Test withdrawals through the service."""

    @pytest.mark.asyncio
    async def test_withdraw_with_fee(self, store, tiers, make_account, now):
        await store.create(make_account("alice", principal="1000", earnings="100"))
        service = LedgerService(
            store, tiers, policy=WithdrawalPolicy(fee_rate=Decimal("0.08"))
        )

        result = await service.withdraw("alice", Decimal("50"), now=now)

        assert result.success is True
        assert result.breakdown.total_deduction == Decimal("54")
        assert result.account.earnings_balance == Decimal("46")
        assert result.account.principal == Decimal("1000")

    @pytest.mark.asyncio
    async def test_insufficient_funds_no_state_change(self, store, ledger, make_account, now):
        """Principal 0, earnings 10, withdraw 20 -> rejected, nothing written."""
        before = await store.create(make_account("alice", principal="0", earnings="10"))

        result = await ledger.withdraw("alice", Decimal("20"), now=now)

        assert result.success is False
        assert result.error == ErrorKind.INSUFFICIENT_FUNDS
        assert await store.get("alice") == before

    @pytest.mark.asyncio
    async def test_below_minimum(self, store, tiers, make_account, now):
        await store.create(make_account("alice", principal="1000"))
        service = LedgerService(
            store, tiers, policy=WithdrawalPolicy(min_withdrawal=Decimal("300"))
        )

        result = await service.withdraw("alice", Decimal("100"), now=now)

        assert result.error == ErrorKind.BELOW_MINIMUM_WITHDRAWAL

    @pytest.mark.asyncio
    async def test_withdraw_missing_account(self, ledger, now):
        result = await ledger.withdraw("nobody", Decimal("10"), now=now)

        assert result.error == ErrorKind.ACCOUNT_NOT_FOUND


class TestSettle:
    """Test explicit settlement."""

    @pytest.mark.asyncio
    async def test_settle_persists_earnings(self, store, ledger, make_account, now):
        await store.create(make_account("alice", principal="10000", auto_compound=False))

        result = await ledger.settle("alice", now=now + timedelta(days=1))

        assert result.success is True
        assert result.settlement.accrued == Decimal("150")
        stored = await store.get("alice")
        assert stored.earnings_balance == Decimal("150")
        assert stored.last_settled_at == now + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_settle_twice_writes_once(self, store, ledger, make_account, now):
        await store.create(make_account("alice", principal="10000"))
        later = now + timedelta(hours=5)

        first = await ledger.settle("alice", now=later)
        second = await ledger.settle("alice", now=later)

        assert second.settlement.accrued == 0
        assert second.account == first.account
        assert (await store.get("alice")).version == 2

    @pytest.mark.asyncio
    async def test_settle_missing_account(self, ledger, now):
        result = await ledger.settle("nobody", now=now)

        assert result.error == ErrorKind.ACCOUNT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_naive_now_is_a_programming_error(self, store, ledger, make_account, now):
        await store.create(make_account("alice"))

        with pytest.raises(ValueError):
            await ledger.settle("alice", now=now.replace(tzinfo=None))
