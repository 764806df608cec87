"""
Tests for batch settlement.

The batch settles every stale account independently: one failure is
recorded and the rest are still settled.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.settlement.service import BatchSettlementService
from app.store.memory import InMemoryAccountStore


class FailingStore(InMemoryAccountStore):
    """Store that cannot update one specific account."""

    def __init__(self, failing_id: str, **kwargs):
        super().__init__(**kwargs)
        self.failing_id = failing_id

    async def transactional_update(self, account_id, mutator):
        if account_id == self.failing_id:
            raise RuntimeError("storage unavailable")
        return await super().transactional_update(account_id, mutator)


async def _seed(store, make_account, now):
    await store.create(make_account(
        "alice", principal="10000", auto_compound=False,
        last_settled_at=now - timedelta(days=2),
    ))
    await store.create(make_account(
        "bob", principal="1000", auto_compound=False,
        last_settled_at=now - timedelta(hours=25),
    ))
    await store.create(make_account(
        "carol", principal="10000",
        last_settled_at=now - timedelta(hours=1),
    ))


class TestSettleAllStale:
    """Test the batch job body."""

    @pytest.mark.asyncio
    async def test_only_stale_accounts_settled(self, store, tiers, make_account, now):
        await _seed(store, make_account, now)
        service = BatchSettlementService(store, tiers)

        report = await service.settle_all_stale(now, stale_threshold_hours=24)

        assert report.processed == 2
        assert report.settled == 2
        assert report.failed == 0
        alice = await store.get("alice")
        assert alice.earnings_balance == Decimal("300")
        assert alice.last_settled_at == now
        bob = await store.get("bob")
        assert bob.earnings_balance == Decimal("15.625")
        carol = await store.get("carol")
        assert carol.version == 1
        assert report.total_accrued == Decimal("315.625")

    @pytest.mark.asyncio
    async def test_second_run_finds_nothing(self, store, tiers, make_account, now):
        await _seed(store, make_account, now)
        service = BatchSettlementService(store, tiers)

        await service.settle_all_stale(now)
        report = await service.settle_all_stale(now)

        assert report.processed == 0
        assert report.settled == 0

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, tiers, make_account, now):
        store = FailingStore("alice", max_attempts=2, retry_base_delay=0)
        await _seed(store, make_account, now)
        service = BatchSettlementService(store, tiers)

        report = await service.settle_all_stale(now)

        assert report.processed == 2
        assert report.failed == 1
        assert report.settled == 1
        assert report.failures[0].account_id == "alice"
        assert "storage unavailable" in report.failures[0].error
        assert (await store.get("bob")).last_settled_at == now
        assert (await store.get("alice")).last_settled_at == now - timedelta(days=2)

    @pytest.mark.asyncio
    async def test_account_settled_meanwhile_is_skipped(self, store, tiers, make_account, now):
        """An account refreshed after listing is left alone."""
        await store.create(make_account(
            "alice", principal="10000", last_settled_at=now - timedelta(days=2),
        ))
        service = BatchSettlementService(store, tiers)
        original_list = store.list_account_ids

        async def list_then_settle(settled_before=None):
            ids = await original_list(settled_before=settled_before)
            await store.transactional_update(
                "alice", lambda account: account.model_copy(update={"last_settled_at": now})
            )
            return ids

        store.list_account_ids = list_then_settle

        report = await service.settle_all_stale(now)

        assert report.processed == 1
        assert report.skipped == 1
        assert report.settled == 0

    @pytest.mark.asyncio
    async def test_zero_tier_account_timestamp_advances(self, store, tiers, make_account, now):
        await store.create(make_account(
            "alice", principal="0", last_settled_at=now - timedelta(days=3),
        ))
        service = BatchSettlementService(store, tiers)

        report = await service.settle_all_stale(now)

        assert report.settled == 1
        assert report.total_accrued == 0
        assert (await store.get("alice")).last_settled_at == now
