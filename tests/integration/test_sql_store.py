"""
Integration tests for SqlAlchemyAccountStore.

Runs the store against a throwaway SQLite database through aiosqlite:
version_id_col optimistic locking, referral upserts, and the ledger and
batch services on top of it.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.config import database
from app.config.database import create_engine, create_session_maker
from app.models import Base
from app.services.account.service import AccountService
from app.services.ledger.service import LedgerService
from app.services.referral.service import ReferralService
from app.services.settlement.service import BatchSettlementService
from app.store.sql import SqlAlchemyAccountStore
from engine.core.errors import AccountAlreadyExists, AccountNotFound, ErrorKind, TransactionConflict
from engine.core.models import WithdrawalPolicy


pytestmark = pytest.mark.integration


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    """SQL store over a fresh SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'earnings.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield SqlAlchemyAccountStore(
        create_session_maker(engine), max_attempts=2, retry_base_delay=0
    )

    await engine.dispose()


@pytest.fixture
def sql_ledger(sql_store, tiers):
    return LedgerService(
        sql_store,
        tiers,
        referral_service=ReferralService(sql_store, tiers, bonus_rate=Decimal("0.05")),
        policy=WithdrawalPolicy(),
        min_deposit=Decimal("0"),
    )


class TestEngineFactory:
    """Test engine construction."""

    def test_no_engine_at_import(self):
        assert not hasattr(database, "engine")
        assert not hasattr(database, "async_session_maker")

    @pytest.mark.asyncio
    async def test_unpooled_engine(self, tmp_path):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'task.db'}", pooled=False)

        try:
            assert isinstance(engine.sync_engine.pool, NullPool)
        finally:
            await engine.dispose()


class TestSqlStoreBasics:
    """Test create and read paths."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, sql_store, make_account, now):
        created = await sql_store.create(make_account("alice", principal="1000", referral_code="ABC123"))

        loaded = await sql_store.get("alice")

        assert created.version == 1
        assert loaded.version == 1
        assert loaded.principal == Decimal("1000")
        assert loaded.tier_name == "Gold assets 1"
        assert loaded.last_settled_at == now
        assert loaded.last_settled_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_create(self, sql_store, make_account):
        await sql_store.create(make_account("alice"))

        with pytest.raises(AccountAlreadyExists):
            await sql_store.create(make_account("alice"))

    @pytest.mark.asyncio
    async def test_missing_account(self, sql_store):
        with pytest.raises(AccountNotFound):
            await sql_store.get("nobody")

    @pytest.mark.asyncio
    async def test_lookup_queries(self, sql_store, make_account, now):
        await sql_store.create(make_account(
            "alice", referral_code="ABC123", last_settled_at=now - timedelta(days=2),
        ))
        await sql_store.create(make_account("bob", last_settled_at=now))

        assert (await sql_store.find_by_referral_code("ABC123")).id == "alice"
        assert await sql_store.find_by_referral_code("NOPE00") is None
        assert await sql_store.list_account_ids() == ["alice", "bob"]
        assert await sql_store.list_account_ids(settled_before=now - timedelta(hours=24)) == ["alice"]


class TestSqlTransactions:
    """Test optimistic locking on the accounts table."""

    @pytest.mark.asyncio
    async def test_transactional_update(self, sql_store, make_account):
        await sql_store.create(make_account("alice"))

        updated = await sql_store.transactional_update(
            "alice", lambda account: account.model_copy(update={"earnings_balance": Decimal("7")})
        )

        assert updated.version == 2
        loaded = await sql_store.get("alice")
        assert loaded.version == 2
        assert loaded.earnings_balance == Decimal("7")

    @pytest.mark.asyncio
    async def test_stale_write_conflicts(self, sql_store, make_account):
        await sql_store.create(make_account("alice"))

        with pytest.raises(TransactionConflict):
            async with sql_store.transaction() as txn:
                account = await txn.get("alice")
                await sql_store.transactional_update(
                    "alice",
                    lambda current: current.model_copy(update={"earnings_balance": Decimal("1")}),
                )
                txn.put(account.model_copy(update={"principal": Decimal("999")}))

        loaded = await sql_store.get("alice")
        assert loaded.principal == 0
        assert loaded.earnings_balance == Decimal("1")

    @pytest.mark.asyncio
    async def test_watch_after_commit(self, sql_store, make_account):
        await sql_store.create(make_account("alice"))
        seen = []
        sql_store.watch("alice", seen.append)

        await sql_store.transactional_update(
            "alice", lambda account: account.model_copy(update={"auto_compound": False})
        )

        assert len(seen) == 1
        assert seen[0].auto_compound is False


class TestSqlServices:
    """Test services end-to-end on the SQL store."""

    @pytest.mark.asyncio
    async def test_deposit_with_referral(self, sql_store, sql_ledger, tiers, now):
        accounts = AccountService(sql_store, tiers)
        await accounts.register("bob", now=now)
        await accounts.register("alice", referred_by="bob", now=now)

        first = await sql_ledger.deposit("alice", Decimal("1000"), now=now)
        second = await sql_ledger.deposit("alice", Decimal("500"), now=now)

        assert first.success and second.success
        assert (await sql_store.get("alice")).principal == Decimal("1500")
        assert (await sql_store.get("bob")).earnings_balance == Decimal("75")
        [record] = await sql_store.get_referrals("bob")
        assert record.referred_id == "alice"
        assert record.total_deposit == Decimal("1500")
        assert record.total_bonus == Decimal("75")

    @pytest.mark.asyncio
    async def test_rejected_withdrawal_leaves_row(self, sql_store, sql_ledger, make_account, now):
        await sql_store.create(make_account("alice", principal="0", earnings="10"))

        result = await sql_ledger.withdraw("alice", Decimal("20"), now=now)

        assert result.error == ErrorKind.INSUFFICIENT_FUNDS
        loaded = await sql_store.get("alice")
        assert loaded.version == 1
        assert loaded.earnings_balance == Decimal("10")

    @pytest.mark.asyncio
    async def test_batch_settlement(self, sql_store, tiers, make_account, now):
        await sql_store.create(make_account(
            "alice", principal="10000", auto_compound=False,
            last_settled_at=now - timedelta(days=2),
        ))
        await sql_store.create(make_account("bob", principal="10000", last_settled_at=now))

        report = await BatchSettlementService(sql_store, tiers).settle_all_stale(now)

        assert report.processed == 1
        assert report.settled == 1
        alice = await sql_store.get("alice")
        assert alice.earnings_balance == Decimal("300")
        assert alice.last_settled_at == now
