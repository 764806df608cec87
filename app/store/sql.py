"""
SQLAlchemy account store.

Each transaction is one ``AsyncSession``. ``AccountModel.version`` is a
``version_id_col``: every UPDATE is guarded by the version read, so a
concurrent writer makes the flush fail with ``StaleDataError``, which is
surfaced as ``TransactionConflict`` and replayed by ``run_transaction``.

Watch notifications cover commits made through this process only.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.models.account import AccountModel
from app.repositories.account_repository import AccountRepository
from app.repositories.referral_repository import ReferralRepository
from app.store.base import AccountStore, StoreTransaction
from engine.core.errors import AccountAlreadyExists, AccountNotFound, TransactionConflict
from engine.core.models import Account, ReferralRecord


class SqlStoreTransaction(StoreTransaction):
    """Transaction bound to one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.account_repo = AccountRepository(session)
        self.referral_repo = ReferralRepository(session)
        self._rows: dict[str, AccountModel] = {}
        self._reads: dict[str, Account] = {}
        self.staged: dict[str, Account] = {}

    async def get(self, account_id: str) -> Account | None:
        if account_id in self.staged:
            return self.staged[account_id]
        if account_id in self._reads:
            return self._reads[account_id]

        row = await self.account_repo.get_by_id(account_id)
        if row is None:
            return None

        snapshot = row.to_domain()
        self._rows[account_id] = row
        self._reads[account_id] = snapshot
        return snapshot

    def put(self, account: Account) -> Account:
        row = self._rows.get(account.id)
        if row is None:
            raise ValueError(
                f"Account {account.id} must be read in this transaction before it is written"
            )
        row.apply_domain(account)

        staged = account.model_copy(
            update={"version": self._reads[account.id].version + 1}
        )
        self.staged[account.id] = staged
        return staged

    async def upsert_referral(
        self,
        referrer_id: str,
        referred_id: str,
        *,
        deposit_delta: Decimal,
        bonus_delta: Decimal,
        now: datetime,
    ) -> None:
        row = await self.referral_repo.get_pair(referrer_id, referred_id)

        if row is None:
            await self.referral_repo.create(
                referrer_id=referrer_id,
                referred_id=referred_id,
                total_deposit=deposit_delta,
                total_bonus=bonus_delta,
                created_at=now,
                updated_at=now,
            )
            return

        row.total_deposit = row.total_deposit + deposit_delta
        row.total_bonus = row.total_bonus + bonus_delta
        row.updated_at = now


class SqlAlchemyAccountStore(AccountStore):
    """Account store backed by the ``accounts`` and ``referrals`` tables."""

    def __init__(
        self, session_maker: async_sessionmaker[AsyncSession], **kwargs
    ) -> None:
        super().__init__(**kwargs)
        self.session_maker = session_maker

    async def get(self, account_id: str) -> Account:
        async with self.session_maker() as session:
            row = await AccountRepository(session).get_by_id(account_id)
            if row is None:
                raise AccountNotFound(account_id)
            return row.to_domain()

    async def create(self, account: Account) -> Account:
        async with self.session_maker() as session:
            row = AccountModel.from_domain(account)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(
                    f"Account {account.id} rejected by unique constraint: {e.orig}"
                )
                raise AccountAlreadyExists(account.id) from e
            stored = row.to_domain()

        self.feed.publish(stored)
        return stored

    async def list_account_ids(
        self, settled_before: datetime | None = None
    ) -> list[str]:
        async with self.session_maker() as session:
            repo = AccountRepository(session)
            if settled_before is None:
                return await repo.list_ids()
            return await repo.list_ids_settled_before(settled_before)

    async def find_by_referral_code(self, referral_code: str) -> Account | None:
        async with self.session_maker() as session:
            row = await AccountRepository(session).get_by_referral_code(referral_code)
            return row.to_domain() if row else None

    async def get_referrals(self, referrer_id: str) -> list[ReferralRecord]:
        async with self.session_maker() as session:
            rows = await ReferralRepository(session).get_by_referrer(referrer_id)
            return [row.to_domain() for row in rows]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlStoreTransaction]:
        async with self.session_maker() as session:
            txn = SqlStoreTransaction(session)
            try:
                yield txn
                await session.commit()
            except (StaleDataError, IntegrityError) as e:
                await session.rollback()
                raise TransactionConflict(
                    f"Concurrent update detected: {e}"
                ) from e
            except Exception:
                await session.rollback()
                raise

        for account in txn.staged.values():
            self.feed.publish(account)
