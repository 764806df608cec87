"""
In-memory account store.

Process-local implementation of the document store. Commits are
compare-and-swap on each account's ``version``; used by tests and by
single-process deployments.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal

from app.store.base import AccountStore, StoreTransaction
from engine.core.errors import AccountAlreadyExists, AccountNotFound, TransactionConflict
from engine.core.models import Account, ReferralRecord


class MemoryStoreTransaction(StoreTransaction):
    """Transaction over ``InMemoryAccountStore``."""

    def __init__(self, store: "InMemoryAccountStore") -> None:
        self._store = store
        # Snapshot of every account read, None when it did not exist
        self.reads: dict[str, Account | None] = {}
        self.staged: dict[str, Account] = {}
        self.referral_deltas: list[tuple[str, str, Decimal, Decimal, datetime]] = []

    async def get(self, account_id: str) -> Account | None:
        if account_id in self.staged:
            return self.staged[account_id]
        if account_id not in self.reads:
            self.reads[account_id] = self._store._accounts.get(account_id)
        return self.reads[account_id]

    def put(self, account: Account) -> Account:
        read = self.reads.get(account.id)
        if read is None:
            raise ValueError(
                f"Account {account.id} must be read in this transaction before it is written"
            )
        staged = account.model_copy(update={"version": read.version + 1})
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
        self.referral_deltas.append(
            (referrer_id, referred_id, deposit_delta, bonus_delta, now)
        )


class InMemoryAccountStore(AccountStore):
    """Dictionary-backed account store with optimistic commits."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._accounts: dict[str, Account] = {}
        self._referrals: dict[str, dict[str, ReferralRecord]] = {}
        self._commit_lock = asyncio.Lock()

    async def get(self, account_id: str) -> Account:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    async def create(self, account: Account) -> Account:
        async with self._commit_lock:
            if account.id in self._accounts:
                raise AccountAlreadyExists(account.id)
            if account.referral_code and any(
                existing.referral_code == account.referral_code
                for existing in self._accounts.values()
            ):
                raise AccountAlreadyExists(account.id)

            stored = account.model_copy(update={"version": 1})
            self._accounts[account.id] = stored

        self.feed.publish(stored)
        return stored

    async def list_account_ids(
        self, settled_before: datetime | None = None
    ) -> list[str]:
        if settled_before is None:
            return sorted(self._accounts)
        stale = [
            account for account in self._accounts.values()
            if account.last_settled_at < settled_before
        ]
        return [
            account.id
            for account in sorted(stale, key=lambda acc: acc.last_settled_at)
        ]

    async def find_by_referral_code(self, referral_code: str) -> Account | None:
        for account in self._accounts.values():
            if account.referral_code == referral_code:
                return account
        return None

    async def get_referrals(self, referrer_id: str) -> list[ReferralRecord]:
        records = self._referrals.get(referrer_id, {})
        # created_at is always set by _merge_referral
        return sorted(records.values(), key=lambda record: record.created_at)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MemoryStoreTransaction]:
        txn = MemoryStoreTransaction(self)
        yield txn
        await self._commit(txn)

    async def _commit(self, txn: MemoryStoreTransaction) -> None:
        async with self._commit_lock:
            for account_id, read in txn.reads.items():
                current = self._accounts.get(account_id)
                read_version = read.version if read else None
                current_version = current.version if current else None
                if read_version != current_version:
                    raise TransactionConflict(
                        f"Account {account_id} changed during transaction "
                        f"(read version {read_version}, now {current_version})"
                    )

            for account in txn.staged.values():
                self._accounts[account.id] = account

            for referrer_id, referred_id, deposit, bonus, now in txn.referral_deltas:
                self._merge_referral(referrer_id, referred_id, deposit, bonus, now)

        for account in txn.staged.values():
            self.feed.publish(account)

    def _merge_referral(
        self,
        referrer_id: str,
        referred_id: str,
        deposit: Decimal,
        bonus: Decimal,
        now: datetime,
    ) -> None:
        records = self._referrals.setdefault(referrer_id, {})
        existing = records.get(referred_id)

        if existing is None:
            records[referred_id] = ReferralRecord(
                referrer_id=referrer_id,
                referred_id=referred_id,
                total_deposit=deposit,
                total_bonus=bonus,
                created_at=now,
                updated_at=now,
            )
            return

        records[referred_id] = existing.model_copy(
            update={
                "total_deposit": existing.total_deposit + deposit,
                "total_bonus": existing.total_bonus + bonus,
                "updated_at": now,
            }
        )
