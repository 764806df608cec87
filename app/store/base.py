"""
Account document store contract.

Every mutation runs as an optimistic read-modify-write transaction: the
transaction remembers the version of each account it read and the commit
fails with ``TransactionConflict`` if any of them changed meanwhile.
``run_transaction`` replays the whole body a bounded number of times.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from loguru import logger

from app.config.settings import settings
from app.utils.exceptions import MUST_RETRY
from engine.core.errors import AccountNotFound
from engine.core.models import Account, ReferralRecord


T = TypeVar("T")

Mutator = Callable[[Account], Account]
WatchCallback = Callable[[Account], None]


class ChangeFeed:
    """In-process fan-out of committed account snapshots."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[WatchCallback]] = defaultdict(list)

    def subscribe(
        self, account_id: str, callback: WatchCallback
    ) -> Callable[[], None]:
        """
        Register a callback for one account.

        Returns:
            Function that removes the subscription
        """
        self._subscribers[account_id].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(account_id, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(account_id, None)

        return unsubscribe

    def publish(self, account: Account) -> None:
        """Deliver a committed snapshot; subscriber errors never reach the writer."""
        for callback in list(self._subscribers.get(account.id, ())):
            try:
                callback(account)
            except Exception:
                logger.exception(
                    f"Watch callback failed for account {account.id}"
                )


class StoreTransaction(ABC):
    """One optimistic transaction over account documents."""

    @abstractmethod
    async def get(self, account_id: str) -> Account | None:
        """Read an account (repeatable within the transaction)."""

    @abstractmethod
    def put(self, account: Account) -> Account:
        """
        Stage a write of an account read earlier in this transaction.

        Returns:
            The snapshot as it will be stored (with its new version)
        """

    @abstractmethod
    async def upsert_referral(
        self,
        referrer_id: str,
        referred_id: str,
        *,
        deposit_delta: Decimal,
        bonus_delta: Decimal,
        now: datetime,
    ) -> None:
        """Merge deposit and bonus increments into a referral record."""


class AccountStore(ABC):
    """
    Key-value document store for accounts and their referral records.

    Subclasses provide storage; this base adds bounded transaction
    retries, ``transactional_update`` and change watching.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        retry_base_delay: float | None = None,
    ) -> None:
        self.max_attempts = max_attempts or settings.transaction_max_attempts
        self.retry_base_delay = (
            settings.transaction_retry_base_delay
            if retry_base_delay is None
            else retry_base_delay
        )
        self.feed = ChangeFeed()

    @abstractmethod
    async def get(self, account_id: str) -> Account:
        """
        Raises:
            AccountNotFound: If no such account
        """

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """
        Raises:
            AccountAlreadyExists: If the id or referral code is taken
        """

    @abstractmethod
    async def list_account_ids(
        self, settled_before: datetime | None = None
    ) -> list[str]:
        """IDs of all accounts, optionally only those settled before a cutoff."""

    @abstractmethod
    async def find_by_referral_code(self, referral_code: str) -> Account | None:
        """Account owning a referral code."""

    @abstractmethod
    async def get_referrals(self, referrer_id: str) -> list[ReferralRecord]:
        """Referral records under a referrer."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """
        Open a transaction.

        Commits on clean exit; raises ``TransactionConflict`` when a read
        account changed; writes nothing when the body raises.
        """

    async def run_transaction(
        self, fn: Callable[[StoreTransaction], Awaitable[T]]
    ) -> T:
        """
        Run ``fn`` in a transaction, replaying it on conflicts.

        Args:
            fn: Transaction body; must be safe to run more than once

        Returns:
            Value returned by the committed attempt

        Raises:
            TransactionConflict: If every attempt lost a race
        """
        for attempt in range(self.max_attempts):
            try:
                async with self.transaction() as txn:
                    result = await fn(txn)
                return result
            except MUST_RETRY as e:
                if attempt == self.max_attempts - 1:
                    logger.error(
                        f"Transaction failed after {self.max_attempts} attempts: {e}"
                    )
                    raise

                delay = (
                    self.retry_base_delay * (2 ** attempt)
                    + random.uniform(0, self.retry_base_delay)
                )
                logger.warning(
                    f"Transaction conflict (attempt {attempt + 1}/"
                    f"{self.max_attempts}), retrying in {delay:.3f}s"
                )
                await asyncio.sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover

    async def transactional_update(
        self, account_id: str, mutator: Mutator
    ) -> Account:
        """
        Apply ``mutator`` to the current account state atomically.

        Returning the same object from ``mutator`` writes nothing.

        Raises:
            AccountNotFound: If no such account
            TransactionConflict: If retries are exhausted
        """

        async def _apply(txn: StoreTransaction) -> Account:
            current = await txn.get(account_id)
            if current is None:
                raise AccountNotFound(account_id)

            updated = mutator(current)
            if updated is current:
                return current
            return txn.put(updated)

        return await self.run_transaction(_apply)

    def watch(
        self, account_id: str, callback: WatchCallback
    ) -> Callable[[], None]:
        """
        Subscribe to committed changes of one account.

        Returns:
            Function that cancels the subscription
        """
        return self.feed.subscribe(account_id, callback)
