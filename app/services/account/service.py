"""
Account service.

Member registration and account preferences.
"""

import secrets
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from app.config.tiers import get_tier_table
from app.services.account.session import MemberSession, resolve_account_id
from app.services.referral.service import ReferralService
from app.store.base import AccountStore
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.validation import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    normalize_referral_code,
    validate_account_id,
)
from engine.constants import ZERO
from engine.core.accrual import settle_account
from engine.core.errors import AccountAlreadyExists, AccountNotFound, InvalidReferral
from engine.core.models import Account
from engine.core.tiers import TierTable


# Attempts to draw an unused referral code
REFERRAL_CODE_ATTEMPTS = 10


def generate_referral_code() -> str:
    """Random 6-character upper-case alphanumeric code."""
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
    )


class AccountService:
    """Registration and per-account settings."""

    def __init__(
        self,
        store: AccountStore,
        tiers: TierTable | None = None,
        clock: Callable[[], datetime] = utc_now,
        referral_service: ReferralService | None = None,
    ) -> None:
        self.store = store
        self.tiers = tiers or get_tier_table()
        self.clock = clock
        self.referral_service = referral_service or ReferralService(store, self.tiers)

    async def register(
        self,
        account_id: str,
        referred_by: str | None = None,
        referral_code: str | None = None,
        auto_compound: bool = True,
        now: datetime | None = None,
    ) -> Account:
        """
        Create a member account with zero balance.

        A referred member gets an empty referral record under the referrer
        right away, if the referrer exists.

        Args:
            account_id: Unique member id (username)
            referred_by: Referrer account id; not checked for existence
            referral_code: Another member's referral code, resolved to
                ``referred_by``
            auto_compound: Compound earnings (on by default)
            now: Registration instant, becomes ``last_settled_at``

        Returns:
            Created account

        Raises:
            ValueError: If ``account_id`` is malformed
            AccountAlreadyExists: If ``account_id`` is taken
            InvalidReferral: On self-referral or an unknown referral code
        """
        if not validate_account_id(account_id):
            raise ValueError(f"Invalid account id: {account_id!r}")

        if referral_code:
            referrer = await self.resolve_referral_code(referral_code)
            if referrer is None:
                raise InvalidReferral(f"Unknown referral code {referral_code!r}")
            if referred_by and referred_by != referrer.id:
                raise InvalidReferral(
                    f"Referral code belongs to {referrer.id}, not {referred_by}"
                )
            referred_by = referrer.id

        if referred_by == account_id:
            raise InvalidReferral(f"Account {account_id} cannot refer itself")

        at = self.clock() if now is None else ensure_utc(now)

        for attempt in range(REFERRAL_CODE_ATTEMPTS):
            account = Account(
                id=account_id,
                principal=ZERO,
                earnings_balance=ZERO,
                tier_name=self.tiers.zero_tier.name,
                last_settled_at=at,
                referred_by=referred_by,
                auto_compound=auto_compound,
                referral_code=generate_referral_code(),
                created_at=at,
            )
            try:
                created = await self.store.create(account)
            except AccountAlreadyExists:
                if await self._exists(account_id):
                    raise
                logger.debug(
                    f"Referral code collision on attempt {attempt + 1}, redrawing"
                )
                continue

            if created.referred_by:
                await self.referral_service.link_referral(
                    created.referred_by, created.id, at
                )

            logger.info(
                "Account registered",
                extra={
                    "account_id": created.id,
                    "referred_by": created.referred_by,
                    "referral_code": created.referral_code,
                },
            )
            return created

        raise RuntimeError(
            f"No free referral code after {REFERRAL_CODE_ATTEMPTS} attempts"
        )

    async def set_auto_compound(
        self,
        target: str | MemberSession,
        enabled: bool,
        now: datetime | None = None,
    ) -> Account:
        """
        Switch auto-compounding on or off.

        Earnings up to ``now`` are settled under the old mode in the same
        transaction, so the switch never applies retroactively.

        Raises:
            AccountNotFound: If no such account
        """
        account_id = resolve_account_id(target)
        at = self.clock() if now is None else ensure_utc(now)

        def _toggle(current: Account) -> Account:
            if current.auto_compound == enabled:
                return current
            settled = settle_account(current, at, self.tiers)
            return settled.model_copy(update={"auto_compound": enabled})

        updated = await self.store.transactional_update(account_id, _toggle)
        logger.info(
            "Auto-compound updated",
            extra={"account_id": account_id, "enabled": updated.auto_compound},
        )
        return updated

    async def resolve_referral_code(self, referral_code: str) -> Account | None:
        """Account owning a referral code, if any."""
        return await self.store.find_by_referral_code(
            normalize_referral_code(referral_code)
        )

    async def _exists(self, account_id: str) -> bool:
        try:
            await self.store.get(account_id)
        except AccountNotFound:
            return False
        return True
