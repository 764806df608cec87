"""
Shared fixtures for unit tests.

- Ledger, account and referral services over the in-memory store
- Adjustable clock
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.services.account.service import AccountService
from app.services.ledger.service import LedgerService
from app.services.referral.service import ReferralService
from engine.core.models import WithdrawalPolicy


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock(now):
    """Clock starting at ``now``."""
    return FakeClock(now)


@pytest.fixture
def referral_service(store, tiers):
    """Referral service with a 5% bonus."""
    return ReferralService(store, tiers, bonus_rate=Decimal("0.05"))


@pytest.fixture
def ledger(store, tiers, referral_service, clock):
    """
    Ledger service without withdrawal fee or floors.

    Returns:
        LedgerService: Service bound to the in-memory store
    """
    return LedgerService(
        store,
        tiers,
        referral_service=referral_service,
        policy=WithdrawalPolicy(),
        min_deposit=Decimal("0"),
        clock=clock,
    )


@pytest.fixture
def accounts(store, tiers, clock):
    """Account service bound to the in-memory store."""
    return AccountService(store, tiers, clock=clock)
