"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Минимальные переменные окружения для тестов
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_earnings.db")
os.environ.setdefault("REFERRAL_BONUS_RATE", "0.05")
os.environ.setdefault("DEFAULT_DAILY_RETURN_RATE", "0.015")
os.environ.setdefault("TRANSACTION_RETRY_BASE_DELAY", "0")

# Добавить корень проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from app.config.tiers import build_default_tiers
from app.store.memory import InMemoryAccountStore
from engine.core.models import Account
from engine.core.tiers import TierTable


@pytest.fixture
def now():
    """Fixed reference instant."""
    return datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def tiers():
    """Built-in tier table at 1.5% daily."""
    return TierTable(build_default_tiers(Decimal("0.015")))


@pytest.fixture
def store():
    """Empty in-memory store with instant retries."""
    return InMemoryAccountStore(max_attempts=3, retry_base_delay=0)


@pytest.fixture
def make_account(now, tiers):
    """
    Factory for account snapshots.

    Tier is derived from the principal unless given explicitly.
    """

    def _make(
        account_id: str = "alice",
        principal: str | Decimal = "0",
        earnings: str | Decimal = "0",
        **overrides,
    ) -> Account:
        principal = Decimal(principal)
        data = {
            "id": account_id,
            "principal": principal,
            "earnings_balance": Decimal(earnings),
            "tier_name": tiers.resolve_name(principal),
            "last_settled_at": now,
            "created_at": now,
        }
        data.update(overrides)
        return Account(**data)

    return _make
