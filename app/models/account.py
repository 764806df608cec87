"""
Account model.

Stores one member's balances: the ``accounts`` document.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, UTCDateTime
from engine.core.models import Account


class AccountModel(Base):
    """Account model - member balances and tier."""

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "principal >= 0", name="check_account_principal_non_negative"
        ),
        CheckConstraint(
            "earnings_balance >= 0",
            name="check_account_earnings_non_negative"
        ),
    )

    # Primary key (username in the member-facing app)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Balances
    principal: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    earnings_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Derived from principal, recomputed on every principal change
    tier_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_settled_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, index=True
    )

    # Referral (not a foreign key: referrer existence is not enforced)
    referred_by: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )

    auto_compound: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<AccountModel(id={self.id!r}, principal={self.principal}, "
            f"earnings={self.earnings_balance}, tier={self.tier_name!r})>"
        )

    def to_domain(self) -> Account:
        """Snapshot as an engine ``Account``."""
        return Account(
            id=self.id,
            principal=self.principal,
            earnings_balance=self.earnings_balance,
            tier_name=self.tier_name,
            last_settled_at=self.last_settled_at,
            referred_by=self.referred_by,
            auto_compound=self.auto_compound,
            referral_code=self.referral_code,
            created_at=self.created_at,
            version=self.version,
        )

    def apply_domain(self, account: Account) -> None:
        """Copy mutable fields from an engine ``Account``."""
        self.principal = account.principal
        self.earnings_balance = account.earnings_balance
        self.tier_name = account.tier_name
        self.last_settled_at = account.last_settled_at
        self.auto_compound = account.auto_compound
        self.referral_code = account.referral_code

    @classmethod
    def from_domain(cls, account: Account) -> "AccountModel":
        return cls(
            id=account.id,
            principal=account.principal,
            earnings_balance=account.earnings_balance,
            tier_name=account.tier_name,
            last_settled_at=account.last_settled_at,
            referred_by=account.referred_by,
            auto_compound=account.auto_compound,
            referral_code=account.referral_code,
            created_at=account.created_at or datetime.now(UTC),
        )
