"""
Referral model.

Per-referrer sub-collection keyed by the referred account.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType, UTCDateTime
from engine.core.models import ReferralRecord


class ReferralModel(Base):
    """Referral relationship with cumulative deposit volume."""

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referred_id", name="uq_referral_pair"
        ),
        CheckConstraint(
            "total_deposit >= 0", name="check_referral_deposit_non_negative"
        ),
        CheckConstraint(
            "total_bonus >= 0", name="check_referral_bonus_non_negative"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    referred_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # For display only
    total_deposit: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_bonus: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ReferralModel(referrer={self.referrer_id!r}, "
            f"referred={self.referred_id!r}, deposit={self.total_deposit})>"
        )

    def to_domain(self) -> ReferralRecord:
        return ReferralRecord(
            referrer_id=self.referrer_id,
            referred_id=self.referred_id,
            total_deposit=self.total_deposit,
            total_bonus=self.total_bonus,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
