"""Pydantic models for the earnings engine."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.constants import DAYS_PER_YEAR, INFINITY, ZERO


class Tier(BaseModel):
    """Model for a membership tier.

    A named deposit bracket ``[min_deposit, max_deposit]`` with a daily
    return rate. ``max_deposit`` may be +infinity for the top tier.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name, unique in a table")
    min_deposit: Decimal = Field(..., ge=0, description="Lower bound of the bracket")
    max_deposit: Decimal = Field(
        ..., allow_inf_nan=True, description="Upper bound of the bracket (may be infinity)"
    )
    daily_return_rate: Decimal = Field(
        ..., ge=0, lt=1, description="Daily return as a fraction (0.015 = 1.5%)"
    )
    color: str = Field(default="#9ca3af", description="Display colour")

    @field_validator("max_deposit", mode="before")
    @classmethod
    def parse_unbounded(cls, v: object) -> object:
        """Treat ``None`` and ``"inf"`` as an unbounded top tier."""
        if v is None:
            return INFINITY
        if isinstance(v, str) and v.strip().lower() in ("inf", "infinity"):
            return INFINITY
        return v

    @property
    def is_unbounded(self) -> bool:
        return self.max_deposit == INFINITY

    @property
    def apy(self) -> Decimal:
        """Annualised yield if earnings were compounded daily."""
        return (1 + self.daily_return_rate) ** DAYS_PER_YEAR - 1

    def contains(self, principal: Decimal) -> bool:
        return self.min_deposit <= principal <= self.max_deposit


class Account(BaseModel):
    """One member's balances.

    Instances are immutable snapshots; operations return updated copies.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    principal: Decimal = Field(default=ZERO, ge=0)
    earnings_balance: Decimal = Field(default=ZERO, ge=0)
    tier_name: str
    last_settled_at: datetime
    referred_by: str | None = None
    auto_compound: bool = True
    referral_code: str | None = None
    created_at: datetime | None = None
    version: int = Field(default=0, ge=0, description="Store revision for compare-and-swap")

    @property
    def total_balance(self) -> Decimal:
        return self.principal + self.earnings_balance


class ReferralRecord(BaseModel):
    """Deposit volume a referred member has brought to a referrer."""

    model_config = ConfigDict(frozen=True)

    referrer_id: str
    referred_id: str
    total_deposit: Decimal = Field(default=ZERO, ge=0)
    total_bonus: Decimal = Field(default=ZERO, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Settlement(BaseModel):
    """Result of folding elapsed interest into the earnings balance."""

    model_config = ConfigDict(frozen=True)

    earnings_balance: Decimal = Field(..., ge=0)
    last_settled_at: datetime
    accrued: Decimal = Field(..., ge=0)
    elapsed_seconds: Decimal = Field(..., ge=0)
    tier_name: str


class WithdrawalPolicy(BaseModel):
    """Optional withdrawal floor and percentage fee."""

    model_config = ConfigDict(frozen=True)

    min_withdrawal: Decimal = Field(default=ZERO, ge=0)
    fee_rate: Decimal = Field(default=ZERO, ge=0, lt=1)


class WithdrawalBreakdown(BaseModel):
    """How a withdrawal is split between the two balances."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal
    fee: Decimal
    total_deduction: Decimal
    from_earnings: Decimal
    from_principal: Decimal


class DepositOutcome(BaseModel):
    """Updated account after a deposit, with the settlement applied first."""

    model_config = ConfigDict(frozen=True)

    account: Account
    settlement: Settlement
    previous_tier: str


class WithdrawalOutcome(BaseModel):
    """Updated account after a withdrawal."""

    model_config = ConfigDict(frozen=True)

    account: Account
    settlement: Settlement
    breakdown: WithdrawalBreakdown
    previous_tier: str


class ReferralCredit(BaseModel):
    """Referrer account after a referral bonus was credited."""

    model_config = ConfigDict(frozen=True)

    referrer: Account
    bonus: Decimal = Field(..., ge=0)
