"""
Pure ledger rules.

Deposit, withdrawal and referral-bonus arithmetic on account snapshots.
Every function settles accrued interest up to ``now`` before touching
balances and recomputes the tier from the resulting principal. Nothing
here persists; callers run these inside a store transaction.
"""

from datetime import datetime
from decimal import Decimal

from engine.constants import ZERO
from engine.core.accrual import apply_settlement, settle
from engine.core.errors import BelowMinimumWithdrawal, InsufficientFunds, InvalidAmount
from engine.core.models import (
    Account,
    DepositOutcome,
    ReferralCredit,
    WithdrawalBreakdown,
    WithdrawalOutcome,
    WithdrawalPolicy,
)
from engine.core.tiers import TierTable


def validate_deposit_amount(amount: Decimal, min_deposit: Decimal = ZERO) -> None:
    """
    Raises:
        InvalidAmount: If amount is not positive or under ``min_deposit``
    """
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Deposit amount must be positive, got {amount}")
    if amount < min_deposit:
        raise InvalidAmount(f"Deposit amount {amount} is below minimum {min_deposit}")


def apply_deposit(
    account: Account,
    amount: Decimal,
    now: datetime,
    tiers: TierTable,
    min_deposit: Decimal = ZERO,
) -> DepositOutcome:
    """
    Settle, then add ``amount`` to principal and recompute the tier.

    Args:
        account: Depositing account
        amount: Deposit amount (> 0)
        now: Operation instant
        tiers: Tier table
        min_deposit: Optional deposit floor

    Returns:
        DepositOutcome with the updated account

    Raises:
        InvalidAmount: If amount is not a valid deposit
    """
    validate_deposit_amount(amount, min_deposit)

    settlement = settle(account, now, tiers)
    settled = apply_settlement(account, settlement)

    new_principal = settled.principal + amount
    updated = settled.model_copy(
        update={
            "principal": new_principal,
            "tier_name": tiers.resolve_name(new_principal),
        }
    )

    return DepositOutcome(
        account=updated,
        settlement=settlement,
        previous_tier=account.tier_name,
    )


def plan_withdrawal(
    principal: Decimal,
    earnings_balance: Decimal,
    amount: Decimal,
    policy: WithdrawalPolicy,
) -> WithdrawalBreakdown:
    """
    Split a withdrawal between earnings (first) and principal.

    Formula: total_deduction = amount * (1 + fee_rate)

    Raises:
        InvalidAmount: If amount is not positive
        BelowMinimumWithdrawal: If amount is under the policy floor
        InsufficientFunds: If total deduction exceeds both balances
    """
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Withdrawal amount must be positive, got {amount}")

    if amount < policy.min_withdrawal:
        raise BelowMinimumWithdrawal(
            f"Withdrawal amount {amount} is below minimum {policy.min_withdrawal}"
        )

    fee = amount * policy.fee_rate
    total_deduction = amount + fee
    available = principal + earnings_balance

    if total_deduction > available:
        raise InsufficientFunds(
            f"Withdrawal of {amount} (fee {fee}) exceeds available balance {available}"
        )

    from_earnings = min(earnings_balance, total_deduction)
    from_principal = total_deduction - from_earnings

    return WithdrawalBreakdown(
        amount=amount,
        fee=fee,
        total_deduction=total_deduction,
        from_earnings=from_earnings,
        from_principal=from_principal,
    )


def apply_withdrawal(
    account: Account,
    amount: Decimal,
    now: datetime,
    tiers: TierTable,
    policy: WithdrawalPolicy | None = None,
) -> WithdrawalOutcome:
    """
    Settle, then deduct ``amount`` plus fee, earnings first.

    A rejected withdrawal raises before anything is returned, so the
    caller never persists a partial result.

    Returns:
        WithdrawalOutcome with the updated account and the breakdown
    """
    policy = policy or WithdrawalPolicy()

    settlement = settle(account, now, tiers)
    settled = apply_settlement(account, settlement)

    breakdown = plan_withdrawal(
        settled.principal, settled.earnings_balance, amount, policy
    )

    new_principal = settled.principal - breakdown.from_principal
    updated = settled.model_copy(
        update={
            "principal": new_principal,
            "earnings_balance": settled.earnings_balance - breakdown.from_earnings,
            "tier_name": tiers.resolve_name(new_principal),
        }
    )

    return WithdrawalOutcome(
        account=updated,
        settlement=settlement,
        breakdown=breakdown,
        previous_tier=account.tier_name,
    )


def calculate_referral_bonus(deposit_amount: Decimal, bonus_rate: Decimal) -> Decimal:
    """
    Formula: deposit_amount * bonus_rate

    Returns:
        Bonus amount (0 for non-positive inputs)
    """
    if deposit_amount <= 0 or bonus_rate <= 0:
        return ZERO
    return deposit_amount * bonus_rate


def credit_referral_bonus(
    referrer: Account,
    deposit_amount: Decimal,
    bonus_rate: Decimal,
    now: datetime,
    tiers: TierTable,
) -> ReferralCredit:
    """
    Credit a referral bonus to the referrer's earnings balance.

    The referrer is settled first so the bonus only starts compounding
    from ``now``. Principal and tier are left alone.
    """
    bonus = calculate_referral_bonus(deposit_amount, bonus_rate)
    settled = apply_settlement(referrer, settle(referrer, now, tiers))

    return ReferralCredit(
        referrer=settled.model_copy(
            update={"earnings_balance": settled.earnings_balance + bonus}
        ),
        bonus=bonus,
    )
