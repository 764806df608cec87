"""
Core engine functionality.

Содержит чистую логику начисления доходности, уровней и операций баланса.
"""

from engine.core.accrual import apply_settlement, settle, settle_account
from engine.core.ledger import apply_deposit, apply_withdrawal, credit_referral_bonus
from engine.core.models import Account, ReferralRecord, Settlement, Tier, WithdrawalPolicy
from engine.core.tiers import TierTable

__all__ = [
    "Account",
    "ReferralRecord",
    "Settlement",
    "Tier",
    "TierTable",
    "WithdrawalPolicy",
    "apply_deposit",
    "apply_settlement",
    "apply_withdrawal",
    "credit_referral_bonus",
    "settle",
    "settle_account",
]
