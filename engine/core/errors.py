"""
Ledger error taxonomy.

Every failure a ledger operation can report to its caller carries an
``ErrorKind`` so that service layers can turn it into a typed result.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of ledger failures."""

    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    BELOW_MINIMUM_WITHDRAWAL = "below_minimum_withdrawal"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_ALREADY_EXISTS = "account_already_exists"
    INVALID_REFERRAL = "invalid_referral"
    TRANSACTION_CONFLICT = "transaction_conflict"
    # Logged only: elapsed time is clamped to zero, never raised
    NEGATIVE_ELAPSED_TIME = "negative_elapsed_time"


class LedgerError(Exception):
    """Base class for all ledger failures."""

    kind: ErrorKind = ErrorKind.INVALID_AMOUNT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAmount(LedgerError):
    """Amount is non-positive or under the deposit floor."""

    kind = ErrorKind.INVALID_AMOUNT


class InsufficientFunds(LedgerError):
    """Withdrawal (fee included) exceeds principal + earnings."""

    kind = ErrorKind.INSUFFICIENT_FUNDS


class BelowMinimumWithdrawal(LedgerError):
    """Withdrawal amount is under the configured floor."""

    kind = ErrorKind.BELOW_MINIMUM_WITHDRAWAL


class AccountNotFound(LedgerError):
    """Target account does not exist."""

    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class AccountAlreadyExists(LedgerError):
    """Account id (or referral code) is already taken."""

    kind = ErrorKind.ACCOUNT_ALREADY_EXISTS

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id} already exists")
        self.account_id = account_id


class InvalidReferral(LedgerError):
    """Referral relationship cannot be created."""

    kind = ErrorKind.INVALID_REFERRAL


class TransactionConflict(LedgerError):
    """Concurrent writer changed an account read by this transaction."""

    kind = ErrorKind.TRANSACTION_CONFLICT


class TierConfigurationError(ValueError):
    """Tier table has gaps, overlaps or invalid rates."""
