"""
Exception handling utilities.

Defines categorized exception types for proper error handling.
"""

from engine.core.errors import (
    AccountAlreadyExists,
    AccountNotFound,
    BelowMinimumWithdrawal,
    InsufficientFunds,
    InvalidAmount,
    InvalidReferral,
    TransactionConflict,
)


# Exception categories based on handling strategy

# Must retry - the read-modify-write lost a race and can be replayed
MUST_RETRY = (
    TransactionConflict,
)

# Report to caller - business rule rejections, never retried
REPORT_TO_CALLER = (
    InvalidAmount,
    InsufficientFunds,
    BelowMinimumWithdrawal,
    AccountNotFound,
    AccountAlreadyExists,
    InvalidReferral,
)


def is_retryable(exc: Exception) -> bool:
    """
    Check if exception means the transaction should be replayed.

    Args:
        exc: Exception to check

    Returns:
        True if the operation can be retried from a fresh read
    """
    return isinstance(exc, MUST_RETRY)


def is_caller_error(exc: Exception) -> bool:
    """
    Check if exception is a rejection to report as-is.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a business rule rejection
    """
    return isinstance(exc, REPORT_TO_CALLER)
