"""Input validation utilities."""

import re
from decimal import Decimal, InvalidOperation

from engine.core.errors import InvalidAmount


# Referral codes: 6 characters, upper-case letters and digits
REFERRAL_CODE_LENGTH = 6
REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

ACCOUNT_ID_MAX_LENGTH = 64
_ACCOUNT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@:-]+$")
_REFERRAL_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{REFERRAL_CODE_LENGTH}}}$")


def parse_amount(value: Decimal | int | str) -> Decimal:
    """
    Convert a caller-supplied amount to Decimal.

    Floats are rejected: monetary amounts must arrive as Decimal, int or
    a decimal string.

    Args:
        value: Raw amount

    Returns:
        Finite Decimal (sign is checked by the ledger rules)

    Raises:
        InvalidAmount: If the value is not a finite decimal number
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (bool, float)):
        raise InvalidAmount(f"Amount must be Decimal, int or str, got {type(value).__name__}")
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InvalidAmount(f"Not a number: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {amount}")

    return amount


def validate_account_id(account_id: str) -> bool:
    """
    Validate account id format.

    Args:
        account_id: Account id (username)

    Returns:
        True if valid
    """
    if not account_id or not isinstance(account_id, str):
        return False

    if len(account_id) > ACCOUNT_ID_MAX_LENGTH:
        return False

    return bool(_ACCOUNT_ID_PATTERN.match(account_id))


def validate_referral_code(code: str) -> bool:
    """Check a referral code has the generated format."""
    if not code or not isinstance(code, str):
        return False
    return bool(_REFERRAL_CODE_PATTERN.match(code))


def normalize_referral_code(code: str) -> str:
    """Strip whitespace and upper-case a user-typed referral code."""
    return code.strip().upper()
