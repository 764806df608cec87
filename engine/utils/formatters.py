"""
Formatting utilities for amounts and rates.

Функции для отображения сумм и процентов пользователю.
"""

from decimal import Decimal
from typing import Union


def format_currency(
    amount: Union[float, Decimal],
    currency: str = "Br",
    decimals: int = 2,
) -> str:
    """
    Format an amount with thousands separators and a currency label.

    Example:
        >>> format_currency(Decimal("1234.5"))
        '1,234.50 Br'
        >>> format_currency(1000, currency="$", decimals=0)
        '$1,000'
    """
    formatted = f"{float(amount):,.{decimals}f}"
    if currency.startswith("$") or currency.startswith("€"):
        return f"{currency}{formatted}"
    return f"{formatted} {currency}"


def format_rate(rate: Union[float, Decimal], decimals: int = 2) -> str:
    """
    Format a fractional rate as a percentage.

    Example:
        >>> format_rate(Decimal("0.015"))
        '1.50%'
    """
    return f"{float(rate) * 100:.{decimals}f}%"
