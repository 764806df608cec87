"""
Utility functions for the engine.
"""

from engine.utils.formatters import format_currency, format_rate

__all__ = [
    "format_currency",
    "format_rate",
]
