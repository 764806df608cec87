"""
Datetime utilities.

Settlement timestamps are always timezone-aware UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC datetime with timezone info."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a caller-supplied instant to UTC.

    Raises:
        ValueError: If ``value`` is naive
    """
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime {value.isoformat()} is not allowed")
    return value.astimezone(UTC)
