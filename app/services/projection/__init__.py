"""Read-only earnings projection package."""

from app.services.projection.service import (
    EarningsProjector,
    EarningsSnapshot,
    EarningsTicker,
)


__all__ = [
    "EarningsProjector",
    "EarningsSnapshot",
    "EarningsTicker",
]
