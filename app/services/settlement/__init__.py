"""Batch settlement services package."""

from app.services.settlement.service import (
    BatchSettlementReport,
    BatchSettlementService,
    SettlementFailure,
)


__all__ = [
    "BatchSettlementReport",
    "BatchSettlementService",
    "SettlementFailure",
]
