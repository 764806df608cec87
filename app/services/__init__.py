"""
Services.

Business logic layer.
"""

from app.services.account import AccountService, MemberSession
from app.services.ledger import LedgerResult, LedgerService
from app.services.projection import EarningsProjector, EarningsSnapshot, EarningsTicker
from app.services.referral import ReferralService
from app.services.settlement import BatchSettlementReport, BatchSettlementService


__all__ = [
    "AccountService",
    "BatchSettlementReport",
    "BatchSettlementService",
    "EarningsProjector",
    "EarningsSnapshot",
    "EarningsTicker",
    "LedgerResult",
    "LedgerService",
    "MemberSession",
    "ReferralService",
]
