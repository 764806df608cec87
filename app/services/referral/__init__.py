"""
Referral services package.

- service: bonus crediting on deposits and referral listing
"""

from app.services.referral.service import ReferralBonusResult, ReferralService


__all__ = [
    "ReferralBonusResult",
    "ReferralService",
]
