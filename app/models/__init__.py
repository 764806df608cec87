"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.account import AccountModel
from app.models.base import Base
from app.models.referral import ReferralModel


__all__ = [
    "AccountModel",
    "Base",
    "ReferralModel",
]
