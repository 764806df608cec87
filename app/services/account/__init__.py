"""
Account services package.

- service: registration and auto-compound toggle
- session: explicit member session
"""

from app.services.account.service import AccountService, generate_referral_code
from app.services.account.session import MemberSession, resolve_account_id


__all__ = [
    "AccountService",
    "MemberSession",
    "generate_referral_code",
    "resolve_account_id",
]
