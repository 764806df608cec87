"""Explicit member session."""

from dataclasses import dataclass, field
from datetime import datetime

from app.utils.datetime_utils import utc_now


@dataclass(frozen=True)
class MemberSession:
    """
    Identity of the member an interactive surface acts for.

    Passed explicitly to the ledger facade and the earnings ticker;
    nothing in the application keeps a global "current user".
    """

    account_id: str
    started_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.account_id:
            raise ValueError("MemberSession requires an account id")


def resolve_account_id(target: "str | MemberSession") -> str:
    """Account id from either a raw id or a session."""
    if isinstance(target, MemberSession):
        return target.account_id
    return target
