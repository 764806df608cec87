"""
Account repository.

Data access layer for AccountModel.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.account import AccountModel
from app.repositories.base import BaseRepository


class AccountRepository(BaseRepository[AccountModel]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(AccountModel, session)

    async def get_by_referral_code(
        self, referral_code: str
    ) -> AccountModel | None:
        """
        Get account by its referral code.

        Args:
            referral_code: Code shared in referral links

        Returns:
            Account or None
        """
        return await self.get_by(referral_code=referral_code)

    async def list_ids(self) -> list[str]:
        """
        Get all account IDs.

        Optimized to avoid loading full rows - only returns IDs.

        Returns:
            Account IDs ordered by ID
        """
        stmt = select(AccountModel.id).order_by(AccountModel.id)
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]

    async def list_ids_settled_before(
        self, cutoff: datetime
    ) -> list[str]:
        """
        Get IDs of accounts whose last settlement is older than cutoff.

        Args:
            cutoff: Settlement timestamp threshold

        Returns:
            Account IDs ordered by last settlement (oldest first)
        """
        stmt = (
            select(AccountModel.id)
            .where(AccountModel.last_settled_at < cutoff)
            .order_by(AccountModel.last_settled_at)
        )
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]
