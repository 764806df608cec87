"""
Referral repository.

Data access layer for ReferralModel.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral import ReferralModel
from app.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[ReferralModel]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(ReferralModel, session)

    async def get_pair(
        self, referrer_id: str, referred_id: str
    ) -> ReferralModel | None:
        """
        Get the referral record for one referrer/referred pair.

        Args:
            referrer_id: Referrer account ID
            referred_id: Referred account ID

        Returns:
            Referral or None
        """
        return await self.get_by(
            referrer_id=referrer_id, referred_id=referred_id
        )

    async def get_by_referrer(
        self, referrer_id: str
    ) -> list[ReferralModel]:
        """
        Get all referrals of a referrer, oldest first.

        Args:
            referrer_id: Referrer account ID

        Returns:
            List of referrals
        """
        stmt = (
            select(ReferralModel)
            .where(ReferralModel.referrer_id == referrer_id)
            .order_by(ReferralModel.created_at, ReferralModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
