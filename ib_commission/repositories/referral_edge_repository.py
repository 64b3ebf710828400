"""
ReferralEdge repository.

Read-only access to the referral graph.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.enums import ReferralEdgeStatus
from ib_commission.models.referral_edge import ReferralEdge
from ib_commission.repositories.base import BaseRepository


class ReferralEdgeRepository(BaseRepository[ReferralEdge]):
    """Repository for ReferralEdge entity."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral edge repository."""
        super().__init__(ReferralEdge, session)

    async def get_active_for_child(
        self, child_user_id: int
    ) -> ReferralEdge | None:
        """
        Get the ACTIVE edge of a referred user.

        Args:
            child_user_id: Referred user

        Returns:
            The edge pointing at the user's referrer, or None
        """
        stmt = select(ReferralEdge).where(
            ReferralEdge.child_user_id == child_user_id,
            ReferralEdge.status == ReferralEdgeStatus.ACTIVE,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_active_children(
        self, beneficiary_user_id: int
    ) -> list[ReferralEdge]:
        """Get ACTIVE edges of users referred by ``beneficiary_user_id``."""
        stmt = (
            select(ReferralEdge)
            .where(
                ReferralEdge.beneficiary_user_id == beneficiary_user_id,
                ReferralEdge.status == ReferralEdgeStatus.ACTIVE,
            )
            .order_by(ReferralEdge.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
