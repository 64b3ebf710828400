"""
Upline resolver.

Walks the referral graph from a user towards the root, one ACTIVE edge at
a time, bounded by the configured number of levels.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.enums import IBAccountStatus
from ib_commission.repositories.ib_account_repository import IBAccountRepository
from ib_commission.repositories.referral_edge_repository import (
    ReferralEdgeRepository,
)
from ib_commission.services.commission.exceptions import UplineCycleError
from ib_commission.services.commission.results import UplineLevel


class UplineResolver:
    """Resolves the ordered list of beneficiaries above a user."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize upline resolver."""
        self.session = session
        self.edge_repo = ReferralEdgeRepository(session)
        self.account_repo = IBAccountRepository(session)

    async def resolve_upline(
        self, user_id: int, max_levels: int
    ) -> list[UplineLevel]:
        """
        Resolve the upline of a user.

        Level 1 is the direct referrer. The walk stops early (returning the
        chain so far) when there is no ACTIVE edge or when the beneficiary's
        IB account is missing or not ACTIVE. An empty list is a normal result.

        Args:
            user_id: User whose ancestors are resolved
            max_levels: Maximum depth

        Returns:
            Beneficiaries ordered by level

        Raises:
            UplineCycleError: If a user id repeats along the chain
        """
        upline: list[UplineLevel] = []
        seen = {user_id}
        current_id = user_id

        for level in range(1, max_levels + 1):
            edge = await self.edge_repo.get_active_for_child(current_id)
            if edge is None:
                break

            beneficiary_id = edge.beneficiary_user_id
            if beneficiary_id in seen:
                logger.error(
                    "Referral cycle detected",
                    extra={
                        "user_id": user_id,
                        "repeated_id": beneficiary_id,
                        "level": level,
                    },
                )
                raise UplineCycleError(user_id, beneficiary_id)

            status = await self.account_repo.get_status(beneficiary_id)
            if status != IBAccountStatus.ACTIVE:
                logger.debug(
                    f"Upline of user {user_id} stops at level {level}: "
                    f"beneficiary {beneficiary_id} is {status or 'missing'}"
                )
                break

            upline.append(UplineLevel(beneficiary_id=beneficiary_id, level=level))
            seen.add(beneficiary_id)
            current_id = beneficiary_id

        logger.debug(
            "Upline resolved",
            extra={
                "user_id": user_id,
                "max_levels": max_levels,
                "chain_length": len(upline),
            },
        )
        return upline
