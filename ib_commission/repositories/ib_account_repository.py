"""
IBAccount repository.

Data access layer for IB accounts and their commission wallets.
"""

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.ib_account import IBAccount
from ib_commission.repositories.base import BaseRepository


class IBAccountRepository(BaseRepository[IBAccount]):
    """IBAccount repository with wallet mutations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize IB account repository."""
        super().__init__(IBAccount, session)

    async def get_status(self, user_id: int) -> str | None:
        """Get account status of a user, or None when no account exists."""
        stmt = select(IBAccount.status).where(IBAccount.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def apply_wallet_delta(self, user_id: int, delta: Decimal) -> bool:
        """
        Atomically add ``delta`` to balance and lifetime earnings.

        A single UPDATE with column arithmetic, so concurrent calls on the
        same wallet never lose an update.

        Args:
            user_id: Wallet owner
            delta: Signed amount

        Returns:
            True if a wallet row was updated
        """
        stmt = (
            update(IBAccount)
            .where(IBAccount.user_id == user_id)
            .values(
                wallet_balance=IBAccount.wallet_balance + delta,
                total_commission_earned=IBAccount.total_commission_earned + delta,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def wallet_totals(self) -> dict:
        """Sum of all wallet balances and lifetime earnings."""
        stmt = select(
            func.count(IBAccount.id),
            func.coalesce(func.sum(IBAccount.wallet_balance), 0),
            func.coalesce(func.sum(IBAccount.total_commission_earned), 0),
        )
        result = await self.session.execute(stmt)
        accounts, balance, earned = result.one()
        return {
            "accounts": accounts,
            "total_balance": Decimal(str(balance)),
            "total_earned": Decimal(str(earned)),
        }
