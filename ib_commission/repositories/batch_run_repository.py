"""
BatchRun repository.

Audit records of monthly payout runs.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.batch_run import BatchRun
from ib_commission.repositories.base import BaseRepository


class BatchRunRepository(BaseRepository[BatchRun]):
    """BatchRun repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize batch run repository."""
        super().__init__(BatchRun, session)

    async def get_by_batch_id(self, batch_id: str) -> BatchRun | None:
        """Get a run by its batch id."""
        stmt = (
            select(BatchRun)
            .where(BatchRun.batch_id == batch_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(
        self, target_period: str | None = None, limit: int = 20
    ) -> list[BatchRun]:
        """
        List runs, newest first.

        Args:
            target_period: Only runs for this period
            limit: Max number of runs
        """
        stmt = select(BatchRun)
        if target_period:
            stmt = stmt.where(BatchRun.target_period == target_period)
        stmt = stmt.order_by(BatchRun.started_at.desc(), BatchRun.id.desc())
        result = await self.session.execute(stmt.limit(limit))
        return list(result.scalars().all())
