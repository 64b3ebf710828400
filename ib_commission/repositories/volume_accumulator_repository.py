"""
VolumeAccumulator repository.

Atomic upsert-increment of monthly volume and payout-side transitions.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, exists, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.commission_ledger_entry import CommissionLedgerEntry
from ib_commission.models.enums import (
    AccumulatorStatus,
    CommissionKind,
    CommissionStatus,
)
from ib_commission.models.volume_accumulator import VolumeAccumulator
from ib_commission.repositories.base import BaseRepository
from ib_commission.utils.datetime_utils import utc_now

UNSETTLED_STATUSES = (CommissionStatus.PENDING, CommissionStatus.FAILED)


class VolumeAccumulatorRepository(BaseRepository[VolumeAccumulator]):
    """VolumeAccumulator repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize volume accumulator repository."""
        super().__init__(VolumeAccumulator, session)

    def _insert(self):
        if self.dialect_name == "postgresql":
            return pg_insert(VolumeAccumulator)
        if self.dialect_name == "sqlite":
            return sqlite_insert(VolumeAccumulator)
        raise NotImplementedError(
            f"Upsert not supported for dialect {self.dialect_name}"
        )

    async def upsert_increment(
        self,
        user_id: int,
        period_key: str,
        lots: Decimal,
        notional_volume: Decimal,
        source_fact_id: str | None,
    ) -> Row | None:
        """
        Create or increment the accumulator of (user, period).

        One INSERT ... ON CONFLICT DO UPDATE statement: the database
        serializes concurrent increments on the same row. The update branch
        only fires while the row is ACCUMULATING.

        Args:
            user_id: Trader
            period_key: "YYYY-MM"
            lots: Lots of the closed trade
            notional_volume: Notional volume of the closed trade
            source_fact_id: Trade identifier

        Returns:
            Updated row, or None if the existing row is no longer
            ACCUMULATING
        """
        now = utc_now()
        stmt = self._insert().values(
            user_id=user_id,
            period_key=period_key,
            total_lots=lots,
            total_trades=1,
            total_volume_notional=notional_volume,
            status=AccumulatorStatus.ACCUMULATING,
            last_source_fact_id=source_fact_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "period_key"],
            set_={
                "total_lots": VolumeAccumulator.total_lots
                + stmt.excluded.total_lots,
                "total_trades": VolumeAccumulator.total_trades + 1,
                "total_volume_notional": VolumeAccumulator.total_volume_notional
                + stmt.excluded.total_volume_notional,
                "last_source_fact_id": stmt.excluded.last_source_fact_id,
                "updated_at": stmt.excluded.updated_at,
            },
            where=VolumeAccumulator.status == AccumulatorStatus.ACCUMULATING,
        ).returning(
            VolumeAccumulator.user_id,
            VolumeAccumulator.period_key,
            VolumeAccumulator.total_lots,
            VolumeAccumulator.total_trades,
            VolumeAccumulator.total_volume_notional,
            VolumeAccumulator.status,
            VolumeAccumulator.last_source_fact_id,
        )
        result = await self.session.execute(stmt)
        return result.first()

    async def get_for_user_period(
        self, user_id: int, period_key: str
    ) -> VolumeAccumulator | None:
        """Get accumulator of a user for a period (fresh from the database)."""
        stmt = (
            select(VolumeAccumulator)
            .where(
                VolumeAccumulator.user_id == user_id,
                VolumeAccumulator.period_key == period_key,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def select_for_payout(
        self, period_key: str, min_lots: Decimal
    ) -> list[VolumeAccumulator]:
        """
        Get ACCUMULATING accumulators of a period eligible for payout.

        Args:
            period_key: Target period
            min_lots: Minimum lots threshold (inclusive)

        Returns:
            Accumulators ordered by id
        """
        stmt = (
            select(VolumeAccumulator)
            .where(
                VolumeAccumulator.period_key == period_key,
                VolumeAccumulator.status == AccumulatorStatus.ACCUMULATING,
                VolumeAccumulator.total_lots >= min_lots,
            )
            .order_by(VolumeAccumulator.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_processed(
        self,
        accumulator_id: int,
        batch_id: str,
        processed_at: datetime,
        error_message: str | None = None,
    ) -> bool:
        """
        Move an accumulator from ACCUMULATING to PROCESSED.

        An ``error_message`` marks a trader whose distribution failed; such
        an accumulator is never settled to PAID.

        Returns:
            True if the transition happened
        """
        stmt = (
            update(VolumeAccumulator)
            .where(
                VolumeAccumulator.id == accumulator_id,
                VolumeAccumulator.status == AccumulatorStatus.ACCUMULATING,
            )
            .values(
                status=AccumulatorStatus.PROCESSED,
                batch_id=batch_id,
                processed_at=processed_at,
                error_message=error_message[:1000] if error_message else None,
                updated_at=processed_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def mark_paid_settled(self, period_key: str, paid_at: datetime) -> int:
        """
        Mark PROCESSED accumulators of a period PAID when settled.

        An accumulator is settled when its distribution did not fail and
        none of the monthly commissions of its trader for the period is
        PENDING or FAILED.

        Returns:
            Number of accumulators marked PAID
        """
        unsettled = exists().where(
            and_(
                CommissionLedgerEntry.source_id == VolumeAccumulator.user_id,
                CommissionLedgerEntry.period_key == VolumeAccumulator.period_key,
                CommissionLedgerEntry.kind == CommissionKind.MONTHLY_VOLUME,
                CommissionLedgerEntry.status.in_(UNSETTLED_STATUSES),
            )
        )
        stmt = (
            update(VolumeAccumulator)
            .where(
                VolumeAccumulator.period_key == period_key,
                VolumeAccumulator.status == AccumulatorStatus.PROCESSED,
                VolumeAccumulator.error_message.is_(None),
                ~unsettled,
            )
            .values(
                status=AccumulatorStatus.PAID,
                paid_at=paid_at,
                updated_at=paid_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def list_for_period(
        self, period_key: str, status: str | None = None
    ) -> list[VolumeAccumulator]:
        """Get accumulators of a period, largest volume first."""
        stmt = select(VolumeAccumulator).where(
            VolumeAccumulator.period_key == period_key
        )
        if status:
            stmt = stmt.where(VolumeAccumulator.status == status)
        stmt = stmt.order_by(
            VolumeAccumulator.total_lots.desc(), VolumeAccumulator.id
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def period_totals(self, period_key: str) -> dict:
        """Trader count and lot/trade totals of a period."""
        stmt = select(
            func.count(VolumeAccumulator.id),
            func.coalesce(func.sum(VolumeAccumulator.total_lots), 0),
            func.coalesce(func.sum(VolumeAccumulator.total_trades), 0),
        ).where(VolumeAccumulator.period_key == period_key)
        result = await self.session.execute(stmt)
        traders, lots, trades = result.one()
        return {
            "traders": traders,
            "total_lots": Decimal(str(lots)),
            "total_trades": int(trades),
        }
