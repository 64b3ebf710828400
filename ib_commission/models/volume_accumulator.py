"""
VolumeAccumulator model.

Per-user, per-month aggregate of closed trading volume. Feeds the monthly
IB payout batch.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ib_commission.models.base import Base
from ib_commission.models.enums import AccumulatorStatus
from ib_commission.models.types import LotsType, NotionalType


class VolumeAccumulator(Base):
    """
    VolumeAccumulator entity.

    Lifecycle:
    - Created by the first closed trade of a period (atomic upsert)
    - Incremented only while ACCUMULATING
    - PROCESSED once a payout batch has distributed its commissions
    - PAID once every commission of the trader for the period is settled
      and its distribution did not fail
    - Never deleted (audit trail)

    Attributes:
        id: Primary key
        user_id: Trader
        period_key: Calendar month "YYYY-MM"
        total_lots: Accumulated lots for the month
        total_trades: Number of closed trades
        total_volume_notional: Lots multiplied by contract size
        status: ACCUMULATING / PROCESSED / PAID
        last_source_fact_id: Trade that last updated this record
        batch_id: Payout batch that consumed this record
        processed_at: When the batch consumed this record
        error_message: Distribution failure; keeps the record from becoming PAID
        paid_at: When all commissions for it were settled
    """

    __tablename__ = "volume_accumulators"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "period_key", name="uq_volume_accumulators_user_period"
        ),
        Index("idx_volume_accumulators_period_status", "period_key", "status"),
        CheckConstraint(
            "total_lots >= 0", name="check_volume_accumulator_lots_non_negative"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_key: Mapped[str] = mapped_column(String(7), nullable=False)

    total_lots: Mapped[Decimal] = mapped_column(
        LotsType, default=Decimal("0"), nullable=False
    )
    total_trades: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_volume_notional: Mapped[Decimal] = mapped_column(
        NotionalType, default=Decimal("0"), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), default=AccumulatorStatus.ACCUMULATING, nullable=False
    )
    last_source_fact_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )

    # Batch processing
    batch_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<VolumeAccumulator(user_id={self.user_id}, "
            f"period={self.period_key}, lots={self.total_lots}, "
            f"status={self.status})>"
        )
