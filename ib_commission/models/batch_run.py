"""
BatchRun model.

Audit record of one monthly payout execution.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ib_commission.models.base import Base
from ib_commission.models.enums import BatchRunState, BatchRunStatus
from ib_commission.models.types import JsonType, MoneyType


class BatchRun(Base):
    """
    BatchRun entity.

    Created when a payout starts, updated as the run moves through
    SELECTING -> DISTRIBUTING -> CREDITING -> SETTLING -> DONE and left
    untouched afterwards.

    Attributes:
        id: Primary key
        batch_id: Public batch identifier (MONTHLY_<period>_<hex>)
        target_period: Period being paid out ("YYYY-MM")
        state: Current state machine stage
        status: RUNNING / COMPLETED / COMPLETED_WITH_ERRORS / CANCELLED
        traders_selected: Accumulators picked up in SELECTING
        traders_processed: Traders distributed without error
        entries_created: Ledger entries inserted by this run
        entries_credited: Entries moved to CREDITED by this run
        entries_failed: Entries moved to FAILED by this run
        total_amount: Sum of amounts of entries created by this run
        errors: Ordered list of {"source_id": int, "message": str}
        started_at: Run start
        finished_at: Run end
    """

    __tablename__ = "commission_batch_runs"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    batch_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    target_period: Mapped[str] = mapped_column(
        String(7), nullable=False, index=True
    )

    state: Mapped[str] = mapped_column(
        String(20), default=BatchRunState.IDLE, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default=BatchRunStatus.RUNNING, nullable=False
    )

    # Counters
    traders_selected: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    traders_processed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    entries_created: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    entries_credited: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    entries_failed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    errors: Mapped[list] = mapped_column(
        JsonType, default=lambda: [], nullable=False
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<BatchRun(batch_id={self.batch_id}, period={self.target_period}, "
            f"state={self.state}, status={self.status})>"
        )

    @property
    def has_errors(self) -> bool:
        """Whether any trader or entry failed during the run."""
        return bool(self.errors)
