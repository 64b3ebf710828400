"""
CommissionLedgerEntry model.

One beneficiary / source / period / level commission. The unit of payment
for both the monthly volume batch and direct joining income.
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
from ib_commission.models.enums import CommissionStatus
from ib_commission.models.types import LotsType, MoneyType, RateType


class CommissionLedgerEntry(Base):
    """
    CommissionLedgerEntry entity.

    The unique constraint on (beneficiary_id, source_id, period_key, level)
    is the idempotency guard: a retried distribution can never create a
    second entry for the same commission.

    Status transitions:
    - PENDING -> CREDITED | FAILED (crediting)
    - PENDING | CREDITED | FAILED -> REVERSED (admin reversal, terminal)

    Attributes:
        id: Primary key
        kind: MONTHLY_VOLUME or DIRECT_JOINING
        beneficiary_id: IB user receiving the commission
        source_id: Trader (monthly) or newly activated user (direct joining)
        period_key: "YYYY-MM" for monthly entries, JOINING for direct joining
        level: Upline level (1 = direct referrer)
        rate: $ per lot (monthly) or flat amount (direct joining)
        amount: Commission amount, rounded to cents
        total_lots: Trader's lots for the period (monthly only)
        total_trades: Trader's trades for the period (monthly only)
        status: PENDING / CREDITED / FAILED / REVERSED
        batch_id: Monthly payout batch (monthly only)
        activation_trigger: Activation event (direct joining only)
        direct_referrer_id: Level 1 IB of the new user (direct joining only)
        error_message: Crediting failure reason
        reversed_at / reversed_by / reversal_reason: Reversal audit fields
        admin_notes: Free-form admin annotation
    """

    __tablename__ = "commission_ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "beneficiary_id",
            "source_id",
            "period_key",
            "level",
            name="uq_commission_ledger_idempotency",
        ),
        CheckConstraint("level >= 1", name="check_commission_level_positive"),
        Index("idx_commission_ledger_beneficiary_period", "beneficiary_id", "period_key"),
        Index("idx_commission_ledger_source_period", "source_id", "period_key"),
        Index("idx_commission_ledger_period_status", "period_key", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Idempotency key
    beneficiary_id: Mapped[int] = mapped_column(Integer, nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    period_key: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    # Calculation
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_lots: Mapped[Decimal | None] = mapped_column(LotsType, nullable=True)
    total_trades: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=CommissionStatus.PENDING, nullable=False
    )

    # Mode-specific references
    batch_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    activation_trigger: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )
    direct_referrer_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    credited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Reversal tracking
    reversed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reversed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reversal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionLedgerEntry(id={self.id}, kind={self.kind}, "
            f"beneficiary={self.beneficiary_id}, source={self.source_id}, "
            f"period={self.period_key}, level={self.level}, "
            f"amount={self.amount}, status={self.status})>"
        )

    @property
    def is_reversed(self) -> bool:
        """Check if entry was reversed."""
        return self.status == CommissionStatus.REVERSED
