"""
CommissionSettings model.

Single-row table holding the rate tables and switches of both commission
models, plus the last processed monthly period marker.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ib_commission.config.constants import (
    COMMISSION_SETTINGS_TYPE,
    DEFAULT_DIRECT_LEVEL_AMOUNTS,
    DEFAULT_MIN_LOTS_FOR_PAYOUT,
    DEFAULT_MONTHLY_LEVEL_RATES,
    DEFAULT_PAYOUT_DAY,
    DIRECT_MAX_LEVELS,
    MONTHLY_MAX_LEVELS,
)
from ib_commission.models.base import Base
from ib_commission.models.enums import ActivationTrigger, CommissionMode
from ib_commission.models.types import JsonType, LotsType


def _level_table(table: dict[int, Decimal]) -> dict[str, str]:
    """Serialize a level table for JSON storage."""
    return {str(level): str(value) for level, value in table.items()}


class CommissionSettings(Base):
    """
    CommissionSettings entity.

    Level tables are stored as JSON objects mapping the level number
    (as a string key) to a decimal string, e.g. {"1": "4", "2": "3"}.
    """

    __tablename__ = "commission_settings"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    settings_type: Mapped[str] = mapped_column(
        String(32), unique=True, default=COMMISSION_SETTINGS_TYPE, nullable=False
    )
    commission_mode: Mapped[str] = mapped_column(
        String(30), default=CommissionMode.MONTHLY_CONTROLLED, nullable=False
    )

    # Monthly trading IB
    monthly_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    monthly_max_levels: Mapped[int] = mapped_column(
        Integer, default=MONTHLY_MAX_LEVELS, nullable=False
    )
    monthly_level_rates: Mapped[dict] = mapped_column(
        JsonType,
        default=lambda: _level_table(DEFAULT_MONTHLY_LEVEL_RATES),
        nullable=False,
    )
    monthly_min_lots: Mapped[Decimal] = mapped_column(
        LotsType, default=DEFAULT_MIN_LOTS_FOR_PAYOUT, nullable=False
    )
    monthly_auto_payout_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    monthly_payout_day: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_PAYOUT_DAY, nullable=False
    )

    # Direct joining income
    direct_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    direct_max_levels: Mapped[int] = mapped_column(
        Integer, default=DIRECT_MAX_LEVELS, nullable=False
    )
    direct_level_amounts: Mapped[dict] = mapped_column(
        JsonType,
        default=lambda: _level_table(DEFAULT_DIRECT_LEVEL_AMOUNTS),
        nullable=False,
    )
    direct_require_activation: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    direct_activation_criteria: Mapped[str] = mapped_column(
        String(20), default=ActivationTrigger.FIRST_DEPOSIT, nullable=False
    )
    direct_instant_credit: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Last payout tracking
    last_monthly_payout_month: Mapped[str | None] = mapped_column(
        String(7), nullable=True
    )
    last_monthly_payout_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
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
            f"<CommissionSettings(mode={self.commission_mode}, "
            f"last_month={self.last_monthly_payout_month})>"
        )
