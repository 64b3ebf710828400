"""
Commission configuration snapshot.

The ``commission_settings`` row is read once per engine operation and turned
into an immutable ``CommissionConfig`` that is passed explicitly to every
step. Level tables are integer-keyed mappings.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.commission_settings import CommissionSettings
from ib_commission.models.enums import CommissionMode
from ib_commission.repositories.commission_settings_repository import (
    CommissionSettingsRepository,
)
from ib_commission.utils.money import to_decimal

ZERO = Decimal("0")


def parse_level_table(raw: Mapping[Any, Any] | None) -> dict[int, Decimal]:
    """
    Convert a stored level table into ``{level: Decimal}``.

    Keys may be ints or numeric strings (JSON objects only have string
    keys). Values may be numbers or decimal strings.
    """
    if not raw:
        return {}
    return {int(level): to_decimal(value) for level, value in raw.items()}


@dataclass(frozen=True)
class MonthlyVolumeConfig:
    """Monthly trading IB: $ per lot for each upline level."""

    enabled: bool
    max_levels: int
    level_rates: dict[int, Decimal]
    min_lots: Decimal
    auto_payout_enabled: bool
    payout_day: int

    def rate_for_level(self, level: int) -> Decimal:
        """Rate for ``level``, zero when the level is not configured."""
        return self.level_rates.get(level, ZERO)


@dataclass(frozen=True)
class DirectJoiningConfig:
    """Direct joining income: flat amount per upline level."""

    enabled: bool
    max_levels: int
    level_amounts: dict[int, Decimal]
    require_activation: bool
    activation_criteria: str
    instant_credit: bool

    def amount_for_level(self, level: int) -> Decimal:
        """Flat amount for ``level``, zero when the level is not configured."""
        return self.level_amounts.get(level, ZERO)

    def accepts_trigger(self, trigger: str) -> bool:
        """Whether an activation via ``trigger`` qualifies for a payout."""
        if not self.require_activation:
            return True
        return trigger == self.activation_criteria


@dataclass(frozen=True)
class CommissionConfig:
    """Immutable view of the commission settings for one operation."""

    commission_mode: str
    monthly: MonthlyVolumeConfig
    direct: DirectJoiningConfig
    last_monthly_payout_month: str | None = None

    @property
    def monthly_mode_active(self) -> bool:
        """Monthly controlled mode selected and the monthly feature on."""
        return (
            self.commission_mode == CommissionMode.MONTHLY_CONTROLLED
            and self.monthly.enabled
        )

    @classmethod
    def from_settings(cls, row: CommissionSettings) -> "CommissionConfig":
        """Build a snapshot from the settings row."""
        return cls(
            commission_mode=row.commission_mode,
            monthly=MonthlyVolumeConfig(
                enabled=row.monthly_enabled,
                max_levels=row.monthly_max_levels,
                level_rates=parse_level_table(row.monthly_level_rates),
                min_lots=to_decimal(row.monthly_min_lots),
                auto_payout_enabled=row.monthly_auto_payout_enabled,
                payout_day=row.monthly_payout_day,
            ),
            direct=DirectJoiningConfig(
                enabled=row.direct_enabled,
                max_levels=row.direct_max_levels,
                level_amounts=parse_level_table(row.direct_level_amounts),
                require_activation=row.direct_require_activation,
                activation_criteria=row.direct_activation_criteria,
                instant_credit=row.direct_instant_credit,
            ),
            last_monthly_payout_month=row.last_monthly_payout_month,
        )


async def load_commission_config(session: AsyncSession) -> CommissionConfig:
    """Read the settings row (created with defaults if missing) once."""
    row = await CommissionSettingsRepository(session).get_or_create()
    return CommissionConfig.from_settings(row)
