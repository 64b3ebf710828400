"""
Volume accumulator service.

Folds closed-trade facts into the per-user monthly volume aggregate.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.repositories.volume_accumulator_repository import (
    VolumeAccumulatorRepository,
)
from ib_commission.services.base_service import BaseService
from ib_commission.services.commission.exceptions import (
    InvalidPeriodError,
    InvalidVolumeError,
    StalePeriodError,
)
from ib_commission.services.commission.results import AccumulatorSnapshot
from ib_commission.utils.datetime_utils import is_valid_period_key
from ib_commission.utils.money import to_decimal


def validate_volume(name: str, value: Decimal | int | float | str) -> Decimal:
    """Convert a volume figure to Decimal, rejecting negatives and NaN."""
    try:
        number = to_decimal(value)
    except (ArithmeticError, ValueError, TypeError) as e:
        raise InvalidVolumeError(f"{name} is not a number: {value!r}") from e
    if not number.is_finite():
        raise InvalidVolumeError(f"{name} must be finite: {value!r}")
    if number < 0:
        raise InvalidVolumeError(f"{name} must not be negative: {value!r}")
    return number


class VolumeAccumulatorService(BaseService):
    """Records trading volume into monthly accumulators."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize volume accumulator service."""
        super().__init__(session)
        self.accumulator_repo = VolumeAccumulatorRepository(session)

    async def record_volume(
        self,
        user_id: int,
        lots: Decimal | int | float | str,
        trade_id: str | int | None,
        notional_volume: Decimal | int | float | str,
        period_key: str,
    ) -> AccumulatorSnapshot:
        """
        Add one closed trade to the user's accumulator for a period.

        The caller supplies the period key. The increment is a single atomic
        upsert, committed before returning.

        Args:
            user_id: Trader
            lots: Lots of the trade (>= 0)
            trade_id: Trade identifier, stored as last source fact
            notional_volume: Notional volume of the trade (>= 0)
            period_key: "YYYY-MM"

        Returns:
            Accumulator state after the increment

        Raises:
            InvalidVolumeError: Negative or non-finite lots / notional
            InvalidPeriodError: Malformed period key
            StalePeriodError: Period already PROCESSED or PAID for the user
        """
        lots_value = validate_volume("lots", lots)
        notional_value = validate_volume("notional_volume", notional_volume)
        if not is_valid_period_key(period_key):
            raise InvalidPeriodError(f"Invalid period key: {period_key!r}")

        row = await self.accumulator_repo.upsert_increment(
            user_id=user_id,
            period_key=period_key,
            lots=lots_value,
            notional_volume=notional_value,
            source_fact_id=str(trade_id) if trade_id is not None else None,
        )
        await self.commit()

        if row is None:
            self.logger.warning(
                f"Rejected volume for closed period {period_key}",
                extra={"user_id": user_id, "trade_id": trade_id, "lots": str(lots_value)},
            )
            raise StalePeriodError(user_id, period_key)

        snapshot = AccumulatorSnapshot(
            user_id=row.user_id,
            period_key=row.period_key,
            total_lots=to_decimal(row.total_lots),
            total_trades=row.total_trades,
            total_volume_notional=to_decimal(row.total_volume_notional),
            status=row.status,
            last_source_fact_id=row.last_source_fact_id,
        )
        self.logger.debug(
            f"Volume recorded for user {user_id} in {period_key}",
            extra={
                "lots": str(lots_value),
                "total_lots": str(snapshot.total_lots),
                "total_trades": snapshot.total_trades,
            },
        )
        return snapshot
