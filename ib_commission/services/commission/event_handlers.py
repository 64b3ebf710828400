"""
Commission event handlers.

Entry points for the platform's trade-closed and user-activated events.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.config.constants import get_contract_size
from ib_commission.services.base_service import BaseService
from ib_commission.services.commission.config import load_commission_config
from ib_commission.services.commission.instant_distributor import (
    InstantCommissionDistributor,
)
from ib_commission.services.commission.results import (
    AccumulatorSnapshot,
    DistributionResult,
)
from ib_commission.services.commission.volume_accumulator import (
    VolumeAccumulatorService,
    validate_volume,
)
from ib_commission.utils.datetime_utils import period_key


@dataclass(frozen=True)
class ClosedTrade:
    """A closed trade, already validated by the trading platform."""

    user_id: int
    symbol: str
    quantity_lots: Decimal | int | float | str
    closed_at: datetime
    trade_id: str | int | None = None


class CommissionEventHandler(BaseService):
    """Routes platform events into the commission engine."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize event handler."""
        super().__init__(session)
        self.volume_service = VolumeAccumulatorService(session)
        self.distributor = InstantCommissionDistributor(session)

    async def on_trade_closed(
        self, trade: ClosedTrade
    ) -> AccumulatorSnapshot | None:
        """
        Record the volume of a closed trade.

        Notional volume is lots times the symbol's contract size; the period
        is the calendar month of the close time (UTC).

        Returns:
            Accumulator state, or None when monthly IB mode is not active
        """
        config = await load_commission_config(self.session)
        if not config.monthly_mode_active:
            await self.commit()
            self.logger.debug(
                f"Trade of user {trade.user_id} ignored: monthly IB mode not active"
            )
            return None

        lots = validate_volume("lots", trade.quantity_lots)
        notional = lots * get_contract_size(trade.symbol)

        return await self.volume_service.record_volume(
            user_id=trade.user_id,
            lots=lots,
            trade_id=trade.trade_id,
            notional_volume=notional,
            period_key=period_key(trade.closed_at),
        )

    async def on_user_activated(
        self, user_id: int, activation_trigger: str
    ) -> DistributionResult:
        """Distribute direct joining income for an activated user."""
        return await self.distributor.distribute_activation(
            user_id, activation_trigger
        )
