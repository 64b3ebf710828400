"""
Integration tests for platform event handlers.

Tests cover:
- Closed trades feed the accumulator of the close month
- Notional volume from contract sizes
- Trades ignored outside monthly controlled mode
- Activations routed to direct joining income
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from ib_commission.models.enums import ActivationTrigger, CommissionMode
from ib_commission.services.commission.event_handlers import (
    ClosedTrade,
    CommissionEventHandler,
)
from ib_commission.services.commission.exceptions import InvalidVolumeError


class TestOnTradeClosed:
    """Test CommissionEventHandler.on_trade_closed."""

    @pytest.mark.asyncio
    async def test_fx_trade(self, session, accumulator_of):
        """Test an FX trade uses the 100000 contract size."""
        trade = ClosedTrade(
            user_id=10,
            symbol="EURUSD",
            quantity_lots=Decimal("0.5"),
            closed_at=datetime(2025, 1, 31, 23, 59, tzinfo=UTC),
            trade_id="T-1",
        )

        snapshot = await CommissionEventHandler(session).on_trade_closed(trade)

        assert snapshot.period_key == "2025-01"
        assert snapshot.total_lots == Decimal("0.5")
        assert snapshot.total_trades == 1
        assert snapshot.total_volume_notional == Decimal("50000")
        assert snapshot.last_source_fact_id == "T-1"
        assert (await accumulator_of(10, "2025-01")).total_lots == Decimal("0.5")

    @pytest.mark.asyncio
    async def test_gold_trade_accumulates(self, session):
        """Test gold contract size and accumulation across trades."""
        handler = CommissionEventHandler(session)
        closed_at = datetime(2025, 2, 1, 0, 0, tzinfo=UTC)

        await handler.on_trade_closed(
            ClosedTrade(10, "xauusd", Decimal("1"), closed_at, trade_id=1)
        )
        snapshot = await handler.on_trade_closed(
            ClosedTrade(10, "XAUUSD", "2", closed_at, trade_id=2)
        )

        assert snapshot.period_key == "2025-02"
        assert snapshot.total_lots == Decimal("3")
        assert snapshot.total_trades == 2
        assert snapshot.total_volume_notional == Decimal("300")
        assert snapshot.last_source_fact_id == "2"

    @pytest.mark.asyncio
    async def test_ignored_outside_monthly_mode(self, session, configure):
        """Test nothing is recorded in realtime mode."""
        await configure(commission_mode=CommissionMode.REALTIME)
        trade = ClosedTrade(10, "EURUSD", Decimal("1"), datetime(2025, 1, 5, tzinfo=UTC))

        assert await CommissionEventHandler(session).on_trade_closed(trade) is None

    @pytest.mark.asyncio
    async def test_negative_lots_rejected(self, session):
        """Test invalid volume raises."""
        trade = ClosedTrade(10, "EURUSD", Decimal("-1"), datetime(2025, 1, 5, tzinfo=UTC))

        with pytest.raises(InvalidVolumeError):
            await CommissionEventHandler(session).on_trade_closed(trade)


class TestOnUserActivated:
    """Test CommissionEventHandler.on_user_activated."""

    @pytest.mark.asyncio
    async def test_routes_to_distributor(self, session, build_chain, wallet_of):
        """Test activation pays direct joining income."""
        await build_chain(100, 1)

        result = await CommissionEventHandler(session).on_user_activated(
            100, ActivationTrigger.FIRST_DEPOSIT
        )

        assert result.processed is True
        assert (await wallet_of(1))[0] == Decimal("15.00")
