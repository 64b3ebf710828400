"""
Integration tests for concurrent writers.

Many sessions increment the same accumulator or credit the same wallet at
once; every increment must survive.
"""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ib_commission.models import Base, IBAccount, VolumeAccumulator
from ib_commission.models.enums import IBAccountStatus
from ib_commission.services.commission.volume_accumulator import (
    VolumeAccumulatorService,
)
from ib_commission.services.commission.wallet_ledger import WalletLedger


WRITERS = 10


@pytest_asyncio.fixture
async def writers_session_maker(tmp_path):
    """
    Session factory whose transactions start with BEGIN IMMEDIATE.

    SQLite writers then wait on the database lock (up to ``timeout``)
    instead of failing with SQLITE_BUSY.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'writers.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


class TestConcurrentVolume:
    """Test concurrent record_volume on one (user, period)."""

    @pytest.mark.asyncio
    async def test_no_lost_increments(self, writers_session_maker):
        """Test every trade is counted once."""
        async def record(trade_number: int) -> None:
            async with writers_session_maker() as session:
                await VolumeAccumulatorService(session).record_volume(
                    user_id=10,
                    lots=Decimal("0.5"),
                    trade_id=f"T-{trade_number}",
                    notional_volume=Decimal("50000"),
                    period_key="2025-01",
                )

        await asyncio.gather(*(record(n) for n in range(WRITERS)))

        async with writers_session_maker() as session:
            result = await session.execute(
                select(VolumeAccumulator).where(VolumeAccumulator.user_id == 10)
            )
            accumulator = result.scalar_one()

        assert accumulator.total_lots == Decimal("0.5") * WRITERS
        assert accumulator.total_trades == WRITERS
        assert accumulator.total_volume_notional == Decimal("50000") * WRITERS


class TestConcurrentWallet:
    """Test concurrent credits on one wallet."""

    @pytest.mark.asyncio
    async def test_no_lost_credits(self, writers_session_maker):
        """Test balance and earnings include every credit."""
        async with writers_session_maker() as session:
            session.add(IBAccount(user_id=1, status=IBAccountStatus.ACTIVE))
            await session.commit()

        async def credit() -> None:
            async with writers_session_maker() as session:
                await WalletLedger(session).credit(1, Decimal("1.25"))
                await session.commit()

        await asyncio.gather(*(credit() for _ in range(WRITERS)))

        async with writers_session_maker() as session:
            result = await session.execute(
                select(IBAccount).where(IBAccount.user_id == 1)
            )
            account = result.scalar_one()

        assert account.wallet_balance == Decimal("12.50")
        assert account.total_commission_earned == Decimal("12.50")
