"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings() validation
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("REDIS_HOST", "localhost")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Task modules register actors on import: give them an in-memory broker
import dramatiq  # noqa: E402
from dramatiq.brokers.stub import StubBroker  # noqa: E402

dramatiq.set_broker(StubBroker())

from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event, select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ib_commission.models import (  # noqa: E402
    Base,
    CommissionLedgerEntry,
    IBAccount,
    ReferralEdge,
    VolumeAccumulator,
)
from ib_commission.models.enums import (  # noqa: E402
    IBAccountStatus,
    ReferralEdgeStatus,
)
from ib_commission.repositories.commission_settings_repository import (  # noqa: E402
    CommissionSettingsRepository,
)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    Temporary SQLite database with all tables.

    pysqlite's own transaction handling is switched off so SAVEPOINT
    (session.begin_nested) works.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'commission.db'}"
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker):
    """Database session for one test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def configure(session):
    """Update the commission settings row and commit."""
    async def _configure(**values):
        row = await CommissionSettingsRepository(session).update_settings(**values)
        await session.commit()
        return row

    return _configure


@pytest.fixture
def make_account(session):
    """Create an IB account."""
    async def _make_account(
        user_id: int,
        status: str = IBAccountStatus.ACTIVE,
        balance: Decimal = Decimal("0"),
    ) -> IBAccount:
        account = IBAccount(
            user_id=user_id,
            status=status,
            wallet_balance=balance,
            total_commission_earned=balance,
        )
        session.add(account)
        await session.commit()
        return account

    return _make_account


@pytest.fixture
def refer(session):
    """Create a referral edge child -> beneficiary."""
    async def _refer(
        child_user_id: int,
        beneficiary_user_id: int,
        status: str = ReferralEdgeStatus.ACTIVE,
    ) -> ReferralEdge:
        edge = ReferralEdge(
            child_user_id=child_user_id,
            beneficiary_user_id=beneficiary_user_id,
            status=status,
        )
        session.add(edge)
        await session.commit()
        return edge

    return _refer


@pytest.fixture
def build_chain(make_account, refer):
    """
    Create a referral chain.

    ``build_chain(10, 1, 2)`` makes user 10 referred by 1, and 1 referred
    by 2, with ACTIVE IB accounts for 1 and 2.
    """
    async def _build_chain(source_id: int, *ancestors: int) -> None:
        for ancestor in ancestors:
            await make_account(ancestor)
        chain = (source_id, *ancestors)
        for child, parent in zip(chain, chain[1:]):
            await refer(child, parent)

    return _build_chain


@pytest.fixture
def add_volume(session):
    """Insert an accumulator row directly."""
    async def _add_volume(
        user_id: int,
        period_key: str,
        total_lots: Decimal,
        total_trades: int = 1,
        status: str = "ACCUMULATING",
    ) -> VolumeAccumulator:
        accumulator = VolumeAccumulator(
            user_id=user_id,
            period_key=period_key,
            total_lots=total_lots,
            total_trades=total_trades,
            total_volume_notional=total_lots * 100_000,
            status=status,
        )
        session.add(accumulator)
        await session.commit()
        return accumulator

    return _add_volume


@pytest.fixture
def wallet_of(session_maker):
    """Read (balance, total earned) of a wallet through a fresh session."""
    async def _wallet_of(user_id: int) -> tuple[Decimal, Decimal]:
        async with session_maker() as fresh:
            result = await fresh.execute(
                select(IBAccount).where(IBAccount.user_id == user_id)
            )
            account = result.scalar_one()
            return account.wallet_balance, account.total_commission_earned

    return _wallet_of


@pytest.fixture
def entries_of(session_maker):
    """Read ledger entries through a fresh session, ordered by id."""
    async def _entries_of(**filters) -> list[CommissionLedgerEntry]:
        async with session_maker() as fresh:
            result = await fresh.execute(
                select(CommissionLedgerEntry)
                .filter_by(**filters)
                .order_by(CommissionLedgerEntry.id)
            )
            return list(result.scalars().all())

    return _entries_of


@pytest.fixture
def accumulator_of(session_maker):
    """Read an accumulator through a fresh session."""
    async def _accumulator_of(user_id: int, period_key: str) -> VolumeAccumulator:
        async with session_maker() as fresh:
            result = await fresh.execute(
                select(VolumeAccumulator).where(
                    VolumeAccumulator.user_id == user_id,
                    VolumeAccumulator.period_key == period_key,
                )
            )
            return result.scalar_one()

    return _accumulator_of


@pytest.fixture
def mock_redis_client():
    """Mock Redis client for lock tests."""
    client = AsyncMock()
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client
