"""
Shared fixtures for unit tests.

Unit tests run without a database:
- Mock database session
- Commission configuration snapshots
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.enums import ActivationTrigger, CommissionMode
from ib_commission.services.commission.config import (
    CommissionConfig,
    DirectJoiningConfig,
    MonthlyVolumeConfig,
)


@pytest.fixture
def mock_session():
    """
    Mock async database session.

    Returns:
        AsyncMock: passes ``isinstance(..., AsyncSession)`` checks
    """
    session = AsyncMock(spec=AsyncSession)
    return session


@pytest.fixture
def commission_config():
    """Configuration snapshot with two monthly and three direct levels."""
    return CommissionConfig(
        commission_mode=CommissionMode.MONTHLY_CONTROLLED,
        monthly=MonthlyVolumeConfig(
            enabled=True,
            max_levels=2,
            level_rates={1: Decimal("4"), 2: Decimal("3")},
            min_lots=Decimal("0.01"),
            auto_payout_enabled=True,
            payout_day=1,
        ),
        direct=DirectJoiningConfig(
            enabled=True,
            max_levels=3,
            level_amounts={1: Decimal("15"), 2: Decimal("10"), 3: Decimal("5")},
            require_activation=True,
            activation_criteria=ActivationTrigger.FIRST_DEPOSIT,
            instant_credit=True,
        ),
    )
