"""
Unit tests for input validation of the commission primitives.

Tests cover:
- Volume validation (negative, NaN, infinite, non-numeric)
- Wallet amount validation
- Period validation of record_volume
"""

from decimal import Decimal

import pytest

from ib_commission.services.commission.exceptions import (
    InvalidAmountError,
    InvalidPeriodError,
    InvalidVolumeError,
)
from ib_commission.services.commission.volume_accumulator import (
    VolumeAccumulatorService,
    validate_volume,
)
from ib_commission.services.commission.wallet_ledger import WalletLedger


class TestValidateVolume:
    """Test validate_volume."""

    @pytest.mark.parametrize(
        "value,expected",
        [(Decimal("2.5"), Decimal("2.5")), (0, Decimal("0")), (0.1, Decimal("0.1")), ("1.25", Decimal("1.25"))],
    )
    def test_valid(self, value, expected):
        """Test non-negative finite numbers."""
        assert validate_volume("lots", value) == expected

    @pytest.mark.parametrize(
        "value", [Decimal("-0.01"), -1, float("nan"), float("inf"), "NaN", "abc", None]
    )
    def test_invalid(self, value):
        """Test rejected values raise an integrity error."""
        with pytest.raises(InvalidVolumeError):
            validate_volume("lots", value)


class TestWalletAmount:
    """Test wallet amount validation (no database access happens)."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("NaN")])
    async def test_credit_rejects_non_positive(self, mock_session, amount):
        """Test zero, negative and NaN credits."""
        with pytest.raises(InvalidAmountError):
            await WalletLedger(mock_session).credit(1, amount)
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_debit_rejects_float(self, mock_session):
        """Test amounts must be Decimal."""
        with pytest.raises(InvalidAmountError):
            await WalletLedger(mock_session).debit(1, 5.0)


class TestRecordVolumeValidation:
    """Test record_volume rejects bad input before touching the database."""

    @pytest.mark.asyncio
    async def test_negative_lots(self, mock_session):
        """Test negative lots."""
        service = VolumeAccumulatorService(mock_session)
        with pytest.raises(InvalidVolumeError):
            await service.record_volume(1, Decimal("-1"), "T1", Decimal("0"), "2025-01")
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bad_period(self, mock_session):
        """Test malformed period key."""
        service = VolumeAccumulatorService(mock_session)
        with pytest.raises(InvalidPeriodError):
            await service.record_volume(1, Decimal("1"), "T1", Decimal("100000"), "2025-1")
