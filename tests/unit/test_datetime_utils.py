"""
Unit tests for period key helpers.

Tests cover:
- Period key of a moment
- Previous period, including the January rollover
- Period key validation
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from ib_commission.utils.datetime_utils import (
    ensure_utc,
    is_valid_period_key,
    period_key,
    previous_period,
)


class TestPeriodKey:
    """Test period key of a moment."""

    def test_period_key_of_aware_datetime(self):
        """Test key is year and zero-padded month."""
        assert period_key(datetime(2025, 3, 15, 12, 0, tzinfo=UTC)) == "2025-03"

    def test_period_key_of_naive_datetime_is_utc(self):
        """Test naive datetimes are treated as UTC."""
        assert period_key(datetime(2025, 12, 31, 23, 59)) == "2025-12"

    def test_period_key_converts_to_utc(self):
        """Test a moment late on the 31st in UTC-5 falls in the next month."""
        moment = datetime(2025, 1, 31, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert period_key(moment) == "2025-02"


class TestPreviousPeriod:
    """Test previous calendar month."""

    def test_previous_period_mid_year(self):
        """Test April rolls back to March."""
        assert previous_period(datetime(2025, 4, 1, tzinfo=UTC)) == "2025-03"

    def test_previous_period_january_rollover(self):
        """Test January rolls back to December of the previous year."""
        assert previous_period(datetime(2025, 1, 1, 0, 5, tzinfo=UTC)) == "2024-12"


class TestValidation:
    """Test period key validation."""

    @pytest.mark.parametrize("value", ["2025-01", "1999-12", "2030-10"])
    def test_valid_keys(self, value):
        """Test well-formed keys."""
        assert is_valid_period_key(value)

    @pytest.mark.parametrize(
        "value",
        ["2025-1", "2025-13", "2025-00", "25-01", "2025/01", "JOINING", "", "2025-03\n", " 2025-03"],
    )
    def test_invalid_keys(self, value):
        """Test malformed keys."""
        assert not is_valid_period_key(value)

    def test_ensure_utc_keeps_instant(self):
        """Test conversion keeps the same instant."""
        moment = datetime(2025, 5, 1, 3, 0, tzinfo=timezone(timedelta(hours=3)))
        assert ensure_utc(moment) == datetime(2025, 5, 1, 0, 0, tzinfo=UTC)
