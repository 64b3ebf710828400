"""
Datetime utilities.

Provides timezone-aware datetime functions and calendar-month period keys.
"""

import re
from datetime import UTC, datetime

PERIOD_KEY_PATTERN = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Make a datetime timezone-aware in UTC.

    Naive datetimes (as returned by SQLite) are assumed to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def period_key(moment: datetime) -> str:
    """
    Get the "YYYY-MM" period key of a moment, in UTC.

    Args:
        moment: Any datetime (naive values are treated as UTC)

    Returns:
        Calendar month key, e.g. "2024-03"
    """
    moment = ensure_utc(moment)
    return f"{moment.year:04d}-{moment.month:02d}"


def previous_period(moment: datetime) -> str:
    """
    Get the period key of the calendar month before ``moment``.

    January rolls back to December of the previous year.
    """
    moment = ensure_utc(moment)
    if moment.month == 1:
        return f"{moment.year - 1:04d}-12"
    return f"{moment.year:04d}-{moment.month - 1:02d}"


def is_valid_period_key(value: str) -> bool:
    """Check that ``value`` is a well-formed "YYYY-MM" key."""
    return bool(PERIOD_KEY_PATTERN.fullmatch(value))
