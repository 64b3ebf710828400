"""Money helpers."""

from decimal import ROUND_HALF_UP, Decimal

from ib_commission.config.constants import MONEY_QUANTUM


def round_money(amount: Decimal) -> Decimal:
    """Round an amount half-up to cents."""
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)
