"""
Business constants for the IB commission engine.

Defaults used when the ``commission_settings`` row is created for the
first time, plus contract sizes used to turn lots into notional volume.
"""

from decimal import Decimal


# Singleton key of the commission settings row
COMMISSION_SETTINGS_TYPE = "IB_MODE_CONFIG"

# Monthly trading IB: fixed $ per lot for each upline level
MONTHLY_MAX_LEVELS = 11
DEFAULT_MONTHLY_LEVEL_RATES: dict[int, Decimal] = {
    1: Decimal("4"),
    2: Decimal("3"),
    3: Decimal("3"),
    4: Decimal("2"),
    5: Decimal("2"),
    6: Decimal("1"),
    7: Decimal("1"),
    8: Decimal("0.5"),
    9: Decimal("0.5"),
    10: Decimal("0.5"),
    11: Decimal("0.5"),
}
DEFAULT_MIN_LOTS_FOR_PAYOUT = Decimal("0.01")
DEFAULT_PAYOUT_DAY = 1

# Direct joining income: flat $ per upline level on activation
DIRECT_MAX_LEVELS = 18
DEFAULT_DIRECT_LEVEL_AMOUNTS: dict[int, Decimal] = {
    1: Decimal("15"),
    2: Decimal("10"),
    3: Decimal("5"),
    **{level: Decimal("4") for level in range(4, DIRECT_MAX_LEVELS + 1)},
}

# Direct joining entries are unique per (beneficiary, new user, level):
# the period part of the ledger key is this constant, not the trigger,
# so one user can never pay out twice through different triggers.
DIRECT_JOINING_PERIOD_KEY = "JOINING"

# Commission amounts are rounded to cents
MONEY_QUANTUM = Decimal("0.01")

# Contract sizes for notional volume (units per lot)
DEFAULT_CONTRACT_SIZE = 100_000
CONTRACT_SIZES: dict[str, int] = {
    "XAUUSD": 100,
    "XAGUSD": 5000,
    "BTCUSD": 1,
    "ETHUSD": 1,
    "LTCUSD": 1,
    "XRPUSD": 1,
    "BCHUSD": 1,
}


def get_contract_size(symbol: str) -> int:
    """
    Get contract size for a trading symbol.

    Args:
        symbol: Instrument symbol (e.g. "EURUSD", "XAUUSD")

    Returns:
        Units per lot (100000 for FX pairs by default)
    """
    return CONTRACT_SIZES.get(symbol.upper(), DEFAULT_CONTRACT_SIZE)
