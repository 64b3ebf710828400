"""
Standard type definitions for database models.

Provides consistent types for monetary and volume fields across all models.
"""

from sqlalchemy import DECIMAL, JSON
from sqlalchemy.dialects.postgresql import JSONB

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Trading lots (0.01 lot granularity in practice)
LotsType = DECIMAL(18, 8)

# Notional volume in quote currency (lots * contract size)
NotionalType = DECIMAL(28, 8)

# Per-level rate or flat amount
RateType = DECIMAL(18, 8)

# JSON document column (JSONB on PostgreSQL)
JsonType = JSON().with_variant(JSONB(), "postgresql")
