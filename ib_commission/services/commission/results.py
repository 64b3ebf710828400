"""
Result objects returned by the commission engine.

Expected business outcomes (skipped, already processed, nothing to do) are
reported through these instead of exceptions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ib_commission.models.batch_run import BatchRun


@dataclass(frozen=True)
class UplineLevel:
    """One ancestor of a user in the referral chain."""

    beneficiary_id: int
    level: int


@dataclass(frozen=True)
class AccumulatorSnapshot:
    """State of a volume accumulator right after an increment."""

    user_id: int
    period_key: str
    total_lots: Decimal
    total_trades: int
    total_volume_notional: Decimal
    status: str
    last_source_fact_id: str | None


@dataclass
class LevelCommission:
    """Commission posted (or found) for one upline level."""

    level: int
    beneficiary_id: int
    amount: Decimal
    status: str
    entry_id: int | None = None


@dataclass
class DistributionResult:
    """Result of an activation distribution."""

    processed: bool
    reason: str | None = None
    commissions_created: int = 0
    total_distributed: Decimal = Decimal("0")
    per_level_breakdown: list[LevelCommission] = field(default_factory=list)


@dataclass
class CreditingSummary:
    """Outcome of crediting a set of PENDING entries."""

    credited: int = 0
    failed: int = 0
    total_credited: Decimal = Decimal("0")


@dataclass
class PayoutResult:
    """Result of a monthly payout run."""

    success: bool
    reason: str | None = None
    batch_id: str | None = None
    target_period: str | None = None
    traders_selected: int = 0
    traders_processed: int = 0
    entries_created: int = 0
    entries_credited: int = 0
    entries_failed: int = 0
    total_amount: Decimal = Decimal("0")
    errors: list[dict] = field(default_factory=list)
    cancelled: bool = False
    batch_run: BatchRun | None = None


@dataclass
class ReversalResult:
    """Outcome of an admin reversal."""

    entry_id: int
    beneficiary_id: int
    amount: Decimal
    debited: bool
    reversed_at: datetime
