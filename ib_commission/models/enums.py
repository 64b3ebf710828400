"""
Enumerations shared by commission models.
"""

from enum import StrEnum


class IBAccountStatus(StrEnum):
    """IB (beneficiary) account status."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    INACTIVE = "INACTIVE"


class ReferralEdgeStatus(StrEnum):
    """Referral relationship status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AccumulatorStatus(StrEnum):
    """Monthly volume accumulator lifecycle."""

    ACCUMULATING = "ACCUMULATING"
    PROCESSED = "PROCESSED"
    PAID = "PAID"


class CommissionStatus(StrEnum):
    """Commission ledger entry status."""

    PENDING = "PENDING"  # Awaiting crediting
    CREDITED = "CREDITED"  # Settled to wallet
    FAILED = "FAILED"  # Needs reconciliation
    REVERSED = "REVERSED"  # Deliberately undone (terminal)


class CommissionKind(StrEnum):
    """Which commission model produced a ledger entry."""

    MONTHLY_VOLUME = "MONTHLY_VOLUME"
    DIRECT_JOINING = "DIRECT_JOINING"


class ActivationTrigger(StrEnum):
    """Events that can activate a newly referred user."""

    REGISTRATION = "REGISTRATION"
    FIRST_DEPOSIT = "FIRST_DEPOSIT"
    FIRST_TRADE = "FIRST_TRADE"
    KYC_APPROVED = "KYC_APPROVED"


class CommissionMode(StrEnum):
    """Platform-wide commission mode."""

    REALTIME = "REALTIME"  # Legacy per-trade broker IB
    MONTHLY_CONTROLLED = "MONTHLY_CONTROLLED"  # Monthly batch + direct joining


class BatchRunState(StrEnum):
    """Monthly payout state machine."""

    IDLE = "IDLE"
    SELECTING = "SELECTING"
    DISTRIBUTING = "DISTRIBUTING"
    CREDITING = "CREDITING"
    SETTLING = "SETTLING"
    DONE = "DONE"


class BatchRunStatus(StrEnum):
    """Outcome of a monthly payout run."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"
    CANCELLED = "CANCELLED"
