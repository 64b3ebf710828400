"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from ib_commission.models.base import Base
from ib_commission.models.batch_run import BatchRun
from ib_commission.models.commission_ledger_entry import CommissionLedgerEntry
from ib_commission.models.commission_settings import CommissionSettings
from ib_commission.models.enums import (
    AccumulatorStatus,
    ActivationTrigger,
    BatchRunState,
    BatchRunStatus,
    CommissionKind,
    CommissionMode,
    CommissionStatus,
    IBAccountStatus,
    ReferralEdgeStatus,
)
from ib_commission.models.ib_account import IBAccount
from ib_commission.models.referral_edge import ReferralEdge
from ib_commission.models.volume_accumulator import VolumeAccumulator

__all__ = [
    # Base
    "Base",
    # Enums
    "AccumulatorStatus",
    "ActivationTrigger",
    "BatchRunState",
    "BatchRunStatus",
    "CommissionKind",
    "CommissionMode",
    "CommissionStatus",
    "IBAccountStatus",
    "ReferralEdgeStatus",
    # Referral graph
    "IBAccount",
    "ReferralEdge",
    # Volume and ledger
    "VolumeAccumulator",
    "CommissionLedgerEntry",
    "BatchRun",
    # Settings
    "CommissionSettings",
]
