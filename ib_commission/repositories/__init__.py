"""
Data access layer.

Repositories wrap SQLAlchemy queries for each model. They flush but never
commit: transaction boundaries belong to the services.
"""

from ib_commission.repositories.batch_run_repository import BatchRunRepository
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
    InsertOutcome,
    InsertResult,
)
from ib_commission.repositories.commission_settings_repository import (
    CommissionSettingsRepository,
)
from ib_commission.repositories.ib_account_repository import IBAccountRepository
from ib_commission.repositories.referral_edge_repository import (
    ReferralEdgeRepository,
)
from ib_commission.repositories.volume_accumulator_repository import (
    VolumeAccumulatorRepository,
)

__all__ = [
    "BatchRunRepository",
    "CommissionLedgerRepository",
    "CommissionSettingsRepository",
    "IBAccountRepository",
    "InsertOutcome",
    "InsertResult",
    "ReferralEdgeRepository",
    "VolumeAccumulatorRepository",
]
