"""
Commission engine package.

Contains the services of the multi-level IB commission engine:
- config: Immutable settings snapshot (CommissionConfig)
- upline_resolver: Bounded walk up the referral graph
- wallet_ledger: Atomic wallet credit / debit
- volume_accumulator: Monthly trading volume aggregation
- instant_distributor: Direct joining income on activation
- batch_payout: Monthly volume payout batch
- reversal: Admin reversal of commissions
- reporting: Ledger aggregations for dashboards
- event_handlers: Trade-closed / user-activated entry points
"""

from ib_commission.services.commission.batch_payout import MonthlyPayoutEngine
from ib_commission.services.commission.config import (
    CommissionConfig,
    DirectJoiningConfig,
    MonthlyVolumeConfig,
    load_commission_config,
)
from ib_commission.services.commission.event_handlers import (
    ClosedTrade,
    CommissionEventHandler,
)
from ib_commission.services.commission.exceptions import (
    CommissionAlreadyReversedError,
    CommissionError,
    CommissionIntegrityError,
    CommissionNotFoundError,
    InvalidAmountError,
    InvalidPeriodError,
    InvalidVolumeError,
    StalePeriodError,
    UplineCycleError,
    WalletNotFoundError,
)
from ib_commission.services.commission.instant_distributor import (
    InstantCommissionDistributor,
)
from ib_commission.services.commission.reporting import (
    CommissionReportingService,
)
from ib_commission.services.commission.results import (
    AccumulatorSnapshot,
    CreditingSummary,
    DistributionResult,
    LevelCommission,
    PayoutResult,
    ReversalResult,
    UplineLevel,
)
from ib_commission.services.commission.reversal import CommissionReversalService
from ib_commission.services.commission.upline_resolver import UplineResolver
from ib_commission.services.commission.volume_accumulator import (
    VolumeAccumulatorService,
)
from ib_commission.services.commission.wallet_ledger import WalletLedger


__all__ = [
    # Configuration
    "CommissionConfig",
    "DirectJoiningConfig",
    "MonthlyVolumeConfig",
    "load_commission_config",
    # Services
    "CommissionEventHandler",
    "CommissionReportingService",
    "CommissionReversalService",
    "InstantCommissionDistributor",
    "MonthlyPayoutEngine",
    "UplineResolver",
    "VolumeAccumulatorService",
    "WalletLedger",
    # Events and results
    "AccumulatorSnapshot",
    "ClosedTrade",
    "CreditingSummary",
    "DistributionResult",
    "LevelCommission",
    "PayoutResult",
    "ReversalResult",
    "UplineLevel",
    # Errors
    "CommissionAlreadyReversedError",
    "CommissionError",
    "CommissionIntegrityError",
    "CommissionNotFoundError",
    "InvalidAmountError",
    "InvalidPeriodError",
    "InvalidVolumeError",
    "StalePeriodError",
    "UplineCycleError",
    "WalletNotFoundError",
]
