"""
Commission reporting.

Read-only aggregations over the ledger, accumulators and batch runs for
admin and IB dashboards. REVERSED entries are left out of money totals.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.batch_run import BatchRun
from ib_commission.models.commission_ledger_entry import CommissionLedgerEntry
from ib_commission.models.enums import CommissionKind, CommissionStatus
from ib_commission.repositories.batch_run_repository import BatchRunRepository
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from ib_commission.repositories.ib_account_repository import IBAccountRepository
from ib_commission.repositories.volume_accumulator_repository import (
    VolumeAccumulatorRepository,
)
from ib_commission.services.base_service import BaseService
from ib_commission.services.commission.config import load_commission_config
from ib_commission.utils.datetime_utils import period_key, utc_now
from ib_commission.utils.money import round_money

RECENT_DIRECT_REFERRALS = 20


def entry_to_dict(entry: CommissionLedgerEntry) -> dict:
    """Serialize a ledger entry for display."""
    return {
        "id": entry.id,
        "kind": entry.kind,
        "beneficiary_id": entry.beneficiary_id,
        "source_id": entry.source_id,
        "period_key": entry.period_key,
        "level": entry.level,
        "rate": entry.rate,
        "amount": round_money(entry.amount),
        "total_lots": entry.total_lots,
        "status": entry.status,
        "batch_id": entry.batch_id,
        "activation_trigger": entry.activation_trigger,
        "error_message": entry.error_message,
        "created_at": entry.created_at,
        "credited_at": entry.credited_at,
        "reversed_at": entry.reversed_at,
    }


def batch_run_to_dict(batch_run: BatchRun) -> dict:
    """Serialize a batch run for display."""
    return {
        "batch_id": batch_run.batch_id,
        "target_period": batch_run.target_period,
        "state": batch_run.state,
        "status": batch_run.status,
        "traders_selected": batch_run.traders_selected,
        "traders_processed": batch_run.traders_processed,
        "entries_created": batch_run.entries_created,
        "entries_credited": batch_run.entries_credited,
        "entries_failed": batch_run.entries_failed,
        "total_amount": round_money(batch_run.total_amount),
        "errors": list(batch_run.errors or []),
        "started_at": batch_run.started_at,
        "finished_at": batch_run.finished_at,
    }


def _money_groups(rows: list[dict]) -> list[dict]:
    return [
        {
            "key": row["key"],
            "count": row["count"],
            "sources": row["sources"],
            "total_amount": round_money(row["total_amount"]),
            "total_lots": row["total_lots"],
        }
        for row in rows
    ]


def _total(rows: list[dict]) -> Decimal:
    return round_money(sum((row["total_amount"] for row in rows), Decimal("0")))


class CommissionReportingService(BaseService):
    """Ledger views for admins and beneficiaries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize reporting service."""
        super().__init__(session)
        self.ledger_repo = CommissionLedgerRepository(session)
        self.accumulator_repo = VolumeAccumulatorRepository(session)
        self.batch_repo = BatchRunRepository(session)
        self.account_repo = IBAccountRepository(session)

    async def summarize(
        self,
        group_by: str,
        kind: str | None = None,
        status: str | None = None,
        period_key: str | None = None,
    ) -> list[dict]:
        """
        Aggregate entries by level, beneficiary or period.

        Without a status filter REVERSED entries are excluded.

        Args:
            group_by: "level", "beneficiary" or "period"
            kind: MONTHLY_VOLUME or DIRECT_JOINING
            status: Only entries in this status
            period_key: Only entries of this period

        Returns:
            One row per group with count, distinct sources, amount and lots
        """
        rows = await self.ledger_repo.summarize(
            group_by,
            kind=kind,
            status=status,
            exclude_status=None if status else CommissionStatus.REVERSED,
            period_key=period_key,
        )
        return _money_groups(rows)

    async def beneficiary_monthly_summary(
        self, beneficiary_id: int, period: str
    ) -> dict:
        """Monthly trading commissions of one IB for a period, by level."""
        by_level = await self.ledger_repo.summarize(
            "level",
            kind=CommissionKind.MONTHLY_VOLUME,
            beneficiary_id=beneficiary_id,
            period_key=period,
            exclude_status=CommissionStatus.REVERSED,
        )
        by_status = await self.ledger_repo.summarize(
            "status",
            kind=CommissionKind.MONTHLY_VOLUME,
            beneficiary_id=beneficiary_id,
            period_key=period,
        )

        return {
            "beneficiary_id": beneficiary_id,
            "period": period,
            "total_amount": _total(by_level),
            "total_commissions": sum(row["count"] for row in by_level),
            "by_level": [
                {
                    "level": row["key"],
                    "traders": row["sources"],
                    "total_lots": row["total_lots"],
                    "amount": round_money(row["total_amount"]),
                }
                for row in by_level
            ],
            "by_status": {
                row["key"]: {
                    "count": row["count"],
                    "amount": round_money(row["total_amount"]),
                }
                for row in by_status
            },
        }

    async def batch_report(self, batch_id: str) -> dict | None:
        """Run record of a batch plus its entries by status and level."""
        batch_run = await self.batch_repo.get_by_batch_id(batch_id)
        if batch_run is None:
            return None

        by_status = await self.ledger_repo.summarize("status", batch_id=batch_id)
        by_level = await self.ledger_repo.summarize(
            "level", batch_id=batch_id, exclude_status=CommissionStatus.REVERSED
        )

        report = batch_run_to_dict(batch_run)
        report["by_status"] = {
            row["key"]: {
                "count": row["count"],
                "amount": round_money(row["total_amount"]),
            }
            for row in by_status
        }
        report["by_level"] = _money_groups(by_level)
        return report

    async def direct_referral_summary(
        self, beneficiary_id: int, recent_limit: int = RECENT_DIRECT_REFERRALS
    ) -> dict:
        """Direct joining income of one IB: totals, levels, latest entries."""
        by_level = await self.ledger_repo.summarize(
            "level",
            kind=CommissionKind.DIRECT_JOINING,
            beneficiary_id=beneficiary_id,
            exclude_status=CommissionStatus.REVERSED,
        )
        by_beneficiary = await self.ledger_repo.summarize(
            "beneficiary",
            kind=CommissionKind.DIRECT_JOINING,
            beneficiary_id=beneficiary_id,
            exclude_status=CommissionStatus.REVERSED,
        )
        recent = await self.ledger_repo.find_entries(
            kind=CommissionKind.DIRECT_JOINING,
            beneficiary_id=beneficiary_id,
            newest_first=True,
            limit=recent_limit,
        )

        return {
            "beneficiary_id": beneficiary_id,
            "unique_referrals": by_beneficiary[0]["sources"] if by_beneficiary else 0,
            "total_earned": _total(by_level),
            "by_level": _money_groups(by_level),
            "recent": [entry_to_dict(entry) for entry in recent],
        }

    async def admin_direct_referral_report(
        self, start: datetime, end: datetime
    ) -> dict:
        """Direct joining income paid in [start, end), by level and IB."""
        filters = {
            "kind": CommissionKind.DIRECT_JOINING,
            "exclude_status": CommissionStatus.REVERSED,
            "created_from": start,
            "created_to": end,
        }
        by_level = await self.ledger_repo.summarize("level", **filters)
        by_beneficiary = await self.ledger_repo.summarize("beneficiary", **filters)

        return {
            "start": start,
            "end": end,
            "total_amount": _total(by_level),
            "total_commissions": sum(row["count"] for row in by_level),
            "by_level": _money_groups(by_level),
            "by_beneficiary": sorted(
                _money_groups(by_beneficiary),
                key=lambda row: row["total_amount"],
                reverse=True,
            ),
        }

    async def monthly_traders(
        self, period: str, status: str | None = None
    ) -> list[dict]:
        """Traders with volume in a period, largest first."""
        accumulators = await self.accumulator_repo.list_for_period(period, status)
        return [
            {
                "user_id": accumulator.user_id,
                "period_key": accumulator.period_key,
                "total_lots": accumulator.total_lots,
                "total_trades": accumulator.total_trades,
                "total_volume_notional": accumulator.total_volume_notional,
                "status": accumulator.status,
                "batch_id": accumulator.batch_id,
                "error_message": accumulator.error_message,
            }
            for accumulator in accumulators
        ]

    async def list_batch_runs(
        self, target_period: str | None = None, limit: int = 20
    ) -> list[dict]:
        """Recent payout runs, newest first."""
        runs = await self.batch_repo.list_recent(target_period, limit)
        return [batch_run_to_dict(run) for run in runs]

    async def get_batch_run(self, batch_id: str) -> dict | None:
        """One payout run."""
        batch_run = await self.batch_repo.get_by_batch_id(batch_id)
        return batch_run_to_dict(batch_run) if batch_run else None

    async def admin_overview(self, now: datetime | None = None) -> dict:
        """Dashboard numbers for the current period."""
        now = now or utc_now()
        current_period = period_key(now)
        config = await load_commission_config(self.session)

        by_status = await self.ledger_repo.summarize(
            "status",
            kind=CommissionKind.MONTHLY_VOLUME,
            period_key=current_period,
        )
        wallets = await self.account_repo.wallet_totals()
        volume = await self.accumulator_repo.period_totals(current_period)

        return {
            "current_period": current_period,
            "commission_mode": config.commission_mode,
            "monthly_enabled": config.monthly.enabled,
            "direct_enabled": config.direct.enabled,
            "status_breakdown": {
                row["key"]: {
                    "count": row["count"],
                    "amount": round_money(row["total_amount"]),
                }
                for row in by_status
            },
            "wallets": {
                "accounts": wallets["accounts"],
                "total_balance": round_money(wallets["total_balance"]),
                "total_earned": round_money(wallets["total_earned"]),
            },
            "traders_with_volume": volume["traders"],
            "period_total_lots": volume["total_lots"],
            "last_payout_month": config.last_monthly_payout_month,
        }
