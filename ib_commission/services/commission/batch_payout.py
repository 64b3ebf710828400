"""
Monthly payout engine.

Turns a closed month of accumulated trading volume into per-level lot
commissions for each trader's upline, credits them, and settles the period.

Run states: IDLE -> SELECTING -> DISTRIBUTING -> CREDITING -> SETTLING -> DONE.
Per-trader failures are collected on the BatchRun; the run goes on.
"""

import asyncio
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.batch_run import BatchRun
from ib_commission.models.enums import (
    BatchRunState,
    BatchRunStatus,
    CommissionKind,
    CommissionStatus,
)
from ib_commission.models.volume_accumulator import VolumeAccumulator
from ib_commission.repositories.batch_run_repository import BatchRunRepository
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from ib_commission.repositories.commission_settings_repository import (
    CommissionSettingsRepository,
)
from ib_commission.repositories.volume_accumulator_repository import (
    VolumeAccumulatorRepository,
)
from ib_commission.services.base_service import BaseService, log_operation
from ib_commission.services.commission.config import (
    CommissionConfig,
    load_commission_config,
)
from ib_commission.services.commission.crediting import EntryCreditor
from ib_commission.services.commission.exceptions import InvalidPeriodError
from ib_commission.services.commission.results import (
    CreditingSummary,
    PayoutResult,
)
from ib_commission.services.commission.upline_resolver import UplineResolver
from ib_commission.services.commission.wallet_ledger import WalletLedger
from ib_commission.utils.datetime_utils import (
    is_valid_period_key,
    previous_period,
    utc_now,
)
from ib_commission.utils.money import round_money

MONTHLY_MODE_DISABLED = "Monthly IB mode not enabled"
ALREADY_PROCESSED = "already processed"


def generate_batch_id(period_key: str) -> str:
    """Batch id of the form MONTHLY_<period>_<8 hex chars>."""
    return f"MONTHLY_{period_key}_{uuid.uuid4().hex[:8]}"


class MonthlyPayoutEngine(BaseService):
    """Batch payout of monthly trading IB commissions."""

    def __init__(
        self,
        session: AsyncSession,
        resolver: UplineResolver | None = None,
        wallet: WalletLedger | None = None,
    ) -> None:
        """
        Initialize payout engine.

        Args:
            session: Async database session
            resolver: Upline resolver (defaults to one on the same session)
            wallet: Wallet primitive (defaults to one on the same session)
        """
        super().__init__(session)
        self.accumulator_repo = VolumeAccumulatorRepository(session)
        self.ledger_repo = CommissionLedgerRepository(session)
        self.batch_repo = BatchRunRepository(session)
        self.settings_repo = CommissionSettingsRepository(session)
        self.resolver = resolver or UplineResolver(session)
        self.creditor = EntryCreditor(session, wallet=wallet)

    @log_operation
    async def run_monthly_payout(
        self,
        target_period: str | None = None,
        now: datetime | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PayoutResult:
        """
        Run the monthly payout for a period.

        Args:
            target_period: "YYYY-MM"; defaults to the month before ``now``
            now: Clock value (defaults to current UTC time)
            cancel_event: Checked between traders; when set, the run stops
                distributing, credits what it created and leaves the period
                unmarked so a rerun resumes

        Returns:
            PayoutResult. ``success=False`` with a reason when the monthly
            mode is off or the period was already processed.

        Raises:
            InvalidPeriodError: If ``target_period`` is malformed
        """
        now = now or utc_now()
        period = target_period or previous_period(now)
        if not is_valid_period_key(period):
            raise InvalidPeriodError(f"Invalid period key: {period!r}")

        config = await load_commission_config(self.session)

        if not config.monthly_mode_active:
            self.logger.info(f"Monthly payout for {period} skipped: mode disabled")
            return PayoutResult(
                success=False, reason=MONTHLY_MODE_DISABLED, target_period=period
            )

        if config.last_monthly_payout_month == period:
            self.logger.info(f"Monthly payout for {period} already processed")
            return PayoutResult(
                success=False, reason=ALREADY_PROCESSED, target_period=period
            )

        batch_id = generate_batch_id(period)
        batch_run = await self.batch_repo.create(
            batch_id=batch_id,
            target_period=period,
            state=BatchRunState.SELECTING,
            status=BatchRunStatus.RUNNING,
            errors=[],
            started_at=now,
        )
        await self.commit()
        self.logger.info(
            f"Starting monthly payout {batch_id} for {period}",
            extra={"batch_id": batch_id, "target_period": period},
        )

        # SELECTING
        accumulators = await self.accumulator_repo.select_for_payout(
            period, config.monthly.min_lots
        )
        batch_run.traders_selected = len(accumulators)
        batch_run.state = BatchRunState.DISTRIBUTING
        await self.commit()

        # DISTRIBUTING
        errors: list[dict] = []
        cancelled = False
        for accumulator in accumulators:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                self.logger.warning(
                    f"Monthly payout {batch_id} cancelled",
                    extra={"traders_processed": batch_run.traders_processed},
                )
                break

            created = await self._process_trader(
                accumulator, config, batch_id, period, errors
            )
            batch_run.entries_created += created
            batch_run.traders_processed += 1
            batch_run.errors = list(errors)
            await self.commit()

        # CREDITING
        batch_run.state = BatchRunState.CREDITING
        await self.commit()
        summary = await self._credit_pending(period)

        # SETTLING
        batch_run.state = BatchRunState.SETTLING
        await self.commit()
        paid = await self.accumulator_repo.mark_paid_settled(period, utc_now())
        if not cancelled:
            await self.settings_repo.mark_period_processed(period, now)

        batch_run.entries_credited = summary.credited
        batch_run.entries_failed = summary.failed
        batch_run.total_amount = summary.total_credited
        batch_run.state = BatchRunState.DONE
        batch_run.status = self._final_status(cancelled, errors, summary)
        batch_run.finished_at = utc_now()
        await self.commit()

        self.logger.info(
            f"Monthly payout {batch_id} finished",
            extra={
                "status": batch_run.status,
                "traders_processed": batch_run.traders_processed,
                "entries_created": batch_run.entries_created,
                "entries_credited": summary.credited,
                "entries_failed": summary.failed,
                "accumulators_paid": paid,
                "total_amount": str(summary.total_credited),
                "errors": len(errors),
            },
        )

        return PayoutResult(
            success=True,
            batch_id=batch_id,
            target_period=period,
            traders_selected=batch_run.traders_selected,
            traders_processed=batch_run.traders_processed,
            entries_created=batch_run.entries_created,
            entries_credited=summary.credited,
            entries_failed=summary.failed,
            total_amount=summary.total_credited,
            errors=list(errors),
            cancelled=cancelled,
            batch_run=batch_run,
        )

    async def credit_pending_entries(self, target_period: str) -> CreditingSummary:
        """
        Credit every PENDING monthly entry of a period and settle it.

        Recovery path for runs interrupted between DISTRIBUTING and
        CREDITING. Does not touch the processed period marker.

        Raises:
            InvalidPeriodError: If ``target_period`` is malformed
        """
        if not is_valid_period_key(target_period):
            raise InvalidPeriodError(f"Invalid period key: {target_period!r}")

        summary = await self._credit_pending(target_period)
        await self.accumulator_repo.mark_paid_settled(target_period, utc_now())
        await self.commit()

        self.logger.info(
            f"Pending commissions of {target_period} credited",
            extra={
                "credited": summary.credited,
                "failed": summary.failed,
                "total": str(summary.total_credited),
            },
        )
        return summary

    async def _process_trader(
        self,
        accumulator: VolumeAccumulator,
        config: CommissionConfig,
        batch_id: str,
        period: str,
        errors: list[dict],
    ) -> int:
        """
        Post PENDING entries for one trader and mark the accumulator PROCESSED.

        A failure is recorded in ``errors`` and on the accumulator, which then
        stays PROCESSED instead of being settled.

        Returns:
            Number of entries created
        """
        trader_id = accumulator.user_id
        total_lots = accumulator.total_lots
        total_trades = accumulator.total_trades
        created = 0
        error_message = None

        try:
            async with self.session.begin_nested():
                upline = await self.resolver.resolve_upline(
                    trader_id, config.monthly.max_levels
                )

            for upline_level in upline:
                rate = config.monthly.rate_for_level(upline_level.level)
                if rate <= 0:
                    continue
                amount = round_money(total_lots * rate)
                if amount <= 0:
                    continue

                async with self.session.begin_nested():
                    inserted = await self.ledger_repo.insert_if_absent(
                        beneficiary_id=upline_level.beneficiary_id,
                        source_id=trader_id,
                        period_key=period,
                        level=upline_level.level,
                        kind=CommissionKind.MONTHLY_VOLUME,
                        rate=rate,
                        amount=amount,
                        total_lots=total_lots,
                        total_trades=total_trades,
                        status=CommissionStatus.PENDING,
                        batch_id=batch_id,
                    )

                if inserted.inserted:
                    created += 1
                else:
                    self.logger.debug(
                        f"Monthly entry exists for trader {trader_id} "
                        f"level {upline_level.level} in {period}"
                    )
        except Exception as e:
            self.logger.exception(
                f"Monthly payout failed for trader {trader_id}"
            )
            error_message = str(e) or e.__class__.__name__
            errors.append({"source_id": trader_id, "message": error_message})

        await self.accumulator_repo.mark_processed(
            accumulator.id, batch_id, utc_now(), error_message=error_message
        )
        return created

    async def _credit_pending(self, period: str) -> CreditingSummary:
        """Credit PENDING monthly entries of a period, committing each one."""
        summary = CreditingSummary()
        entry_ids = await self.ledger_repo.pending_monthly_ids(period)

        for entry_id in entry_ids:
            entry = await self.ledger_repo.get_fresh(entry_id)
            if entry is None or entry.status != CommissionStatus.PENDING:
                continue
            beneficiary_id = entry.beneficiary_id
            amount = round_money(entry.amount)

            status = await self.creditor.credit_entry(
                entry_id, beneficiary_id, amount
            )
            if status == CommissionStatus.CREDITED:
                summary.credited += 1
                summary.total_credited += amount
            elif status == CommissionStatus.FAILED:
                summary.failed += 1
            await self.commit()

        return summary

    @staticmethod
    def _final_status(
        cancelled: bool, errors: list[dict], summary: CreditingSummary
    ) -> str:
        if cancelled:
            return BatchRunStatus.CANCELLED
        if errors or summary.failed:
            return BatchRunStatus.COMPLETED_WITH_ERRORS
        return BatchRunStatus.COMPLETED

    async def get_batch_run(self, batch_id: str) -> BatchRun | None:
        """Get the audit record of a run."""
        return await self.batch_repo.get_by_batch_id(batch_id)
