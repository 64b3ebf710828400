"""
Instant commission distributor.

Direct joining income: when a referred user activates, every IB in their
upline receives a flat amount for their level, exactly once per new user.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.config.constants import DIRECT_JOINING_PERIOD_KEY
from ib_commission.models.enums import CommissionKind, CommissionStatus
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from ib_commission.services.base_service import BaseService
from ib_commission.services.commission.config import load_commission_config
from ib_commission.services.commission.crediting import EntryCreditor
from ib_commission.services.commission.results import (
    DistributionResult,
    LevelCommission,
)
from ib_commission.services.commission.upline_resolver import UplineResolver
from ib_commission.services.commission.wallet_ledger import WalletLedger
from ib_commission.utils.db_decorators import with_rollback_on_error
from ib_commission.utils.money import round_money


class InstantCommissionDistributor(BaseService):
    """Distributes direct joining income on user activation."""

    def __init__(
        self,
        session: AsyncSession,
        resolver: UplineResolver | None = None,
        wallet: WalletLedger | None = None,
    ) -> None:
        """
        Initialize distributor.

        Args:
            session: Async database session
            resolver: Upline resolver (defaults to one on the same session)
            wallet: Wallet primitive (defaults to one on the same session)
        """
        super().__init__(session)
        self.ledger_repo = CommissionLedgerRepository(session)
        self.resolver = resolver or UplineResolver(session)
        self.creditor = EntryCreditor(session, wallet=wallet)

    @with_rollback_on_error
    async def distribute_activation(
        self, new_user_id: int, activation_trigger: str
    ) -> DistributionResult:
        """
        Distribute flat per-level commissions for an activated user.

        Preconditions are checked in order and each one short-circuits with
        ``processed=False`` and a reason: feature enabled, trigger matches
        the required one, no entry exists yet for the user, non-empty upline.

        Args:
            new_user_id: User who just activated
            activation_trigger: REGISTRATION / FIRST_DEPOSIT / FIRST_TRADE /
                KYC_APPROVED

        Returns:
            DistributionResult with created count, total and per-level detail

        Raises:
            UplineCycleError: If the referral chain contains a cycle
        """
        config = (await load_commission_config(self.session)).direct

        if not config.enabled:
            return DistributionResult(
                processed=False, reason="Direct referral commission disabled"
            )

        if not config.accepts_trigger(activation_trigger):
            return DistributionResult(
                processed=False,
                reason=(
                    f"Activation trigger {activation_trigger} does not match "
                    f"required {config.activation_criteria}"
                ),
            )

        if await self.ledger_repo.exists_for_source(
            new_user_id, CommissionKind.DIRECT_JOINING
        ):
            self.logger.debug(
                f"Direct joining income already distributed for user {new_user_id}"
            )
            return DistributionResult(processed=False, reason="already processed")

        upline = await self.resolver.resolve_upline(new_user_id, config.max_levels)
        if not upline:
            self.logger.debug(f"No upline for user {new_user_id}")
            return DistributionResult(processed=False, reason="no upline")

        direct_referrer_id = upline[0].beneficiary_id
        result = DistributionResult(processed=True)

        for upline_level in upline:
            amount = round_money(config.amount_for_level(upline_level.level))
            if amount <= 0:
                continue

            async with self.session.begin_nested():
                inserted = await self.ledger_repo.insert_if_absent(
                    beneficiary_id=upline_level.beneficiary_id,
                    source_id=new_user_id,
                    period_key=DIRECT_JOINING_PERIOD_KEY,
                    level=upline_level.level,
                    kind=CommissionKind.DIRECT_JOINING,
                    rate=amount,
                    amount=amount,
                    status=CommissionStatus.PENDING,
                    activation_trigger=activation_trigger,
                    direct_referrer_id=direct_referrer_id,
                )

            if not inserted.inserted:
                self.logger.debug(
                    f"Direct joining entry exists for user {new_user_id} "
                    f"level {upline_level.level}"
                )
                continue

            status = CommissionStatus.PENDING
            if config.instant_credit:
                status = await self.creditor.credit_entry(
                    inserted.entry_id, upline_level.beneficiary_id, amount
                ) or CommissionStatus.PENDING

            result.commissions_created += 1
            if status != CommissionStatus.FAILED:
                result.total_distributed += amount
            result.per_level_breakdown.append(
                LevelCommission(
                    level=upline_level.level,
                    beneficiary_id=upline_level.beneficiary_id,
                    amount=amount,
                    status=status,
                    entry_id=inserted.entry_id,
                )
            )

        await self.commit()

        self.logger.info(
            f"Direct joining income distributed for user {new_user_id}",
            extra={
                "trigger": activation_trigger,
                "commissions_created": result.commissions_created,
                "total_distributed": str(result.total_distributed),
            },
        )
        return result
