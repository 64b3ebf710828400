"""
Commission reversal.

Admin operation that takes back a commission: the entry becomes REVERSED
(terminal) and, when money had been credited, the same amount is debited
from the beneficiary's wallet in the same transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.enums import CommissionStatus
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from ib_commission.services.base_service import BaseService
from ib_commission.services.commission.exceptions import (
    CommissionAlreadyReversedError,
    CommissionError,
    CommissionNotFoundError,
)
from ib_commission.services.commission.results import ReversalResult
from ib_commission.services.commission.wallet_ledger import WalletLedger
from ib_commission.utils.datetime_utils import utc_now
from ib_commission.utils.db_decorators import with_rollback_on_error
from ib_commission.utils.money import round_money


class CommissionReversalService(BaseService):
    """Reverses individual ledger entries."""

    def __init__(
        self, session: AsyncSession, wallet: WalletLedger | None = None
    ) -> None:
        """Initialize reversal service."""
        super().__init__(session)
        self.ledger_repo = CommissionLedgerRepository(session)
        self.wallet = wallet or WalletLedger(session)

    @with_rollback_on_error
    async def reverse_commission(
        self, entry_id: int, actor_id: int, reason: str
    ) -> ReversalResult:
        """
        Reverse a commission entry.

        CREDITED entries are debited from the wallet (balance and lifetime
        earnings). PENDING and FAILED entries never moved money, so they are
        only marked REVERSED. Entries are never deleted.

        Args:
            entry_id: Ledger entry
            actor_id: Admin performing the reversal
            reason: Free-text reason kept on the entry

        Returns:
            ReversalResult

        Raises:
            CommissionNotFoundError: Entry does not exist
            CommissionAlreadyReversedError: Entry is already REVERSED
            WalletNotFoundError: Beneficiary wallet is gone
        """
        entry = await self.ledger_repo.get_fresh(entry_id)
        if entry is None:
            raise CommissionNotFoundError(entry_id)
        if entry.status == CommissionStatus.REVERSED:
            raise CommissionAlreadyReversedError(entry_id)

        previous_status = entry.status
        beneficiary_id = entry.beneficiary_id
        amount = round_money(entry.amount)
        reversed_at = utc_now()

        claimed = await self.ledger_repo.transition(
            entry_id,
            (previous_status,),
            status=CommissionStatus.REVERSED,
            reversed_at=reversed_at,
            reversed_by=actor_id,
            reversal_reason=reason,
        )
        if not claimed:
            current = await self.ledger_repo.get_fresh(entry_id)
            if current is not None and current.status == CommissionStatus.REVERSED:
                raise CommissionAlreadyReversedError(entry_id)
            raise CommissionError(
                f"Commission entry {entry_id} changed during reversal"
            )

        debited = previous_status == CommissionStatus.CREDITED and amount > 0
        if debited:
            await self.wallet.debit(beneficiary_id, amount)

        await self.commit()

        self.logger.info(
            f"Commission {entry_id} reversed",
            extra={
                "actor_id": actor_id,
                "beneficiary_id": beneficiary_id,
                "amount": str(amount),
                "previous_status": previous_status,
                "debited": debited,
            },
        )
        return ReversalResult(
            entry_id=entry_id,
            beneficiary_id=beneficiary_id,
            amount=amount,
            debited=debited,
            reversed_at=reversed_at,
        )
