"""
Entry crediting.

Moves a PENDING ledger entry to CREDITED together with the wallet credit,
or to FAILED when the credit cannot be applied.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.models.enums import CommissionStatus
from ib_commission.repositories.commission_ledger_repository import (
    CommissionLedgerRepository,
)
from ib_commission.services.commission.exceptions import CommissionError
from ib_commission.services.commission.wallet_ledger import WalletLedger
from ib_commission.utils.datetime_utils import utc_now


class EntryCreditor:
    """Credits individual ledger entries."""

    def __init__(
        self, session: AsyncSession, wallet: WalletLedger | None = None
    ) -> None:
        """
        Initialize entry creditor.

        Args:
            session: Async database session
            wallet: Wallet primitive (defaults to one on the same session)
        """
        self.session = session
        self.ledger_repo = CommissionLedgerRepository(session)
        self.wallet = wallet or WalletLedger(session)

    async def credit_entry(
        self, entry_id: int, beneficiary_id: int, amount: Decimal
    ) -> str | None:
        """
        Credit one PENDING entry.

        The status claim and the wallet credit share a savepoint: either both
        apply or neither does. On failure the entry is marked FAILED with the
        error message. Does not commit.

        Args:
            entry_id: Ledger entry
            beneficiary_id: Wallet owner
            amount: Entry amount

        Returns:
            CREDITED or FAILED, or None if the entry was no longer PENDING
        """
        try:
            async with self.session.begin_nested():
                claimed = await self.ledger_repo.mark_credited(entry_id, utc_now())
                if not claimed:
                    return None
                await self.wallet.credit(beneficiary_id, amount)
        except (CommissionError, SQLAlchemyError) as e:
            await self.ledger_repo.mark_failed(entry_id, str(e))
            logger.warning(
                f"Commission {entry_id} credit failed",
                extra={
                    "beneficiary_id": beneficiary_id,
                    "amount": str(amount),
                    "error": str(e),
                },
            )
            return CommissionStatus.FAILED

        logger.info(
            f"Commission {entry_id} credited",
            extra={"beneficiary_id": beneficiary_id, "amount": str(amount)},
        )
        return CommissionStatus.CREDITED
