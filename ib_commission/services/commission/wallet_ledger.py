"""
Wallet ledger primitive.

The only code allowed to change an IB wallet balance. Every call is paired
with a ledger entry transition by its caller.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.repositories.ib_account_repository import IBAccountRepository
from ib_commission.services.commission.exceptions import (
    InvalidAmountError,
    WalletNotFoundError,
)


class WalletLedger:
    """Atomic credit / debit of IB wallets."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize wallet ledger."""
        self.session = session
        self.account_repo = IBAccountRepository(session)

    @staticmethod
    def _validate(amount: Decimal) -> None:
        if not isinstance(amount, Decimal) or not amount.is_finite():
            raise InvalidAmountError(f"Amount must be a finite Decimal: {amount!r}")
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive: {amount}")

    async def credit(self, user_id: int, amount: Decimal) -> None:
        """
        Add ``amount`` to balance and lifetime earnings.

        Args:
            user_id: Wallet owner
            amount: Positive amount

        Raises:
            InvalidAmountError: If amount is not positive
            WalletNotFoundError: If the user has no IB account
        """
        self._validate(amount)
        if not await self.account_repo.apply_wallet_delta(user_id, amount):
            raise WalletNotFoundError(user_id)

        logger.debug(f"Wallet of user {user_id} credited {amount}")

    async def debit(self, user_id: int, amount: Decimal) -> None:
        """
        Subtract ``amount`` from balance and lifetime earnings.

        There is no overdraft check: the balance may become negative.

        Raises:
            InvalidAmountError: If amount is not positive
            WalletNotFoundError: If the user has no IB account
        """
        self._validate(amount)
        if not await self.account_repo.apply_wallet_delta(user_id, -amount):
            raise WalletNotFoundError(user_id)

        logger.debug(f"Wallet of user {user_id} debited {amount}")
