"""
IBAccount model.

Introducing-broker account of a platform user: the beneficiary side of
the referral program and the owner of the commission wallet.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ib_commission.models.base import Base
from ib_commission.models.enums import IBAccountStatus
from ib_commission.models.types import MoneyType


class IBAccount(Base):
    """
    IBAccount entity.

    Wallet balances are mutated only through
    ``WalletLedger.credit`` / ``WalletLedger.debit``. There is no
    non-negative constraint: a reversal may legitimately take the
    balance below zero after a withdrawal.

    Attributes:
        id: Primary key
        user_id: Platform user owning this IB account
        status: ACTIVE accounts receive commissions and pass the upline on
        wallet_balance: Withdrawable commission balance
        total_commission_earned: Lifetime credited commission (net of reversals)
        created_at: Account creation timestamp
        updated_at: Last modification timestamp
    """

    __tablename__ = "ib_accounts"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    user_id: Mapped[int] = mapped_column(
        Integer, unique=True, index=True, nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=IBAccountStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    # Wallet
    wallet_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_commission_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<IBAccount(user_id={self.user_id}, status={self.status}, "
            f"balance={self.wallet_balance})>"
        )

    @property
    def is_active(self) -> bool:
        """Whether the account participates in the upline."""
        return self.status == IBAccountStatus.ACTIVE
