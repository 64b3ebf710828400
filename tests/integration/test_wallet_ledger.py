"""
Integration tests for wallet mutations.

Tests cover:
- Credit and debit update balance and lifetime earnings
- No overdraft check on debit
- Missing wallet
- Many sequential mutations stay exact to the cent
"""

from decimal import Decimal

import pytest

from ib_commission.services.commission.exceptions import WalletNotFoundError
from ib_commission.services.commission.wallet_ledger import WalletLedger


class TestWalletLedger:
    """Test WalletLedger credit / debit."""

    @pytest.mark.asyncio
    async def test_credit(self, session, make_account, wallet_of):
        """Test credit raises balance and total earned."""
        await make_account(1, balance=Decimal("5.00"))

        await WalletLedger(session).credit(1, Decimal("10.25"))
        await session.commit()

        assert await wallet_of(1) == (Decimal("15.25"), Decimal("15.25"))

    @pytest.mark.asyncio
    async def test_debit_can_go_negative(self, session, make_account, wallet_of):
        """Test debit has no overdraft check."""
        await make_account(1, balance=Decimal("3.00"))

        await WalletLedger(session).debit(1, Decimal("10.00"))
        await session.commit()

        balance, earned = await wallet_of(1)
        assert balance == Decimal("-7.00")
        assert earned == Decimal("-7.00")

    @pytest.mark.asyncio
    async def test_missing_wallet(self, session):
        """Test unknown beneficiary."""
        with pytest.raises(WalletNotFoundError):
            await WalletLedger(session).credit(404, Decimal("1.00"))

    @pytest.mark.asyncio
    async def test_credit_then_debit_restores(self, session, make_account, wallet_of):
        """Test symmetric mutations cancel out to the cent."""
        await make_account(1, balance=Decimal("100.00"))
        wallet = WalletLedger(session)

        for _ in range(10):
            await wallet.credit(1, Decimal("0.10"))
        for _ in range(10):
            await wallet.debit(1, Decimal("0.10"))
        await session.commit()

        balance, earned = await wallet_of(1)
        assert balance.quantize(Decimal("0.01")) == Decimal("100.00")
        assert earned.quantize(Decimal("0.01")) == Decimal("100.00")
