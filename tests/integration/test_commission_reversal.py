"""
Integration tests for commission reversal.

Tests cover:
- Credited entries are debited to the cent
- Uncredited entries are marked REVERSED without touching the wallet
- Reversal is terminal
"""

from decimal import Decimal

import pytest

from ib_commission.models.enums import ActivationTrigger, CommissionStatus
from ib_commission.services.commission.exceptions import (
    CommissionAlreadyReversedError,
    CommissionNotFoundError,
)
from ib_commission.services.commission.instant_distributor import (
    InstantCommissionDistributor,
)
from ib_commission.services.commission.reversal import CommissionReversalService
from ib_commission.services.commission.wallet_ledger import WalletLedger


ADMIN_ID = 999


async def _activate(session, user_id: int) -> int:
    result = await InstantCommissionDistributor(session).distribute_activation(
        user_id, ActivationTrigger.FIRST_DEPOSIT
    )
    return result.per_level_breakdown[0].entry_id


class TestReverseCommission:
    """Test CommissionReversalService.reverse_commission."""

    @pytest.mark.asyncio
    async def test_credited_entry_debited_exactly(
        self, session, make_account, refer, wallet_of, entries_of
    ):
        """Test balance and earnings return to their prior values."""
        await make_account(1, balance=Decimal("100.00"))
        await refer(100, 1)
        entry_id = await _activate(session, 100)
        assert await wallet_of(1) == (Decimal("115.00"), Decimal("115.00"))

        result = await CommissionReversalService(session).reverse_commission(
            entry_id, actor_id=ADMIN_ID, reason="fraudulent deposit"
        )

        assert result.entry_id == entry_id
        assert result.beneficiary_id == 1
        assert result.amount == Decimal("15.00")
        assert result.debited is True
        assert await wallet_of(1) == (Decimal("100.00"), Decimal("100.00"))

        [entry] = await entries_of(id=entry_id)
        assert entry.status == CommissionStatus.REVERSED
        assert entry.reversed_by == ADMIN_ID
        assert entry.reversal_reason == "fraudulent deposit"
        assert entry.reversed_at is not None

    @pytest.mark.asyncio
    async def test_balance_may_go_negative(
        self, session, build_chain, wallet_of
    ):
        """Test a spent commission is still taken back."""
        await build_chain(100, 1)
        entry_id = await _activate(session, 100)
        await WalletLedger(session).debit(1, Decimal("15.00"))
        await session.commit()

        await CommissionReversalService(session).reverse_commission(
            entry_id, actor_id=ADMIN_ID, reason="chargeback"
        )

        assert (await wallet_of(1))[0] == Decimal("-15.00")

    @pytest.mark.asyncio
    async def test_pending_entry_not_debited(
        self, session, build_chain, configure, wallet_of, entries_of
    ):
        """Test an entry that never moved money is only marked."""
        await configure(direct_instant_credit=False)
        await build_chain(100, 1)
        entry_id = await _activate(session, 100)

        result = await CommissionReversalService(session).reverse_commission(
            entry_id, actor_id=ADMIN_ID, reason="duplicate account"
        )

        assert result.debited is False
        assert await wallet_of(1) == (Decimal("0"), Decimal("0"))
        assert (await entries_of(id=entry_id))[0].status == CommissionStatus.REVERSED

    @pytest.mark.asyncio
    async def test_reversed_entry_cannot_be_reversed_again(
        self, session, build_chain, wallet_of
    ):
        """Test reversal is terminal and never debits twice."""
        await build_chain(100, 1)
        entry_id = await _activate(session, 100)
        service = CommissionReversalService(session)
        await service.reverse_commission(entry_id, actor_id=ADMIN_ID, reason="first")

        with pytest.raises(CommissionAlreadyReversedError):
            await service.reverse_commission(entry_id, actor_id=ADMIN_ID, reason="second")

        assert (await wallet_of(1))[0] == Decimal("0")

    @pytest.mark.asyncio
    async def test_missing_entry(self, session):
        """Test unknown entry ids are rejected."""
        with pytest.raises(CommissionNotFoundError):
            await CommissionReversalService(session).reverse_commission(
                12345, actor_id=ADMIN_ID, reason="typo"
            )
