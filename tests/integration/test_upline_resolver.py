"""
Integration tests for upline resolution.

Tests cover:
- Ordered levels from the direct referrer up
- Max depth bound
- Short-circuit on missing edge, inactive account, missing account
- INACTIVE edges are ignored
- Cycle detection
"""

import pytest

from ib_commission.models.enums import IBAccountStatus, ReferralEdgeStatus
from ib_commission.services.commission.exceptions import UplineCycleError
from ib_commission.services.commission.results import UplineLevel
from ib_commission.services.commission.upline_resolver import UplineResolver


class TestResolveUpline:
    """Test UplineResolver.resolve_upline."""

    @pytest.mark.asyncio
    async def test_levels_in_order(self, session, build_chain):
        """Test level 1 is the nearest referrer."""
        await build_chain(10, 1, 2, 3)

        upline = await UplineResolver(session).resolve_upline(10, max_levels=5)

        assert upline == [
            UplineLevel(beneficiary_id=1, level=1),
            UplineLevel(beneficiary_id=2, level=2),
            UplineLevel(beneficiary_id=3, level=3),
        ]

    @pytest.mark.asyncio
    async def test_bounded_by_max_levels(self, session, build_chain):
        """Test the walk never exceeds max_levels."""
        await build_chain(10, 1, 2, 3, 4)

        upline = await UplineResolver(session).resolve_upline(10, max_levels=2)

        assert [level.beneficiary_id for level in upline] == [1, 2]

    @pytest.mark.asyncio
    async def test_zero_levels(self, session, build_chain):
        """Test zero depth resolves nothing."""
        await build_chain(10, 1)

        assert await UplineResolver(session).resolve_upline(10, max_levels=0) == []

    @pytest.mark.asyncio
    async def test_no_referrer(self, session):
        """Test a root user has an empty upline (not an error)."""
        assert await UplineResolver(session).resolve_upline(99, max_levels=5) == []

    @pytest.mark.asyncio
    async def test_stops_at_inactive_account(self, session, make_account, refer):
        """Test the chain ends before a suspended IB and does not skip it."""
        await make_account(1)
        await make_account(2, status=IBAccountStatus.SUSPENDED)
        await make_account(3)
        await refer(10, 1)
        await refer(1, 2)
        await refer(2, 3)

        upline = await UplineResolver(session).resolve_upline(10, max_levels=5)

        assert upline == [UplineLevel(beneficiary_id=1, level=1)]

    @pytest.mark.asyncio
    async def test_stops_at_missing_account(self, session, make_account, refer):
        """Test a referrer without IB account ends the chain."""
        await make_account(1)
        await refer(10, 1)
        await refer(1, 2)

        upline = await UplineResolver(session).resolve_upline(10, max_levels=5)

        assert [level.beneficiary_id for level in upline] == [1]

    @pytest.mark.asyncio
    async def test_inactive_edge_ignored(self, session, make_account, refer):
        """Test only ACTIVE edges are followed."""
        await make_account(1)
        await make_account(2)
        await refer(10, 1, status=ReferralEdgeStatus.INACTIVE)
        await refer(10, 2)

        upline = await UplineResolver(session).resolve_upline(10, max_levels=5)

        assert upline == [UplineLevel(beneficiary_id=2, level=1)]

    @pytest.mark.asyncio
    async def test_cycle_detected(self, session, make_account, refer):
        """Test a referral loop aborts with an integrity error."""
        await make_account(1)
        await make_account(2)
        await refer(10, 1)
        await refer(1, 2)
        await refer(2, 1)

        with pytest.raises(UplineCycleError) as exc_info:
            await UplineResolver(session).resolve_upline(10, max_levels=10)

        assert exc_info.value.repeated_id == 1

    @pytest.mark.asyncio
    async def test_cycle_back_to_source(self, session, make_account, refer):
        """Test a chain leading back to the starting user is a cycle."""
        await make_account(1)
        await make_account(10)
        await refer(10, 1)
        await refer(1, 10)

        with pytest.raises(UplineCycleError):
            await UplineResolver(session).resolve_upline(10, max_levels=10)
