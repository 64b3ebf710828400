"""
Unit tests for the rollback decorator.

Tests cover:
- Rollback on error for service methods (self.session)
- Rollback on error for plain functions (session argument)
- No rollback on success
- Functions without a session
"""

import pytest

from ib_commission.utils.db_decorators import with_rollback_on_error


class FakeService:
    """Service-like object holding a session."""

    def __init__(self, session):
        self.session = session

    @with_rollback_on_error
    async def fail(self):
        raise RuntimeError("boom")

    @with_rollback_on_error
    async def succeed(self):
        return "ok"


class TestWithRollbackOnError:
    """Test with_rollback_on_error decorator."""

    @pytest.mark.asyncio
    async def test_rollback_on_service_error(self, mock_session):
        """Test session found on self is rolled back and error re-raised."""
        service = FakeService(mock_session)

        with pytest.raises(RuntimeError, match="boom"):
            await service.fail()

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_rollback_on_success(self, mock_session):
        """Test successful call leaves the session alone."""
        service = FakeService(mock_session)

        assert await service.succeed() == "ok"
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_session_keyword_argument(self, mock_session):
        """Test session passed as keyword."""
        @with_rollback_on_error
        async def operation(session):
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await operation(session=mock_session)

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_positional_argument(self, mock_session):
        """Test session passed as first positional argument."""
        @with_rollback_on_error
        async def operation(session, value):
            raise ValueError(value)

        with pytest.raises(ValueError):
            await operation(mock_session, "bad")

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_session(self):
        """Test function without a session still runs."""
        @with_rollback_on_error
        async def operation(value):
            return value * 2

        assert await operation(21) == 42

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(self, mock_session):
        """Test a failing rollback does not mask the original exception."""
        mock_session.rollback.side_effect = RuntimeError("rollback failed")
        service = FakeService(mock_session)

        with pytest.raises(RuntimeError, match="boom"):
            await service.fail()
