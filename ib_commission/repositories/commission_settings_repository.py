"""
CommissionSettings repository.

Loads the singleton settings row (creating it with defaults on first
access) and maintains the last processed period marker.
"""

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ib_commission.config.constants import COMMISSION_SETTINGS_TYPE
from ib_commission.models.commission_settings import CommissionSettings
from ib_commission.repositories.base import BaseRepository


class CommissionSettingsRepository(BaseRepository[CommissionSettings]):
    """CommissionSettings repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission settings repository."""
        super().__init__(CommissionSettings, session)

    async def _select(self) -> CommissionSettings | None:
        stmt = (
            select(CommissionSettings)
            .where(CommissionSettings.settings_type == COMMISSION_SETTINGS_TYPE)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self) -> CommissionSettings:
        """
        Get the settings row, creating it with defaults if missing.

        Returns:
            Settings row
        """
        row = await self._select()
        if row is not None:
            return row

        try:
            async with self.session.begin_nested():
                row = CommissionSettings(settings_type=COMMISSION_SETTINGS_TYPE)
                self.session.add(row)
            logger.info("Commission settings created with defaults")
            return row
        except IntegrityError:
            # Created concurrently by another worker
            row = await self._select()
            if row is None:
                raise
            return row

    async def update_settings(self, **values: Any) -> CommissionSettings:
        """
        Update settings fields.

        Args:
            **values: Column values, e.g. ``monthly_enabled=False``

        Returns:
            Updated settings row
        """
        row = await self.get_or_create()
        for key, value in values.items():
            if not hasattr(CommissionSettings, key):
                raise ValueError(f"Unknown commission setting: {key}")
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def mark_period_processed(
        self, period_key: str, processed_at: datetime
    ) -> None:
        """Record ``period_key`` as the last processed monthly period."""
        await self.get_or_create()
        stmt = (
            update(CommissionSettings)
            .where(CommissionSettings.settings_type == COMMISSION_SETTINGS_TYPE)
            .values(
                last_monthly_payout_month=period_key,
                last_monthly_payout_at=processed_at,
                updated_at=processed_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
