#!/usr/bin/env python3
"""Initialize database tables and the commission settings row."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from ib_commission.config.database import (  # noqa: E402
    async_engine,
    async_session_maker,
)
from ib_commission.models import Base  # noqa: E402
from ib_commission.repositories.commission_settings_repository import (  # noqa: E402
    CommissionSettingsRepository,
)

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all database tables and seed default commission settings."""
    logger.info("Connecting to database...")

    async with async_engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async with async_session_maker() as session:
        await CommissionSettingsRepository(session).get_or_create()
        await session.commit()

    await async_engine.dispose()
    logger.success("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
