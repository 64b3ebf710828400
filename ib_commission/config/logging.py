"""
Logging configuration.

Configures loguru sinks for workers and scripts.
"""

import sys

from loguru import logger

from ib_commission.config.settings import Settings


def setup_logging(settings: Settings) -> None:
    """Configure stderr and rotating file sinks."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )

    logger.info(
        f"Logging configured (level={settings.log_level}, "
        f"environment={settings.environment})"
    )
