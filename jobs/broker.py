"""
Dramatiq broker configuration.

Redis-based message broker for task queue. Imported by the worker entry
point before the task modules (``dramatiq jobs.broker jobs.tasks...``).
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, ShutdownNotifications
from loguru import logger

from ib_commission.config.logging import setup_logging
from ib_commission.config.settings import settings
from ib_commission.utils.redis_utils import get_redis_url_masked

setup_logging(settings)

# Retries is part of RedisBroker's default middleware
redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password if settings.redis_password else None,
    db=settings.redis_db,
)

# ShutdownNotifications: Allows workers to gracefully shutdown
# CurrentMessage: Provides access to current message in actors
redis_broker.add_middleware(ShutdownNotifications())
redis_broker.add_middleware(CurrentMessage())

# Set as default broker
dramatiq.set_broker(redis_broker)

# Export broker
broker = redis_broker

logger.info(f"Dramatiq broker initialized: {get_redis_url_masked()}")
logger.info("Middleware enabled: ShutdownNotifications, CurrentMessage, Retries")
