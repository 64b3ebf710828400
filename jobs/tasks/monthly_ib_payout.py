"""
Monthly IB payout task.

Processes the previous month's trading volume and distributes monthly
trading IB commissions. Scheduled on the 1st of every month (00:05 UTC);
admins may trigger it manually for an explicit period.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import dramatiq
from loguru import logger
from redis.asyncio import Redis

from ib_commission.config.settings import settings
from ib_commission.services.commission.batch_payout import MonthlyPayoutEngine
from ib_commission.services.commission.config import load_commission_config
from ib_commission.utils.datetime_utils import previous_period, utc_now
from ib_commission.utils.distributed_lock import (
    DistributedLock,
    LockAcquisitionError,
)
from ib_commission.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session, run_async


@dramatiq.actor(max_retries=3, time_limit=settings.payout_time_limit_ms)
def process_monthly_payout(target_period: str | None = None) -> None:
    """
    Run the monthly IB payout.

    Args:
        target_period: "YYYY-MM" for a manual run; None for the scheduled
            run, which only proceeds in monthly mode with auto payout on
    """
    logger.info(
        f"Starting monthly IB payout"
        f"{f' for {target_period}' if target_period else ' for previous month'}..."
    )

    try:
        result = run_async(run_monthly_payout_job(target_period))
    except LockAcquisitionError as e:
        logger.warning(f"Monthly IB payout already running: {e}")
        return
    except Exception as e:
        logger.exception(f"Monthly IB payout failed: {e}")
        raise

    if result.get("skipped"):
        logger.info(f"Monthly IB payout skipped: {result['reason']}")
    elif result["success"]:
        logger.info(
            f"Monthly IB payout complete: batch {result['batch_id']}, "
            f"{result['entries_credited']} commissions credited, "
            f"total: {result['total_amount']} USD"
        )
    else:
        logger.info(f"Monthly IB payout not run: {result['reason']}")


async def run_monthly_payout_job(
    target_period: str | None = None,
    session_factory: Callable[[], Any] | None = None,
    redis_client: Redis | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Async implementation of the monthly payout task.

    Args:
        target_period: Explicit period (manual run) or None (scheduled run)
        session_factory: Returns an async session context manager
            (defaults to a NullPool session per task)
        redis_client: Client for the distributed lock (created from
            settings when omitted)
        now: Clock value (defaults to current UTC time)

    Returns:
        Summary dict with success / skipped / reason and run counters

    Raises:
        LockAcquisitionError: If a payout for the period is already running
    """
    now = now or utc_now()
    period = target_period or previous_period(now)
    session_factory = session_factory or create_local_session

    own_client = redis_client is None
    if own_client:
        redis_client = get_redis_client()

    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock(
            f"monthly_ib_payout_{period}",
            timeout=settings.payout_lock_timeout,
            blocking=False,
        ):
            async with session_factory() as session:
                if target_period is None:
                    config = await load_commission_config(session)
                    if not config.monthly_mode_active:
                        return {
                            "success": False,
                            "skipped": True,
                            "reason": "not in MONTHLY_CONTROLLED mode",
                            "target_period": period,
                        }
                    if not config.monthly.auto_payout_enabled:
                        return {
                            "success": False,
                            "skipped": True,
                            "reason": "auto payout is disabled",
                            "target_period": period,
                        }

                engine = MonthlyPayoutEngine(session)
                result = await engine.run_monthly_payout(period, now=now)

                return {
                    "success": result.success,
                    "skipped": False,
                    "reason": result.reason,
                    "target_period": result.target_period,
                    "batch_id": result.batch_id,
                    "traders_processed": result.traders_processed,
                    "entries_created": result.entries_created,
                    "entries_credited": result.entries_credited,
                    "entries_failed": result.entries_failed,
                    "total_amount": float(result.total_amount),
                    "errors": result.errors,
                }
    finally:
        if own_client:
            await redis_client.aclose()
