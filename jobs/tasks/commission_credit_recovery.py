"""
Commission credit recovery task.

Credits PENDING monthly commissions left behind by a payout run that was
interrupted between distribution and crediting.
"""

from collections.abc import Callable
from typing import Any

import dramatiq
from loguru import logger
from redis.asyncio import Redis

from ib_commission.config.settings import settings
from ib_commission.services.commission.batch_payout import MonthlyPayoutEngine
from ib_commission.utils.distributed_lock import (
    DistributedLock,
    LockAcquisitionError,
)
from ib_commission.utils.redis_utils import get_redis_client
from jobs.async_runner import create_local_session, run_async


@dramatiq.actor(max_retries=3, time_limit=settings.payout_time_limit_ms)
def resume_pending_commission_credits(target_period: str) -> None:
    """
    Credit PENDING monthly commissions of a period.

    Args:
        target_period: "YYYY-MM"
    """
    logger.info(f"Resuming pending commission credits for {target_period}...")

    try:
        result = run_async(resume_pending_credits_job(target_period))
    except LockAcquisitionError as e:
        logger.warning(f"Payout for {target_period} is running, retry later: {e}")
        return
    except Exception as e:
        logger.exception(f"Commission credit recovery failed: {e}")
        raise

    logger.info(
        f"Commission credit recovery complete for {target_period}: "
        f"{result['credited']} credited, {result['failed']} failed, "
        f"total: {result['total_credited']} USD"
    )


async def resume_pending_credits_job(
    target_period: str,
    session_factory: Callable[[], Any] | None = None,
    redis_client: Redis | None = None,
) -> dict:
    """
    Async implementation of the recovery task.

    Shares the payout lock of the period, so it never runs alongside the
    payout itself.
    """
    session_factory = session_factory or create_local_session

    own_client = redis_client is None
    if own_client:
        redis_client = get_redis_client()

    lock = DistributedLock(redis_client=redis_client)

    try:
        async with lock.lock(
            f"monthly_ib_payout_{target_period}",
            timeout=settings.payout_lock_timeout,
            blocking=False,
        ):
            async with session_factory() as session:
                engine = MonthlyPayoutEngine(session)
                summary = await engine.credit_pending_entries(target_period)
                return {
                    "target_period": target_period,
                    "credited": summary.credited,
                    "failed": summary.failed,
                    "total_credited": float(summary.total_credited),
                }
    finally:
        if own_client:
            await redis_client.aclose()
