#!/usr/bin/env python3
"""
Run the monthly IB payout from the command line.

Examples:
    python scripts/run_monthly_payout.py                  # previous month
    python scripts/run_monthly_payout.py --period 2025-03
    python scripts/run_monthly_payout.py --period 2025-03 --resume-credits
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402

from ib_commission.utils.datetime_utils import previous_period, utc_now  # noqa: E402
import jobs.broker  # noqa: E402,F401
from jobs.tasks.commission_credit_recovery import (  # noqa: E402
    resume_pending_credits_job,
)
from jobs.tasks.monthly_ib_payout import run_monthly_payout_job  # noqa: E402


async def run(period: str, resume_credits: bool) -> int:
    """Run the payout (or the credit recovery) and print the summary."""
    if resume_credits:
        result = await resume_pending_credits_job(period)
        logger.info(
            f"Recovered {result['credited']} commissions "
            f"({result['failed']} failed), total {result['total_credited']} USD"
        )
        return 0 if result["failed"] == 0 else 1

    result = await run_monthly_payout_job(period)
    if not result["success"]:
        logger.warning(f"Payout for {period} not run: {result['reason']}")
        return 1

    logger.success(
        f"Batch {result['batch_id']}: {result['traders_processed']} traders, "
        f"{result['entries_created']} commissions created, "
        f"{result['entries_credited']} credited, "
        f"{result['entries_failed']} failed, total {result['total_amount']} USD"
    )
    for error in result["errors"]:
        logger.error(f"Trader {error['source_id']}: {error['message']}")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run the monthly IB payout")
    parser.add_argument(
        "--period",
        help="Target period YYYY-MM (default: previous calendar month)",
    )
    parser.add_argument(
        "--resume-credits",
        action="store_true",
        help="Only credit PENDING commissions left by an interrupted run",
    )
    args = parser.parse_args()

    period = args.period or previous_period(utc_now())
    sys.exit(asyncio.run(run(period, args.resume_credits)))


if __name__ == "__main__":
    main()
