#!/usr/bin/env python3
"""
Expired Token Cleanup
=====================

Delete refresh and password reset tokens past their stored expiry.

Run once (e.g. from cron) or keep running with ``--interval``.

Usage:
    python scripts/cleanup_tokens.py
    python scripts/cleanup_tokens.py --interval 3600

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="token-cleanup")
logger = get_logger(__name__)


async def run_once() -> int:
    """One sweep. Returns the number of rows removed."""
    from shared.database.postgres import postgres_session
    from services.marketplace.services.tokens import token_service

    async with postgres_session() as db:
        result = await token_service.cleanup_expired_tokens(db)
    return result.total


async def main(args: argparse.Namespace) -> int:
    from shared.database.postgres import PostgresClient

    try:
        while True:
            try:
                removed = await run_once()
                logger.info("token_cleanup_completed", removed=removed)
            except Exception as e:
                logger.error("token_cleanup_failed", error=str(e))
                if not args.interval:
                    return 1

            if not args.interval:
                return 0
            await asyncio.sleep(args.interval)
    finally:
        await PostgresClient.close()


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Delete expired session tokens")
    parser.add_argument(
        "--interval",
        type=int,
        default=0,
        help="Seconds between sweeps; 0 runs a single sweep",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    try:
        exit_code = asyncio.run(main(args))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)
