#!/usr/bin/env python3
"""
Database Initialization Script
==============================

Create the marketplace schema and optionally seed an administrator.

Usage:
    python scripts/init_databases.py
    python scripts/init_databases.py --postgres-only
    python scripts/init_databases.py --seed --admin-email admin@example.com

Version: 0.1.0
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@freelancemarketplace.com"
DEFAULT_ADMIN_PASSWORD = "Admin123!"


async def init_postgres() -> bool:
    """Create every marketplace table."""
    import services.marketplace.models  # noqa: F401
    from shared.database.postgres import PostgresClient

    logger.info("postgres_init_started")

    try:
        await PostgresClient.create_all()
        health = await PostgresClient.health_check()
        if health.get("status") != "healthy":
            logger.error("postgres_init_unhealthy", error=health.get("error"))
            return False

        logger.info("postgres_init_completed", dialect=health.get("dialect"))
        return True

    except Exception as e:
        logger.error("postgres_init_failed", error=str(e))
        return False


async def init_redis() -> bool:
    """Verify the Redis connection used for shared rate limiting."""
    from shared.database.redis import RedisClient

    logger.info("redis_init_started")

    health = await RedisClient.health_check()
    await RedisClient.close()
    if health.get("status") != "healthy":
        logger.error("redis_init_failed", error=health.get("error"))
        return False

    logger.info("redis_init_completed", redis_version=health.get("redis_version"))
    return True


async def seed_admin(email: str, password: str) -> bool:
    """Create the administrator account unless it already exists."""
    from sqlalchemy import select

    from shared.auth import hash_password_async
    from shared.database.postgres import postgres_session
    from services.marketplace.models import UserModel, UserRole

    email = email.strip().lower()

    try:
        async with postgres_session() as db:
            existing = await db.scalar(select(UserModel.id).where(UserModel.email == email))
            if existing is not None:
                logger.info("admin_seed_skipped", user_id=existing)
                return True

            admin = UserModel(
                email=email,
                password_hash=await hash_password_async(password),
                role=UserRole.ADMIN,
                first_name="Admin",
                last_name="User",
                bio="Platform administrator",
                is_email_verified=True,
            )
            db.add(admin)
            await db.flush()
            logger.info("admin_seeded", user_id=admin.id)
        return True

    except Exception as e:
        logger.error("admin_seed_failed", error=str(e))
        return False


async def main(args: argparse.Namespace) -> int:
    """Main initialization function."""
    from shared.config import settings
    from shared.database.postgres import PostgresClient

    logger.info("database_initialization_started", environment=settings.environment.value)

    results = {}

    results["postgres"] = await init_postgres()

    if args.with_redis:
        results["redis"] = await init_redis()

    if args.seed:
        if settings.is_production and args.admin_password == DEFAULT_ADMIN_PASSWORD:
            logger.error("admin_seed_refused", reason="default password in production")
            results["seed"] = False
        else:
            results["seed"] = await seed_admin(args.admin_email, args.admin_password)

    await PostgresClient.close()

    failed = [name for name, success in results.items() if not success]
    for name, success in results.items():
        logger.info("initialization_step", step=name, ok=success)

    if failed:
        logger.error("database_initialization_failed", failed=failed)
        return 1

    logger.info("database_initialization_completed")
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize marketplace databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--with-redis",
        action="store_true",
        help="Also verify the Redis connection",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Seed the administrator account",
    )
    parser.add_argument(
        "--admin-email",
        default=os.environ.get("SEED_ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL),
        help="Administrator email (env: SEED_ADMIN_EMAIL)",
    )
    parser.add_argument(
        "--admin-password",
        default=os.environ.get("SEED_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        help="Administrator password (env: SEED_ADMIN_PASSWORD)",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
