"""
Database Module
===============

Async clients for the marketplace data stores.

Clients:
- Relational store (SQLAlchemy async; asyncpg in production, aiosqlite locally)
- Redis (redis.asyncio)

Usage:
    from shared.database import get_postgres_session

    # In FastAPI
    @app.get("/example")
    async def example(
        db: AsyncSession = Depends(get_postgres_session),
    ):
        result = await db.execute(select(UserModel))
        ...
"""

from shared.database.postgres import (
    Base,
    PostgresClient,
    get_postgres_session,
    postgres_session,
)
from shared.database.redis import RedisClient


__all__ = [
    # Relational
    "get_postgres_session",
    "postgres_session",
    "PostgresClient",
    "Base",
    # Redis
    "RedisClient",
]
