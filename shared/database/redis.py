"""
Redis Client
============

Async Redis client used for shared counters across server instances.

Version: 0.1.0
"""

import time
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """
    Async Redis client wrapper.

    Provides connection management and window counters.
    """

    _client: Redis | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> Redis:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = aioredis.from_url(
                settings.redis.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            logger.info(
                "redis_client_created",
                host=settings.redis.host,
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            logger.info("redis_client_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """
        Check Redis health.

        Returns:
            dict with status and server info
        """
        try:
            start = time.perf_counter()
            client = cls.get_client()
            pong = await client.ping()
            latency_ms = (time.perf_counter() - start) * 1000

            info = await client.info("server")

            return {
                "status": "healthy" if pong else "unhealthy",
                "latency_ms": round(latency_ms, 2),
                "redis_version": info.get("redis_version", "unknown"),
            }
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    # =========================================================================
    # Rate Limiting
    # =========================================================================

    @classmethod
    async def increment_window(
        cls,
        key: str,
        window_seconds: int,
    ) -> tuple[int, int]:
        """
        Increment a fixed-window counter.

        Args:
            key: Counter key (e.g., "rate:user:123")
            window_seconds: Window length in seconds

        Returns:
            Tuple of (count in current window, seconds until the window resets)
        """
        client = cls.get_client()

        current = await client.incr(key)
        if current == 1:
            await client.expire(key, window_seconds)
            return current, window_seconds

        ttl = await client.ttl(key)
        if ttl < 0:
            # Key lost its expiry; restart the window
            await client.expire(key, window_seconds)
            ttl = window_seconds
        return current, ttl
