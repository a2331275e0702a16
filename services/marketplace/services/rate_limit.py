"""
Rate Limiter
============

Fixed-window request limiting per identity.

The counter store is chosen by ``RATE_LIMIT_BACKEND``:
- memory: process-local counters guarded by an asyncio lock
- redis: shared counters (INCR + EXPIRE) across server instances

The limiter lives on ``app.state``; nothing here is module-global.

Version: 0.1.0
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from shared.config import RateLimitBackend, Settings
from shared.database.redis import RedisClient
from shared.logging import get_logger
from services.marketplace.errors import RateLimitedError


logger = get_logger(__name__)


class CounterStore(Protocol):
    """Increments a windowed counter and reports its state."""

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        """Return (count in current window, seconds until reset)."""
        ...


class MemoryCounterStore:
    """
    In-process fixed-window counters.

    Expired windows are swept at most once per ``sweep_interval`` seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        async with self._lock:
            now = self._clock()
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            if now >= self._next_sweep:
                self._evict(now)
                self._next_sweep = now + self._sweep_interval
            return count, max(0, int(reset_at - now))

    @property
    def tracked_keys(self) -> int:
        return len(self._windows)

    def _evict(self, now: float) -> None:
        stale = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in stale:
            del self._windows[k]


class RedisCounterStore:
    """Counters shared through Redis."""

    def __init__(self, prefix: str = "rate"):
        self.prefix = prefix

    async def hit(self, key: str, window_seconds: int) -> tuple[int, int]:
        return await RedisClient.increment_window(f"{self.prefix}:{key}", window_seconds)


@dataclass
class RateLimitInfo:
    """Window state after a counted request."""

    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
            "X-RateLimit-Reset": str(self.reset_seconds),
        }


class RateLimiter:
    """Allows ``limit`` requests per identity per window."""

    def __init__(self, store: CounterStore, limit: int, window_seconds: int):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds

    async def check(self, key: str) -> RateLimitInfo:
        """
        Count one request for ``key``.

        Raises:
            RateLimitedError: The window's allowance is used up
        """
        count, reset_seconds = await self.store.hit(key, self.window_seconds)
        info = RateLimitInfo(
            limit=self.limit,
            remaining=self.limit - count,
            reset_seconds=reset_seconds,
        )
        if count > self.limit:
            logger.warning("rate_limit_exceeded", key=key, count=count, limit=self.limit)
            raise RateLimitedError(retry_after=reset_seconds, headers=info.headers())
        return info


def build_rate_limiter(config: Settings) -> RateLimiter:
    """Create a limiter with the configured counter store."""
    store: CounterStore
    if config.rate_limit.backend == RateLimitBackend.REDIS:
        store = RedisCounterStore()
    else:
        store = MemoryCounterStore()

    logger.info(
        "rate_limiter_created",
        backend=config.rate_limit.backend.value,
        limit=config.rate_limit.requests,
        window_seconds=config.rate_limit.window_seconds,
    )
    return RateLimiter(
        store,
        limit=config.rate_limit.requests,
        window_seconds=config.rate_limit.window_seconds,
    )
