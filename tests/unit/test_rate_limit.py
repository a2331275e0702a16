"""
Unit tests for the rate limiter.
"""

import pytest

from services.marketplace.errors import RateLimitedError
from services.marketplace.services.rate_limit import (
    MemoryCounterStore,
    RateLimiter,
    RedisCounterStore,
    build_rate_limiter,
)
from shared.config import RateLimitBackend, settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestMemoryCounterStore:
    async def test_counts_within_window(self) -> None:
        store = MemoryCounterStore(clock=FakeClock())

        assert (await store.hit("k", 60))[0] == 1
        assert (await store.hit("k", 60))[0] == 2
        assert (await store.hit("other", 60))[0] == 1

    async def test_window_resets(self) -> None:
        clock = FakeClock()
        store = MemoryCounterStore(clock=clock)

        await store.hit("k", 60)
        await store.hit("k", 60)
        clock.now += 61

        count, reset = await store.hit("k", 60)
        assert count == 1
        assert reset == 60

    async def test_stale_windows_swept_periodically(self) -> None:
        clock = FakeClock()
        store = MemoryCounterStore(clock=clock, sweep_interval=120)

        for key in ("a", "b", "c"):
            await store.hit(key, 60)
        clock.now += 61
        await store.hit("d", 60)
        assert store.tracked_keys == 4

        clock.now += 59
        await store.hit("e", 60)
        assert store.tracked_keys == 2

    async def test_rejection_carries_window_headers(self) -> None:
        limiter = RateLimiter(MemoryCounterStore(clock=FakeClock()), limit=1, window_seconds=60)
        await limiter.check("user:1")

        with pytest.raises(RateLimitedError) as exc:
            await limiter.check("user:1")

        assert exc.value.headers["Retry-After"] == "60"
        assert exc.value.headers["X-RateLimit-Remaining"] == "0"
        assert exc.value.headers["X-RateLimit-Limit"] == "1"


class TestRateLimiter:
    async def test_allows_up_to_limit(self) -> None:
        limiter = RateLimiter(MemoryCounterStore(clock=FakeClock()), limit=3, window_seconds=60)

        infos = [await limiter.check("user:1") for _ in range(3)]

        assert [i.remaining for i in infos] == [2, 1, 0]
        assert infos[0].headers()["X-RateLimit-Limit"] == "3"

    async def test_rejects_over_limit(self) -> None:
        limiter = RateLimiter(MemoryCounterStore(clock=FakeClock()), limit=2, window_seconds=60)
        await limiter.check("user:1")
        await limiter.check("user:1")

        with pytest.raises(RateLimitedError) as exc:
            await limiter.check("user:1")

        assert exc.value.status_code == 429
        assert exc.value.retry_after == 60

    async def test_identities_are_independent(self) -> None:
        limiter = RateLimiter(MemoryCounterStore(clock=FakeClock()), limit=1, window_seconds=60)

        await limiter.check("user:1")
        await limiter.check("user:2")

        with pytest.raises(RateLimitedError):
            await limiter.check("user:1")


class TestBuildRateLimiter:
    def test_memory_backend(self) -> None:
        config = settings.model_copy(
            update={"rate_limit": settings.rate_limit.model_copy(update={"backend": RateLimitBackend.MEMORY})}
        )

        limiter = build_rate_limiter(config)

        assert isinstance(limiter.store, MemoryCounterStore)
        assert limiter.limit == settings.rate_limit.requests
        assert limiter.window_seconds == settings.rate_limit.window_seconds

    def test_redis_backend(self) -> None:
        config = settings.model_copy(
            update={"rate_limit": settings.rate_limit.model_copy(update={"backend": RateLimitBackend.REDIS})}
        )

        limiter = build_rate_limiter(config)

        assert isinstance(limiter.store, RedisCounterStore)
