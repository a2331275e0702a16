"""
Marketplace Services
====================

Business logic services for the marketplace.

Services:
- TokenService: Session token lifecycle
- RateLimiter: Per-identity request windows

Version: 0.1.0
"""

from services.marketplace.services.tokens import (
    CleanupResult,
    TokenService,
    token_service,
)
from services.marketplace.services.rate_limit import (
    MemoryCounterStore,
    RateLimiter,
    RateLimitInfo,
    RedisCounterStore,
    build_rate_limiter,
)

__all__ = [
    # Tokens
    "CleanupResult",
    "TokenService",
    "token_service",
    # Rate limiting
    "MemoryCounterStore",
    "RateLimiter",
    "RateLimitInfo",
    "RedisCounterStore",
    "build_rate_limiter",
]
