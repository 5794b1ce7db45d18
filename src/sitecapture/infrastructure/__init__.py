"""
Infrastructure Package.

Provides request pacing for polite sequential crawling.
"""

from .rate_limiter import (
    PolitenessRateLimiter,
    RateLimitConfig,
    ResourceMetrics,
)

__all__ = [
    "PolitenessRateLimiter",
    "RateLimitConfig",
    "ResourceMetrics",
]
