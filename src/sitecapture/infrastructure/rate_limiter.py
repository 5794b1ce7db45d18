"""
Politeness Rate Limiter.

Spaces consecutive requests made through the same browsing context by a
jittered base delay. The base delay can be raised at run time (for
example by a robots.txt Crawl-delay) but never lowered.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from sitecapture.constants import REQUEST_JITTER_RATIO

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiter."""
    # Base delay between requests on one key (seconds)
    base_delay: float = 1.0

    # Relative jitter applied to the base delay (0.2 = +-20%)
    jitter_ratio: float = REQUEST_JITTER_RATIO


@dataclass
class ResourceMetrics:
    """Current pacing metrics."""
    current_delay: float
    last_request_time: datetime | None
    total_requests: int
    total_wait_time: float


class PolitenessRateLimiter:
    """
    Per-key rate limiter with jitter and a monotonic delay floor.

    Keys are usually device labels: each browsing context is paced
    independently, and the first request on a key never waits.
    """

    def __init__(self, config: RateLimitConfig | None = None):
        """
        Initialize rate limiter.

        Args:
            config: Rate limit configuration
        """
        self.config = config or RateLimitConfig()

        self._current_delay = self.config.base_delay
        self._last_request_time: Dict[str, float] = {}
        self._last_request_at: datetime | None = None
        self._lock = asyncio.Lock()

        # Statistics
        self._total_requests = 0
        self._total_wait_time = 0.0

    def jittered_delay(self) -> float:
        """Current delay with random jitter applied, never negative."""
        spread = self._current_delay * self.config.jitter_ratio
        return max(0.0, self._current_delay + random.uniform(-spread, spread))

    async def wait(self, key: str = "default") -> float:
        """
        Wait until ``key`` may issue its next request.

        Returns:
            Actual time waited (seconds)
        """
        async with self._lock:
            now = time.monotonic()
            wait_time = 0.0

            last = self._last_request_time.get(key)
            if last is not None:
                elapsed = now - last
                wait_time = max(0.0, self.jittered_delay() - elapsed)

            if wait_time > 0:
                await asyncio.sleep(wait_time)
                self._total_wait_time += wait_time

            self._last_request_time[key] = time.monotonic()
            self._last_request_at = datetime.now()
            self._total_requests += 1
            return wait_time

    def raise_floor(self, delay: float) -> None:
        """Raise the base delay to at least ``delay`` seconds."""
        if delay > self._current_delay:
            logger.info(f"Rate limiter: raising delay floor to {delay:.2f}s")
            self._current_delay = delay

    def get_metrics(self) -> ResourceMetrics:
        """
        Get current pacing metrics.

        Returns:
            ResourceMetrics snapshot
        """
        return ResourceMetrics(
            current_delay=self._current_delay,
            last_request_time=self._last_request_at,
            total_requests=self._total_requests,
            total_wait_time=self._total_wait_time,
        )

    def reset(self) -> None:
        """Reset rate limiter to initial state."""
        self._current_delay = self.config.base_delay
        self._last_request_time.clear()
        self._last_request_at = None
        self._total_requests = 0
        self._total_wait_time = 0.0

    @property
    def current_delay(self) -> float:
        """Current base delay between requests."""
        return self._current_delay
