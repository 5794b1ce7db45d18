"""
Resilient navigation for flaky or rate-limited sites.

Two layers:

1. ``goto_resilient`` drives a page to a URL. Each attempt first waits for
   network quiescence and falls back to ``domcontentloaded`` if that fails.
   Responses with status 429/503 are retried after the server's
   ``Retry-After`` (or 5s); when attempts run out the last response is
   accepted as-is.
2. ``settle`` walks a small state machine of load-state waits
   (network idle, load, DOM ready, fixed pause) under a total time budget.
   It never raises: the worst case is proceeding after the fixed pause.
"""

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from playwright.async_api import Error as PlaywrightError

from sitecapture.constants import (
    DEFAULT_RETRY_AFTER_MS,
    LOAD_STATE_STEP_TIMEOUT_MS,
    RATE_LIMIT_STATUSES,
    TIMED_FALLBACK_PAUSE_MS,
)

logger = logging.getLogger(__name__)


class NavigationError(Exception):
    """Raised when no navigation attempt produced a response."""

    def __init__(self, message: str, url: str, attempts: int):
        self.message = message
        self.url = url
        self.attempts = attempts
        super().__init__(message)


class LoadState(Enum):
    """States of the settle chain."""
    IDLE = "idle"
    NETWORK_WAIT = "networkidle"
    LOAD_WAIT = "load"
    DOM_WAIT = "domcontentloaded"
    TIMED_FALLBACK = "timed_fallback"
    STABLE = "stable"


# Each wait state falls through to the next, weaker one on failure
_NEXT_ON_FAILURE = {
    LoadState.NETWORK_WAIT: LoadState.LOAD_WAIT,
    LoadState.LOAD_WAIT: LoadState.DOM_WAIT,
    LoadState.DOM_WAIT: LoadState.TIMED_FALLBACK,
}


def retry_after_ms(headers: Optional[Mapping[str, str]]) -> int:
    """Backoff for a rate-limited response.

    Args:
        headers: Response headers (lower-case names, as Playwright returns them)

    Returns:
        Retry-After in milliseconds when it is a number of seconds, else 5000
    """
    if not headers:
        return DEFAULT_RETRY_AFTER_MS

    value = (headers.get("retry-after") or "").strip()
    if not value:
        return DEFAULT_RETRY_AFTER_MS

    try:
        seconds = float(value)
    except ValueError:
        # HTTP-date form is not interpreted
        return DEFAULT_RETRY_AFTER_MS

    if not math.isfinite(seconds):
        return DEFAULT_RETRY_AFTER_MS

    return max(0, int(seconds * 1000))


class ResilientNavigator:
    """Navigation with wait-condition fallback, retries and load-state settling."""

    def __init__(
        self,
        goto_timeout_ms: int = 120000,
        retries: int = 1,
        settle_budget_ms: int = 30000,
        step_timeout_ms: int = LOAD_STATE_STEP_TIMEOUT_MS,
        fallback_pause_ms: int = TIMED_FALLBACK_PAUSE_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the navigator.

        Args:
            goto_timeout_ms: Timeout for each ``page.goto`` call
            retries: Extra attempts after the first (0 = single attempt)
            settle_budget_ms: Total budget for the load-state chain
            step_timeout_ms: Timeout for each individual load-state wait
            fallback_pause_ms: Fixed pause used as the last settle step
            sleep: Coroutine used for pauses (seconds), replaceable in tests
        """
        self.goto_timeout_ms = goto_timeout_ms
        self.retries = max(0, retries)
        self.settle_budget_ms = settle_budget_ms
        self.step_timeout_ms = step_timeout_ms
        self.fallback_pause_ms = fallback_pause_ms
        self._sleep = sleep

    async def goto(self, page, url: str):
        """Navigate once: network-idle wait first, DOM-ready on failure."""
        try:
            return await page.goto(url, wait_until="networkidle", timeout=self.goto_timeout_ms)
        except PlaywrightError as e:
            logger.debug(f"networkidle navigation failed for {url} ({e}), retrying with domcontentloaded")
            return await page.goto(url, wait_until="domcontentloaded", timeout=self.goto_timeout_ms)

    async def goto_resilient(self, page, url: str):
        """Navigate with bounded retries and rate-limit backoff.

        Returns:
            The last Playwright response (possibly None for same-document
            navigations, possibly still a 429/503 once retries are exhausted)

        Raises:
            NavigationError: If every attempt failed with a navigation error
        """
        attempts = self.retries + 1

        for attempt in range(attempts):
            try:
                response = await self.goto(page, url)
            except PlaywrightError as e:
                if attempt < self.retries:
                    logger.warning(
                        f"  Navigation failed ({attempt + 1}/{attempts}) for {url}: {e}"
                    )
                    continue
                raise NavigationError(
                    f"Navigation failed after {attempts} attempts: {e}",
                    url=url,
                    attempts=attempts,
                ) from e

            status = response.status if response is not None else 200
            if status in RATE_LIMIT_STATUSES and attempt < self.retries:
                delay_ms = retry_after_ms(response.headers)
                logger.warning(
                    f"  Rate limited ({status}) on {url}, "
                    f"retrying in {delay_ms}ms ({attempt + 1}/{attempts})"
                )
                await self._sleep(delay_ms / 1000)
                continue

            if status in RATE_LIMIT_STATUSES:
                logger.warning(f"  Still rate limited ({status}) on {url}, accepting response")
            return response

        return None

    async def settle(self, page) -> List[LoadState]:
        """Bring the page to a stable load state without raising.

        Returns:
            The sequence of states visited, ending with STABLE
        """
        deadline = time.monotonic() + self.settle_budget_ms / 1000
        state = LoadState.IDLE
        path = [state]

        while state is not LoadState.STABLE:
            if state is LoadState.IDLE:
                state = LoadState.NETWORK_WAIT

            elif state in _NEXT_ON_FAILURE:
                remaining_ms = int((deadline - time.monotonic()) * 1000)
                if remaining_ms <= 0:
                    state = LoadState.TIMED_FALLBACK
                else:
                    timeout = min(self.step_timeout_ms, remaining_ms)
                    try:
                        await page.wait_for_load_state(state.value, timeout=timeout)
                        state = LoadState.STABLE
                    except PlaywrightError as e:
                        logger.debug(f"Load state '{state.value}' not reached: {e}")
                        state = _NEXT_ON_FAILURE[state]

            elif state is LoadState.TIMED_FALLBACK:
                await self._sleep(self.fallback_pause_ms / 1000)
                state = LoadState.STABLE

            path.append(state)

        return path
