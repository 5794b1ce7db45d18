"""Page stabilization before capture: lazy-content scrolling and image settling.

The loop bounds live here in Python; the page is only asked to run small
scripts through ``page.evaluate``, so any object with a compatible
``evaluate`` coroutine can stand in for a real page.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from sitecapture.constants import (
    IMAGE_POLL_INTERVAL_MS,
    MAX_SCROLL_STEPS,
    SCROLL_PAUSE_MS,
    SCROLL_STEP_PX,
    SCROLL_TOP_PAUSE_MS,
)

logger = logging.getLogger(__name__)

SCROLL_HEIGHT_SCRIPT = "() => (document.body ? document.body.scrollHeight : 0)"

SCROLL_TO_SCRIPT = "(y) => window.scrollTo(0, y)"

# Every <img> complete with a non-zero natural width, and every CSS
# background-image URL fetched once. A failed background fetch counts as
# settled so a broken image cannot block capture.
IMAGES_SETTLED_SCRIPT = """
async () => {
  const imgs = Array.from(document.images || []);
  const allImgOk = imgs.every(img => img.complete && img.naturalWidth > 0);

  const settled = (window.__sitecaptureBgSettled = window.__sitecaptureBgSettled || new Set());
  const urls = new Set();
  for (const el of Array.from(document.querySelectorAll("*"))) {
    const bg = getComputedStyle(el).backgroundImage;
    const m = bg && bg.match(/url\\((['"]?)(.*?)\\1\\)/);
    if (m && m[2] && !settled.has(m[2])) urls.add(m[2]);
  }
  const loadOne = (src) => new Promise(resolve => {
    const im = new Image();
    im.onload = () => { settled.add(src); resolve(true); };
    im.onerror = () => { settled.add(src); resolve(true); };
    im.src = src;
  });
  if (urls.size) await Promise.all(Array.from(urls).map(loadOne));

  return allImgOk;
}
"""


class PageStabilizer:
    """Scrolls lazy content into existence and waits for images to load."""

    def __init__(
        self,
        step_px: int = SCROLL_STEP_PX,
        pause_ms: int = SCROLL_PAUSE_MS,
        top_pause_ms: int = SCROLL_TOP_PAUSE_MS,
        max_steps: int = MAX_SCROLL_STEPS,
        image_timeout_ms: int = 45000,
        poll_interval_ms: int = IMAGE_POLL_INTERVAL_MS,
        extra_wait_ms: int = 0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.step_px = step_px
        self.pause_ms = pause_ms
        self.top_pause_ms = top_pause_ms
        self.max_steps = max_steps
        self.image_timeout_ms = image_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self.extra_wait_ms = extra_wait_ms
        self._sleep = sleep

    async def _scroll_height(self, page, fallback: int = 0) -> int:
        height = await page.evaluate(SCROLL_HEIGHT_SCRIPT)
        return int(height or fallback)

    async def auto_scroll(self, page) -> int:
        """Scroll to the bottom in fixed steps, chasing height growth, then back to top.

        Returns:
            Number of scroll steps taken
        """
        y = 0
        height = await self._scroll_height(page)
        steps = 0

        while y < height - 1 and steps < self.max_steps:
            y = min(y + self.step_px, height)
            await page.evaluate(SCROLL_TO_SCRIPT, y)
            await self._sleep(self.pause_ms / 1000)

            new_height = await self._scroll_height(page, fallback=height)
            if new_height > height:
                height = new_height
            steps += 1

        if steps >= self.max_steps:
            logger.debug(f"Autoscroll stopped at step limit ({self.max_steps}), height {height}px")

        await self._sleep(self.pause_ms / 1000)
        await page.evaluate(SCROLL_TO_SCRIPT, 0)
        await self._sleep(self.top_pause_ms / 1000)
        return steps

    async def wait_for_images(self, page) -> bool:
        """Poll until images and background images have settled.

        Returns:
            True if everything settled, False if the timeout was reached
        """
        deadline = time.monotonic() + self.image_timeout_ms / 1000

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"  Images not settled after {self.image_timeout_ms}ms, capturing anyway")
                return False

            try:
                ready = await asyncio.wait_for(page.evaluate(IMAGES_SETTLED_SCRIPT), timeout=remaining)
            except asyncio.TimeoutError:
                logger.warning(f"  Image check timed out after {self.image_timeout_ms}ms, capturing anyway")
                return False

            if ready:
                return True

            await self._sleep(min(self.poll_interval_ms / 1000, max(0.0, remaining)))

    async def settle(
        self,
        page,
        after_scroll: Optional[Callable[[Any], Awaitable[Any]]] = None,
    ) -> bool:
        """Run the full stabilization sequence.

        Args:
            page: Page to stabilize
            after_scroll: Optional coroutine (e.g. a load-state settle) run
                between scrolling and the image wait

        Returns:
            True if images settled within the timeout
        """
        try:
            await self.auto_scroll(page)
        except PlaywrightError as e:
            logger.warning(f"  Autoscroll failed: {e}")

        if after_scroll is not None:
            await after_scroll(page)

        settled = await self.wait_for_images(page)

        if self.extra_wait_ms:
            await self._sleep(self.extra_wait_ms / 1000)

        return settled
