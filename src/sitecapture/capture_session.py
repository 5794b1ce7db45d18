"""Breadth-first capture crawl over one or more simulated devices."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, List, Optional, Set

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from sitecapture.browser_config import BrowserConfig, resolve_devices
from sitecapture.config import CaptureConfig, ConfigurationError
from sitecapture.dedup import LayoutDeduplicator, layout_signature
from sitecapture.infrastructure import PolitenessRateLimiter, RateLimitConfig
from sitecapture.models import CaptureRecord, CaptureSummary, DeviceProfile, RobotsPolicy, Task
from sitecapture.navigation import ResilientNavigator
from sitecapture.output_manager import CaptureManifest, OutputManager
from sitecapture.policy import AdmissionController
from sitecapture.robots import load_robots
from sitecapture.sitemap_parser import load_sitemap_urls
from sitecapture.stabilization import PageStabilizer
from sitecapture.urls import normalize_url

logger = logging.getLogger(__name__)

LINKS_SCRIPT = "els => els.map(a => a.getAttribute('href'))"


@dataclass
class DeviceSession:
    """A long-lived browsing context and page dedicated to one device."""
    profile: DeviceProfile
    context: Any
    page: Any


class CaptureSession:
    """Crawls from the seed URLs and captures every admitted page on every device.

    The frontier is processed strictly one task at a time:
    - a dequeued URL already in ``visited`` is dropped
    - every device visits the URL in turn on its own context
    - the first device to load the page decides whether its layout is a
      duplicate; duplicates are not captured but their links are harvested
    - links are harvested from one page only, and only below ``max_depth``

    The session owns the visited set, the frontier, the sample registry
    (inside the admission controller), the layout fingerprints and the
    manifest.
    """

    def __init__(
        self,
        config: CaptureConfig,
        output_manager: Optional[OutputManager] = None,
        admission: Optional[AdmissionController] = None,
        navigator: Optional[ResilientNavigator] = None,
        stabilizer: Optional[PageStabilizer] = None,
        rate_limiter: Optional[PolitenessRateLimiter] = None,
        deduplicator: Optional[LayoutDeduplicator] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the capture session.

        Args:
            config: Run configuration
            output_manager: Writer for screenshots and manifest
            admission: Admission controller (built from config if omitted)
            navigator: Resilient navigator (built from config if omitted)
            stabilizer: Page stabilizer (built from config if omitted)
            rate_limiter: Per-device pacing (built from config if omitted)
            deduplicator: Layout deduplicator (built from config if omitted)
            http_client: Optional httpx client for robots.txt and sitemap fetches
        """
        self.config = config
        self.output = output_manager or OutputManager(config.out_dir, config.filename_mode)
        self.admission = admission or AdmissionController.from_config(config)
        self.navigator = navigator or ResilientNavigator(
            goto_timeout_ms=config.goto_timeout_ms,
            retries=config.retries,
            settle_budget_ms=config.settle_budget_ms,
        )
        self.stabilizer = stabilizer or PageStabilizer(
            image_timeout_ms=config.image_wait_timeout_ms,
            extra_wait_ms=config.extra_wait_ms,
        )
        self.rate_limiter = rate_limiter or PolitenessRateLimiter(
            RateLimitConfig(base_delay=config.base_wait_ms / 1000)
        )
        self.deduplicator = deduplicator or LayoutDeduplicator(config.layout_ignore_patterns)
        self.browser_config = BrowserConfig.from_capture_config(config)
        self._http_client = http_client

        self.visited: Set[str] = set()
        self.queue: Deque[Task] = deque()
        self.queued: Set[str] = set()
        self.robots: RobotsPolicy = RobotsPolicy.permissive()
        self.manifest = CaptureManifest()
        self.summary = CaptureSummary()

        self.seeds = self._normalize_seeds(config.start_urls)

    @staticmethod
    def _normalize_seeds(start_urls: List[str]) -> List[str]:
        seeds = []
        for raw in start_urls:
            seed = normalize_url(raw)
            if seed is None:
                raise ConfigurationError(f"Unparsable start URL: {raw!r}")
            seeds.append(seed)
        if not seeds:
            raise ConfigurationError("No start URLs configured")
        return seeds

    async def run(self) -> CaptureSummary:
        """Launch the browser, crawl, capture and write the manifest.

        Returns:
            CaptureSummary for the run
        """
        await self.load_policies()

        async with async_playwright() as p:
            profiles = resolve_devices(self.config.devices, p.devices, self.config.scale)
            launcher = getattr(p, self.browser_config.browser_type)
            logger.info(
                f"Launching {self.browser_config.browser_type} browser "
                f"(headless={self.browser_config.headless})"
            )
            browser = await launcher.launch(**self.browser_config.launch_options())

            sessions: List[DeviceSession] = []
            try:
                for profile in profiles:
                    context = await browser.new_context(**self.browser_config.context_options(profile))
                    page = await context.new_page()
                    sessions.append(DeviceSession(profile=profile, context=context, page=page))
                    logger.info(f"Device ready: {profile.label} (scale {profile.scale_factor})")

                await self.crawl(sessions)
            finally:
                for session in sessions:
                    try:
                        await session.context.close()
                    except PlaywrightError as e:
                        logger.debug(f"Closing context for {session.profile.label} failed: {e}")
                await browser.close()

        return self.finish()

    async def load_policies(self) -> None:
        """Load robots.txt for the first seed's origin and raise the pacing floor."""
        if not self.config.respect_robots:
            self.robots = RobotsPolicy.permissive()
            return

        self.robots = await load_robots(
            self.seeds[0],
            user_agent=self.config.user_agent,
            client=self._http_client,
        )
        if self.robots.crawl_delay_ms:
            self.rate_limiter.raise_floor(self.robots.crawl_delay_ms / 1000)

    async def seed_frontier(self) -> None:
        """Queue the seeds and, if configured, the sitemap URLs."""
        for seed in self.seeds:
            if not self.enqueue(Task(start_url=seed, url=seed, depth=0)):
                logger.warning(f"Seed {seed} rejected by admission rules")

        if not self.config.sitemap_url:
            return

        sitemap_urls = await load_sitemap_urls(
            self.config.sitemap_url,
            user_agent=self.config.user_agent,
            client=self._http_client,
        )
        added = 0
        for raw in sitemap_urls:
            if len(self.queue) + len(self.visited) >= self.config.max_pages:
                logger.info("Page ceiling reached, ignoring remaining sitemap URLs")
                break
            url = normalize_url(raw)
            if url and self.enqueue(Task(start_url=self.seeds[0], url=url, depth=0)):
                added += 1
        if added:
            logger.info(f"Seeded queue with {added} URLs from sitemap")

    def enqueue(self, task: Task) -> bool:
        """Admit a task into the frontier.

        URLs already visited or queued are dropped before the admission check,
        so a category's sample exception is spent only on a URL that is queued.

        Returns:
            True if the task was queued
        """
        if task.url in self.visited or task.url in self.queued:
            return False
        if not self.admission.should_visit(task.url, task.start_url, self.robots):
            return False
        self.queue.append(task)
        self.queued.add(task.url)
        return True

    async def crawl(self, sessions: List[DeviceSession]) -> None:
        """Run the frontier loop until it is empty or the page ceiling is hit."""
        await self.seed_frontier()

        logger.info(f"Starting capture crawl from: {', '.join(self.seeds)}")
        logger.info(
            f"Max pages: {self.config.max_pages}, max depth: {self.config.max_depth}, "
            f"devices: {', '.join(s.profile.label for s in sessions)}"
        )

        while self.queue and len(self.visited) < self.config.max_pages:
            task = self.queue.popleft()
            self.queued.discard(task.url)

            if task.url in self.visited:
                continue
            self.visited.add(task.url)

            logger.info(f"[L{task.depth}] Capturing ({len(self.visited)}/{self.config.max_pages}): {task.url}")
            await self.process_task(task, sessions)

    async def process_task(self, task: Task, sessions: List[DeviceSession]) -> None:
        """Visit one URL on every device, capture it and harvest its links."""
        harvest_page = None
        duplicate: Optional[bool] = None

        for session in sessions:
            label = session.profile.label
            try:
                await self.visit(session, task.url)
                if harvest_page is None:
                    harvest_page = session.page

                if duplicate is None and self.config.layout_dedup:
                    signature = await layout_signature(session.page, self.config.layout_sample_limit)
                    duplicate = self.deduplicator.is_duplicate(signature, task.url)

                if duplicate:
                    self.summary.duplicates_skipped += 1
                    logger.info(f"  Skipping capture of duplicate layout: {task.url}")
                    break

                await self.capture(session, task.url)
            except Exception as e:
                self.summary.device_failures += 1
                logger.warning(f"  [warn] {label} failed on {task.url}: {e}")

        if task.depth >= self.config.max_depth:
            return
        if harvest_page is None:
            logger.debug(f"No device loaded {task.url}, links not harvested")
            return

        await self.harvest_links(task, harvest_page)

    async def visit(self, session: DeviceSession, url: str) -> None:
        """Pace, navigate and stabilize one device's page on ``url``."""
        page = session.page
        await self.rate_limiter.wait(session.profile.label)

        response = await self.navigator.goto_resilient(page, url)
        if response is not None:
            logger.debug(f"  {session.profile.label}: HTTP {response.status}")

        await self.navigator.settle(page)
        await self.stabilizer.settle(page, after_scroll=self.navigator.settle)

    async def capture(self, session: DeviceSession, url: str) -> Optional[CaptureRecord]:
        """Screenshot the device's page and record it in the manifest."""
        label = session.profile.label
        if self.manifest.has(url, label):
            return None

        path = self.output.screenshot_path(url, label, self.config.scale, self.config.full_page)
        masks = [session.page.locator(selector) for selector in self.config.mask_selectors]
        data = await session.page.screenshot(
            type="png",
            full_page=self.config.full_page,
            mask=masks or None,
        )
        self.output.save_screenshot(path, data)

        record = CaptureRecord(
            url=url,
            device=label,
            scale=self.config.scale,
            file_path=self.output.relative(path),
        )
        self.manifest.add(record)
        self.summary.shots_taken += 1
        logger.info(f"  ✓ {label}: {record.file_path}")
        return record

    async def harvest_links(self, task: Task, page) -> int:
        """Queue admitted links found on ``page`` at ``task.depth + 1``.

        Returns:
            Number of links queued
        """
        try:
            hrefs = await page.eval_on_selector_all("a[href]", LINKS_SCRIPT)
        except PlaywrightError as e:
            logger.warning(f"  Link extraction failed on {task.url}: {e}")
            return 0

        base_url = page.url or task.url
        added = 0
        for raw in hrefs or []:
            url = normalize_url(raw, base_url)
            if not url:
                continue
            if self.enqueue(Task(start_url=task.start_url, url=url, depth=task.depth + 1)):
                added += 1
            if len(self.queue) + len(self.visited) >= self.config.max_pages:
                break

        if added:
            logger.info(f"  → Queued {added} new links for L{task.depth + 1}")
        return added

    def finish(self) -> CaptureSummary:
        """Write the manifest and complete the summary."""
        manifest_path = self.output.write_manifest(self.manifest)

        self.summary.pages_visited = len(self.visited)
        self.summary.visited_urls = sorted(self.visited)
        self.summary.manifest_path = str(manifest_path)

        logger.info(
            f"Done: pages={self.summary.pages_visited}, shots={self.summary.shots_taken}, "
            f"duplicates={self.summary.duplicates_skipped}, out={self.output.out_dir}"
        )
        return self.summary
