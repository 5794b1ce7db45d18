"""Shared fakes for the browser capability used across tests."""

from typing import Callable, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sitecapture.dedup import LAYOUT_SIGNATURE_SCRIPT
from sitecapture.stabilization import (
    IMAGES_SETTLED_SCRIPT,
    SCROLL_HEIGHT_SCRIPT,
    SCROLL_TO_SCRIPT,
)


class FakeResponse:
    """Minimal stand-in for a Playwright Response."""

    def __init__(self, status: int = 200, headers: Optional[Dict[str, str]] = None):
        self.status = status
        self.headers = headers or {}


class FakePage:
    """Scriptable stand-in for a Playwright Page.

    Args:
        responder: Called as ``responder(url, wait_until)`` for every goto;
            may return a FakeResponse or raise a Playwright error
        heights: Successive values returned for the scroll height
        images_ready: Successive results of the image-settle check
        signatures: Layout signature per URL
        links: hrefs per URL
        failing_states: Load states whose wait times out
    """

    def __init__(
        self,
        responder: Optional[Callable[[str, str], FakeResponse]] = None,
        heights: Optional[List[int]] = None,
        images_ready: Optional[List[bool]] = None,
        signatures: Optional[Dict[str, str]] = None,
        links: Optional[Dict[str, List[str]]] = None,
        failing_states: Optional[set] = None,
    ):
        self.url = "about:blank"
        self.responder = responder or (lambda url, wait_until: FakeResponse(200))
        self.heights = list(heights or [0])
        self.images_ready = list(images_ready or [True])
        self.signatures = signatures or {}
        self.links = links or {}
        self.failing_states = failing_states or set()

        self.goto_calls: List[tuple] = []
        self.load_state_calls: List[str] = []
        self.scroll_positions: List[int] = []
        self.screenshots: List[dict] = []
        self.link_queries: List[str] = []

    async def goto(self, url, wait_until="load", timeout=None):
        self.goto_calls.append((url, wait_until))
        response = self.responder(url, wait_until)
        self.url = url
        return response

    async def wait_for_load_state(self, state="load", timeout=None):
        self.load_state_calls.append(state)
        if state in self.failing_states:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {state}")

    async def evaluate(self, script, arg=None):
        if script == SCROLL_HEIGHT_SCRIPT:
            if len(self.heights) > 1:
                return self.heights.pop(0)
            return self.heights[0]
        if script == SCROLL_TO_SCRIPT:
            self.scroll_positions.append(arg)
            return None
        if script == IMAGES_SETTLED_SCRIPT:
            if len(self.images_ready) > 1:
                return self.images_ready.pop(0)
            return self.images_ready[0]
        if script == LAYOUT_SIGNATURE_SCRIPT:
            return self.signatures.get(self.url, f"body|{self.url}")
        raise AssertionError(f"unexpected script: {script[:40]}")

    async def eval_on_selector_all(self, selector, script):
        self.link_queries.append(self.url)
        return list(self.links.get(self.url, []))

    def locator(self, selector):
        return f"locator({selector})"

    async def screenshot(self, **kwargs):
        self.screenshots.append({"url": self.url, **kwargs})
        return b"\x89PNG fake"


class FakeContext:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


async def no_sleep(seconds):
    return None


class RecordingSleep:
    """Async sleep replacement that records requested durations."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


def timeout_error(message: str = "Timeout 30000ms exceeded") -> PlaywrightTimeoutError:
    return PlaywrightTimeoutError(message)


def navigation_error(message: str = "net::ERR_CONNECTION_RESET") -> PlaywrightError:
    return PlaywrightError(message)
