"""robots.txt loading with a deliberately small rule set.

Only the ``User-agent: *`` block is considered, ``Disallow`` values are
matched as plain path prefixes (no ``*`` or ``$`` patterns) and
``Crawl-delay`` is read in whole seconds.
"""

import logging
import re
from typing import Optional
from urllib.parse import urlparse

import httpx

from sitecapture.constants import MAX_CRAWL_DELAY_MS, POLICY_FETCH_TIMEOUT_SECONDS
from sitecapture.models import RobotsPolicy

logger = logging.getLogger(__name__)

_SECTION_SPLIT = re.compile(r"(?=User-agent:\s*)", re.IGNORECASE)
_WILDCARD_AGENT = re.compile(r"^User-agent:\s*\*\s*$", re.IGNORECASE | re.MULTILINE)
_DISALLOW = re.compile(r"^Disallow:\s*(.*)$", re.IGNORECASE | re.MULTILINE)
_CRAWL_DELAY = re.compile(r"^Crawl-delay:\s*(\d+)", re.IGNORECASE | re.MULTILINE)


def parse_robots(text: str) -> RobotsPolicy:
    """Parse robots.txt content into a RobotsPolicy.

    Args:
        text: robots.txt body

    Returns:
        RobotsPolicy with disallow prefixes and a crawl delay clamped to 5s
    """
    sections = _SECTION_SPLIT.split(text)
    block = next((s for s in sections if _WILDCARD_AGENT.search(s)), text)

    disallow = tuple(
        value.strip()
        for value in _DISALLOW.findall(block)
        if value.strip()
    )

    delay_ms = 0
    delay_match = _CRAWL_DELAY.search(block)
    if delay_match:
        delay_ms = min(MAX_CRAWL_DELAY_MS, int(delay_match.group(1)) * 1000)

    return RobotsPolicy(disallow_prefixes=disallow, crawl_delay_ms=delay_ms)


async def load_robots(
    origin_url: str,
    user_agent: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> RobotsPolicy:
    """Fetch and parse ``<origin>/robots.txt``.

    Any network error, non-2xx status or parse problem yields the
    permissive policy instead of failing the run.

    Args:
        origin_url: Any URL on the target origin
        user_agent: User agent sent with the request
        client: Optional client to reuse (mainly for tests)

    Returns:
        RobotsPolicy for the origin
    """
    parsed = urlparse(origin_url)
    robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"
    headers = {"User-Agent": user_agent} if user_agent else {}

    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=POLICY_FETCH_TIMEOUT_SECONDS, follow_redirects=True
            ) as own_client:
                response = await own_client.get(robots_url, headers=headers)
        else:
            response = await client.get(robots_url, headers=headers)

        if not response.is_success:
            logger.info(f"No robots.txt found at {robots_url} (status: {response.status_code})")
            return RobotsPolicy.permissive()

        policy = parse_robots(response.text)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning(f"Could not load robots.txt from {robots_url}: {e}")
        return RobotsPolicy.permissive()

    logger.info(
        f"Loaded robots.txt from {robots_url}: "
        f"{len(policy.disallow_prefixes)} disallow rules, crawl delay {policy.crawl_delay_ms}ms"
    )
    return policy


def is_blocked(path: str, disallow_prefixes) -> bool:
    """Return True if ``path`` starts with any disallowed prefix."""
    return any(rule and path.startswith(rule) for rule in disallow_prefixes)
