"""Sitemap parser used to seed the capture frontier."""

import html
import logging
import re
from typing import List, Optional

import httpx

from sitecapture.constants import POLICY_FETCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_LOC = re.compile(r"<loc>\s*(.*?)\s*</loc>", re.IGNORECASE | re.DOTALL)
_SITEMAP_INDEX = re.compile(r"<sitemapindex\b", re.IGNORECASE)

# Nested sitemap indexes are followed at most this deep
MAX_INDEX_DEPTH = 3


class SitemapParser:
    """
    Extract page URLs from an XML sitemap.

    ``<loc>`` values are pulled out with a regular expression rather than a
    full XML parse, so slightly malformed sitemaps still yield URLs.
    Sitemap index files are followed to their child sitemaps.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the sitemap parser.

        Args:
            user_agent: User agent sent with sitemap requests
            client: Optional client to reuse (mainly for tests)
        """
        self.user_agent = user_agent
        self._client = client

    @staticmethod
    def extract_locs(content: str) -> List[str]:
        """Return the unescaped ``<loc>`` values in document order."""
        return [html.unescape(m).strip() for m in _LOC.findall(content) if m.strip()]

    async def parse(self, sitemap_url: str, max_urls: Optional[int] = None) -> List[str]:
        """
        Fetch a sitemap and return its page URLs.

        Failures are logged and produce an empty (or partial) list.

        Args:
            sitemap_url: URL of the sitemap or sitemap index
            max_urls: Maximum number of URLs to return (None for all)

        Returns:
            List of URLs found, without duplicates
        """
        urls: List[str] = []

        if self._client is not None:
            await self._collect(self._client, sitemap_url, urls, max_urls, depth=0)
        else:
            async with httpx.AsyncClient(
                timeout=POLICY_FETCH_TIMEOUT_SECONDS, follow_redirects=True
            ) as client:
                await self._collect(client, sitemap_url, urls, max_urls, depth=0)

        logger.info(f"Extracted {len(urls)} URLs from sitemap {sitemap_url}")
        return urls

    async def _collect(
        self,
        client: httpx.AsyncClient,
        sitemap_url: str,
        urls: List[str],
        max_urls: Optional[int],
        depth: int,
    ) -> None:
        if depth > MAX_INDEX_DEPTH:
            return
        if max_urls and len(urls) >= max_urls:
            return

        headers = {"Accept": "application/xml, text/xml, */*"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent

        try:
            response = await client.get(sitemap_url, headers=headers)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to fetch sitemap {sitemap_url}: {e}")
            return

        content = response.text
        locs = self.extract_locs(content)

        if _SITEMAP_INDEX.search(content):
            for child_url in locs:
                logger.info(f"Found child sitemap: {child_url}")
                await self._collect(client, child_url, urls, max_urls, depth + 1)
            return

        for url in locs:
            if url in urls:
                continue
            urls.append(url)
            if max_urls and len(urls) >= max_urls:
                logger.info(f"Reached max URLs limit ({max_urls})")
                return


async def load_sitemap_urls(
    sitemap_url: str,
    user_agent: Optional[str] = None,
    max_urls: Optional[int] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[str]:
    """
    Convenience function to parse a sitemap.

    Args:
        sitemap_url: URL to the sitemap
        user_agent: User agent sent with requests
        max_urls: Maximum URLs to return
        client: Optional httpx client

    Returns:
        List of URLs from the sitemap
    """
    parser = SitemapParser(user_agent=user_agent, client=client)
    return await parser.parse(sitemap_url, max_urls)
