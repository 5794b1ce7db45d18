"""Tests for sitemap seeding."""

import httpx
import pytest

from sitecapture.sitemap_parser import SitemapParser, load_sitemap_urls

pytest_plugins = ('pytest_asyncio',)

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.com/</loc></url>
  <url><loc> https://example.com/docs/intro </loc></url>
  <url><loc>https://example.com/search?q=a&amp;page=2</loc></url>
  <url><loc>https://example.com/</loc></url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://example.com/sitemap-docs.xml</loc></sitemap>
  <sitemap><loc>https://example.com/sitemap-missing.xml</loc></sitemap>
</sitemapindex>
"""


def make_client(routes) -> httpx.AsyncClient:
    def handler(request):
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestExtractLocs:
    """Tests for SitemapParser.extract_locs."""

    def test_extracts_in_order_and_unescapes(self):
        locs = SitemapParser.extract_locs(URLSET)

        assert locs == [
            "https://example.com/",
            "https://example.com/docs/intro",
            "https://example.com/search?q=a&page=2",
            "https://example.com/",
        ]

    def test_no_locs(self):
        assert SitemapParser.extract_locs("<urlset></urlset>") == []


class TestSitemapParser:
    """Tests for SitemapParser.parse."""

    @pytest.mark.asyncio
    async def test_urlset_without_duplicates(self):
        async with make_client({"https://example.com/sitemap.xml": URLSET}) as client:
            urls = await SitemapParser(client=client).parse("https://example.com/sitemap.xml")

        assert urls == [
            "https://example.com/",
            "https://example.com/docs/intro",
            "https://example.com/search?q=a&page=2",
        ]

    @pytest.mark.asyncio
    async def test_follows_sitemap_index(self):
        routes = {
            "https://example.com/sitemap.xml": INDEX,
            "https://example.com/sitemap-docs.xml": URLSET,
        }
        async with make_client(routes) as client:
            urls = await SitemapParser(client=client).parse("https://example.com/sitemap.xml")

        assert "https://example.com/docs/intro" in urls
        assert len(urls) == 3

    @pytest.mark.asyncio
    async def test_max_urls(self):
        async with make_client({"https://example.com/sitemap.xml": URLSET}) as client:
            urls = await SitemapParser(client=client).parse("https://example.com/sitemap.xml", max_urls=2)

        assert len(urls) == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_yields_empty_list(self):
        async with make_client({}) as client:
            urls = await load_sitemap_urls("https://example.com/sitemap.xml", client=client)

        assert urls == []

    @pytest.mark.asyncio
    async def test_sends_user_agent(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("user-agent"))
            return httpx.Response(200, text=URLSET)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await load_sitemap_urls("https://example.com/sitemap.xml", user_agent="Bot/2", client=client)

        assert seen == ["Bot/2"]
