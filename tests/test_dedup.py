"""Tests for layout deduplication."""

import pytest

from conftest import FakePage
from sitecapture.dedup import LayoutDeduplicator, layout_signature

pytest_plugins = ('pytest_asyncio',)

ARTICLE = "header|site-header||;main|content|main|;article|post||post-123"


class TestLayoutDeduplicator:
    """Tests for LayoutDeduplicator."""

    def test_first_signature_is_not_duplicate(self):
        dedup = LayoutDeduplicator()
        assert not dedup.is_duplicate(ARTICLE, "https://example.com/a")
        assert len(dedup.fingerprints) == 1

    def test_repeated_signature_is_duplicate(self):
        dedup = LayoutDeduplicator()
        dedup.is_duplicate(ARTICLE, "https://example.com/a")
        assert dedup.is_duplicate(ARTICLE, "https://example.com/b")

    def test_different_signatures(self):
        dedup = LayoutDeduplicator()
        dedup.is_duplicate(ARTICLE, "https://example.com/a")
        assert not dedup.is_duplicate(ARTICLE + ";footer|||", "https://example.com/b")

    def test_empty_signature_never_duplicate(self):
        dedup = LayoutDeduplicator()
        assert not dedup.is_duplicate("", "https://example.com/a")
        assert not dedup.is_duplicate("", "https://example.com/b")
        assert dedup.fingerprints == set()

    def test_ignored_urls_are_not_recorded(self):
        dedup = LayoutDeduplicator(ignore_patterns=[r"/pricing"])
        assert not dedup.is_duplicate(ARTICLE, "https://example.com/pricing")
        assert not dedup.is_duplicate(ARTICLE, "https://example.com/PRICING/team")
        assert not dedup.is_duplicate(ARTICLE, "https://example.com/a")
        assert dedup.is_duplicate(ARTICLE, "https://example.com/b")

    def test_fingerprint_is_stable(self):
        assert LayoutDeduplicator.fingerprint(ARTICLE) == LayoutDeduplicator.fingerprint(ARTICLE)
        assert len(LayoutDeduplicator.fingerprint(ARTICLE)) == 40


class TestLayoutSignature:
    """Tests for layout_signature."""

    @pytest.mark.asyncio
    async def test_reads_signature_from_page(self):
        page = FakePage(signatures={"https://example.com/a": ARTICLE})
        page.url = "https://example.com/a"

        assert await layout_signature(page, 50) == ARTICLE

    @pytest.mark.asyncio
    async def test_missing_signature_is_empty(self):
        page = FakePage(signatures={"about:blank": None})

        assert await layout_signature(page) == ""
