"""Admission policies: skip patterns, sample exceptions and the composed check."""

import logging
import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from sitecapture.models import RobotsPolicy
from sitecapture.robots import is_blocked
from sitecapture.urls import CRAWLABLE_SCHEMES, in_scope

logger = logging.getLogger(__name__)

# Second path segments that mark a category listing rather than a detail page
LISTING_KEYWORDS = frozenset({
    "page", "pages", "category", "categories", "tag", "tags",
    "archive", "archives", "feed", "index", "author", "search", "list",
})


def _compile(patterns: Iterable[str]) -> List[re.Pattern]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            # Fall back to a literal match so a typo never disables the rule
            logger.warning(f"Invalid skip pattern {pattern!r} ({e}), matching literally")
            compiled.append(re.compile(re.escape(pattern), re.IGNORECASE))
    return compiled


class SkipSamplePolicy:
    """
    URL exclusion with a one-shot exception per templated-content category.

    Two pattern lists are kept apart:
    - ``skip_patterns`` (login, cart, account, ...) always exclude.
    - ``content_patterns`` (blog, news, ...) are matched against the path and
      query only, so a host like ``news.example.com`` is not content. They
      exclude too, but the first *detail* URL whose first path segment is a
      tracked category is let through once. Listings (``/blog``, ``/blog/page/2``) never are.

    ``sample_taken`` maps each tracked category to whether its sample has been
    used; it only ever flips from False to True.
    """

    def __init__(
        self,
        skip_patterns: Iterable[str] = (),
        content_patterns: Iterable[str] = (),
        sample_categories: Iterable[str] = (),
    ):
        self._skip = _compile(skip_patterns)
        self._content = _compile(content_patterns)
        self.sample_taken: Dict[str, bool] = {
            category.strip().lower(): False
            for category in sample_categories
            if category and category.strip()
        }

    def matches_skip_pattern(self, url: str) -> bool:
        """Authentication/account/commerce exclusion."""
        return any(p.search(url) for p in self._skip)

    def matches_content_pattern(self, url: str) -> bool:
        """High-volume templated content exclusion, matched on path and query only."""
        parsed = urlparse(url)
        target = f"{parsed.path}?{parsed.query}" if parsed.query else parsed.path
        return any(p.search(target) for p in self._content)

    def should_skip(self, url: str) -> bool:
        return self.matches_skip_pattern(url) or self.matches_content_pattern(url)

    def try_allow_sample(self, url: str) -> bool:
        """Grant the sample exception for ``url`` if its category still has one.

        Mutates ``sample_taken`` when the exception is granted.

        Returns:
            True if the URL is admitted as its category's sample detail page
        """
        segments = [s for s in urlparse(url).path.split("/") if s]
        if not segments:
            return False

        category = segments[0].lower()
        if category not in self.sample_taken:
            return False

        rest = segments[1:]
        if not rest or rest[0].lower() in LISTING_KEYWORDS:
            return False

        if self.sample_taken[category]:
            return False

        self.sample_taken[category] = True
        logger.info(f"Admitting {url} as the sample page for '{category}'")
        return True

    def allows(self, url: str) -> bool:
        """Apply skip patterns, then the sample exception for content matches."""
        if self.matches_skip_pattern(url):
            return False
        if self.matches_content_pattern(url):
            return self.try_allow_sample(url)
        return True


class AdmissionController:
    """
    Composes scope, skip/sample and robots rules into one ``should_visit``.

    Checks run in a fixed order and stop at the first failure:
    protocol, scope, skip patterns with sample exception, robots.txt.
    The sample exception is consumed before robots is consulted, so it can
    rescue a skip-matched URL but never a robots-blocked one.
    """

    def __init__(
        self,
        skip_policy: SkipSamplePolicy,
        same_host_only: bool = True,
        path_prefix_mode: str = "start",
        respect_robots: bool = True,
    ):
        self.skip_policy = skip_policy
        self.same_host_only = same_host_only
        self.path_prefix_mode = path_prefix_mode
        self.respect_robots = respect_robots

    @classmethod
    def from_config(cls, config) -> "AdmissionController":
        skip_policy = SkipSamplePolicy(
            skip_patterns=config.skip_url_patterns,
            content_patterns=config.content_skip_patterns,
            sample_categories=config.sample_detail_patterns,
        )
        return cls(
            skip_policy,
            same_host_only=config.same_host_only,
            path_prefix_mode=config.path_prefix_mode,
            respect_robots=config.respect_robots,
        )

    def should_visit(self, url: str, start_url: str, robots: Optional[RobotsPolicy]) -> bool:
        """Decide whether ``url`` may enter the frontier.

        Note: may consume a category's sample exception, so calling it twice
        for the same detail URL can give different answers.
        """
        parsed = urlparse(url)
        if parsed.scheme not in CRAWLABLE_SCHEMES:
            logger.debug(f"Rejected {url}: unsupported scheme")
            return False

        if not in_scope(url, start_url, self.same_host_only, self.path_prefix_mode):
            logger.debug(f"Rejected {url}: out of scope for {start_url}")
            return False

        if not self.skip_policy.allows(url):
            logger.debug(f"Rejected {url}: matches skip pattern")
            return False

        if self.respect_robots and robots and is_blocked(parsed.path, robots.disallow_prefixes):
            logger.debug(f"Rejected {url}: disallowed by robots.txt")
            return False

        return True
