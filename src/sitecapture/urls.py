"""URL normalization and crawl scope checks."""

import logging
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse

logger = logging.getLogger(__name__)

CRAWLABLE_SCHEMES = ("http", "https")


def normalize_url(raw: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """Resolve a (possibly relative) reference and drop its fragment.

    URLs that differ only by fragment normalize to the same value, so the
    result is usable as the visited-set key.

    Args:
        raw: href or URL as found on the page
        base_url: URL of the page the reference was found on

    Returns:
        Absolute URL without fragment, or None if the input is not navigable
    """
    if raw is None:
        return None

    try:
        absolute = urljoin(base_url, raw.strip()) if base_url else raw.strip()
        url, _fragment = urldefrag(absolute)
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return None

    if not parsed.scheme:
        return None
    if parsed.scheme in CRAWLABLE_SCHEMES and not parsed.netloc:
        return None

    return url


def start_path_prefix(start_url: str) -> str:
    """Directory prefix of the start URL, always ending in '/'."""
    path = urlparse(start_url).path
    return path if path.endswith("/") else path + "/"


def in_scope(
    candidate: str,
    start_url: str,
    same_host_only: bool = True,
    path_prefix_mode: str = "start",
) -> bool:
    """Check whether a URL belongs to the crawl started at ``start_url``.

    Args:
        candidate: Normalized candidate URL
        start_url: Seed the candidate was reached from
        same_host_only: Require the same host (including port)
        path_prefix_mode: "start" to require the seed's path prefix, "none" to skip it

    Returns:
        True if the candidate is eligible
    """
    target = urlparse(candidate)
    start = urlparse(start_url)

    if target.scheme not in CRAWLABLE_SCHEMES:
        return False

    if same_host_only and target.netloc.lower() != start.netloc.lower():
        return False

    if path_prefix_mode == "start":
        prefix = start_path_prefix(start_url)
        # A root start path never restricts the crawl
        if prefix != "/" and not (target.path + "/").startswith(prefix):
            return False

    return True
