"""Layout deduplication for templated pages.

A page's layout signature is built from the first N elements under
``<body>``: tag name, first two classes, ARIA role and a short id fragment
per element. Pages whose signature hash was already seen are treated as
duplicates of an earlier template.

This is a heuristic. Two pages with identical structure but different
content look the same to it, and differences that only appear after the
sampled elements are not seen.
"""

import hashlib
import logging
import re
from typing import Iterable, Set

from sitecapture.constants import DEFAULT_LAYOUT_SAMPLE_LIMIT, LAYOUT_ID_FRAGMENT_LENGTH

logger = logging.getLogger(__name__)

LAYOUT_SIGNATURE_SCRIPT = """
({ limit, idLength }) => {
  const root = document.body;
  if (!root) return "";
  const nodes = Array.from(root.querySelectorAll("*")).slice(0, limit);
  return nodes.map(el => {
    const tag = el.tagName.toLowerCase();
    const cls = (typeof el.className === "string" ? el.className : "")
      .trim().split(/\\s+/).filter(Boolean).slice(0, 2).join(".");
    const role = el.getAttribute("role") || "";
    const id = (el.id || "").slice(0, idLength);
    return `${tag}|${cls}|${role}|${id}`;
  }).join(";");
}
"""


async def layout_signature(page, sample_limit: int = DEFAULT_LAYOUT_SAMPLE_LIMIT) -> str:
    """Structural signature of the first ``sample_limit`` body descendants."""
    signature = await page.evaluate(
        LAYOUT_SIGNATURE_SCRIPT,
        {"limit": sample_limit, "idLength": LAYOUT_ID_FRAGMENT_LENGTH},
    )
    return signature or ""


class LayoutDeduplicator:
    """Tracks layout fingerprints seen during a run."""

    def __init__(self, ignore_patterns: Iterable[str] = ()):
        self._ignore = [re.compile(p, re.IGNORECASE) for p in ignore_patterns]
        self.fingerprints: Set[str] = set()

    @staticmethod
    def fingerprint(signature: str) -> str:
        return hashlib.sha1(signature.encode("utf-8")).hexdigest()

    def is_ignored(self, url: str) -> bool:
        return any(p.search(url) for p in self._ignore)

    def is_duplicate(self, signature: str, url: str) -> bool:
        """Record the signature and report whether it was seen before.

        Empty signatures and URLs matching an ignore pattern are never
        duplicates and are not recorded.
        """
        if not signature or self.is_ignored(url):
            return False

        fingerprint = self.fingerprint(signature)
        if fingerprint in self.fingerprints:
            logger.info(f"  Layout of {url} matches an earlier page ({fingerprint[:10]})")
            return True

        self.fingerprints.add(fingerprint)
        return False
