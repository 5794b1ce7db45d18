"""Output manager for screenshots and the run manifest."""

import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

from sitecapture.constants import FLAT_BASENAME_MAX_LENGTH, MANIFEST_FILENAME, QUERY_HASH_LENGTH
from sitecapture.models import CaptureRecord

logger = logging.getLogger(__name__)

_UNSAFE_COMPONENT = re.compile(r"[^A-Za-z0-9._-]+")
_UNSAFE_FLAT_PATH = re.compile(r"[^a-z0-9_-]+", re.IGNORECASE)


def _safe_component(value: str) -> str:
    """Make a single path component filesystem-safe and non-traversing."""
    cleaned = _UNSAFE_COMPONENT.sub("_", value)
    if not cleaned or set(cleaned) == {"."}:
        return "_"
    return cleaned


def build_save_path(
    url: str,
    device_label: str,
    scale: int,
    full_page: bool,
    mode: str = "flat",
    out_dir: Union[str, Path] = "public",
) -> Path:
    """Build the screenshot path for a (url, device) pair.

    Example structure:
        flat:  public/example.com___docs_intro__iPhone_13__full@2x.png
        tree:  public/example.com/docs/intro/intro__iPhone_13__full@2x.png
        query: public/example.com___list__q1a2b3c4d__iPhone_13__full@2x.png

    Args:
        url: Captured URL
        device_label: Device label (sanitized for the file name)
        scale: Scale factor written into the file name
        full_page: Whether the screenshot is full-page
        mode: "flat" or "tree"
        out_dir: Output root

    Returns:
        Path under ``out_dir``

    Raises:
        ValueError: If the computed path would leave ``out_dir``
    """
    root = Path(out_dir)
    parsed = urlparse(url)
    host = _safe_component(parsed.netloc)
    # Distinct queries (?page=1, ?page=2) must not share one file
    query_tag = ""
    if parsed.query:
        digest = hashlib.sha1(parsed.query.encode("utf-8")).hexdigest()
        query_tag = f"__q{digest[:QUERY_HASH_LENGTH]}"
    suffix = f"{query_tag}__{_safe_component(device_label)}{'__full' if full_page else ''}@{scale}x.png"

    if mode == "tree":
        segments = [
            _safe_component(s)
            for s in parsed.path.split("/")
            if s not in ("", ".", "..")
        ]
        if not segments:
            base = "root"
        elif parsed.path.endswith("/"):
            base = "index"
        else:
            base = segments[-1]
        target = root.joinpath(host, *segments, f"{base}{suffix}")
    else:
        path = parsed.path
        safe_path = "root" if path in ("", "/") else _UNSAFE_FLAT_PATH.sub("_", path)
        base = f"{host}__{safe_path}"[:FLAT_BASENAME_MAX_LENGTH]
        target = root / f"{base}{suffix}"

    resolved_root = root.resolve()
    if not target.resolve().is_relative_to(resolved_root):
        raise ValueError(f"Refusing to write outside {root}: {target}")

    return target


class CaptureManifest:
    """Ordered capture records, at most one per (url, device)."""

    def __init__(self):
        self._records: List[CaptureRecord] = []
        self._keys: Dict[Tuple[str, str], CaptureRecord] = {}

    def add(self, record: CaptureRecord) -> bool:
        """Append a record unless its (url, device) pair is already present.

        Returns:
            True if the record was added
        """
        key = (record.url, record.device)
        if key in self._keys:
            logger.warning(f"Duplicate capture ignored for {record.url} ({record.device})")
            return False
        self._keys[key] = record
        self._records.append(record)
        return True

    def has(self, url: str, device: str) -> bool:
        return (url, device) in self._keys

    @property
    def items(self) -> List[CaptureRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def to_dict(self, generated_at: Optional[datetime] = None) -> dict:
        generated_at = generated_at or datetime.now(timezone.utc)
        return {
            "generatedAt": generated_at.isoformat(),
            "items": [record.to_dict() for record in self._records],
        }


class OutputManager:
    """Writes screenshots and the manifest under one output root."""

    def __init__(self, out_dir: Union[str, Path] = "public", filename_mode: str = "flat"):
        """Initialize output manager.

        Args:
            out_dir: Output root for all files
            filename_mode: "flat" or "tree" layout
        """
        self.out_dir = Path(out_dir)
        self.filename_mode = filename_mode
        self.out_dir.mkdir(parents=True, exist_ok=True)

    def screenshot_path(self, url: str, device_label: str, scale: int, full_page: bool) -> Path:
        return build_save_path(url, device_label, scale, full_page, self.filename_mode, self.out_dir)

    def save_screenshot(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def relative(self, path: Path) -> str:
        """Path relative to the output root, with POSIX separators."""
        return path.relative_to(self.out_dir).as_posix()

    def write_manifest(self, manifest: CaptureManifest, generated_at: Optional[datetime] = None) -> Path:
        """Write ``manifest.json`` at the output root.

        Returns:
            Path of the written manifest
        """
        manifest_path = self.out_dir / MANIFEST_FILENAME
        with open(manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest.to_dict(generated_at), f, indent=2, ensure_ascii=False)
        logger.info(f"Manifest written: {manifest_path} ({len(manifest)} items)")
        return manifest_path
