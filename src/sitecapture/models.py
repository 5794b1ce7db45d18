"""Data models for site capture runs."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Task:
    """Unit of crawl work: one URL reached from a seed at a given depth."""

    start_url: str
    url: str
    depth: int = 0


@dataclass(frozen=True)
class RobotsPolicy:
    """Disallow prefixes and crawl delay taken from robots.txt."""

    disallow_prefixes: tuple[str, ...] = ()
    crawl_delay_ms: int = 0

    @classmethod
    def permissive(cls) -> "RobotsPolicy":
        """Policy used when robots.txt is ignored or unavailable."""
        return cls()


@dataclass(frozen=True)
class DeviceProfile:
    """A simulated device: either a registry preset or a plain viewport."""

    label: str
    scale_factor: float
    viewport: Optional[dict[str, int]] = None
    preset: Optional[dict[str, Any]] = None

    @property
    def is_preset(self) -> bool:
        return self.preset is not None


@dataclass(frozen=True)
class CaptureRecord:
    """One screenshot written for a (url, device) pair."""

    url: str
    device: str
    scale: int
    file_path: str

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "device": self.device,
            "scale": self.scale,
            "file": self.file_path,
        }


@dataclass
class CaptureSummary:
    """Statistics for a finished run."""

    pages_visited: int = 0
    shots_taken: int = 0
    duplicates_skipped: int = 0
    device_failures: int = 0
    manifest_path: Optional[str] = None
    visited_urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pages_visited": self.pages_visited,
            "shots_taken": self.shots_taken,
            "duplicates_skipped": self.duplicates_skipped,
            "device_failures": self.device_failures,
            "manifest_path": self.manifest_path,
        }
