"""Run configuration for site capture.

Options are read from the environment (and a local ``.env`` file) and
validated by Pydantic. A ``CaptureConfig`` is treated as immutable for the
whole run.
"""
import os
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from sitecapture.constants import DEFAULT_LAYOUT_SAMPLE_LIMIT, DEFAULT_USER_AGENT

load_dotenv()  # Loads variables from .env file


DEFAULT_SKIP_URL_PATTERNS = [
    "login", "logout", "signin", "signup", "cart", "checkout",
    "account", "mypage", "admin", "settings", "profile",
]

DEFAULT_CONTENT_SKIP_PATTERNS = ["/blog", "/news", "/article", "/post"]

DEFAULT_SAMPLE_DETAIL_PATTERNS = ["blog", "news"]

DEFAULT_MASK_SELECTORS = [
    "input[type='password']",
    "input[type='email']",
    "input[name*='mail']",
    "input[name*='phone']",
    ".email",
    ".tel",
    ".phone",
    "[data-sensitive]",
]


class ConfigurationError(Exception):
    """Raised when the run cannot start because of invalid configuration."""


class CaptureConfig(BaseModel):
    """
    Options for one capture run.

    Every field has a documented default except ``start_urls``.
    """

    start_urls: List[str] = Field(
        description="Seed URLs the crawl starts from"
    )

    full_page: bool = Field(default=True, description="Capture the full scrollable page")

    devices: List[str] = Field(
        default_factory=lambda: ["Desktop 1440x900", "iPhone 13"],
        description="Device presets or 'WxH' descriptors to capture with"
    )

    same_host_only: bool = Field(default=True, description="Only follow links on the seed host")

    path_prefix_mode: Literal["start", "none"] = Field(
        default="start",
        description="'start' keeps the crawl under the seed's directory, 'none' disables the check"
    )

    max_depth: int = Field(default=1, ge=0, description="Link depth that is still expanded")
    max_pages: int = Field(default=100, ge=1, description="Ceiling on distinct visited URLs")

    out_dir: str = Field(default="public", description="Output root for screenshots and manifest")
    scale: int = Field(default=2, ge=1, description="Device scale multiplier")
    extra_wait_ms: int = Field(default=0, ge=0, description="Fixed pause before each screenshot")

    filename_mode: Literal["flat", "tree"] = Field(
        default="flat",
        description="'flat' writes all files into out_dir, 'tree' mirrors the URL path"
    )

    safe_mode: bool = Field(default=True, description="Use conservative pacing defaults")
    respect_robots: bool = Field(default=True, description="Honor robots.txt Disallow and Crawl-delay")
    sitemap_url: Optional[str] = Field(default=None, description="Optional sitemap seeding the frontier")

    goto_timeout_ms: int = Field(default=120000, ge=1000, description="Navigation timeout")
    retries: int = Field(default=1, ge=0, description="Extra navigation attempts on failure or rate limiting")

    wait_between_ms: Optional[int] = Field(
        default=None,
        ge=0,
        description="Base delay between requests on one device; None uses the safe-mode default"
    )

    skip_url_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_URL_PATTERNS),
        description="Regex patterns (case-insensitive) for authentication/account/commerce URLs"
    )

    content_skip_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CONTENT_SKIP_PATTERNS),
        description="Regex patterns for high-volume templated content"
    )

    sample_detail_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SAMPLE_DETAIL_PATTERNS),
        description="Categories (first path segment) allowed one sample detail page"
    )

    mask_selectors: List[str] = Field(
        default_factory=lambda: list(DEFAULT_MASK_SELECTORS),
        description="CSS selectors masked in every screenshot"
    )

    layout_dedup: bool = Field(default=True, description="Skip capture of duplicate page templates")
    layout_sample_limit: int = Field(default=DEFAULT_LAYOUT_SAMPLE_LIMIT, ge=1)
    layout_ignore_patterns: List[str] = Field(
        default_factory=list,
        description="Regex patterns for URLs never treated as layout duplicates"
    )

    image_wait_timeout_ms: int = Field(default=45000, ge=0)
    settle_budget_ms: int = Field(default=30000, ge=0, description="Total budget of the load-state chain")

    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    headless: bool = Field(default=True)
    browser_type: Literal["chromium", "firefox", "webkit"] = Field(default="chromium")

    http_username: Optional[str] = Field(default=None, description="HTTP basic auth user")
    http_password: Optional[str] = Field(default=None, description="HTTP basic auth password")
    storage_state: Optional[str] = Field(
        default=None,
        description="Playwright storage-state file for a pre-authenticated session"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = True

    @field_validator("start_urls")
    @classmethod
    def _check_start_urls(cls, value: List[str]) -> List[str]:
        urls = [u.strip() for u in value if u and u.strip()]
        if not urls:
            raise ValueError("at least one start URL is required")
        for url in urls:
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"start URL is not an absolute http(s) URL: {url!r}")
        return urls

    @field_validator("devices")
    @classmethod
    def _check_devices(cls, value: List[str]) -> List[str]:
        devices = [d.strip() for d in value if d and d.strip()]
        if not devices:
            raise ValueError("at least one device is required")
        return devices

    @property
    def base_wait_ms(self) -> int:
        """Configured delay between requests, before any robots floor."""
        if self.wait_between_ms is not None:
            return self.wait_between_ms
        return 1000 if self.safe_mode else 200

    @classmethod
    def from_env(cls, **overrides: Any) -> "CaptureConfig":
        """Load configuration from environment variables.

        Keyword overrides (e.g. from the command line) win over the
        environment. ``None`` overrides are ignored.

        Returns:
            CaptureConfig: Validated configuration

        Raises:
            ConfigurationError: If a value is missing or invalid
        """
        values: Dict[str, Any] = {
            "start_urls": _env_list("START_URLS", []),
            "full_page": _env_bool("FULL_PAGE", True),
            "devices": _env_list("DEVICES", ["Desktop 1440x900", "iPhone 13"]),
            "same_host_only": _env_bool("SAME_HOST_ONLY", True),
            "path_prefix_mode": os.getenv("PATH_PREFIX_MODE", "start").lower(),
            "max_depth": _env_int("MAX_DEPTH", 1),
            "max_pages": _env_int("MAX_PAGES", 100),
            "out_dir": os.getenv("OUT_DIR", "public"),
            "scale": max(1, _env_int("SCALE", 2)),
            "extra_wait_ms": _env_int("EXTRA_WAIT_MS", 0),
            "filename_mode": os.getenv("FILENAME_MODE", "flat").lower(),
            "safe_mode": _env_bool("SAFE_MODE", True),
            "respect_robots": _env_bool("RESPECT_ROBOTS", True),
            "sitemap_url": os.getenv("SITEMAP_URL", "").strip() or None,
            "goto_timeout_ms": _env_int("GOTO_TIMEOUT_MS", 120000),
            "retries": max(0, _env_int("RETRIES", 1)),
            "skip_url_patterns": _env_list("SKIP_URL_PATTERNS", DEFAULT_SKIP_URL_PATTERNS),
            "content_skip_patterns": _env_list("CONTENT_SKIP_PATTERNS", DEFAULT_CONTENT_SKIP_PATTERNS),
            "sample_detail_patterns": _env_list("SAMPLE_DETAIL_PATTERNS", DEFAULT_SAMPLE_DETAIL_PATTERNS),
            "mask_selectors": _env_list("MASK_SELECTORS", DEFAULT_MASK_SELECTORS),
            "layout_dedup": _env_bool("LAYOUT_DEDUP", True),
            "layout_sample_limit": _env_int("LAYOUT_SAMPLE_LIMIT", DEFAULT_LAYOUT_SAMPLE_LIMIT),
            "layout_ignore_patterns": _env_list("LAYOUT_IGNORE_PATTERNS", []),
            "image_wait_timeout_ms": _env_int("IMAGE_WAIT_TIMEOUT_MS", 45000),
            "settle_budget_ms": _env_int("SETTLE_BUDGET_MS", 30000),
            "user_agent": os.getenv("USER_AGENT", DEFAULT_USER_AGENT),
            "headless": _env_bool("HEADLESS", True),
            "browser_type": os.getenv("BROWSER_TYPE", "chromium").lower(),
            "http_username": os.getenv("HTTP_USERNAME") or None,
            "http_password": os.getenv("HTTP_PASSWORD") or None,
            "storage_state": os.getenv("STORAGE_STATE") or None,
        }

        wait_between = os.getenv("WAIT_BETWEEN_MS")
        if wait_between is not None and wait_between.strip():
            values["wait_between_ms"] = _parse_int("WAIT_BETWEEN_MS", wait_between)

        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() == "true"


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return _parse_int(key, value)


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


def _env_list(key: str, default: List[str]) -> List[str]:
    value = os.getenv(key)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]
