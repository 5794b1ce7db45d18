"""
Browser configuration for Playwright-based capture.

This module provides a validated Pydantic model for browser-level settings
and resolves device descriptors ("iPhone 13", "Desktop 1440x900") into
DeviceProfile objects.
"""
import logging
import re
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from sitecapture.constants import (
    DEFAULT_USER_AGENT,
    FALLBACK_DEVICE_LABEL,
    FALLBACK_VIEWPORT_HEIGHT,
    FALLBACK_VIEWPORT_WIDTH,
)
from sitecapture.models import DeviceProfile

logger = logging.getLogger(__name__)

_SIZE = re.compile(r"(\d+)\s*x\s*(\d+)", re.IGNORECASE)


class BrowserConfig(BaseModel):
    """
    Configuration for launching the capture browser and its contexts.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for capturing"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: ["--disable-blink-features=AutomationControlled"],
        description="Additional browser launch arguments"
    )

    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="Identifying user agent sent by every context"
    )

    http_username: Optional[str] = Field(
        default=None,
        description="HTTP basic auth user for pre-authenticated contexts"
    )

    http_password: Optional[str] = Field(
        default=None,
        description="HTTP basic auth password"
    )

    storage_state: Optional[str] = Field(
        default=None,
        description="Path to a Playwright storage-state file (cookies, local storage)"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    @classmethod
    def from_capture_config(cls, config) -> "BrowserConfig":
        return cls(
            headless=config.headless,
            browser_type=config.browser_type,
            user_agent=config.user_agent,
            http_username=config.http_username,
            http_password=config.http_password,
            storage_state=config.storage_state,
        )

    def launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"headless": self.headless}
        if self.launch_args and self.browser_type == "chromium":
            options["args"] = list(self.launch_args)
        return options

    def context_options(self, profile: DeviceProfile) -> Dict[str, Any]:
        """Keyword arguments for ``browser.new_context`` for one device."""
        if profile.is_preset:
            options = dict(profile.preset)
            # Only chromium understands every preset key
            options.pop("default_browser_type", None)
        else:
            options = {"viewport": dict(profile.viewport)}

        options["device_scale_factor"] = profile.scale_factor
        options["user_agent"] = self.user_agent
        options["bypass_csp"] = False

        if self.http_username:
            options["http_credentials"] = {
                "username": self.http_username,
                "password": self.http_password or "",
            }
        if self.storage_state:
            options["storage_state"] = self.storage_state

        return options


def parse_size(descriptor: str) -> Optional[Dict[str, int]]:
    """Extract a ``{"width", "height"}`` viewport from text like '1440x900'."""
    match = _SIZE.search(descriptor)
    if not match:
        match = _SIZE.search(re.sub(r"[^\dx]", "", descriptor, flags=re.IGNORECASE))
    if not match:
        return None
    return {"width": int(match.group(1)), "height": int(match.group(2))}


def resolve_devices(
    names: List[str],
    presets: Mapping[str, Mapping[str, Any]],
    scale: int = 1,
) -> List[DeviceProfile]:
    """Turn device descriptors into profiles.

    Args:
        names: Device names from configuration
        presets: Playwright device registry (``playwright.devices``)
        scale: Scale multiplier applied to every device

    Returns:
        One DeviceProfile per name, in order
    """
    profiles = []
    for name in names:
        preset = presets.get(name)
        if preset is not None:
            base_scale = preset.get("device_scale_factor") or 1
            profiles.append(DeviceProfile(
                label=name,
                scale_factor=base_scale * scale,
                preset=dict(preset),
            ))
            continue

        size = parse_size(name)
        if size:
            label = re.sub(r"\s+", "_", name) or f"{size['width']}x{size['height']}"
            profiles.append(DeviceProfile(label=label, scale_factor=scale, viewport=size))
            continue

        logger.warning(f"Unknown device '{name}', using {FALLBACK_DEVICE_LABEL}")
        profiles.append(DeviceProfile(
            label=FALLBACK_DEVICE_LABEL,
            scale_factor=scale,
            viewport={"width": FALLBACK_VIEWPORT_WIDTH, "height": FALLBACK_VIEWPORT_HEIGHT},
        ))

    return profiles
