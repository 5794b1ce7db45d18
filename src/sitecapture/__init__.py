"""Polite multi-device screenshot capture for site documentation."""

__version__ = "0.1.0"

from sitecapture.capture_session import CaptureSession, DeviceSession
from sitecapture.config import CaptureConfig, ConfigurationError
from sitecapture.dedup import LayoutDeduplicator
from sitecapture.navigation import LoadState, NavigationError, ResilientNavigator
from sitecapture.output_manager import CaptureManifest, OutputManager, build_save_path
from sitecapture.policy import AdmissionController, SkipSamplePolicy
from sitecapture.robots import load_robots, parse_robots
from sitecapture.stabilization import PageStabilizer
from sitecapture.urls import in_scope, normalize_url
from sitecapture.models import (
    CaptureRecord,
    CaptureSummary,
    DeviceProfile,
    RobotsPolicy,
    Task,
)

# Infrastructure
from sitecapture.infrastructure import (
    PolitenessRateLimiter,
    RateLimitConfig,
)

__all__ = [
    # Core
    "CaptureSession",
    "DeviceSession",
    "CaptureConfig",
    "ConfigurationError",
    "AdmissionController",
    "SkipSamplePolicy",
    "ResilientNavigator",
    "NavigationError",
    "LoadState",
    "PageStabilizer",
    "LayoutDeduplicator",
    "OutputManager",
    "CaptureManifest",
    "build_save_path",
    "load_robots",
    "parse_robots",
    "normalize_url",
    "in_scope",
    # Models
    "Task",
    "RobotsPolicy",
    "DeviceProfile",
    "CaptureRecord",
    "CaptureSummary",
    # Infrastructure
    "PolitenessRateLimiter",
    "RateLimitConfig",
]
