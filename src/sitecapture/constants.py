# src/sitecapture/constants.py
"""Centralized constants for the site capture tool.

This module contains magic numbers and default values that are used across
multiple modules. For run-time options, see config.py and CaptureConfig.
"""

# =============================================================================
# Robots Constants
# =============================================================================

# Upper bound applied to a robots.txt Crawl-delay (milliseconds)
MAX_CRAWL_DELAY_MS = 5000

# Timeout for fetching robots.txt and sitemaps (seconds)
POLICY_FETCH_TIMEOUT_SECONDS = 10.0


# =============================================================================
# Navigation Constants
# =============================================================================

# HTTP statuses that mean "slow down and try again"
RATE_LIMIT_STATUSES = (429, 503)

# Backoff used when Retry-After is missing or not numeric (milliseconds)
DEFAULT_RETRY_AFTER_MS = 5000

# Per-step timeout for each load-state wait in the settle chain (milliseconds)
LOAD_STATE_STEP_TIMEOUT_MS = 10000

# Fixed pause used when every load-state wait failed (milliseconds)
TIMED_FALLBACK_PAUSE_MS = 1500

# Relative jitter applied to the inter-request delay (+-20%)
REQUEST_JITTER_RATIO = 0.2


# =============================================================================
# Stabilization Constants
# =============================================================================

# Pixels scrolled per autoscroll step
SCROLL_STEP_PX = 600

# Pause after each scroll step (milliseconds)
SCROLL_PAUSE_MS = 200

# Pause after returning to the top of the page (milliseconds)
SCROLL_TOP_PAUSE_MS = 150

# Hard cap on scroll steps for endlessly growing pages
MAX_SCROLL_STEPS = 400

# Interval between image-settle checks (milliseconds)
IMAGE_POLL_INTERVAL_MS = 250


# =============================================================================
# Layout Deduplication Constants
# =============================================================================

# Number of body descendants sampled for the layout signature
DEFAULT_LAYOUT_SAMPLE_LIMIT = 200

# Characters of an element id kept in its descriptor
LAYOUT_ID_FRAGMENT_LENGTH = 8


# =============================================================================
# Output Constants
# =============================================================================

# Maximum length of the flat-mode file base name
FLAT_BASENAME_MAX_LENGTH = 180

# Hex characters of the query-string hash added to screenshot names
QUERY_HASH_LENGTH = 8

# Manifest file written at the output root
MANIFEST_FILENAME = "manifest.json"

# Fallback device when a descriptor has neither preset nor WxH size
FALLBACK_DEVICE_LABEL = "Desktop_1440x900"
FALLBACK_VIEWPORT_WIDTH = 1440
FALLBACK_VIEWPORT_HEIGHT = 900

# Identifying user agent sent by the capture browser
DEFAULT_USER_AGENT = "SiteCaptureBot/1.0 (+https://example.com/contact)"
