"""Capture script - screenshot a site across devices.

Usage:
    python capture.py https://example.com/docs/ --max-pages 30 --devices "Desktop 1440x900,iPhone 13"

Every option also reads from the environment (START_URLS, MAX_PAGES, ...).
"""

import sys

from sitecapture.cli import main


if __name__ == "__main__":
    sys.exit(main())
