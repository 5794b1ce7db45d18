"""Command-line interface for site capture."""

import argparse
import asyncio
import sys
from typing import List, Optional

from sitecapture.capture_session import CaptureSession
from sitecapture.config import CaptureConfig, ConfigurationError
from sitecapture.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def _split(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Capture screenshots of a site across devices (options default to environment variables)"
    )
    parser.add_argument('urls', nargs='*',
                        help='Start URLs (default: START_URLS, comma separated)')
    parser.add_argument('--max-pages', type=int, default=None,
                        help='Maximum number of distinct pages to visit (MAX_PAGES, default: 100)')
    parser.add_argument('--max-depth', type=int, default=None,
                        help='Link depth that is still expanded (MAX_DEPTH, default: 1)')
    parser.add_argument('--out-dir', type=str, default=None,
                        help='Output directory (OUT_DIR, default: public)')
    parser.add_argument('--devices', type=str, default=None,
                        help='Comma separated device presets or WxH sizes (DEVICES)')
    parser.add_argument('--sitemap', type=str, default=None,
                        help='Sitemap URL used to seed the queue (SITEMAP_URL)')
    parser.add_argument('--filename-mode', choices=['flat', 'tree'], default=None,
                        help='Screenshot layout on disk (FILENAME_MODE, default: flat)')
    parser.add_argument('--ignore-robots', action='store_true',
                        help='Do not fetch or honor robots.txt')
    parser.add_argument('--no-dedup', action='store_true',
                        help='Capture pages even when their layout repeats')
    parser.add_argument('--log-level', type=str, default='INFO',
                        help='Log level (default: INFO)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Optional log file path')
    return parser


def config_from_args(args: argparse.Namespace) -> CaptureConfig:
    """Merge command-line arguments over the environment."""
    overrides = {
        "start_urls": args.urls or None,
        "max_pages": args.max_pages,
        "max_depth": args.max_depth,
        "out_dir": args.out_dir,
        "devices": _split(args.devices),
        "sitemap_url": args.sitemap,
        "filename_mode": args.filename_mode,
    }
    if args.ignore_robots:
        overrides["respect_robots"] = False
    if args.no_dedup:
        overrides["layout_dedup"] = False
    return CaptureConfig.from_env(**overrides)


def main(argv: Optional[List[str]] = None) -> int:
    """Run a capture from the command line.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    try:
        config = config_from_args(args)
        session = CaptureSession(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    summary = asyncio.run(session.run())

    print(f"\n{'=' * 60}")
    print(f"Capture complete! pages={summary.pages_visited}, shots={summary.shots_taken}")
    if summary.duplicates_skipped:
        print(f"Duplicate layouts skipped: {summary.duplicates_skipped}")
    if summary.device_failures:
        print(f"Device failures: {summary.device_failures} (see log)")
    print(f"Manifest: {summary.manifest_path}")
    print(f"{'=' * 60}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
