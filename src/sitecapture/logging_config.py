"""Logging setup for capture runs."""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Libraries whose INFO output drowns the per-page progress lines
NOISY_LOGGERS = ('httpx', 'httpcore', 'asyncio')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Route capture logs to stdout and, optionally, a file.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Also write to this file (parent directories are created)
        format_string: Record format (defaults to DEFAULT_FORMAT)
        quiet: Logger names held at WARNING regardless of ``level``
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger (pass ``__name__``)."""
    return logging.getLogger(name)
