"""Logging setup for the dumpvec command line."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from .constants import DEFAULT_LOG_LEVEL, LOG_FORMAT

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3")


def resolve_level(level: Optional[str]) -> int:
    """Map a level name to its logging constant; unknown names mean INFO."""
    name = (level or os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Optional[str] = None, format_string: Optional[str] = None) -> None:
    """
    Route all dumpvec logging to stdout.

    Replaces any handlers configured earlier, so calling it again changes
    the level instead of duplicating output.

    Args:
        level: Level name such as "DEBUG". Defaults to $LOG_LEVEL, then INFO.
        format_string: Record format. Defaults to ``LOG_FORMAT``.
    """
    numeric_level = resolve_level(level)
    logging.basicConfig(
        level=numeric_level,
        format=format_string or LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured at %s", logging.getLevelName(numeric_level)
    )
