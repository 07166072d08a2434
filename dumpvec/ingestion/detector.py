"""Dump loading and dialect detection."""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path
from typing import List, Union

from ..config.dialects import FALLBACK_DIALECT, get_all_dialects, get_dialect_for_extension
from ..utils.constants import DETECTION_HEAD_BYTES
from ..utils.exceptions import ExtractionError
from .models import Dialect

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def decode_dump(raw: bytes) -> str:
    """Decode dump bytes. UTF-16LE is used when a BOM says so, else UTF-8."""
    if raw.startswith(codecs.BOM_UTF16_LE):
        return raw[len(codecs.BOM_UTF16_LE) :].decode("utf-16-le", errors="replace")
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8) :]
    return raw.decode("utf-8", errors="replace")


def read_dump(path: PathLike) -> str:
    """Read a whole dump file as text.

    Raises:
        ExtractionError: If the file cannot be read.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Cannot read dump file {path}: {exc}") from exc
    logger.info("Read %d bytes from %s", len(raw), path)
    return decode_dump(raw)


def matching_dialects(head: str) -> List[str]:
    """Return every dialect ID whose signatures match, in priority order."""
    matches = []
    for dialect in get_all_dialects():
        if any(word in head for word in dialect.get("none_of", [])):
            continue
        hit = any(re.search(pattern, head) for pattern in dialect["signatures"])
        if not hit:
            hit = any(all(word in head for word in group) for group in dialect["all_of"])
        if hit:
            matches.append(dialect["id"])
    return matches


def detect_dialect(path: PathLike, head: str) -> Dialect:
    """Classify a dump by file extension, then by signature tokens.

    Never raises: unrecognised content falls back to the JSON-lines dialect.

    Args:
        path: Dump file path; only its name is inspected.
        head: The leading content of the dump.

    Returns:
        The detected dialect.
    """
    by_extension = get_dialect_for_extension(str(path))
    if by_extension:
        logger.info("Detected %s dump from file extension", by_extension)
        return Dialect(by_extension)

    matches = matching_dialects(head)
    if not matches:
        logger.info("No dialect signature found, falling back to %s", FALLBACK_DIALECT)
        return Dialect(FALLBACK_DIALECT)
    if len(matches) > 1:
        logger.info(
            "Dump matches several dialects (%s); using %s by priority",
            ", ".join(matches),
            matches[0],
        )
    else:
        logger.info("Detected %s dump", matches[0])
    return Dialect(matches[0])


def detect_file_dialect(path: PathLike, text: str) -> Dialect:
    """Detect using only the leading part of an already loaded dump."""
    return detect_dialect(path, text[:DETECTION_HEAD_BYTES])
