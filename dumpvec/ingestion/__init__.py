"""
Ingestion module for database dump parsing.

This module detects the dump dialect, extracts typed records without a full
SQL engine and normalizes dialect literals into plain Python values.
"""

from __future__ import annotations

from .detector import detect_dialect, read_dump
from .extractor_registry import get_extractor
from .models import Dialect, Record

__all__ = ["Dialect", "Record", "detect_dialect", "get_extractor", "read_dump"]
