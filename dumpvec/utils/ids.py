"""Deterministic identifiers for stored vector entries."""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional

from .constants import ENTRY_ID_SCHEME

PRIMARY_KEY_FIELD = "id"


def find_primary_key(table: str, fields: Mapping[str, Any]) -> Optional[str]:
    """Return the record's primary key as text, or None when none is evident.

    The first field named ``id`` (case-insensitive) wins. SurrealDB style
    ``table:key`` values contribute only ``key``.
    """
    for name, value in fields.items():
        if name.lower() != PRIMARY_KEY_FIELD:
            continue
        if value is None or isinstance(value, (list, dict)):
            return None
        key = str(value).strip()
        prefix = f"{table}:"
        if key.startswith(prefix):
            key = key[len(prefix) :]
        key = key.strip("`⟨⟩")
        return key or None
    return None


def entry_locator(table: str, key: Optional[str], ordinal: int) -> str:
    """Build the stable locator string an entry id is derived from."""
    table = (table or "unknown").strip()
    if key is not None:
        return f"{ENTRY_ID_SCHEME}://{table}/{key}"
    return f"{ENTRY_ID_SCHEME}://{table}/#{ordinal}"


def generate_entry_id(table: str, fields: Mapping[str, Any], ordinal: int) -> str:
    """Generate a UUID that is stable across runs for the same source row."""
    key = find_primary_key(table, fields)
    return str(uuid.uuid5(uuid.NAMESPACE_URL, entry_locator(table, key, ordinal)))


def is_valid_entry_id(entry_id: str) -> bool:
    """Return True when the id is a syntactically valid UUID."""
    try:
        uuid.UUID(entry_id)
    except (TypeError, ValueError):
        return False
    return True
