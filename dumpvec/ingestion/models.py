"""Core data structures produced by the dump extractors."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Dialect(str, Enum):
    """Supported dump families."""

    MYSQL = "mysql"
    POSTGRES = "postgres"
    MSSQL = "mssql"
    ORACLE = "oracle"
    SQLITE = "sqlite"
    SURREAL = "surreal"
    JSON = "json"


@dataclass
class Record:
    """One extracted row or document.

    Field values are plain Python values: ``None`` for NULL, ``bool``,
    ``int``, ``float``, ``str``, ``list`` and ``dict``. Nested values are
    fully resolved by the normalizer. ``fields`` keeps source column order.

    Attributes:
        table: Source table or collection name. Never empty.
        fields: Column name to value mapping, in source order.
        ordinal: 0-based position of the record within its table.
    """

    table: str
    fields: Dict[str, Any] = field(default_factory=dict)
    ordinal: int = 0

    def render_text(self) -> str:
        """Render the record as the text that gets embedded."""
        return json.dumps(
            self.fields, ensure_ascii=False, separators=(", ", ": "), default=str
        )
