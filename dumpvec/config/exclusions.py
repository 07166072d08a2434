"""Table and field exclusion rules loaded from a JSON file.

The file holds a list of entries::

    [
      {"table": "users", "ignore_table": false,
       "exclude_fields": {"password": true, "profile": ["ssn", "dob"]}},
      {"table": "audit_log", "ignore_table": true}
    ]

``true`` drops the whole field; a list drops those keys from an object field.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


@dataclass
class ExclusionEntry:
    table: str
    ignore_table: bool = False
    exclude_fields: Dict[str, Union[bool, List[str]]] = field(default_factory=dict)


class ExclusionRules:
    """Per-table exclusion rules."""

    def __init__(self, entries: List[ExclusionEntry] | None = None) -> None:
        self._entries = {entry.table: entry for entry in entries or []}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ExclusionRules":
        """Load rules from ``path``. A missing or invalid file gives no rules."""
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.warning("Exclusion file %s not found; nothing excluded", path)
            return cls()
        except (OSError, ValueError) as exc:
            logger.warning("Could not load exclusion file %s: %s", path, exc)
            return cls()
        if not isinstance(raw, list):
            logger.warning("Exclusion file %s must hold a JSON list", path)
            return cls()

        entries = []
        for item in raw:
            if not isinstance(item, dict) or not item.get("table"):
                continue
            entries.append(
                ExclusionEntry(
                    table=str(item["table"]),
                    ignore_table=bool(item.get("ignore_table", False)),
                    exclude_fields=dict(item.get("exclude_fields") or {}),
                )
            )
        logger.info("Loaded %d exclusion rules from %s", len(entries), path)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def ignore_table(self, table: str) -> bool:
        entry = self._entries.get(table)
        return bool(entry and entry.ignore_table)

    def apply(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Return ``fields`` with this table's excluded fields removed."""
        entry = self._entries.get(table)
        if not entry or not entry.exclude_fields:
            return fields

        result = dict(fields)
        for name, rule in entry.exclude_fields.items():
            if rule is True:
                result.pop(name, None)
            elif isinstance(rule, list) and isinstance(result.get(name), dict):
                result[name] = {
                    key: value for key, value in result[name].items() if key not in rule
                }
        return result
