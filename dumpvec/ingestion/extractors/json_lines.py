"""Fallback extractor: one JSON object per line, or one JSON array of objects."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional, Tuple

from ..models import Dialect
from .base import DumpExtractor, Row

TABLE_KEYS = ("table", "_table", "collection")
DEFAULT_TABLE = "records"


def split_table(obj: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Pop the table hint out of a document, defaulting to ``records``."""
    fields = dict(obj)
    for key in TABLE_KEYS:
        value = fields.get(key)
        if isinstance(value, str) and value.strip():
            del fields[key]
            return value.strip(), fields
    return DEFAULT_TABLE, fields


class JsonLinesExtractor(DumpExtractor):
    @property
    def dialect(self) -> Dialect:
        return Dialect.JSON

    def iter_rows(self, text: str) -> Iterator[Row]:
        documents = self._whole_array(text)
        if documents is not None:
            for doc in documents:
                if isinstance(doc, dict):
                    yield split_table(doc)
                else:
                    self.skip("array member is not an object", json.dumps(doc)[:80])
            return

        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                doc = json.loads(line)
            except ValueError as exc:
                self.skip(f"invalid JSON: {exc.__class__.__name__}", line)
                continue
            if not isinstance(doc, dict):
                self.skip("line is not a JSON object", line)
                continue
            yield split_table(doc)

    def _whole_array(self, text: str) -> Optional[list]:
        if not text.lstrip().startswith("["):
            return None
        try:
            parsed = json.loads(text)
        except ValueError:
            return None
        return parsed if isinstance(parsed, list) else None
