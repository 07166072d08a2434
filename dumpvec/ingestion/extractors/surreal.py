"""Extractor for SurrealDB exports (``.surql``)."""

from __future__ import annotations

import re
from typing import Any, Dict, Generator, Iterator, Optional

from ...utils.exceptions import StatementParseError
from ..models import Dialect
from ..normalizer import parse_object_literal
from ..scanner import find_closing, split_top_level
from .base import DumpExtractor, Row

INSERT_RE = re.compile(
    r"INSERT\s+(?:IGNORE\s+)?(?:INTO\s+`?(\w+)`?\s*)?(?=[\[{])", re.IGNORECASE
)
CREATE_RE = re.compile(
    r"(?:CREATE|UPSERT)\s+`?(\w+)`?(?::(`[^`]+`|⟨[^⟩]+⟩|[\w-]+))?\s+CONTENT\s*",
    re.IGNORECASE,
)


def table_from_record_id(record_id: Any) -> str:
    """``person:tobie`` -> ``person``; anything else gives an empty name."""
    if isinstance(record_id, str) and ":" in record_id:
        return record_id.split(":", 1)[0].strip("`")
    return ""


class SurrealExtractor(DumpExtractor):
    """Understands ``INSERT [INTO t] [ {...}, ... ];``, ``INSERT INTO t {...};``
    and ``CREATE t:id CONTENT {...};``. Object keys may be unquoted. Without
    ``INTO t`` the table comes from each object's ``id`` record link."""

    @property
    def dialect(self) -> Dialect:
        return Dialect.SURREAL

    def iter_rows(self, text: str) -> Iterator[Row]:
        pos = 0
        while True:
            found = [m for m in (INSERT_RE.search(text, pos), CREATE_RE.search(text, pos)) if m]
            if not found:
                return
            match = min(found, key=lambda m: m.start())
            record_key = match.group(2) if match.re is CREATE_RE else None
            pos = yield from self._iter_statement(text, match, record_key)

    def _iter_statement(
        self, text: str, match: "re.Match[str]", record_key: Optional[str]
    ) -> Generator[Row, None, int]:
        """Yield the statement's rows and return the offset to resume at."""
        table = match.group(1)
        pos = match.end()
        if pos >= len(text) or text[pos] not in "[{":
            self.skip("no object or array after table name", text[match.start() : pos + 40])
            return pos
        end = find_closing(text, pos, backslash_escapes=True)
        if end < 0:
            self.skip("unbalanced brackets", text[match.start() : match.start() + 200])
            return pos

        block = text[pos : end + 1]
        try:
            if block.startswith("["):
                members = split_top_level(block[1:-1], backslash_escapes=True)
            else:
                members = [block]
        except StatementParseError as exc:
            self.skip(str(exc), block)
            return end + 1

        for member in members:
            if not member:
                continue
            row = self._parse_member(member)
            if row is None:
                continue
            if record_key and "id" not in row:
                row = {"id": f"{table}:{record_key.strip('`⟨⟩')}", **row}
            yield table or table_from_record_id(row.get("id")), row
        return end + 1

    def _parse_member(self, member: str) -> Optional[Dict[str, Any]]:
        if not member.startswith("{"):
            self.skip("array member is not an object", member)
            return None
        try:
            value = parse_object_literal(member, self.dialect)
        except StatementParseError as exc:
            self.skip(str(exc), member)
            return None
        if not isinstance(value, dict):
            self.skip("array member is not an object", member)
            return None
        return value
