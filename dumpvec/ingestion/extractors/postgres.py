"""Extractor for pg_dump plain-text output.

Data normally arrives in ``COPY ... FROM stdin;`` blocks of tab-separated
rows terminated by a ``\\.`` line. Dumps taken with ``--inserts`` use INSERT
statements instead, and both forms may appear in one file.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Tuple

from ..models import Dialect
from ..normalizer import coerce_copy_value, decode_copy_field
from ..scanner import IDENT, clean_identifier, parse_create_tables, split_identifiers
from .base import DumpExtractor, Row, compile_insert_pattern

COPY_RE = re.compile(
    rf"^COPY\s+({IDENT})\s*\(([^)]*)\)\s+FROM\s+stdin;[ \t]*\r?$", re.MULTILINE
)
COPY_TERMINATOR = "\\."
INSERT_RE = compile_insert_pattern(r"INSERT\s+INTO\s+{ident}")


class PostgresExtractor(DumpExtractor):
    @property
    def dialect(self) -> Dialect:
        return Dialect.POSTGRES

    def iter_rows(self, text: str) -> Iterator[Row]:
        column_types = parse_create_tables(text)
        copy_spans: List[Tuple[int, int]] = []
        yield from self._iter_copy_rows(text, column_types, copy_spans)
        yield from self.iter_insert_rows(
            text, INSERT_RE, column_types=column_types, skip_spans=copy_spans
        )

    def _iter_copy_rows(
        self,
        text: str,
        column_types: Dict[str, List[Tuple[str, str]]],
        spans: List[Tuple[int, int]],
    ) -> Iterator[Row]:
        """Yield COPY rows and record each block's offsets in ``spans``."""
        for match in COPY_RE.finditer(text):
            if spans and match.start() < spans[-1][1]:
                continue
            table = clean_identifier(match.group(1))
            columns = split_identifiers(match.group(2))
            types = dict(column_types.get(table, []))

            body_start = match.end() + 1
            end = text.find(f"\n{COPY_TERMINATOR}", match.end())
            if end < 0:
                self.skip("COPY block has no terminator", match.group(0))
                continue
            spans.append((match.start(), end + 1 + len(COPY_TERMINATOR)))

            body = text[body_start : end + 1] if end >= body_start else ""
            for line in body.splitlines():
                if not line:
                    continue
                raw_fields = line.split("\t")
                if len(raw_fields) != len(columns):
                    self.skip(
                        f"expected {len(columns)} fields, found {len(raw_fields)}", line
                    )
                    continue
                yield table, {
                    name: coerce_copy_value(decode_copy_field(raw), types.get(name))
                    for name, raw in zip(columns, raw_fields)
                }
