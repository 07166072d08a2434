"""Base class for dump extractors."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Pattern, Sequence, Tuple

from ...utils.exceptions import StatementParseError
from ..models import Dialect, Record
from ..normalizer import normalize_literal, uses_backslash_escapes
from ..scanner import (
    IDENT,
    clean_identifier,
    iter_value_groups,
    split_identifiers,
    split_top_level,
)

logger = logging.getLogger(__name__)

Row = Tuple[str, Dict[str, Any]]
ColumnTypes = Dict[str, List[Tuple[str, str]]]


@dataclass
class ExtractionStats:
    """Counters for one pass over a dump."""

    records: int = 0
    skipped: int = 0
    dropped: int = 0


def excerpt(text: str, limit: int = 80) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


class DumpExtractor(ABC):
    """Turns the text of one dump into a stream of Records.

    Subclasses implement :meth:`iter_rows`. :meth:`extract` wraps it to drop
    rows without a table name and to number rows within each table. Calling
    :meth:`extract` again restarts extraction from the top of the text.
    """

    def __init__(self) -> None:
        self.stats = ExtractionStats()

    @property
    @abstractmethod
    def dialect(self) -> Dialect:
        """Dialect handled by this extractor."""
        raise NotImplementedError

    @abstractmethod
    def iter_rows(self, text: str) -> Iterator[Row]:
        """Yield ``(table, fields)`` pairs in source order."""
        raise NotImplementedError

    def extract(self, text: str) -> Iterator[Record]:
        self.stats = ExtractionStats()
        ordinals: Dict[str, int] = {}
        for table, fields in self.iter_rows(text):
            table = (table or "").strip()
            if not table:
                self.stats.dropped += 1
                logger.warning("Dropping %s row without a table name", self.dialect.value)
                continue
            ordinal = ordinals.get(table, 0)
            ordinals[table] = ordinal + 1
            self.stats.records += 1
            yield Record(table=table, fields=fields, ordinal=ordinal)

    def skip(self, reason: str, statement: str = "") -> None:
        """Count a statement we could not parse and carry on."""
        self.stats.skipped += 1
        logger.warning(
            "Skipping %s statement (%s): %s", self.dialect.value, reason, excerpt(statement)
        )

    def iter_insert_rows(
        self,
        text: str,
        pattern: Pattern[str],
        column_types: Optional[ColumnTypes] = None,
        default_columns: Optional[Callable[[int], List[str]]] = None,
        skip_tables: Tuple[str, ...] = (),
        skip_spans: Sequence[Tuple[int, int]] = (),
    ) -> Iterator[Row]:
        """Shared scanner for ``INSERT ... VALUES (...), (...)`` dialects.

        ``pattern`` must match up to and including the VALUES keyword, with
        group 1 the table identifier and group 2 the optional column list.
        Scanning resumes after the last VALUES group consumed, so statement
        text quoted inside a value is never taken for a statement. Matches
        starting inside ``skip_spans`` (``(start, end)`` offsets) are ignored.
        """
        column_types = column_types or {}
        escapes = uses_backslash_escapes(self.dialect)
        pos = 0
        while True:
            match = pattern.search(text, pos)
            if match is None:
                return
            span_end = next(
                (end for start, end in skip_spans if start <= match.start() < end), None
            )
            if span_end is not None:
                pos = max(span_end, match.start() + 1)
                continue

            pos = match.end()
            table = clean_identifier(match.group(1))
            ignored = table in skip_tables
            declared = column_types.get(table, [])
            types = {name: sql_type for name, sql_type in declared}
            if match.group(2):
                columns = split_identifiers(match.group(2))
            else:
                columns = [name for name, _ in declared]

            try:
                for inner, end in iter_value_groups(text, match.end(), backslash_escapes=escapes):
                    pos = end
                    if ignored:
                        continue
                    try:
                        row = self._build_row(inner, columns, types, default_columns, escapes)
                    except StatementParseError as exc:
                        self.skip(str(exc), inner)
                        continue
                    yield table, row
            except StatementParseError as exc:
                self.skip(str(exc), text[match.start() : match.start() + 200])

    def _build_row(
        self,
        inner: str,
        columns: List[str],
        types: Dict[str, str],
        default_columns: Optional[Callable[[int], List[str]]],
        escapes: bool,
    ) -> Dict[str, Any]:
        tokens = split_top_level(inner, backslash_escapes=escapes)
        names = columns
        if not names:
            names = default_columns(len(tokens)) if default_columns else generic_columns(len(tokens))
        if len(names) != len(tokens):
            raise StatementParseError(
                f"expected {len(names)} values, found {len(tokens)}"
            )
        return {
            name: normalize_literal(token, self.dialect, types.get(name))
            for name, token in zip(names, tokens)
        }


def generic_columns(count: int) -> List[str]:
    return [f"column{i}" for i in range(1, count + 1)]


def compile_insert_pattern(head: str) -> Pattern[str]:
    """Compile an INSERT head regex. ``head`` must contain one ``{ident}``."""
    body = head.format(ident=f"({IDENT})")
    return re.compile(body + r"\s*(?:\(([^)]*)\))?\s*VALUES\s*", re.IGNORECASE)
