"""Quote and bracket aware scanning primitives shared by every extractor.

Regular expressions locate statement heads; the routines here walk the text
character by character wherever nesting matters, because a regex cannot
reliably match arbitrarily nested JSON or array literals.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Optional, Tuple

from ..utils.exceptions import StatementParseError

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}

# A possibly schema-qualified identifier in any of the quoting styles we meet.
_IDENT_PART = r'(?:"[^"]+"|`[^`]+`|\[[^\]]+\]|[\w$#]+)'
IDENT = rf"{_IDENT_PART}(?:\s*\.\s*{_IDENT_PART})*"

CONSTRAINT_KEYWORDS = {
    "PRIMARY",
    "UNIQUE",
    "CHECK",
    "FOREIGN",
    "CONSTRAINT",
    "KEY",
    "INDEX",
    "FULLTEXT",
    "SPATIAL",
    "EXCLUDE",
    "PERIOD",
}

_CREATE_TABLE_RE = re.compile(
    rf"CREATE\s+(?:TEMP(?:ORARY)?\s+|UNLOGGED\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?({IDENT})\s*\(",
    re.IGNORECASE,
)
_LINE_COMMENT_RE = re.compile(r"--[^\n]*")


def split_top_level(
    text: str,
    sep: str = ",",
    quote_chars: str = "'\"",
    backslash_escapes: bool = False,
    strict: bool = True,
) -> List[str]:
    """Split ``text`` on ``sep`` only where it is outside quotes and brackets.

    Args:
        text: Text to split, typically the inside of a VALUES group.
        sep: Single separator character.
        quote_chars: Characters that open and close quoted runs.
        backslash_escapes: Treat a backslash inside quotes as escaping the next char.
        strict: Raise on unterminated quotes or unbalanced brackets.

    Returns:
        Stripped pieces, in order. Empty input gives an empty list.

    Raises:
        StatementParseError: If ``strict`` and the nesting is malformed.
    """
    if not text.strip():
        return []

    parts: List[str] = []
    buf: List[str] = []
    stack: List[str] = []
    quote: Optional[str] = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote:
            buf.append(ch)
            if backslash_escapes and ch == "\\" and i + 1 < n:
                buf.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                if i + 1 < n and text[i + 1] == quote:
                    # doubled quote
                    buf.append(text[i + 1])
                    i += 2
                    continue
                quote = None
            i += 1
            continue

        if ch in quote_chars:
            quote = ch
        elif ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS:
            if stack and stack[-1] == CLOSERS[ch]:
                stack.pop()
            elif strict:
                raise StatementParseError(f"Unbalanced '{ch}' at offset {i}")
        elif ch == sep and not stack:
            parts.append("".join(buf).strip())
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1

    if strict and quote:
        raise StatementParseError("Unterminated quoted string")
    if strict and stack:
        raise StatementParseError(f"Unclosed '{stack[-1]}'")
    parts.append("".join(buf).strip())
    return parts


def find_closing(
    text: str,
    start: int,
    quote_chars: str = "'\"",
    backslash_escapes: bool = False,
) -> int:
    """Return the index of the bracket closing the one at ``text[start]``.

    Returns -1 when the text ends before the bracket is closed.
    """
    opener = text[start]
    if opener not in OPENERS:
        raise ValueError(f"No opening bracket at offset {start}")

    stack: List[str] = []
    quote: Optional[str] = None
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if quote:
            if backslash_escapes and ch == "\\":
                i += 2
                continue
            if ch == quote:
                if i + 1 < n and text[i + 1] == quote:
                    i += 2
                    continue
                quote = None
        elif ch in quote_chars:
            quote = ch
        elif ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS:
            if not stack or stack[-1] != CLOSERS[ch]:
                return -1
            stack.pop()
            if not stack:
                return i
        i += 1
    return -1


def iter_value_groups(
    text: str,
    pos: int,
    quote_chars: str = "'\"",
    backslash_escapes: bool = False,
) -> Iterator[Tuple[str, int]]:
    """Yield ``(inner_text, end_offset)`` for each ``(...)`` group from ``pos``.

    Groups are separated by top-level commas, as in a multi-row
    ``VALUES (...), (...);`` list. Iteration stops at the first character
    that is neither whitespace, a comma nor an opening parenthesis.

    Raises:
        StatementParseError: If a group is never closed.
    """
    n = len(text)
    while pos < n:
        while pos < n and text[pos].isspace():
            pos += 1
        if pos >= n or text[pos] != "(":
            return
        end = find_closing(text, pos, quote_chars, backslash_escapes)
        if end < 0:
            raise StatementParseError(f"Unclosed VALUES group at offset {pos}")
        yield text[pos + 1 : end], end + 1
        pos = end + 1
        while pos < n and text[pos].isspace():
            pos += 1
        if pos < n and text[pos] == ",":
            pos += 1
            continue
        return


def clean_identifier(name: str) -> str:
    """Strip quoting and schema qualification from an identifier.

    ``[dbo].[users]``, ``public.users``, ``"APP"."USERS"`` and `` `users` ``
    become ``users``, ``users``, ``USERS`` and ``users``.
    """
    parts = split_top_level(name.strip(), sep=".", quote_chars='"`', strict=False)
    last = parts[-1] if parts else ""
    if len(last) >= 2 and (
        (last[0] == last[-1] and last[0] in '"`') or (last[0] == "[" and last[-1] == "]")
    ):
        last = last[1:-1]
    return last.strip()


def split_identifiers(column_list: str) -> List[str]:
    """Split a ``(a, "b", [c])`` column list body into clean names."""
    return [
        clean_identifier(col)
        for col in split_top_level(column_list, quote_chars='"`', strict=False)
        if col
    ]


def strip_line_comments(text: str) -> str:
    """Remove ``--`` comments that sit outside quoted runs."""
    out: List[str] = []
    for line in text.splitlines():
        quote: Optional[str] = None
        cut = len(line)
        for i, ch in enumerate(line):
            if quote:
                if ch == quote:
                    quote = None
            elif ch in "'\"":
                quote = ch
            elif ch == "-" and line.startswith("--", i):
                cut = i
                break
        out.append(line[:cut])
    return "\n".join(out)


def parse_create_tables(text: str) -> Dict[str, List[Tuple[str, str]]]:
    """Collect ``table -> [(column, type)]`` from every CREATE TABLE in ``text``.

    Constraint lines (PRIMARY KEY, FOREIGN KEY, CHECK and friends) are ignored.
    Types are lower-cased and keep any length suffix, e.g. ``tinyint(1)``.
    """
    tables: Dict[str, List[Tuple[str, str]]] = {}
    for match in _CREATE_TABLE_RE.finditer(text):
        open_at = match.end() - 1
        close_at = find_closing(text, open_at)
        if close_at < 0:
            continue
        body = strip_line_comments(text[open_at + 1 : close_at])
        columns: List[Tuple[str, str]] = []
        for definition in split_top_level(body, quote_chars="'\"`", strict=False):
            if not definition:
                continue
            head = definition.split(None, 1)[0].strip().upper()
            if head in CONSTRAINT_KEYWORDS:
                continue
            name, sql_type = _split_column_definition(definition)
            if name:
                columns.append((name, sql_type))
        tables[clean_identifier(match.group(1))] = columns
    return tables


def _split_column_definition(definition: str) -> Tuple[str, str]:
    definition = definition.strip()
    if definition[:1] in '"`[':
        closer = "]" if definition[0] == "[" else definition[0]
        end = definition.find(closer, 1)
        if end < 0:
            return "", ""
        name = definition[1:end]
        rest = definition[end + 1 :].strip()
    else:
        pieces = definition.split(None, 1)
        name = pieces[0]
        rest = pieces[1] if len(pieces) > 1 else ""

    type_match = re.match(r"\[?([\w ]+?)\]?\s*(\([^)]*\))?(\[\])?(?=\s|$|,)", rest)
    if not type_match:
        sql_type = rest.split(None, 1)[0].lower() if rest else ""
    else:
        sql_type = type_match.group(1).strip().lower()
        if type_match.group(2):
            sql_type += type_match.group(2).replace(" ", "").lower()
        if type_match.group(3):
            sql_type += "[]"
    return name, sql_type
