"""Converts dialect literal syntax into plain Python values.

The canonical value model is JSON shaped: ``None``, ``bool``, ``int``,
``float``, ``str``, ``list`` and ``dict``. Anything we do not recognise
falls back to its raw text, so normalization never fails a record.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from ..utils.exceptions import StatementParseError
from .models import Dialect
from .scanner import split_top_level

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")
_SURREAL_NUMBER_RE = re.compile(r"^([+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)(f|dec)$")
_FUNCTION_RE = re.compile(r"^([A-Za-z_][\w.]*)\s*\((.*)\)$", re.DOTALL)
_CAST_RE = re.compile(
    r"^CAST\s*\((.*)\s+AS\s+([^()]+?)\s*(?:\([^)]*\))?\s*\)$", re.IGNORECASE | re.DOTALL
)
# Charset introducers and string prefixes that wrap an ordinary quoted string.
_STRING_PREFIX_RE = re.compile(r"^(?:_[A-Za-z0-9]+\s*|[NnEe]|[durs])(?='|\")")
_BIT_RE = re.compile(r"^[bB]'([01]+)'$")

NULL_TOKENS = {"NULL"}
SURREAL_NULL_TOKENS = {"NULL", "NONE"}
BOOLEAN_TYPES = ("bool", "boolean", "bit", "bit(1)", "tinyint(1)")
DATE_FUNCTIONS = {"to_date", "to_timestamp", "to_timestamp_tz", "to_char"}

_BACKSLASH_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "b": "\b",
    "Z": "\x1a",
    "\\": "\\",
    "'": "'",
    '"': '"',
}


def uses_backslash_escapes(dialect: Dialect) -> bool:
    """Whether quoted strings in this dialect use backslash escapes."""
    return dialect in (Dialect.MYSQL, Dialect.SURREAL, Dialect.JSON)


def is_boolean_type(sql_type: Optional[str]) -> bool:
    if not sql_type:
        return False
    return sql_type.lower() in BOOLEAN_TYPES


def unescape_backslashes(text: str) -> str:
    """Decode MySQL style backslash escapes."""
    if "\\" not in text:
        return text
    out: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(_BACKSLASH_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def unquote_string(token: str, backslash_escapes: bool = False) -> str:
    """Strip the surrounding quotes from a string literal and unescape it."""
    quote = token[0]
    body = token[1:-1]
    if backslash_escapes:
        # Doubled quotes are legal even where backslashes also escape.
        body = body.replace(quote * 2, "\\" + quote)
        return unescape_backslashes(body)
    return body.replace(quote * 2, quote)


def _is_quoted(token: str) -> bool:
    return len(token) >= 2 and token[0] == token[-1] and token[0] in "'\""


def _looks_structured(text: str) -> bool:
    stripped = text.strip()
    return len(stripped) >= 2 and (
        (stripped[0] == "[" and stripped[-1] == "]")
        or (stripped[0] == "{" and stripped[-1] == "}")
    )


def parse_number(token: str) -> Optional[Any]:
    """Return an int or float for numeric tokens, else None."""
    if _INT_RE.match(token):
        return int(token)
    if _FLOAT_RE.match(token):
        return float(token)
    return None


def normalize_literal(
    token: str, dialect: Dialect, sql_type: Optional[str] = None
) -> Any:
    """Normalize one SQL or SurrealQL literal token.

    Args:
        token: The raw token as split out of a VALUES list or object literal.
        dialect: Dialect the token came from; controls escapes and NULL words.
        sql_type: Declared column type when known, used for boolean context.

    Returns:
        The canonical Python value. Unrecognised forms come back as raw text.
    """
    token = token.strip()
    if not token:
        return ""

    upper = token.upper()
    null_tokens = SURREAL_NULL_TOKENS if dialect == Dialect.SURREAL else NULL_TOKENS
    if upper in null_tokens:
        return None
    if upper in ("TRUE", "FALSE"):
        return upper == "TRUE"

    prefix = _STRING_PREFIX_RE.match(token)
    if prefix:
        token = token[prefix.end() :]
    if _is_quoted(token):
        escapes = uses_backslash_escapes(dialect) or bool(
            prefix and prefix.group(0).upper() == "E"
        )
        text = unquote_string(token, backslash_escapes=escapes)
        return normalize_string_content(text, dialect)

    bits = _BIT_RE.match(token)
    if bits:
        value = int(bits.group(1), 2)
        if len(bits.group(1)) == 1:
            return value == 1
        return value

    number = parse_number(token)
    if number is not None:
        if is_boolean_type(sql_type) and number in (0, 1) and isinstance(number, int):
            return bool(number)
        return number

    if dialect == Dialect.SURREAL:
        suffixed = _SURREAL_NUMBER_RE.match(token)
        if suffixed:
            return float(suffixed.group(1))

    if _looks_structured(token):
        return parse_structured(token, dialect)

    return _normalize_function_call(token, dialect, sql_type)


def normalize_string_content(text: str, dialect: Dialect) -> Any:
    """Decide what an already-unquoted string really holds.

    JSON arrays and objects stored in text columns are expanded. A Postgres
    array literal stored as text becomes a list. Everything else stays text,
    including the empty string.
    """
    if _looks_structured(text):
        try:
            return json.loads(text)
        except ValueError:
            pass
        if dialect == Dialect.POSTGRES and text.strip().startswith("{"):
            try:
                return parse_postgres_array(text.strip())
            except StatementParseError:
                return text
    return text


def parse_structured(token: str, dialect: Dialect) -> Any:
    """Parse an unquoted ``{...}`` or ``[...]`` literal.

    JSON is tried first. Postgres ``{a,b}`` arrays and SurrealDB objects with
    unquoted keys follow. Malformed literals fall back to their raw text.
    """
    try:
        return json.loads(token)
    except ValueError:
        pass
    try:
        if dialect == Dialect.POSTGRES and token.startswith("{"):
            return parse_postgres_array(token)
        return parse_object_literal(token, dialect)
    except StatementParseError:
        return token


def parse_object_literal(token: str, dialect: Dialect) -> Any:
    """Parse ``{key: value, ...}`` or ``[value, ...]`` with relaxed syntax.

    Keys may be bare words or quoted. Values are normalized recursively.

    Raises:
        StatementParseError: If brackets or quotes are unbalanced.
    """
    token = token.strip()
    inner = token[1:-1]
    escapes = uses_backslash_escapes(dialect)
    items = [
        item
        for item in split_top_level(inner, backslash_escapes=escapes)
        if item != ""
    ]
    if token[0] == "[":
        return [normalize_literal(item, dialect) for item in items]

    obj: Dict[str, Any] = {}
    for item in items:
        pair = split_top_level(item, sep=":", backslash_escapes=escapes)
        if len(pair) < 2:
            raise StatementParseError(f"Object member without key: {item[:40]}")
        key = pair[0]
        # Values like record links (table:id) contain colons too.
        raw_value = item[item.index(":", len(key)) + 1 :]
        if _is_quoted(key):
            key = unquote_string(key, backslash_escapes=escapes)
        obj[key.strip()] = normalize_literal(raw_value, dialect)
    return obj


def parse_postgres_array(text: str) -> List[Any]:
    """Parse a Postgres array literal such as ``{a,"b c",NULL,{1,2}}``.

    Raises:
        StatementParseError: If the literal is not brace-delimited or is malformed.
    """
    text = text.strip()
    if not (text.startswith("{") and text.endswith("}")):
        raise StatementParseError(f"Not an array literal: {text[:40]}")
    inner = text[1:-1]
    result: List[Any] = []
    for element in split_top_level(inner, quote_chars='"', backslash_escapes=True):
        if element.startswith("{"):
            result.append(parse_postgres_array(element))
        elif _is_quoted(element):
            result.append(unescape_backslashes(element[1:-1]))
        elif element.upper() == "NULL":
            result.append(None)
        else:
            number = parse_number(element)
            result.append(number if number is not None else element)
    return result


def decode_copy_field(raw: str) -> Optional[str]:
    """Decode one tab-separated COPY field. ``\\N`` is NULL."""
    if raw == "\\N":
        return None
    return unescape_backslashes(raw)


def coerce_copy_value(text: Optional[str], sql_type: Optional[str]) -> Any:
    """Type a decoded COPY field using the declared column type when known."""
    if text is None:
        return None
    sql_type = (sql_type or "").lower()
    if sql_type.endswith("[]"):
        try:
            return parse_postgres_array(text)
        except StatementParseError:
            return text
    if sql_type in ("bool", "boolean"):
        if text in ("t", "true"):
            return True
        if text in ("f", "false"):
            return False
        return text
    if sql_type in ("json", "jsonb"):
        try:
            return json.loads(text)
        except ValueError:
            return text
    if sql_type.startswith(("int", "smallint", "bigint", "serial", "bigserial", "smallserial")):
        number = parse_number(text)
        return number if number is not None else text
    if sql_type.startswith(("numeric", "decimal", "real", "double", "float")):
        number = parse_number(text)
        return float(number) if number is not None else text
    if sql_type:
        # Same content rules as a quoted INSERT value.
        return normalize_string_content(text, Dialect.POSTGRES)

    # Untyped column: infer from the text itself.
    number = parse_number(text)
    if number is not None:
        return number
    return normalize_string_content(text, Dialect.POSTGRES)


def _normalize_function_call(token: str, dialect: Dialect, sql_type: Optional[str]) -> Any:
    cast = _CAST_RE.match(token)
    if cast:
        cast_type = cast.group(2).strip().lower()
        return normalize_literal(
            cast.group(1), dialect, cast_type if is_boolean_type(cast_type) else sql_type
        )

    call = _FUNCTION_RE.match(token)
    if call and call.group(1).lower() in DATE_FUNCTIONS:
        try:
            args = split_top_level(call.group(2))
        except StatementParseError:
            return token
        if args and _is_quoted(args[0]):
            return unquote_string(args[0])
    return token
