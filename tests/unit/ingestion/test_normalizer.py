"""Unit tests for literal normalization."""

import pytest

from dumpvec.ingestion.models import Dialect
from dumpvec.ingestion.normalizer import (
    coerce_copy_value,
    decode_copy_field,
    normalize_literal,
    parse_object_literal,
    parse_postgres_array,
)


def test_null_and_empty_string_stay_distinct():
    assert normalize_literal("NULL", Dialect.MYSQL) is None
    assert normalize_literal("''", Dialect.MYSQL) == ""
    assert normalize_literal("'NULL'", Dialect.MYSQL) == "NULL"


@pytest.mark.parametrize(
    "token,expected",
    [
        ("42", 42),
        ("-7", -7),
        ("3.5", 3.5),
        ("1e3", 1000.0),
        ("TRUE", True),
        ("false", False),
    ],
)
def test_scalars(token, expected):
    value = normalize_literal(token, Dialect.SQLITE)
    assert value == expected
    assert type(value) is type(expected)


def test_mysql_backslash_escapes():
    assert normalize_literal(r"'it\'s a \"test\"\n'", Dialect.MYSQL) == "it's a \"test\"\n"


def test_standard_sql_doubled_quotes():
    assert normalize_literal("'O''Brien'", Dialect.ORACLE) == "O'Brien"


def test_json_text_is_expanded():
    value = normalize_literal("'{\"a\": [1, 2]}'", Dialect.SQLITE)
    assert value == {"a": [1, 2]}


def test_plain_text_with_brackets_stays_text():
    assert normalize_literal("'[not json'", Dialect.SQLITE) == "[not json"


def test_boolean_context_from_column_type():
    assert normalize_literal("1", Dialect.MSSQL, "bit") is True
    assert normalize_literal("0", Dialect.MYSQL, "tinyint(1)") is False
    assert normalize_literal("1", Dialect.MSSQL, "int") == 1


def test_mssql_unicode_prefix_and_cast():
    assert normalize_literal("N'Zoë'", Dialect.MSSQL) == "Zoë"
    assert normalize_literal("CAST(N'2024-01-02' AS DateTime)", Dialect.MSSQL) == "2024-01-02"
    assert normalize_literal("CAST(1 AS bit)", Dialect.MSSQL) is True


def test_oracle_date_functions_reduce_to_first_argument():
    token = "to_date('2024-03-01','YYYY-MM-DD')"
    assert normalize_literal(token, Dialect.ORACLE) == "2024-03-01"


def test_bit_literal():
    assert normalize_literal("b'1'", Dialect.MYSQL) is True
    assert normalize_literal("b'101'", Dialect.MYSQL) == 5


def test_surreal_specifics():
    assert normalize_literal("NONE", Dialect.SURREAL) is None
    assert normalize_literal("1.5f", Dialect.SURREAL) == 1.5
    assert normalize_literal("d'2024-01-01T00:00:00Z'", Dialect.SURREAL) == "2024-01-01T00:00:00Z"


def test_unknown_tokens_fall_back_to_text():
    assert normalize_literal("CURRENT_TIMESTAMP", Dialect.MYSQL) == "CURRENT_TIMESTAMP"


def test_object_literal_with_bare_keys_and_record_links():
    value = parse_object_literal(
        "{id: person:tobie, name: 'Tobie', tags: ['a', 'b'], meta: {age: 3}}",
        Dialect.SURREAL,
    )
    assert value == {
        "id": "person:tobie",
        "name": "Tobie",
        "tags": ["a", "b"],
        "meta": {"age": 3},
    }


def test_postgres_array_literal():
    assert parse_postgres_array('{a,"b c",NULL,{1,2}}') == ["a", "b c", None, [1, 2]]
    assert parse_postgres_array("{}") == []


def test_copy_field_decoding():
    assert decode_copy_field("\\N") is None
    assert decode_copy_field("a\\tb\\\\c") == "a\tb\\c"
    assert decode_copy_field("") == ""


def test_copy_value_coercion():
    assert coerce_copy_value("t", "boolean") is True
    assert coerce_copy_value("12", "integer") == 12
    assert coerce_copy_value("1.25", "numeric(10,2)") == 1.25
    assert coerce_copy_value('{"k": 1}', "jsonb") == {"k": 1}
    assert coerce_copy_value("{x,y}", "text[]") == ["x", "y"]
    assert coerce_copy_value("00123", "text") == "00123"
    assert coerce_copy_value('["a","b"]', "text") == ["a", "b"]
    assert coerce_copy_value("{x,y}", "varchar") == ["x", "y"]
    assert coerce_copy_value(None, "text") is None
