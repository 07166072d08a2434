from dumpvec.utils.ids import (
    entry_locator,
    find_primary_key,
    generate_entry_id,
    is_valid_entry_id,
)


def test_primary_key_is_case_insensitive() -> None:
    assert find_primary_key("users", {"ID": 42, "name": "Ann"}) == "42"


def test_surreal_record_link_key_is_trimmed() -> None:
    assert find_primary_key("person", {"id": "person:tobie"}) == "tobie"
    assert find_primary_key("person", {"id": "person:⟨uuid-1⟩"}) == "uuid-1"


def test_missing_or_composite_key_gives_none() -> None:
    assert find_primary_key("t", {"name": "x"}) is None
    assert find_primary_key("t", {"id": None}) is None
    assert find_primary_key("t", {"id": [1, 2]}) is None


def test_locator_uses_ordinal_without_key() -> None:
    assert entry_locator("t", None, 3) == "dumpvec://t/#3"
    assert entry_locator("t", "9", 3) == "dumpvec://t/9"


def test_entry_id_is_stable_and_valid() -> None:
    first = generate_entry_id("users", {"id": 1, "name": "Ann"}, 0)
    again = generate_entry_id("users", {"id": 1, "name": "Ann (edited)"}, 5)
    assert first == again
    assert is_valid_entry_id(first)


def test_entry_id_differs_per_table_and_ordinal() -> None:
    assert generate_entry_id("a", {"x": 1}, 0) != generate_entry_id("b", {"x": 1}, 0)
    assert generate_entry_id("a", {"x": 1}, 0) != generate_entry_id("a", {"x": 1}, 1)


def test_invalid_entry_id() -> None:
    assert not is_valid_entry_id("not-a-uuid")
