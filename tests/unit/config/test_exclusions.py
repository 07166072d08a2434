import json

from dumpvec.config.exclusions import ExclusionEntry, ExclusionRules


def test_load_and_apply(tmp_path):
    path = tmp_path / "exclude.json"
    path.write_text(
        json.dumps(
            [
                {
                    "table": "users",
                    "exclude_fields": {"password": True, "profile": ["ssn"]},
                },
                {"table": "audit_log", "ignore_table": True},
                {"ignore_table": True},
            ]
        )
    )
    rules = ExclusionRules.load(path)

    assert len(rules) == 2
    assert rules.ignore_table("audit_log")
    assert not rules.ignore_table("users")
    fields = {"id": 1, "password": "x", "profile": {"ssn": "1", "city": "Oslo"}}
    assert rules.apply("users", fields) == {"id": 1, "profile": {"city": "Oslo"}}
    assert "password" in fields


def test_unlisted_table_is_untouched():
    rules = ExclusionRules([ExclusionEntry(table="users", exclude_fields={"a": True})])
    fields = {"a": 1}
    assert rules.apply("orders", fields) is fields


def test_missing_file_gives_no_rules(tmp_path):
    assert len(ExclusionRules.load(tmp_path / "nope.json")) == 0


def test_invalid_file_gives_no_rules(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    assert len(ExclusionRules.load(path)) == 0
    path.write_text('{"table": "users"}')
    assert len(ExclusionRules.load(path)) == 0
