import json

from codequest.config import RuleKind
from codequest.schema import (
    RULE_PARAMETERS,
    generate_json_schema,
    generate_schema_doc,
    write_json_schema,
    write_schema_doc,
)


def test_json_schema_describes_challenges():
    schema = generate_json_schema()
    assert schema["required"] == ["challenges"]
    assert {"ChallengeConfig", "Rule", "Submission"} <= set(schema["$defs"])


def test_json_schema_defs_are_ordered_by_dependency():
    names = list(generate_json_schema()["$defs"])
    assert names.index("Rule") < names.index("ChallengeConfig")
    assert names.index("Submission") < names.index("ChallengeConfig")


def test_every_rule_kind_is_documented():
    assert set(RULE_PARAMETERS) == set(RuleKind)
    doc = generate_schema_doc()
    for kind in RuleKind:
        assert f"`{kind.value}`" in doc


def test_schema_doc_sections():
    doc = generate_schema_doc()
    for heading in ("## Top-level keys", "## Challenge", "## Rule", "## Rule kinds"):
        assert heading in doc


def test_write_creates_parent_directories(tmp_path):
    schema_path = tmp_path / "a" / "schema.json"
    doc_path = tmp_path / "b" / "schema.md"
    write_json_schema(schema_path)
    write_schema_doc(doc_path)

    assert json.loads(schema_path.read_text()) == generate_json_schema()
    assert doc_path.read_text() == generate_schema_doc()
