"""Generate JSON Schema and docs for the challenge YAML format."""

from __future__ import annotations

import json
from graphlib import TopologicalSorter
from pathlib import Path
from typing import Iterable

from codequest.config import CurriculumConfig, RuleKind

# Parameters each rule kind reads; everything else on a rule is ignored for that kind.
RULE_PARAMETERS: dict[RuleKind, tuple[str, ...]] = {
    RuleKind.ELEMENT_EXISTS: ("selector",),
    RuleKind.ELEMENT_TEXT: ("selector", "expected"),
    RuleKind.ELEMENT_TEXT_CONTAINS: ("selector", "expected"),
    RuleKind.CSS_PROPERTY: ("selector", "property", "expected"),
    RuleKind.JAVASCRIPT_FUNCTION: ("function",),
    RuleKind.CODE_CONTAINS: ("pattern", "codeType"),
    RuleKind.SIMILARITY_CHECK: ("codeType", "threshold"),
}


_DEFS_PREFIX = "#/$defs/"


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _referenced_defs(node: object) -> set[str]:
    """Names under ``#/$defs/`` that *node* points at, at any depth."""
    names: set[str] = set()
    stack = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, dict):
            ref = item.get("$ref")
            if isinstance(ref, str) and ref.startswith(_DEFS_PREFIX):
                names.add(ref.removeprefix(_DEFS_PREFIX))
            stack.extend(item.values())
        elif isinstance(item, list):
            stack.extend(item)
    return names


def _dependency_order(defs: dict[str, dict]) -> dict[str, dict]:
    """Reorder ``$defs`` so Submission and Rule come before ChallengeConfig."""
    graph = {
        name: _referenced_defs(body) & defs.keys() for name, body in defs.items()
    }
    return {name: defs[name] for name in TopologicalSorter(graph).static_order()}


def generate_json_schema() -> dict:
    schema = CurriculumConfig.model_json_schema()
    if "$defs" in schema:
        schema["$defs"] = _dependency_order(schema["$defs"])
    return schema


def write_json_schema(path: Path) -> None:
    _ensure_parent(path)
    schema = generate_json_schema()
    path.write_text(json.dumps(schema, indent=2) + "\n")


def _format_fields(fields: Iterable[str]) -> str:
    return ", ".join(fields)


def generate_schema_doc() -> str:
    schema = generate_json_schema()
    defs = schema.get("$defs", {})

    lines: list[str] = []
    lines.append("# CodeQuest challenge YAML Schema")
    lines.append("")
    lines.append("This doc is generated from the Pydantic models.")
    lines.append("")
    lines.append("## Top-level keys")
    lines.append("- `challenges`: list of challenge definitions.")
    lines.append("")
    lines.append("## Challenge")
    challenge_fields = defs.get("ChallengeConfig", {}).get("properties", {}).keys()
    lines.append(f"- {{ {_format_fields(challenge_fields)} }}")
    lines.append("")
    lines.append("## Rule")
    rule_fields = defs.get("Rule", {}).get("properties", {}).keys()
    lines.append(f"- {{ {_format_fields(rule_fields)} }}")
    lines.append("- `points`: non-negative weight (default 0)")
    lines.append("- `threshold`: similarity percentage required (default 70)")
    lines.append("")
    lines.append("## Rule kinds")
    for kind, params in RULE_PARAMETERS.items():
        lines.append(f"- `{kind.value}`: {_format_fields(params)}")

    lines.append("")
    return "\n".join(lines)


def write_schema_doc(path: Path) -> None:
    _ensure_parent(path)
    path.write_text(generate_schema_doc())
