"""Challenge and submission loading and validation using Pydantic."""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

# Per-field cap applied where submissions enter the system, not inside evaluate().
MAX_SOURCE_LENGTH = 200_000

CODE_TYPES = ("html", "css", "js")


class RuleKind(str, Enum):
    ELEMENT_EXISTS = "element_exists"
    ELEMENT_TEXT = "element_text"
    ELEMENT_TEXT_CONTAINS = "element_text_contains"
    CSS_PROPERTY = "css_property"
    JAVASCRIPT_FUNCTION = "javascript_function"
    CODE_CONTAINS = "code_contains"
    SIMILARITY_CHECK = "similarity_check"


def _as_text(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


class Submission(BaseModel):
    """HTML/CSS/JS sources for one attempt. Also the shape of a reference solution."""

    model_config = ConfigDict(extra="ignore", frozen=True)
    html: str = ""
    css: str = ""
    js: str = ""

    @field_validator("html", "css", "js", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _as_text(v)

    def source(self, code_type: str) -> str:
        """Return the field named by *code_type*, or "" for anything else."""
        if code_type in CODE_TYPES:
            return getattr(self, code_type)
        return ""


class Rule(BaseModel):
    """One weighted, typed check against a submission.

    ``kind`` is kept as a plain string: unknown kinds must load and then
    evaluate as failures instead of being rejected here.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)
    kind: str = Field("unknown", validation_alias=AliasChoices("kind", "type"))
    description: str = "Test"
    points: int | float = 0
    selector: str = ""
    expected: str = ""
    css_property: str = Field(
        "", validation_alias=AliasChoices("property", "css_property")
    )
    function_name: str = Field(
        "", validation_alias=AliasChoices("function", "function_name")
    )
    pattern: str = ""
    code_type: str = Field("html", validation_alias=AliasChoices("codeType", "code_type"))
    threshold: int | float = 70

    @field_validator(
        "selector",
        "expected",
        "css_property",
        "function_name",
        "pattern",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> str:
        return "unknown" if v is None else _as_text(v)

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v: Any) -> str:
        return "Test" if v is None else _as_text(v)

    @field_validator("code_type", mode="before")
    @classmethod
    def coerce_code_type(cls, v: Any) -> str:
        return "html" if v is None else _as_text(v)

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("points")
    @classmethod
    def points_must_be_finite_and_non_negative(cls, v: int | float) -> int | float:
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("points must be a finite number")
        if v < 0:
            raise ValueError("points must not be negative")
        return v

    @field_validator("threshold", mode="before")
    @classmethod
    def default_threshold(cls, v: Any) -> Any:
        return 70 if v is None else v

    @classmethod
    def from_any(cls, obj: Rule | Mapping[str, Any]) -> Rule:
        if isinstance(obj, Rule):
            return obj
        return cls.model_validate(dict(obj))


class ChallengeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    slug: str
    title: str = ""
    xp_reward: int = Field(0, ge=0)
    rules: list[Rule]
    solution: Submission | None = None

    @field_validator("rules")
    @classmethod
    def rules_must_not_be_empty(cls, v: list[Rule]) -> list[Rule]:
        if not v:
            raise ValueError("rules must not be empty")
        return v


class CurriculumConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    challenges: list[ChallengeConfig]

    @field_validator("challenges")
    @classmethod
    def slugs_must_be_unique(cls, v: list[ChallengeConfig]) -> list[ChallengeConfig]:
        seen: set[str] = set()
        for challenge in v:
            if "," in challenge.slug:
                raise ValueError(
                    f"Challenge slug '{challenge.slug}' must not contain a comma"
                )
            if challenge.slug in seen:
                raise ValueError(f"Duplicate challenge slug '{challenge.slug}'")
            seen.add(challenge.slug)
        return v

    @model_validator(mode="after")
    def challenges_must_not_be_empty(self) -> CurriculumConfig:
        if not self.challenges:
            raise ValueError("challenges must not be empty")
        return self

    def get(self, slug: str) -> ChallengeConfig:
        for challenge in self.challenges:
            if challenge.slug == slug:
                return challenge
        raise KeyError(f"Unknown challenge '{slug}'")


class SubmissionFile(BaseModel):
    """On-disk form of a submission, shaped like the HTTP request body."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    name: str = ""
    challenge_slug: str | None = Field(
        None,
        validation_alias=AliasChoices("challengeSlug", "challenge", "challenge_slug"),
    )
    code: Submission = Submission()

    @model_validator(mode="after")
    def sources_within_limit(self) -> SubmissionFile:
        for code_type in CODE_TYPES:
            size = len(self.code.source(code_type))
            if size > MAX_SOURCE_LENGTH:
                raise ValueError(
                    f"{code_type} source is {size} characters, limit is {MAX_SOURCE_LENGTH}"
                )
        return self


def load_config(path: Path) -> CurriculumConfig:
    """Load and validate a challenge set from a YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f)

    return CurriculumConfig(**(raw or {}))


def load_submission(path: Path) -> SubmissionFile:
    """Load a submission from YAML or JSON.

    ``html_file``/``css_file``/``js_file`` under ``code`` point at source files
    relative to the submission file and are read in place of inline text.
    """
    base_dir = path.parent.resolve()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: submission must be a mapping")

    code = dict(raw.get("code") or {})
    for code_type in CODE_TYPES:
        ref = code.pop(f"{code_type}_file", None)
        if ref is None:
            continue
        source_path = Path(ref)
        if not source_path.is_absolute():
            source_path = base_dir / source_path
        code[code_type] = source_path.read_text(encoding="utf-8")

    data = {**raw, "code": code}
    data.setdefault("name", path.stem)
    return SubmissionFile(**data)
