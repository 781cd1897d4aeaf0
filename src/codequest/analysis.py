"""Descriptive observations about a submission, independent of its score."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from codequest.config import Submission

_OPENING_TAG_RE = re.compile(r"<(\w+)")
_CSS_BLOCK_RE = re.compile(r"\{[^}]*+\}")


@dataclass
class CodeAnalysis:
    code_quality: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "codeQuality": list(self.code_quality),
            "suggestions": list(self.suggestions),
            "strengths": list(self.strengths),
        }


def analyze_code(submission: Submission) -> CodeAnalysis:
    analysis = CodeAnalysis()

    html = submission.html
    if html:
        if "<!DOCTYPE html>" in html:
            analysis.strengths.append("Good use of DOCTYPE declaration")
        else:
            analysis.suggestions.append("Consider adding a <!DOCTYPE html> declaration")

        element_count = len(_OPENING_TAG_RE.findall(html))
        if element_count > 0:
            analysis.code_quality.append(f"Uses {element_count} HTML elements")

    css = submission.css
    if css:
        rule_count = len(_CSS_BLOCK_RE.findall(css))
        if rule_count > 0:
            analysis.code_quality.append(f"Contains {rule_count} CSS rules")

    js = submission.js
    if js and "function" in js:
        analysis.strengths.append("Uses JavaScript functions")

    return analysis
