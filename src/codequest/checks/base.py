"""Base data structures for the rule checkers."""

import math
from dataclasses import asdict, dataclass, field
from fractions import Fraction
from typing import Any


@dataclass
class RuleResult:
    """Outcome of checking a single rule against a submission.

    Attributes:
        description: Human-readable label copied from the rule.
        kind: The rule kind as authored (may be an unknown kind).
        passed: Whether the submission satisfied the rule.
        message: Feedback line describing what was found or expected.
        points: The rule's weight. Earned only when ``passed`` is true.
        details: Observed values, e.g. the matched text or similarity.
    """

    description: str
    kind: str
    passed: bool
    message: str
    points: int | float = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def percentage(part: int | float, whole: int | float) -> int:
    """Return ``part / whole * 100`` rounded half up (12.5 -> 13).

    Uses exact fractions, so 57/200 gives 29.
    """
    ratio = Fraction(part) * 100 / Fraction(whole)
    return math.floor(ratio + Fraction(1, 2))
