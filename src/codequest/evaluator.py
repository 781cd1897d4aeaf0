"""Score a submission against an ordered list of weighted rules."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from codequest.analysis import CodeAnalysis, analyze_code
from codequest.checks.base import RuleResult, percentage
from codequest.checks.deterministic import evaluate_rule
from codequest.config import Rule, Submission

FEEDBACK_TIERS: tuple[tuple[int, str], ...] = (
    (90, "🎉 Excellent work! Your code is nearly perfect."),
    (70, "👍 Good job! Your code works well with minor issues."),
    (50, "📝 You're on the right track, but there are some issues to fix."),
    (0, "🔧 Keep trying! Review the requirements and try again."),
)


@dataclass
class EvaluationResult:
    """Verdict for one submission.

    Attributes:
        score: Integer percentage of weighted points earned, 0 when no rule
            carries any weight.
        total_points: Sum of every rule's weight, including unknown kinds.
        earned_points: Sum of the weights of passing rules.
        test_results: One result per rule, in rule order.
        feedback: Tier message, then a bullet per failing rule.
        code_analysis: Advisory notes; never affects the score.
    """

    score: int
    total_points: int | float
    earned_points: int | float
    test_results: list[RuleResult] = field(default_factory=list)
    feedback: list[str] = field(default_factory=list)
    code_analysis: CodeAnalysis = field(default_factory=CodeAnalysis)

    @property
    def tests_passed(self) -> int:
        return sum(1 for r in self.test_results if r.passed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "totalPoints": self.total_points,
            "earnedPoints": self.earned_points,
            "testResults": [r.to_dict() for r in self.test_results],
            "feedback": list(self.feedback),
            "codeAnalysis": self.code_analysis.to_dict(),
        }


def compute_score(earned_points: int | float, total_points: int | float) -> int:
    if isinstance(total_points, float) and not math.isfinite(total_points):
        return 0
    if total_points <= 0:
        return 0
    return percentage(earned_points, total_points)


def generate_feedback(results: list[RuleResult], score: int) -> list[str]:
    feedback = [next(msg for floor, msg in FEEDBACK_TIERS if score >= floor)]

    failed = [r for r in results if not r.passed]
    if failed:
        feedback.append("Areas to improve:")
        feedback.extend(f"• {r.message}" for r in failed)

    return feedback


def _coerce_submission(
    obj: Submission | Mapping[str, Any] | None, logger: logging.Logger
) -> Submission | None:
    if obj is None or isinstance(obj, Submission):
        return obj
    if isinstance(obj, Mapping):
        return Submission.model_validate(dict(obj))
    logger.warning(f"Ignoring submission of type {type(obj).__name__}")
    return None


def evaluate(
    submission: Submission | Mapping[str, Any],
    rules: Iterable[Rule | Mapping[str, Any]] | None,
    reference_solution: Submission | Mapping[str, Any] | None = None,
    *,
    logger: logging.Logger | None = None,
) -> EvaluationResult:
    """Evaluate a submission against rules and return the full verdict.

    Each rule's weight counts toward the total whatever its outcome; it counts
    toward the earned points only when it passes. Problems with an individual
    rule become a failing result for that rule, so this always returns.
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    code = _coerce_submission(submission, logger) or Submission()
    # An empty solution mapping means the challenge has no reference.
    if isinstance(reference_solution, Mapping) and not reference_solution:
        reference_solution = None
    reference = _coerce_submission(reference_solution, logger)

    results: list[RuleResult] = []
    total_points: int | float = 0
    earned_points: int | float = 0

    for rule in rules or ():
        result = evaluate_rule(code, rule, reference, logger=logger)
        results.append(result)
        total_points += result.points
        if result.passed:
            earned_points += result.points

    score = compute_score(earned_points, total_points)
    logger.info(
        f"Evaluated {len(results)} rule(s): {earned_points}/{total_points} points, score={score}"
    )

    return EvaluationResult(
        score=score,
        total_points=total_points,
        earned_points=earned_points,
        test_results=results,
        feedback=generate_feedback(results, score),
        code_analysis=analyze_code(code),
    )
