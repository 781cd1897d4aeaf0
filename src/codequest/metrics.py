from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from codequest.evaluator import EvaluationResult

if TYPE_CHECKING:
    from codequest.runner import GradedAttempt

COMPLETION_THRESHOLD = 70
XP_PER_LEVEL = 100
MAX_LEVEL = 100

LEVEL_TITLES: tuple[tuple[int, str], ...] = (
    (1, "Beginner"),
    (5, "Apprentice"),
    (10, "Student"),
    (20, "Scholar"),
    (30, "Expert"),
    (50, "Master"),
    (75, "Grandmaster"),
    (100, "Legend"),
)


@dataclass
class AttemptSummary:
    """What gets recorded against a user's attempt at a challenge."""

    score: int
    tests_passed: int
    total_tests: int
    is_completed: bool
    xp_earned: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "testsPassed": self.tests_passed,
            "totalTests": self.total_tests,
            "isCompleted": self.is_completed,
            "xpEarned": self.xp_earned,
        }


def summarize_attempt(result: EvaluationResult, xp_reward: int = 0) -> AttemptSummary:
    is_completed = result.score >= COMPLETION_THRESHOLD
    return AttemptSummary(
        score=result.score,
        tests_passed=result.tests_passed,
        total_tests=len(result.test_results),
        is_completed=is_completed,
        xp_earned=xp_reward if is_completed else 0,
    )


def level_for_xp(total_xp: int) -> int:
    """Every 100 XP is one level, starting at level 1 and capped at 100."""
    return min(max(total_xp, 0) // XP_PER_LEVEL + 1, MAX_LEVEL)


def level_title(level: int) -> str:
    title = LEVEL_TITLES[0][1]
    for threshold, name in LEVEL_TITLES:
        if level >= threshold:
            title = name
    return title


@dataclass
class MetricStatistics:
    """Statistics for a single metric across attempts."""

    avg: float | None
    min: float | None
    max: float | None
    stddev: float | None

    def to_dict(self) -> dict[str, float | None]:
        return asdict(self)


@dataclass
class RuleSummary:
    """Outcome of one rule across every attempt at a challenge."""

    description: str
    kind: str
    passed: bool
    message: str
    pass_rate: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChallengeAggregate:
    """Aggregated attempts at a single challenge."""

    slug: str
    attempts: int
    completed: int
    completion_rate: float
    score_stats: MetricStatistics
    rules: list[RuleSummary]

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "attempts": self.attempts,
            "completed": self.completed,
            "completion_rate": self.completion_rate,
            "score_stats": self.score_stats.to_dict(),
            "rules": [r.to_dict() for r in self.rules],
        }


def compute_stats(values: list[float | int | None]) -> MetricStatistics:
    """Compute avg, min, max, stddev for a list of numeric values."""
    nums = [v for v in values if v is not None]
    if not nums:
        return MetricStatistics(avg=None, min=None, max=None, stddev=None)

    arr = np.array(nums, dtype=float)
    return MetricStatistics(
        avg=round(float(np.mean(arr)), 4),
        min=round(float(np.min(arr)), 4),
        max=round(float(np.max(arr)), 4),
        stddev=round(float(np.std(arr)), 4),
    )


def _aggregate_challenge(slug: str, attempts: list[GradedAttempt]) -> ChallengeAggregate:
    count = len(attempts)
    completed = sum(1 for a in attempts if a.summary.is_completed)

    # Attempts at one challenge share its rule list, so rules line up by index.
    rule_summaries: list[RuleSummary] = []
    for index, first in enumerate(attempts[0].result.test_results):
        pass_count = sum(
            1
            for a in attempts
            if index < len(a.result.test_results)
            and a.result.test_results[index].passed
        )
        rule_summaries.append(
            RuleSummary(
                description=first.description,
                kind=first.kind,
                passed=pass_count == count,
                message=f"Passed {pass_count}/{count} attempts",
                pass_rate=round(pass_count / count * 100, 1),
            )
        )

    return ChallengeAggregate(
        slug=slug,
        attempts=count,
        completed=completed,
        completion_rate=round(completed / count * 100, 1),
        score_stats=compute_stats([a.result.score for a in attempts]),
        rules=rule_summaries,
    )


def aggregate_attempts(
    attempts: list[GradedAttempt],
) -> dict[str, ChallengeAggregate]:
    """Group attempts by challenge, keeping first-seen order."""
    by_challenge: dict[str, list[GradedAttempt]] = {}
    for attempt in attempts:
        by_challenge.setdefault(attempt.challenge, []).append(attempt)

    return {
        slug: _aggregate_challenge(slug, group) for slug, group in by_challenge.items()
    }
