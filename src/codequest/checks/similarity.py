"""Similarity check against an author-provided reference solution."""

from __future__ import annotations

import logging
import re

import numpy as np

from codequest.checks.base import RuleResult, percentage
from codequest.config import Rule, Submission

_WHITESPACE_RE = re.compile(r"\s++")


def normalize_code(text: str) -> str:
    return _WHITESPACE_RE.sub("", text.lower())


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost for insert, delete and substitute.

    Rows are computed with numpy; the insertion term within a row is resolved
    with a running minimum of ``row[j] - j``.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    target = np.frombuffer(b.encode("utf-32-le"), dtype=np.uint32)
    offsets = np.arange(len(b) + 1, dtype=np.int64)
    previous = offsets.copy()

    for i, char in enumerate(a, start=1):
        substitution = (target != ord(char)).astype(np.int64)
        current = np.empty_like(previous)
        current[0] = i
        current[1:] = np.minimum(previous[1:] + 1, previous[:-1] + substitution)
        current = np.minimum.accumulate(current - offsets) + offsets
        previous = current

    return int(previous[-1])


def calculate_similarity(code1: str, code2: str) -> int:
    """Percentage similarity (0-100) of two sources after normalization."""
    normalized1 = normalize_code(code1)
    normalized2 = normalize_code(code2)

    if not normalized1 and not normalized2:
        return 100
    if not normalized1 or not normalized2:
        return 0

    distance = levenshtein(normalized1, normalized2)
    max_length = max(len(normalized1), len(normalized2))
    return percentage(max_length - distance, max_length)


def check_similarity(
    submission: Submission,
    reference: Submission | None,
    rule: Rule,
    *,
    logger: logging.Logger,
) -> RuleResult:
    """Compare one source field of the submission to the reference solution."""
    if reference is None:
        logger.warning("No reference solution, similarity check fails")
        return RuleResult(
            description=rule.description,
            kind=rule.kind,
            passed=False,
            message="No solution code available for comparison",
            points=rule.points,
        )

    threshold = rule.threshold
    similarity = calculate_similarity(
        submission.source(rule.code_type), reference.source(rule.code_type)
    )
    passed = similarity >= threshold

    logger.info(
        f"{rule.code_type} similarity: {similarity}%, threshold: {threshold:g}%, passed={passed}"
    )

    if passed:
        message = f"✅ Code similarity: {similarity}% (threshold: {threshold:g}%)"
    else:
        message = f"❌ Code similarity: {similarity}% (needs: {threshold:g}%)"

    return RuleResult(
        description=rule.description,
        kind=rule.kind,
        passed=passed,
        message=message,
        points=rule.points,
        details={"similarity": similarity},
    )
