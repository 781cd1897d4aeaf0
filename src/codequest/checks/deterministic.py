"""Deterministic rule checks (elements, text, CSS, JS, substrings)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from codequest.checks import patterns
from codequest.checks.base import RuleResult
from codequest.checks.similarity import check_similarity
from codequest.config import Rule, RuleKind, Submission

Checker = Callable[..., RuleResult]


def _result(rule: Rule, passed: bool, message: str, **details: Any) -> RuleResult:
    return RuleResult(
        description=rule.description,
        kind=rule.kind,
        passed=passed,
        message=message,
        points=rule.points,
        details=details,
    )


def check_element_exists(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    """Check that an opening tag named after the selector appears in the HTML."""
    selector = rule.selector
    logger.info(f"Checking element_exists: '{selector}'")

    passed = patterns.has_opening_tag(submission.html, selector)
    logger.info(f"Element '{selector}' found={passed}")

    if passed:
        return _result(rule, True, f"✅ Element '{selector}' found")
    return _result(rule, False, f"❌ Element '{selector}' not found")


def check_element_text(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    """Check that an element's trimmed text equals the expected text, ignoring case."""
    selector = rule.selector
    expected = rule.expected
    logger.info(f"Checking element_text: '{selector}' == '{expected}'")

    text = patterns.find_element_text(submission.html, selector)
    if text is None:
        logger.info(f"Element '{selector}' not found")
        return _result(rule, False, f"❌ Element '{selector}' not found")

    actual = text.strip()
    if actual.lower() == expected.lower():
        return _result(rule, True, f"✅ Text matches: '{actual}'", actual=actual)
    return _result(
        rule, False, f"❌ Expected '{expected}', got '{actual}'", actual=actual
    )


def check_element_text_contains(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    """Check that an element's text contains the expected text, ignoring case."""
    selector = rule.selector
    expected = rule.expected
    logger.info(f"Checking element_text_contains: '{selector}' ~ '{expected}'")

    text = patterns.find_element_text(submission.html, selector)
    if text is None:
        logger.info(f"Element '{selector}' not found")
        return _result(rule, False, f"❌ Element '{selector}' not found")

    if expected.lower() in text.lower():
        return _result(rule, True, f"✅ Text contains '{expected}'", actual=text)
    return _result(rule, False, f"❌ Text should contain '{expected}'", actual=text)


def check_css_property(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    """Check a property value inside the first matching CSS block."""
    selector = rule.selector
    prop = rule.css_property
    expected = rule.expected
    logger.info(f"Checking css_property: {selector} {{ {prop}: {expected} }}")

    block_found, value = patterns.find_css_declaration(submission.css, selector, prop)
    if not block_found:
        return _result(rule, False, f"❌ CSS selector '{selector}' not found")
    if value is None:
        return _result(rule, False, f"❌ CSS property '{prop}' not found")

    logger.info(f"Found {prop}: {value}")
    if value.lower() == expected.lower():
        return _result(
            rule, True, f"✅ CSS property correct: {prop}: {value}", actual=value
        )
    return _result(
        rule, False, f"❌ Expected {prop}: {expected}, got: {value}", actual=value
    )


def check_javascript_function(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    name = rule.function_name
    logger.info(f"Checking javascript_function: '{name}'")

    if patterns.has_js_function(submission.js, name):
        return _result(rule, True, f"✅ Function '{name}' found")
    return _result(rule, False, f"❌ Function '{name}' not found")


def check_code_contains(
    submission: Submission, rule: Rule, *, logger: logging.Logger
) -> RuleResult:
    pattern = rule.pattern
    logger.info(f"Checking code_contains in {rule.code_type}: '{pattern}'")

    if patterns.contains_pattern(submission.source(rule.code_type), pattern):
        return _result(rule, True, "✅ Code contains required pattern")
    return _result(rule, False, f"❌ Code should contain: {pattern}")


_CHECKERS: dict[RuleKind, Checker] = {
    RuleKind.ELEMENT_EXISTS: check_element_exists,
    RuleKind.ELEMENT_TEXT: check_element_text,
    RuleKind.ELEMENT_TEXT_CONTAINS: check_element_text_contains,
    RuleKind.CSS_PROPERTY: check_css_property,
    RuleKind.JAVASCRIPT_FUNCTION: check_javascript_function,
    RuleKind.CODE_CONTAINS: check_code_contains,
}


def _malformed_rule(rule: Any, error: Exception) -> RuleResult:
    kind = "unknown"
    description = "Test"
    points: int | float = 0
    if isinstance(rule, Mapping):
        kind = str(rule.get("kind", rule.get("type", kind)))
        description = str(rule.get("description") or description)
        # Keep the weight when only some other field was invalid.
        try:
            points = Rule.model_validate({"points": rule.get("points")}).points
        except ValidationError:
            points = 0
    return RuleResult(
        description=description,
        kind=kind,
        passed=False,
        message=f"Test error: {error}",
        points=points,
    )


def evaluate_rule(
    submission: Submission,
    rule: Rule | Mapping[str, Any],
    reference: Submission | None = None,
    *,
    logger: logging.Logger | None = None,
) -> RuleResult:
    """Dispatch a rule to the checker for its kind.

    Supported kinds are the members of ``RuleKind``. An unknown kind, a rule
    mapping that fails validation, or an exception inside a checker each
    produce a failing result for this rule only; this function does not raise.
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    try:
        rule = Rule.from_any(rule)
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"Malformed rule {rule!r}: {e}")
        return _malformed_rule(rule, e)

    try:
        kind = RuleKind(rule.kind)
    except ValueError:
        logger.warning(f"Unknown test type: '{rule.kind}'")
        return _result(rule, False, f"Unknown test type: {rule.kind}")

    try:
        if kind is RuleKind.SIMILARITY_CHECK:
            return check_similarity(submission, reference, rule, logger=logger)
        return _CHECKERS[kind](submission, rule, logger=logger)
    except Exception as e:
        logger.error(f"Error running {kind.value} check: {e}")
        return _result(rule, False, f"Test error: {e}")
