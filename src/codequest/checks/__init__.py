"""Rule checkers for evaluating learner submissions."""

from codequest.checks.base import RuleResult
from codequest.checks.deterministic import evaluate_rule

__all__ = ["RuleResult", "evaluate_rule"]
