"""Rule-based evaluator for learner HTML/CSS/JS submissions."""

from codequest.evaluator import EvaluationResult, evaluate

__all__ = ["EvaluationResult", "evaluate"]
