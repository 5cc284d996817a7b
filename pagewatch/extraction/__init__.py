"""Path evaluation and extraction modules."""

from pagewatch.extraction.continuation import ContinuationResolver
from pagewatch.extraction.path_evaluator import PathEvaluator, compile_path, string_value
from pagewatch.extraction.rules import EXTRACTORS, apply_rule
from pagewatch.extraction.target_evaluator import TargetEvaluator

__all__ = [
    "ContinuationResolver",
    "EXTRACTORS",
    "PathEvaluator",
    "TargetEvaluator",
    "apply_rule",
    "compile_path",
    "string_value",
]
