"""
Extraction rules applied to matched nodes.

Every ExtractionRule member must have an extractor registered here; the
target evaluator only ever calls apply_rule().
"""

from typing import Any, Callable

from pagewatch.extraction.path_evaluator import string_value
from pagewatch.models import ExtractionRule

Extractor = Callable[[Any], str]


def extract_text(node: Any) -> str:
    """Text: the node's XPath string-value."""
    return string_value(node)


EXTRACTORS: dict[ExtractionRule, Extractor] = {
    ExtractionRule.TEXT: extract_text,
}

_missing = [rule for rule in ExtractionRule if rule not in EXTRACTORS]
if _missing:
    raise RuntimeError(f"no extractor registered for {_missing}")


def apply_rule(rule: ExtractionRule, node: Any) -> str:
    """
    Apply an extraction rule to a matched node.

    Args:
        rule: Rule to apply.
        node: Element, attribute/text result or scalar from the path evaluator.

    Returns:
        The extracted scalar value.
    """
    return EXTRACTORS[rule](node)
