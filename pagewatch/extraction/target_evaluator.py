"""
Recursive evaluation of target trees.

Turns a document (or any node within it) and a TargetNode tree into an
ExtractedRecord mirroring the tree's shape.
"""

from typing import Any

from lxml import etree

from pagewatch.extraction.path_evaluator import PathEvaluator
from pagewatch.extraction.rules import apply_rule
from pagewatch.models import VALUE_KEY, ExtractedEntry, ExtractedRecord, TargetNode


class TargetEvaluator:
    """
    Evaluates TargetNode trees against lxml nodes.

    For every node matched by a target's path:
    - a leaf target (extract only) yields the extracted string;
    - a group target (then only) yields a nested record of its children;
    - a target with both yields the nested record with the extracted value
      under the reserved "$value" key;
    - an inert target yields an empty record.

    Children are only evaluated below element matches; an attribute, text
    or scalar match gives every child an empty list.

    Evaluation holds no per-call state, so independent subtrees may be
    evaluated concurrently.
    """

    def __init__(self, path_evaluator: PathEvaluator | None = None):
        """
        Initialize the evaluator.

        Args:
            path_evaluator: XPath evaluator shared across evaluations.
        """
        self.path_evaluator = path_evaluator or PathEvaluator()

    def evaluate(self, node: TargetNode, context: Any) -> list[ExtractedEntry]:
        """
        Evaluate a target against a context node.

        Args:
            node: Target to evaluate.
            context: Node the target's path is relative to.

        Returns:
            One entry per matched node, in document order.
        """
        matches = self.path_evaluator.evaluate(context, node.path)
        return [self._evaluate_match(node, match) for match in matches]

    def evaluate_children(
        self,
        children: dict[str, TargetNode],
        context: Any,
    ) -> ExtractedRecord:
        """Evaluate sibling targets against the same context node."""
        return {
            name: self.evaluate(child, context)
            for name, child in children.items()
        }

    def evaluate_record(self, root: TargetNode, context: Any) -> ExtractedRecord:
        """
        Evaluate the root target of a resource against a page.

        Returns:
            The page record, keyed by the root target's name.
        """
        return {root.name: self.evaluate(root, context)}

    def _evaluate_match(self, node: TargetNode, match: Any) -> ExtractedEntry:
        value = apply_rule(node.extract, match) if node.extract is not None else None

        if node.then is None:
            if value is not None:
                return value
            return {}

        if isinstance(match, etree._Element):
            record = self.evaluate_children(node.then, match)
        else:
            record = {name: [] for name in node.then}
        if value is not None:
            return {VALUE_KEY: [value], **record}
        return record
