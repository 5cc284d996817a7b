"""
XPath evaluation over lxml trees.

Wraps lxml's XPath engine with a compiled-expression cache and turns
evaluation failures into empty results that are reported once per expression.
"""

import math
from typing import Any

from lxml import etree

from pagewatch.exceptions import PathEvaluationError
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils import metrics


def compile_path(expression: str) -> etree.XPath:
    """
    Compile an XPath expression.

    Args:
        expression: XPath source.

    Returns:
        Compiled lxml XPath.

    Raises:
        PathEvaluationError: If the expression is empty or not valid XPath.
    """
    if not expression or not expression.strip():
        raise PathEvaluationError(expression, "no XPath was specified")
    try:
        return etree.XPath(expression)
    except etree.XPathSyntaxError as e:
        raise PathEvaluationError(expression, str(e)) from e


def string_value(item: Any) -> str:
    """
    Get the XPath string-value of an evaluation result item.

    Elements yield the concatenation of their descendant text, attribute and
    text results yield their content, and scalar results (numbers, booleans)
    are formatted the way XPath's string() function formats them.
    """
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, float):
        if math.isnan(item):
            return "NaN"
        if math.isinf(item):
            return "Infinity" if item > 0 else "-Infinity"
        if item.is_integer():
            return str(int(item))
        return repr(item)
    if isinstance(item, str):
        return str(item)
    if isinstance(item, etree._Element):
        return str(item.xpath("string()"))
    return str(item)


class PathEvaluator:
    """
    Evaluates XPath expressions against a context node.

    Results are always returned as an ordered list in document order. A node
    set yields its nodes, a scalar result (string, number, boolean) yields a
    single-item list, and an empty string yields nothing.
    """

    def __init__(self, logger: WatcherLogger | None = None):
        """
        Initialize the evaluator.

        Args:
            logger: Logger instance.
        """
        self.logger = logger or WatcherLogger("path_evaluator")
        self._compiled: dict[str, etree.XPath] = {}
        self._reported: set[str] = set()

    def compile(self, expression: str) -> etree.XPath:
        """Compile an expression, reusing a cached compilation if present."""
        compiled = self._compiled.get(expression)
        if compiled is None:
            compiled = compile_path(expression)
            self._compiled[expression] = compiled
        return compiled

    def select(self, context: Any, expression: str) -> list[Any]:
        """
        Evaluate an expression, raising on failure.

        Raises:
            PathEvaluationError: If compilation or evaluation fails.
        """
        compiled = self.compile(expression)
        try:
            result = compiled(context)
        except (etree.XPathError, TypeError) as e:
            raise PathEvaluationError(expression, str(e)) from e

        if isinstance(result, list):
            return result
        if isinstance(result, str) and not result:
            return []
        return [result]

    def evaluate(self, context: Any, expression: str) -> list[Any]:
        """
        Evaluate an expression, yielding an empty list on failure.

        Failing expressions are logged once each; later failures of the same
        expression are silent.
        """
        try:
            return self.select(context, expression)
        except PathEvaluationError as e:
            metrics.record_path_error()
            if expression not in self._reported:
                self._reported.add(expression)
                self.logger.path_error(expression=expression, error=str(e))
            return []
