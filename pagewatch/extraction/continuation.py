"""
Continuation (pagination) resolution.
"""

from typing import Any

from pagewatch.extraction.path_evaluator import PathEvaluator, string_value
from pagewatch.models import ContinuationRule
from pagewatch.utils.url_utils import resolve_url


class ContinuationResolver:
    """Finds the address of the page following the current one."""

    def __init__(self, path_evaluator: PathEvaluator | None = None):
        self.path_evaluator = path_evaluator or PathEvaluator()

    def resolve(
        self,
        rule: ContinuationRule,
        context: Any,
        base_url: str,
    ) -> str | None:
        """
        Resolve the next page address.

        Args:
            rule: Continuation rule of the resource.
            context: Root of the current page.
            base_url: URL of the current page.

        Returns:
            Absolute URL of the next page, or None at the end of pagination.
        """
        matches = self.path_evaluator.evaluate(context, rule.ref)
        if not matches:
            return None

        # First match in document order wins.
        ref = string_value(matches[0]).strip()
        if not ref:
            return None

        return resolve_url(base_url, ref)
