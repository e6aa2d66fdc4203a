"""
Condition evaluation against event payloads.

The evaluator never raises on malformed data: unknown operators, missing
paths and type mismatches all evaluate to False.
"""

from collections.abc import Mapping, Sequence
from numbers import Real
from typing import Any, Iterable, Optional

import structlog

from .models import MISSING, AlertCondition, EventContext, Operator

logger = structlog.get_logger(__name__)


def resolve_path(data: Any, path: str) -> Any:
    """
    Resolve a dot-path such as "deadline.type" against nested mappings.

    Numeric segments index into sequences. Returns MISSING when any
    segment is absent.
    """
    current = data
    for key in path.split("."):
        if isinstance(current, Mapping):
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, Sequence) and not isinstance(current, str) and key.isdigit():
            index = int(key)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (True != 1, "1" != 1)."""
    if left is MISSING or right is MISSING:
        return left is right
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, str) and isinstance(right, str):
        return str(left) == str(right)
    if type(left) is not type(right):
        return False
    try:
        return bool(left == right)
    except Exception:
        return False


class ConditionEvaluator:
    """Evaluates AND-combined trigger conditions against an event payload."""

    def evaluate(
        self,
        conditions: Iterable[AlertCondition],
        event_data: Mapping,
        context: Optional[EventContext] = None,
    ) -> bool:
        """
        Evaluate all conditions against the payload.

        Args:
            conditions: Conditions to check; all must hold
            event_data: Event payload
            context: Event context (reserved for context-aware operators)

        Returns:
            True if every condition holds, False otherwise
        """
        return all(self.check(condition, event_data) for condition in conditions)

    def check(self, condition: AlertCondition, event_data: Mapping) -> bool:
        value = resolve_path(event_data, condition.field)

        try:
            operator = Operator(condition.operator)
        except ValueError:
            logger.debug(
                "unknown_condition_operator",
                field=condition.field,
                operator=condition.operator,
            )
            return False

        if operator is Operator.EQUALS:
            return strict_equals(value, condition.value)

        if operator is Operator.CONTAINS:
            return (
                isinstance(value, str)
                and isinstance(condition.value, str)
                and condition.value in value
            )

        if operator is Operator.GREATER_THAN:
            return _is_number(value) and _is_number(condition.value) and value > condition.value

        if operator is Operator.LESS_THAN:
            return _is_number(value) and _is_number(condition.value) and value < condition.value

        if operator is Operator.NOT_NULL:
            return value is not MISSING and value is not None

        if operator is Operator.CHANGED:
            if not condition.has_previous:
                return False
            return not strict_equals(value, condition.previous)

        return False


__all__ = ["ConditionEvaluator", "resolve_path", "strict_equals"]
