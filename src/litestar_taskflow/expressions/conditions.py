"""Condition evaluation: a conjunction of comparison predicates."""

from __future__ import annotations

import operator
from collections.abc import Iterable, Mapping
from typing import Any

from litestar_taskflow.core.definition import ConditionalExpression
from litestar_taskflow.core.types import UNDEFINED, ConditionOperator
from litestar_taskflow.expressions.paths import resolve, to_text

__all__ = ["evaluate_condition", "evaluate_conditions"]

_ORDERING = {
    ConditionOperator.GT: operator.gt,
    ConditionOperator.GTE: operator.ge,
    ConditionOperator.LT: operator.lt,
    ConditionOperator.LTE: operator.le,
}

_TEXT = {
    ConditionOperator.CONTAINS: lambda left, right: right in left,
    ConditionOperator.STARTS_WITH: str.startswith,
    ConditionOperator.ENDS_WITH: str.endswith,
}


def _equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; booleans only equal booleans
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return bool(left == right)


def evaluate_condition(condition: ConditionalExpression | Mapping[str, Any], context: Any) -> bool:
    """Evaluate one predicate.

    Unknown operators and incomparable operands evaluate to False.

    Args:
        condition: The predicate, as a ConditionalExpression or a plain mapping.
        context: The value references are resolved against.

    Returns:
        Whether the predicate holds.
    """
    if not isinstance(condition, ConditionalExpression):
        condition = ConditionalExpression.from_dict(condition)

    op = condition.operator
    left = resolve(condition.left, context)

    if op == ConditionOperator.EXISTS:
        return left is not UNDEFINED

    right = resolve(condition.right, context)

    if op == ConditionOperator.EQ:
        return _equals(left, right)
    if op == ConditionOperator.NEQ:
        return not _equals(left, right)
    if op in _ORDERING:
        if left is UNDEFINED or right is UNDEFINED or left is None or right is None:
            return False
        try:
            return bool(_ORDERING[op](left, right))
        except TypeError:
            return False
    if op in _TEXT:
        return bool(_TEXT[op](to_text(left), to_text(right)))
    return False


def evaluate_conditions(
    conditions: Iterable[ConditionalExpression | Mapping[str, Any]] | None,
    context: Any,
) -> bool:
    """Evaluate a conjunction of predicates. An empty list is True.

    Example:
        >>> evaluate_conditions([{"left": "$score", "operator": "gte", "right": 80}], {"score": 91})
        True
    """
    return all(evaluate_condition(condition, context) for condition in conditions or ())
