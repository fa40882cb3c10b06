"""Tests for condition evaluation."""

from __future__ import annotations

from typing import Any

import pytest

from litestar_taskflow.core.definition import ConditionalExpression
from litestar_taskflow.core.types import ConditionOperator
from litestar_taskflow.expressions.conditions import evaluate_condition, evaluate_conditions

CONTEXT: dict[str, Any] = {
    "document": {"type": "invoice", "title": "Q3 invoice", "pages": 12, "tags": ["urgent", "finance"]},
    "score": 85,
    "approved": True,
    "reviewer": None,
}


def cond(left: Any, operator: str, right: Any = None) -> dict[str, Any]:
    return {"left": left, "operator": operator, "right": right}


@pytest.mark.unit
class TestEvaluateCondition:
    """Tests for single predicates."""

    @pytest.mark.parametrize(
        ("condition", "expected"),
        [
            (cond("$document.type", "eq", "invoice"), True),
            (cond("$document.type", "eq", "receipt"), False),
            (cond("$document.type", "neq", "receipt"), True),
            (cond("$score", "gt", 80), True),
            (cond("$score", "gte", 85), True),
            (cond("$score", "lt", 85), False),
            (cond("$score", "lte", 85), True),
            (cond("$document.pages", "gt", "$score"), False),
            (cond("$document.title", "contains", "invoice"), True),
            (cond("$document.title", "startsWith", "Q3"), True),
            (cond("$document.title", "endsWith", "Q3"), False),
            (cond("$document.tags", "contains", "urgent"), True),
            (cond("$approved", "eq", True), True),
            (cond("$reviewer", "eq", None), True),
        ],
    )
    def test_operators(self, condition: dict[str, Any], expected: bool) -> None:
        """Test every operator against literal and referenced operands."""
        assert evaluate_condition(condition, CONTEXT) is expected

    def test_exists_ignores_right(self) -> None:
        """Test ``exists`` only checks that the left side resolves."""
        assert evaluate_condition({"left": "$reviewer", "operator": "exists"}, CONTEXT) is True
        assert evaluate_condition({"left": "$missing", "operator": "exists", "right": 1}, CONTEXT) is False

    def test_ordering_on_undefined_is_false(self) -> None:
        """Test comparisons involving undefined operands are False."""
        assert evaluate_condition(cond("$missing", "gt", 1), CONTEXT) is False
        assert evaluate_condition(cond("$missing", "lte", 1), CONTEXT) is False

    def test_ordering_on_incomparable_is_false(self) -> None:
        """Test comparing a string with a number is False instead of raising."""
        assert evaluate_condition(cond("$document.type", "gt", 3), CONTEXT) is False

    def test_boolean_never_equals_number(self) -> None:
        assert evaluate_condition(cond("$approved", "eq", 1), CONTEXT) is False

    def test_unknown_operator_is_false(self) -> None:
        """Test an unknown operator evaluates to False rather than raising."""
        assert evaluate_condition(cond("$score", "between", 80), CONTEXT) is False

    def test_expression_instance(self) -> None:
        """Test ConditionalExpression instances are accepted."""
        expression = ConditionalExpression(left="$score", operator="gte", right=50)
        assert expression.operator is ConditionOperator.GTE
        assert evaluate_condition(expression, CONTEXT) is True


@pytest.mark.unit
class TestEvaluateConditions:
    """Tests for conjunctions."""

    def test_empty_is_true(self) -> None:
        assert evaluate_conditions([], CONTEXT) is True
        assert evaluate_conditions(None, CONTEXT) is True

    def test_all_must_hold(self) -> None:
        """Test the conjunction fails when any predicate fails."""
        holding = cond("$score", "gt", 50)
        failing = cond("$document.type", "eq", "receipt")
        assert evaluate_conditions([holding, holding], CONTEXT) is True
        assert evaluate_conditions([holding, failing], CONTEXT) is False

    def test_against_element(self) -> None:
        """Test conditions can be evaluated against any value, not only the data."""
        assert evaluate_conditions([cond("$status", "eq", "open")], {"status": "open"}) is True
