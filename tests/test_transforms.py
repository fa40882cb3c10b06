"""Tests for data transformations and output data mapping."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from litestar_taskflow.core.types import UNDEFINED
from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.expressions.paths import lookup
from litestar_taskflow.expressions.transforms import (
    Transformation,
    apply_output_data_mapping,
    apply_transformation,
    apply_transformations,
)

CONTEXT: dict[str, Any] = {
    "documents": [
        {"id": "a", "pages": 3, "status": "open", "meta": {"author": "Ada"}},
        {"id": "b", "pages": 5, "status": "closed", "meta": {"author": "Grace"}},
        {"id": "c", "pages": 8, "status": "open", "meta": {}},
    ],
    "scores": [1, 2, "n/a", 4.5],
    "amount": "42",
    "created": "2024-03-01T12:00:00Z",
    "payload": '{"ok": true}',
    "user": {"name": "Ada"},
}


@pytest.mark.unit
class TestMapFilterReduce:
    """Tests for the list transformations."""

    def test_map(self) -> None:
        """Test each element is projected through the mapping paths."""
        result = apply_transformation(
            {
                "type": "map",
                "source": "$documents",
                "target": "summary",
                "mapping": {"ref": "$id", "author": "$meta.author"},
            },
            CONTEXT,
        )
        assert result == [
            {"ref": "a", "author": "Ada"},
            {"ref": "b", "author": "Grace"},
            {"ref": "c", "author": UNDEFINED},
        ]

    def test_filter(self) -> None:
        """Test elements are kept when the conditions hold against them."""
        result = apply_transformation(
            {
                "type": "filter",
                "source": "$documents",
                "conditions": [
                    {"left": "$status", "operator": "eq", "right": "open"},
                    {"left": "$pages", "operator": "gt", "right": 4},
                ],
            },
            CONTEXT,
        )
        assert [d["id"] for d in result] == ["c"]

    def test_reduce_sum_ignores_non_numbers(self) -> None:
        result = apply_transformation({"type": "reduce", "source": "$scores", "operation": "sum"}, CONTEXT)
        assert result == 7.5

    def test_reduce_sum_with_initial_value(self) -> None:
        result = apply_transformation(
            {"type": "reduce", "source": "$scores", "operation": "sum", "initial_value": 10}, CONTEXT
        )
        assert result == 17.5

    def test_reduce_concat(self) -> None:
        result = apply_transformation(
            {"type": "reduce", "source": "$scores", "operation": "concat", "initial_value": [0]}, CONTEXT
        )
        assert result == [0, 1, 2, "n/a", 4.5]

    def test_reduce_merge(self) -> None:
        """Test mappings are shallow-merged left to right."""
        result = apply_transformation(
            {"type": "reduce", "source": [{"a": 1}, {"b": 2}, {"a": 3}], "operation": "merge"}, CONTEXT
        )
        assert result == {"a": 3, "b": 2}

    def test_reduce_does_not_mutate_initial_value(self) -> None:
        initial: list[int] = []
        transformation = Transformation(type="reduce", source=[1], operation="concat", initial_value=initial)
        apply_transformation(transformation, CONTEXT)
        assert initial == []

    @pytest.mark.parametrize("kind", ["map", "filter", "reduce"])
    def test_non_list_source_fails(self, kind: str) -> None:
        """Test list transformations reject a non-list source."""
        with pytest.raises(TaskExecutionError, match="requires an array source"):
            apply_transformation({"type": kind, "source": "$user", "operation": "sum"}, CONTEXT)

    def test_unknown_reduce_operation_fails(self) -> None:
        with pytest.raises(TaskExecutionError, match="Unsupported reduce operation"):
            apply_transformation({"type": "reduce", "source": "$scores", "operation": "avg"}, CONTEXT)

    def test_unknown_type_fails(self) -> None:
        with pytest.raises(TaskExecutionError, match="Unsupported transformation type"):
            apply_transformation({"type": "pivot", "source": "$scores"}, CONTEXT)


@pytest.mark.unit
class TestFormat:
    """Tests for the ``format`` transformation."""

    def test_string(self) -> None:
        assert apply_transformation({"type": "format", "source": "$user", "format": "string"}, CONTEXT) == (
            '{"name": "Ada"}'
        )

    def test_number(self) -> None:
        """Test integral numbers come back as int and others as float."""
        assert apply_transformation({"type": "format", "source": "$amount", "format": "number"}, CONTEXT) == 42
        assert apply_transformation({"type": "format", "source": "2.5", "format": "number"}, CONTEXT) == 2.5

    def test_number_rejects_text(self) -> None:
        with pytest.raises(TaskExecutionError, match="as number"):
            apply_transformation({"type": "format", "source": "forty", "format": "number"}, CONTEXT)

    def test_boolean(self) -> None:
        assert apply_transformation({"type": "format", "source": "$amount", "format": "boolean"}, CONTEXT) is True
        assert apply_transformation({"type": "format", "source": "$missing", "format": "boolean"}, CONTEXT) is False

    def test_date_from_iso_string(self) -> None:
        result = apply_transformation({"type": "format", "source": "$created", "format": "date"}, CONTEXT)
        assert result == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    def test_date_from_epoch_millis(self) -> None:
        result = apply_transformation({"type": "format", "source": 0, "format": "date"}, CONTEXT)
        assert result == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_json(self) -> None:
        assert apply_transformation({"type": "format", "source": "$payload", "format": "json"}, CONTEXT) == {
            "ok": True
        }
        with pytest.raises(TaskExecutionError, match="Cannot parse JSON"):
            apply_transformation({"type": "format", "source": "{broken", "format": "json"}, CONTEXT)

    def test_template(self) -> None:
        result = apply_transformation({"type": "format", "format": "template", "template": "By ${user.name}"}, CONTEXT)
        assert result == "By Ada"

    def test_unknown_format_passes_source_through(self) -> None:
        assert apply_transformation({"type": "format", "source": "$amount", "format": "hex"}, CONTEXT) == "42"


@pytest.mark.unit
def test_apply_transformations_collects_targets() -> None:
    """Test each transformation's value lands under its target key."""
    result = apply_transformations(
        [
            {"type": "reduce", "source": "$scores", "target": "total", "operation": "sum"},
            {"type": "format", "source": "$amount", "target": "amount", "format": "number"},
        ],
        CONTEXT,
    )
    assert result == {"total": 7.5, "amount": 42}


@pytest.mark.unit
class TestOutputDataMapping:
    """Tests for copying task results into the workflow data."""

    def test_writes_targets(self) -> None:
        """Test sources are read from the result with an optional sigil."""
        data: dict[str, Any] = {"review": {"owner": "Ada"}}
        result = {"score": 91, "details": {"pages": [1, 2]}}
        apply_output_data_mapping({"review.score": "score", "pages": "$details.pages"}, result, data)
        assert data == {"review": {"owner": "Ada", "score": 91}, "pages": [1, 2]}

    def test_round_trip(self) -> None:
        """Test resolving the target after mapping gives the source value, undefined included."""
        data: dict[str, Any] = {"stale": "value"}
        result = {"present": {"nested": 0}}
        mapping = {"copied": "present.nested", "stale": "absent"}
        apply_output_data_mapping(mapping, result, data)
        for target, source in mapping.items():
            assert lookup(target, data) == lookup(source, result)
        assert lookup("stale", data) is UNDEFINED

    def test_whole_result(self) -> None:
        data: dict[str, Any] = {}
        apply_output_data_mapping({"last": "$"}, ["x"], data)
        assert data == {"last": ["x"]}
