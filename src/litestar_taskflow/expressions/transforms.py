"""Declarative data transformations and output data mapping.

Transformations are used by the built-in ``data_transformation`` task type; output
data mapping is the only path by which a task result re-enters the shared
workflow data.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from litestar_taskflow.core.types import UNDEFINED, StrEnum
from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.expressions.conditions import evaluate_conditions
from litestar_taskflow.expressions.paths import REFERENCE_SIGIL, assign, lookup, remove, render_template, resolve, to_text

__all__ = [
    "ReduceOperation",
    "Transformation",
    "TransformationType",
    "apply_output_data_mapping",
    "apply_transformation",
    "apply_transformations",
]


class TransformationType(StrEnum):
    MAP = "map"
    FILTER = "filter"
    REDUCE = "reduce"
    FORMAT = "format"


class ReduceOperation(StrEnum):
    SUM = "sum"
    CONCAT = "concat"
    MERGE = "merge"


_REDUCE_DEFAULTS: dict[ReduceOperation, Any] = {
    ReduceOperation.SUM: 0,
    ReduceOperation.CONCAT: [],
    ReduceOperation.MERGE: {},
}


@dataclass(frozen=True)
class Transformation:
    """One declarative transformation step.

    Attributes:
        type: ``map``, ``filter``, ``reduce`` or ``format``.
        source: Expression resolved against the workflow data.
        target: Key of the transformation result.
        mapping: For ``map``, output field to path within each element.
        conditions: For ``filter``, predicates evaluated against each element.
        operation: For ``reduce``, one of ``sum``, ``concat`` or ``merge``.
        initial_value: For ``reduce``, the starting accumulator.
        format: For ``format``, one of ``string``, ``number``, ``boolean``,
            ``date``, ``json`` or ``template``.
        template: For ``format: template``, the template string.
    """

    type: str
    source: Any = None
    target: str = ""
    mapping: Mapping[str, str] = field(default_factory=dict)
    conditions: tuple[Any, ...] = ()
    operation: str | None = None
    initial_value: Any = UNDEFINED
    format: str | None = None
    template: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Transformation:
        return cls(
            type=data.get("type", ""),
            source=data.get("source"),
            target=data.get("target", ""),
            mapping=data.get("mapping") or {},
            conditions=tuple(data.get("conditions") or ()),
            operation=data.get("operation"),
            initial_value=data.get("initial_value", UNDEFINED),
            format=data.get("format"),
            template=data.get("template"),
        )


def _require_list(transformation: Transformation, context: Any) -> list[Any]:
    source = resolve(transformation.source, context)
    if not isinstance(source, Sequence) or isinstance(source, (str, bytes, bytearray)):
        msg = f"{transformation.type.capitalize()} transformation requires an array source, got {type(source).__name__}"
        raise TaskExecutionError(msg)
    return list(source)


def _map(transformation: Transformation, context: Any) -> list[dict[str, Any]]:
    return [
        {key: resolve(path, item) for key, path in transformation.mapping.items()}
        for item in _require_list(transformation, context)
    ]


def _filter(transformation: Transformation, context: Any) -> list[Any]:
    return [item for item in _require_list(transformation, context) if evaluate_conditions(transformation.conditions, item)]


def _reduce(transformation: Transformation, context: Any) -> Any:
    items = _require_list(transformation, context)
    try:
        operation = ReduceOperation(transformation.operation)
    except ValueError as e:
        msg = f"Unsupported reduce operation: {transformation.operation}"
        raise TaskExecutionError(msg) from e

    initial = transformation.initial_value
    acc = _REDUCE_DEFAULTS[operation] if initial is UNDEFINED else initial
    acc = list(acc) if isinstance(acc, list) else dict(acc) if isinstance(acc, Mapping) else acc

    for item in items:
        if operation is ReduceOperation.SUM:
            if isinstance(item, (int, float)) and not isinstance(item, bool):
                acc = acc + item
        elif operation is ReduceOperation.CONCAT:
            acc = [*acc, item] if isinstance(acc, list) else [acc, item]
        elif isinstance(item, Mapping):
            acc = {**acc, **item}
    return acc


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return 0
    try:
        number = float(str(value).strip())
    except ValueError as e:
        msg = f"Cannot format {value!r} as number"
        raise TaskExecutionError(msg) from e
    return int(number) if number.is_integer() else number


def _to_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            msg = f"Cannot format {value!r} as date"
            raise TaskExecutionError(msg) from e
    msg = f"Cannot format {value!r} as date"
    raise TaskExecutionError(msg)


def _format(transformation: Transformation, context: Any) -> Any:
    fmt = transformation.format
    if fmt == "template":
        return render_template(transformation.template or "", context)

    source = resolve(transformation.source, context)
    if fmt == "string":
        return to_text(source)
    if fmt == "number":
        return _to_number(source)
    if fmt == "boolean":
        return bool(source)
    if fmt == "date":
        return _to_date(source)
    if fmt == "json":
        if not isinstance(source, str):
            return source
        try:
            return json.loads(source)
        except json.JSONDecodeError as e:
            msg = f"Cannot parse JSON: {e}"
            raise TaskExecutionError(msg) from e
    return source


_OPERATIONS = {
    TransformationType.MAP: _map,
    TransformationType.FILTER: _filter,
    TransformationType.REDUCE: _reduce,
    TransformationType.FORMAT: _format,
}


def apply_transformation(transformation: Transformation | Mapping[str, Any], context: Any) -> Any:
    """Apply one transformation and return its value.

    Raises:
        TaskExecutionError: On an unsupported type, a non-array source for
            map/filter/reduce, or a value that cannot be formatted.
    """
    if not isinstance(transformation, Transformation):
        transformation = Transformation.from_dict(transformation)
    try:
        kind = TransformationType(transformation.type)
    except ValueError as e:
        msg = f"Unsupported transformation type: {transformation.type}"
        raise TaskExecutionError(msg) from e
    return _OPERATIONS[kind](transformation, context)


def apply_transformations(
    transformations: Sequence[Transformation | Mapping[str, Any]],
    context: Any,
) -> dict[str, Any]:
    """Apply transformations in order, collecting each value under its target key.

    Example:
        >>> apply_transformations(
        ...     [{"type": "reduce", "source": "$scores", "target": "total", "operation": "sum"}],
        ...     {"scores": [3, 4]},
        ... )
        {'total': 7}
    """
    result: dict[str, Any] = {}
    for transformation in transformations:
        if not isinstance(transformation, Transformation):
            transformation = Transformation.from_dict(transformation)
        result[transformation.target] = apply_transformation(transformation, context)
    return result


def apply_output_data_mapping(
    mapping: Mapping[str, str],
    task_result: Any,
    context: MutableMapping[str, Any],
) -> None:
    """Copy values from a task result into the workflow data.

    Sources are always paths into the result; the ``$`` sigil is optional. When
    a source is undefined the target is removed, so the target resolves to
    undefined as well.

    Args:
        mapping: Target path in ``context`` to source path in ``task_result``.
        task_result: The value returned by the task handler.
        context: The workflow data to write into.
    """
    for target, source in mapping.items():
        path = source[len(REFERENCE_SIGIL) :] if source.startswith(REFERENCE_SIGIL) else source
        value = lookup(path, task_result)
        if value is UNDEFINED:
            remove(target, context)
        else:
            assign(target, value, context)
