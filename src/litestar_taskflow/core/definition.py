"""Workflow and task definition structures.

This module provides the immutable data structures that describe a workflow graph:
tasks, their dependencies, conditions, retry policy and output data mapping.
Definitions can be built directly or parsed from plain JSON-like data.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from litestar_taskflow.core.types import UNDEFINED, ConditionOperator, ErrorHandling
from litestar_taskflow.exceptions import DefinitionError

__all__ = ["ConditionalExpression", "RetryStrategy", "TaskDefinition", "WorkflowDefinition"]


@dataclass(frozen=True)
class RetryStrategy:
    """Retry policy of a task.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        delay: Seconds to wait before each retry.
    """

    max_attempts: int = 1
    delay: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RetryStrategy:
        return cls(max_attempts=int(data.get("max_attempts", 1)), delay=float(data.get("delay", 0.0)))

    def to_dict(self) -> dict[str, Any]:
        return {"max_attempts": self.max_attempts, "delay": self.delay}


@dataclass(frozen=True)
class ConditionalExpression:
    """A single comparison predicate.

    Both operands are either literals or ``$``-prefixed references into the
    context the condition is evaluated against.

    Attributes:
        left: Left operand.
        operator: Comparison to apply. Kept as a plain string when it is not a
            known operator, so that it evaluates to False instead of failing.
        right: Right operand. Ignored by ``exists``.

    Example:
        >>> ConditionalExpression(left="$document.type", operator="eq", right="manual")
    """

    left: Any
    operator: ConditionOperator | str
    right: Any = UNDEFINED

    def __post_init__(self) -> None:
        if isinstance(self.operator, str) and not isinstance(self.operator, ConditionOperator):
            try:
                object.__setattr__(self, "operator", ConditionOperator(self.operator))
            except ValueError:
                pass

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConditionalExpression:
        return cls(left=data.get("left"), operator=data.get("operator", ""), right=data.get("right", UNDEFINED))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"left": self.left, "operator": str(self.operator)}
        if self.right is not UNDEFINED:
            result["right"] = self.right
        return result


@dataclass(frozen=True)
class TaskDefinition:
    """Declarative description of one task in a workflow.

    Attributes:
        id: Identifier, unique within the workflow definition.
        type: Task type tag used to look up the handler.
        depends_on: Ids of the tasks that must be settled before this one runs.
        conditions: Predicates that must all hold for the task to run; otherwise
            the task is skipped.
        retry_strategy: Retry policy. ``None`` means the engine default.
        error_handling: ``fail`` fails the workflow once retries are exhausted,
            ``continue`` lets the rest of the graph proceed. ``None`` means the
            engine default.
        output_data_mapping: Target path in the workflow data to source path in
            the task result.
        config: Handler-specific parameters.
    """

    id: str
    type: str
    depends_on: tuple[str, ...] = ()
    conditions: tuple[ConditionalExpression, ...] = ()
    retry_strategy: RetryStrategy | None = None
    error_handling: ErrorHandling | None = None
    output_data_mapping: Mapping[str, str] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        conditions = []
        for condition in self.conditions:
            if isinstance(condition, Mapping):
                condition = ConditionalExpression.from_dict(condition)
            elif not isinstance(condition, ConditionalExpression):
                msg = f"Task '{self.id}' has a condition that is not a mapping: {condition!r}"
                raise DefinitionError(msg)
            conditions.append(condition)
        object.__setattr__(self, "conditions", tuple(conditions))
        if isinstance(self.retry_strategy, Mapping):
            try:
                retry = RetryStrategy.from_dict(self.retry_strategy)
            except (OverflowError, TypeError, ValueError) as e:
                msg = f"Task '{self.id}' has an invalid retry strategy: {dict(self.retry_strategy)!r}"
                raise DefinitionError(msg) from e
            object.__setattr__(self, "retry_strategy", retry)
        elif self.retry_strategy is not None and not isinstance(self.retry_strategy, RetryStrategy):
            msg = f"Task '{self.id}' has an invalid retry strategy: {self.retry_strategy!r}"
            raise DefinitionError(msg)
        if self.error_handling is not None:
            try:
                object.__setattr__(self, "error_handling", ErrorHandling(self.error_handling))
            except ValueError as e:
                msg = f"Task '{self.id}' has unknown error handling '{self.error_handling}'"
                raise DefinitionError(msg) from e
        for name in ("output_data_mapping", "config"):
            if not isinstance(getattr(self, name), Mapping):
                msg = f"Task '{self.id}' {name} must be a mapping"
                raise DefinitionError(msg)
        object.__setattr__(self, "output_data_mapping", MappingProxyType(dict(self.output_data_mapping)))
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskDefinition:
        """Build a task definition from JSON-like data.

        Args:
            data: Mapping with snake_case keys.

        Returns:
            The parsed TaskDefinition.

        Raises:
            DefinitionError: If a field has the wrong shape.
        """
        for key in ("depends_on", "conditions"):
            value = data.get(key)
            if value is not None and not isinstance(value, (list, tuple)):
                msg = f"Task '{data.get('id', '')}' {key} must be a list"
                raise DefinitionError(msg)
        return cls(
            id=data.get("id", ""),
            type=data.get("type", ""),
            depends_on=tuple(data.get("depends_on") or ()),
            conditions=tuple(data.get("conditions") or ()),
            retry_strategy=data.get("retry_strategy") or None,
            error_handling=data.get("error_handling"),
            output_data_mapping=data.get("output_data_mapping") or {},
            config=data.get("config") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "depends_on": list(self.depends_on),
        }
        if self.error_handling is not None:
            result["error_handling"] = str(self.error_handling)
        if self.conditions:
            result["conditions"] = [c.to_dict() for c in self.conditions]
        if self.retry_strategy is not None:
            result["retry_strategy"] = self.retry_strategy.to_dict()
        if self.output_data_mapping:
            result["output_data_mapping"] = dict(self.output_data_mapping)
        if self.config:
            result["config"] = dict(self.config)
        return result


@dataclass(frozen=True)
class WorkflowDefinition:
    """Declarative workflow structure.

    The WorkflowDefinition is the reusable, validated template that workflow
    instances are started from. It is immutable; registering it again under the
    same id replaces the stored definition without affecting running instances.

    Attributes:
        name: Human-readable workflow name.
        tasks: Ordered tasks of the workflow.
        id: Unique identifier. Assigned by the registry when omitted.
        description: Optional description of the workflow's purpose.

    Example:
        >>> definition = WorkflowDefinition(
        ...     name="document_review",
        ...     tasks=(
        ...         TaskDefinition(id="extract", type="document_processing"),
        ...         TaskDefinition(id="notify", type="notification", depends_on=("extract",)),
        ...     ),
        ... )
    """

    name: str
    tasks: tuple[TaskDefinition, ...]
    id: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "tasks",
            tuple(t if isinstance(t, TaskDefinition) else TaskDefinition.from_dict(t) for t in self.tasks or ()),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkflowDefinition:
        """Build a workflow definition from JSON-like data.

        Args:
            data: Mapping with ``name``, ``tasks`` and optionally ``id`` and ``description``.

        Returns:
            The parsed WorkflowDefinition.

        Raises:
            DefinitionError: If ``tasks`` is not a list of mappings.
        """
        tasks = data.get("tasks") or []
        if not isinstance(tasks, (list, tuple)) or not all(isinstance(t, Mapping) for t in tasks):
            msg = "Workflow definition 'tasks' must be a list of task mappings"
            raise DefinitionError(msg)
        return cls(
            name=data.get("name", ""),
            tasks=tuple(TaskDefinition.from_dict(t) for t in tasks),
            id=data.get("id"),
            description=data.get("description") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    def get_task(self, task_id: str) -> TaskDefinition:
        """Look up a task by id.

        Args:
            task_id: The task id.

        Returns:
            The task definition.

        Raises:
            KeyError: If the task is not part of this definition.
        """
        for task in self.tasks:
            if task.id == task_id:
                return task
        msg = f"Task '{task_id}' not found in workflow '{self.name}'"
        raise KeyError(msg)

    @property
    def task_ids(self) -> list[str]:
        return [task.id for task in self.tasks]
