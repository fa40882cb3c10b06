"""Core type definitions for litestar-taskflow.

This module defines the fundamental enums, sentinels, and type aliases used throughout
the orchestration engine.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Any, Final, TypeAlias, TypeVar

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "TERMINAL_WORKFLOW_STATUSES",
    "UNDEFINED",
    "ConditionOperator",
    "Context",
    "ErrorHandling",
    "EventType",
    "StrEnum",
    "T",
    "TaskStatus",
    "TaskType",
    "Undefined",
    "WorkflowStatus",
]


class WorkflowStatus(StrEnum):
    """Overall status of a workflow instance.

    Attributes:
        RUNNING: Instance is actively dispatching tasks.
        PAUSED: No new task is dispatched until the instance is resumed.
        COMPLETED: No task is left in ``current_tasks``.
        FAILED: A task with ``fail`` error handling exhausted its retries.
        CANCELLED: Instance was cancelled by a caller.
    """

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the status is absorbing."""
        return self in TERMINAL_WORKFLOW_STATUSES


TERMINAL_WORKFLOW_STATUSES: Final = frozenset(
    {WorkflowStatus.COMPLETED, WorkflowStatus.FAILED, WorkflowStatus.CANCELLED}
)


class TaskStatus(StrEnum):
    """Execution status of a task instance.

    Attributes:
        QUEUED: Waiting for dispatch.
        RUNNING: Handler call in flight.
        RETRY: Failed attempt, waiting for the retry timer.
        COMPLETED: Handler returned successfully.
        FAILED: Retries exhausted.
        CANCELLED: Instance was cancelled while the task was live.
    """

    QUEUED = "queued"
    RUNNING = "running"
    RETRY = "retry"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskType(StrEnum):
    """Built-in task type tags.

    Task types are an open set; handlers may be registered for any string.
    """

    DOCUMENT_PROCESSING = "document_processing"
    NOTIFICATION = "notification"
    EXTERNAL_API = "external_api"
    DATA_TRANSFORMATION = "data_transformation"


class ErrorHandling(StrEnum):
    """What happens to the instance once a task exhausts its retries."""

    FAIL = "fail"
    CONTINUE = "continue"


class ConditionOperator(StrEnum):
    """Comparison operators understood by the condition evaluator."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    EXISTS = "exists"


class EventType(StrEnum):
    """Tags of the events emitted on the event bus and written to the audit log."""

    WORKFLOW_STARTED = "workflow_started"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
    WORKFLOW_PAUSED = "workflow_paused"
    WORKFLOW_RESUMED = "workflow_resumed"
    WORKFLOW_CANCELLED = "workflow_cancelled"
    TASK_QUEUED = "task_queued"
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    TASK_ERROR = "task_error"
    TASK_RETRY_SCHEDULED = "task_retry_scheduled"
    TASK_FAILED = "task_failed"
    TASK_CANCELLED = "task_cancelled"
    TASK_SKIPPED = "task_skipped"


class Undefined:
    """Sentinel type for a path that does not resolve.

    Distinct from ``None``, which is a legitimate JSON ``null`` in the context.
    """

    _instance: Undefined | None = None

    def __new__(cls) -> Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> Undefined:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> Undefined:
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Final = Undefined()
"""The single "undefined" value returned by path resolution."""

# Type aliases for workflow data
Context: TypeAlias = dict[str, Any]
"""Type alias for the JSON-like execution context of an instance."""

T = TypeVar("T")
"""Generic type variable for return values."""
