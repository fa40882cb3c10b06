"""Concrete data models for litestar-taskflow.

This module provides the dataclasses that hold workflow instance runtime state,
together with their JSON-safe representations used for persistence and the web API.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from litestar_taskflow.core.types import Context, EventType, TaskStatus, WorkflowStatus

__all__ = ["AuditEntry", "TaskError", "TaskInstance", "WorkflowInstance", "detach"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None



def detach(value: Any) -> Any:
    """Deep-copy a value, sharing the parts that cannot be copied.

    Task results are opaque and may hold clients, locks or generators. Containers
    around such values are still copied; the values themselves are shared.
    """
    try:
        return copy.deepcopy(value)
    except Exception:
        if isinstance(value, dict):
            return {key: detach(item) for key, item in value.items()}
        if isinstance(value, list):
            return [detach(item) for item in value]
        if isinstance(value, tuple):
            return tuple(detach(item) for item in value)
        return value


@dataclass
class TaskError:
    """Error recorded on a task instance after a failed attempt.

    Attributes:
        message: Error message.
        timestamp: When the error was recorded.
        stack: Formatted traceback, if available.
        error_type: Class name of the original exception.
    """

    message: str
    timestamp: datetime = field(default_factory=_utcnow)
    stack: str | None = None
    error_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "timestamp": _iso(self.timestamp),
            "stack": self.stack,
            "error_type": self.error_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskError:
        return cls(
            message=data["message"],
            timestamp=_parse_iso(data.get("timestamp")) or _utcnow(),
            stack=data.get("stack"),
            error_type=data.get("error_type"),
        )


@dataclass
class TaskInstance:
    """Runtime state of one task within a workflow instance.

    Attributes:
        id: Id of the task definition this instance executes.
        status: Current task status.
        attempts: Number of dispatch attempts made so far.
        start_time: When the latest attempt started.
        end_time: When the task reached a final status.
        error: Error of the latest failed attempt.
        result: Value returned by the handler.
    """

    id: str
    status: TaskStatus = TaskStatus.QUEUED
    attempts: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    error: TaskError | None = None
    result: Any = None

    def snapshot(self) -> TaskInstance:
        return replace(self, error=replace(self.error) if self.error else None, result=detach(self.result))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": str(self.status),
            "attempts": self.attempts,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "error": self.error.to_dict() if self.error else None,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskInstance:
        return cls(
            id=data["id"],
            status=TaskStatus(data.get("status", TaskStatus.QUEUED)),
            attempts=data.get("attempts", 0),
            start_time=_parse_iso(data.get("start_time")),
            end_time=_parse_iso(data.get("end_time")),
            error=TaskError.from_dict(data["error"]) if data.get("error") else None,
            result=data.get("result"),
        )


@dataclass
class AuditEntry:
    """One entry of an instance's append-only audit log."""

    event: EventType
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": _iso(self.timestamp), "event": str(self.event), "details": self.details}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        return cls(
            event=EventType(data["event"]),
            details=data.get("details") or {},
            timestamp=_parse_iso(data.get("timestamp")) or _utcnow(),
        )


@dataclass
class WorkflowInstance:
    """Runtime state of one execution of a workflow definition.

    ``current_tasks``, ``completed_tasks`` and ``failed_tasks`` are disjoint:
    a task instance lives in exactly one of them. ``skipped_tasks`` lists the
    ids of tasks whose conditions did not hold; they never get a task instance.

    Attributes:
        id: Unique identifier for this workflow instance.
        definition_id: Id of the workflow definition.
        status: Current execution status.
        data: Mutable execution context shared by all tasks.
        current_tasks: Live task instances (queued, running or retry).
        completed_tasks: Successfully completed task instances.
        failed_tasks: Task instances that exhausted their retries.
        skipped_tasks: Ids of tasks skipped by a false condition.
        start_time: When the instance was created.
        end_time: When the instance reached a terminal status.
        audit_log: Ordered record of every transition.
    """

    id: UUID
    definition_id: str
    status: WorkflowStatus = WorkflowStatus.RUNNING
    data: Context = field(default_factory=dict)
    current_tasks: list[TaskInstance] = field(default_factory=list)
    completed_tasks: list[TaskInstance] = field(default_factory=list)
    failed_tasks: list[TaskInstance] = field(default_factory=list)
    skipped_tasks: list[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=_utcnow)
    end_time: datetime | None = None
    audit_log: list[AuditEntry] = field(default_factory=list)

    def find_task(self, task_id: str) -> TaskInstance | None:
        """Find a task instance by id across current, completed and failed tasks.

        Args:
            task_id: The task id.

        Returns:
            The task instance, or None if the task has no instance yet.
        """
        for task in (*self.current_tasks, *self.completed_tasks, *self.failed_tasks):
            if task.id == task_id:
                return task
        return None

    def get_current_task(self, task_id: str) -> TaskInstance | None:
        return next((t for t in self.current_tasks if t.id == task_id), None)

    @property
    def completed_task_ids(self) -> set[str]:
        return {t.id for t in self.completed_tasks}

    @property
    def failed_task_ids(self) -> set[str]:
        return {t.id for t in self.failed_tasks}

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> WorkflowInstance:
        """Return a deep copy that callers may inspect without affecting execution.

        Values that cannot be copied are shared with the live instance.
        """
        return WorkflowInstance(
            id=self.id,
            definition_id=self.definition_id,
            status=self.status,
            data=detach(self.data),
            current_tasks=[t.snapshot() for t in self.current_tasks],
            completed_tasks=[t.snapshot() for t in self.completed_tasks],
            failed_tasks=[t.snapshot() for t in self.failed_tasks],
            skipped_tasks=list(self.skipped_tasks),
            start_time=self.start_time,
            end_time=self.end_time,
            audit_log=[replace(entry, details=detach(entry.details)) for entry in self.audit_log],
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the instance to a JSON-compatible dictionary."""
        return {
            "id": str(self.id),
            "definition_id": self.definition_id,
            "status": str(self.status),
            "data": self.data,
            "current_tasks": [t.to_dict() for t in self.current_tasks],
            "completed_tasks": [t.to_dict() for t in self.completed_tasks],
            "failed_tasks": [t.to_dict() for t in self.failed_tasks],
            "skipped_tasks": list(self.skipped_tasks),
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "audit_log": [entry.to_dict() for entry in self.audit_log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowInstance:
        """Rebuild an instance from the output of :meth:`to_dict`."""
        return cls(
            id=UUID(str(data["id"])),
            definition_id=data["definition_id"],
            status=WorkflowStatus(data["status"]),
            data=data.get("data") or {},
            current_tasks=[TaskInstance.from_dict(t) for t in data.get("current_tasks", [])],
            completed_tasks=[TaskInstance.from_dict(t) for t in data.get("completed_tasks", [])],
            failed_tasks=[TaskInstance.from_dict(t) for t in data.get("failed_tasks", [])],
            skipped_tasks=list(data.get("skipped_tasks", [])),
            start_time=_parse_iso(data.get("start_time")) or _utcnow(),
            end_time=_parse_iso(data.get("end_time")),
            audit_log=[AuditEntry.from_dict(e) for e in data.get("audit_log", [])],
        )
