"""SQLAlchemy models for workflow persistence.

This module defines the database model for persisting workflow instance state.
Task collections and the audit log are stored as JSON documents next to the
columns used for querying.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import JSON, DateTime, Enum, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from litestar_taskflow.core.models import AuditEntry, TaskInstance, WorkflowInstance
from litestar_taskflow.core.types import WorkflowStatus

__all__ = ["WorkflowInstanceModel"]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


def _jsonable(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops the timezone
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WorkflowInstanceModel(UUIDAuditBase):
    """Persisted workflow instance representing a running or finished execution.

    The primary key is the instance id assigned by the engine.

    Attributes:
        definition_id: Id of the workflow definition.
        status: Current execution status.
        data: Workflow data context as JSON.
        current_tasks: Live task instances as JSON.
        completed_tasks: Completed task instances as JSON.
        failed_tasks: Failed task instances as JSON.
        skipped_tasks: Ids of skipped tasks.
        audit_log: Audit entries as JSON.
        started_at: Timestamp when execution began.
        ended_at: Timestamp when execution reached a terminal status.
    """

    __tablename__ = "taskflow_instances"
    __table_args__ = (
        Index("ix_taskflow_instances_status", "status"),
        Index("ix_taskflow_instances_definition_id", "definition_id"),
    )

    definition_id: Mapped[str] = mapped_column(String(255))
    status: Mapped[WorkflowStatus] = mapped_column(
        Enum(WorkflowStatus, native_enum=False, length=50),
        default=WorkflowStatus.RUNNING,
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    current_tasks: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    completed_tasks: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    failed_tasks: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    skipped_tasks: Mapped[list[str]] = mapped_column(JSONType, default=list)
    audit_log: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def from_domain(cls, instance: WorkflowInstance) -> WorkflowInstanceModel:
        """Build a new row from an engine instance."""
        model = cls(id=instance.id)
        model.apply(instance)
        return model

    def apply(self, instance: WorkflowInstance) -> None:
        """Copy the state of an engine instance onto this row."""
        state = _jsonable(instance.to_dict())
        self.definition_id = instance.definition_id
        self.status = instance.status
        self.data = state["data"]
        self.current_tasks = state["current_tasks"]
        self.completed_tasks = state["completed_tasks"]
        self.failed_tasks = state["failed_tasks"]
        self.skipped_tasks = state["skipped_tasks"]
        self.audit_log = state["audit_log"]
        self.started_at = instance.start_time
        self.ended_at = instance.end_time

    def to_domain(self) -> WorkflowInstance:
        """Rebuild the engine instance stored in this row."""
        return WorkflowInstance(
            id=UUID(str(self.id)),
            definition_id=self.definition_id,
            status=WorkflowStatus(self.status),
            data=dict(self.data or {}),
            current_tasks=[TaskInstance.from_dict(t) for t in self.current_tasks or []],
            completed_tasks=[TaskInstance.from_dict(t) for t in self.completed_tasks or []],
            failed_tasks=[TaskInstance.from_dict(t) for t in self.failed_tasks or []],
            skipped_tasks=list(self.skipped_tasks or []),
            start_time=_aware(self.started_at) or datetime.now(timezone.utc),
            end_time=_aware(self.ended_at),
            audit_log=[AuditEntry.from_dict(e) for e in self.audit_log or []],
        )
