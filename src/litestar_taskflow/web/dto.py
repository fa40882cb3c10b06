"""Data Transfer Objects for the taskflow web API.

This module defines DTOs for serializing and deserializing workflow data
in REST API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from litestar_taskflow.core.definition import WorkflowDefinition
    from litestar_taskflow.core.models import TaskInstance, WorkflowInstance
    from litestar_taskflow.engine.graph import DependencyGraph

__all__ = [
    "CancelWorkflowDTO",
    "StartWorkflowDTO",
    "TaskInstanceDTO",
    "WorkflowDefinitionDTO",
    "WorkflowInstanceDTO",
    "WorkflowInstanceDetailDTO",
]


@dataclass
class StartWorkflowDTO:
    """DTO for starting a new workflow instance.

    Attributes:
        definition_id: Id of the workflow definition to instantiate.
        initial_data: Initial data of the workflow context.
    """

    definition_id: str
    initial_data: dict[str, Any] | None = None


@dataclass
class CancelWorkflowDTO:
    """DTO for cancelling a workflow instance.

    Attributes:
        reason: Optional reason recorded with the cancellation.
    """

    reason: str | None = None


@dataclass
class WorkflowDefinitionDTO:
    """DTO for a registered workflow definition.

    Attributes:
        id: Definition id.
        name: Workflow name.
        description: Human-readable description.
        tasks: Task definitions as plain data.
        start_tasks: Ids of the tasks without dependencies.
        execution_order: Task ids in dependency order.
    """

    id: str
    name: str
    description: str
    tasks: list[dict[str, Any]]
    start_tasks: list[str]
    execution_order: list[str]

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition, graph: DependencyGraph) -> WorkflowDefinitionDTO:
        return cls(
            id=str(definition.id),
            name=definition.name,
            description=definition.description,
            tasks=[task.to_dict() for task in definition.tasks],
            start_tasks=graph.start_tasks(),
            execution_order=graph.topological_order(),
        )


@dataclass
class TaskInstanceDTO:
    """DTO for the runtime state of one task.

    Attributes:
        id: Task id.
        status: Task status.
        attempts: Number of attempts made.
        start_time: When the latest attempt started.
        end_time: When the task reached a final status.
        error: Error of the latest failed attempt.
        result: Handler result.
    """

    id: str
    status: str
    attempts: int
    start_time: datetime | None = None
    end_time: datetime | None = None
    error: dict[str, Any] | None = None
    result: Any = None

    @classmethod
    def from_task(cls, task: TaskInstance) -> TaskInstanceDTO:
        return cls(
            id=task.id,
            status=str(task.status),
            attempts=task.attempts,
            start_time=task.start_time,
            end_time=task.end_time,
            error=task.error.to_dict() if task.error else None,
            result=task.result,
        )


@dataclass
class WorkflowInstanceDTO:
    """DTO for workflow instance summary.

    Attributes:
        id: Instance id.
        definition_id: Id of the workflow definition.
        status: Current execution status.
        current_tasks: Ids of the live tasks.
        completed_tasks: Ids of the completed tasks.
        failed_tasks: Ids of the failed tasks.
        skipped_tasks: Ids of the skipped tasks.
        start_time: When the instance started.
        end_time: When the instance reached a terminal status.
    """

    id: UUID
    definition_id: str
    status: str
    current_tasks: list[str]
    completed_tasks: list[str]
    failed_tasks: list[str]
    skipped_tasks: list[str]
    start_time: datetime
    end_time: datetime | None = None

    @classmethod
    def from_instance(cls, instance: WorkflowInstance) -> WorkflowInstanceDTO:
        return cls(
            id=instance.id,
            definition_id=instance.definition_id,
            status=str(instance.status),
            current_tasks=[t.id for t in instance.current_tasks],
            completed_tasks=[t.id for t in instance.completed_tasks],
            failed_tasks=[t.id for t in instance.failed_tasks],
            skipped_tasks=list(instance.skipped_tasks),
            start_time=instance.start_time,
            end_time=instance.end_time,
        )


@dataclass
class WorkflowInstanceDetailDTO:
    """DTO for detailed workflow instance information.

    Attributes:
        id: Instance id.
        definition_id: Id of the workflow definition.
        status: Current execution status.
        data: The workflow data context.
        tasks: Every task instance, live ones first.
        skipped_tasks: Ids of the skipped tasks.
        audit_log: Audit entries in order.
        start_time: When the instance started.
        end_time: When the instance reached a terminal status.
    """

    id: UUID
    definition_id: str
    status: str
    data: dict[str, Any]
    tasks: list[TaskInstanceDTO]
    skipped_tasks: list[str]
    audit_log: list[dict[str, Any]]
    start_time: datetime
    end_time: datetime | None = None

    @classmethod
    def from_instance(cls, instance: WorkflowInstance) -> WorkflowInstanceDetailDTO:
        return cls(
            id=instance.id,
            definition_id=instance.definition_id,
            status=str(instance.status),
            data=instance.data,
            tasks=[
                TaskInstanceDTO.from_task(t)
                for t in (*instance.current_tasks, *instance.completed_tasks, *instance.failed_tasks)
            ],
            skipped_tasks=list(instance.skipped_tasks),
            audit_log=[entry.to_dict() for entry in instance.audit_log],
            start_time=instance.start_time,
            end_time=instance.end_time,
        )
