"""REST API controllers for workflow management.

This module provides two controller classes:
- WorkflowDefinitionController: Register and inspect workflow definitions
- WorkflowInstanceController: Start, monitor, and control workflow executions
"""

from __future__ import annotations

from typing import Any, ClassVar
from uuid import UUID

from litestar import Controller, get, post
from litestar.exceptions import NotFoundException
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK

from litestar_taskflow.core.types import WorkflowStatus
from litestar_taskflow.engine.local import LocalExecutionEngine  # noqa: TC001 - needed for DI
from litestar_taskflow.engine.registry import WorkflowRegistry  # noqa: TC001 - needed for DI
from litestar_taskflow.web.dto import (
    CancelWorkflowDTO,
    StartWorkflowDTO,
    WorkflowDefinitionDTO,
    WorkflowInstanceDetailDTO,
    WorkflowInstanceDTO,
)

__all__ = [
    "WorkflowDefinitionController",
    "WorkflowInstanceController",
]


class WorkflowDefinitionController(Controller):
    """API controller for workflow definitions.

    Tags: Workflow Definitions
    """

    path = "/definitions"
    tags: ClassVar[list[str]] = ["Workflow Definitions"]

    @get("/")
    async def list_definitions(self, taskflow_registry: WorkflowRegistry) -> list[WorkflowDefinitionDTO]:
        """List all registered workflow definitions.

        Args:
            taskflow_registry: Injected workflow registry.

        Returns:
            List of workflow definition DTOs.
        """
        return [
            WorkflowDefinitionDTO.from_definition(definition, taskflow_registry.get_graph(str(definition.id)))
            for definition in taskflow_registry.list_definitions()
        ]

    @get("/{definition_id:str}")
    async def get_definition(self, definition_id: str, taskflow_registry: WorkflowRegistry) -> WorkflowDefinitionDTO:
        """Get a specific workflow definition by id.

        Raises:
            WorkflowNotFoundError: If the definition is not registered (404).
        """
        definition = taskflow_registry.get_definition(definition_id)
        return WorkflowDefinitionDTO.from_definition(definition, taskflow_registry.get_graph(definition_id))

    @post("/")
    async def register_definition(
        self,
        data: dict[str, Any],
        taskflow_engine: LocalExecutionEngine,
    ) -> WorkflowDefinitionDTO:
        """Validate and register a workflow definition.

        Args:
            data: The definition as JSON.
            taskflow_engine: Injected execution engine.

        Returns:
            The registered definition.

        Raises:
            DefinitionError: If the definition is invalid (400).
        """
        definition_id = taskflow_engine.register_workflow(data)
        registry = taskflow_engine.registry
        return WorkflowDefinitionDTO.from_definition(
            registry.get_definition(definition_id),
            registry.get_graph(definition_id),
        )


class WorkflowInstanceController(Controller):
    """API controller for workflow instances.

    Provides endpoints for starting, listing, and controlling workflow executions.

    Tags: Workflow Instances
    """

    path = "/instances"
    tags: ClassVar[list[str]] = ["Workflow Instances"]

    @post("/")
    async def start_workflow(self, data: StartWorkflowDTO, taskflow_engine: LocalExecutionEngine) -> WorkflowInstanceDTO:
        """Start a new workflow instance.

        Args:
            data: Start request with the definition id and initial data.
            taskflow_engine: Injected execution engine.

        Returns:
            The created workflow instance.

        Raises:
            WorkflowNotFoundError: If the definition is not registered (404).
        """
        instance_id = await taskflow_engine.start_workflow(data.definition_id, data.initial_data)
        return await self._summary(instance_id, taskflow_engine)

    @get("/")
    async def list_instances(
        self,
        taskflow_engine: LocalExecutionEngine,
        status: WorkflowStatus | None = Parameter(default=None, description="Filter by instance status"),
        definition_id: str | None = Parameter(default=None, description="Filter by workflow definition id"),
    ) -> list[WorkflowInstanceDTO]:
        """List the workflow instances driven by this application.

        Args:
            taskflow_engine: Injected execution engine.
            status: Optional status filter.
            definition_id: Optional definition filter.

        Returns:
            List of workflow instance DTOs.
        """
        return [
            WorkflowInstanceDTO.from_instance(instance)
            for instance in taskflow_engine.list_instances(status=status)
            if definition_id is None or instance.definition_id == definition_id
        ]

    @get("/{instance_id:uuid}")
    async def get_instance(self, instance_id: UUID, taskflow_engine: LocalExecutionEngine) -> WorkflowInstanceDetailDTO:
        """Get detailed information about a workflow instance.

        Raises:
            NotFoundException: If the instance does not exist.
        """
        instance = await taskflow_engine.get_workflow_instance(instance_id)
        if instance is None:
            raise NotFoundException(detail=f"Workflow instance '{instance_id}' not found")
        return WorkflowInstanceDetailDTO.from_instance(instance)

    @post("/{instance_id:uuid}/pause", status_code=HTTP_200_OK)
    async def pause_instance(self, instance_id: UUID, taskflow_engine: LocalExecutionEngine) -> WorkflowInstanceDTO:
        """Pause a running workflow instance.

        Raises:
            InstanceNotFoundError: If the instance is unknown (404).
            InvalidStateTransitionError: If the instance is not running (409).
        """
        await taskflow_engine.pause_workflow_instance(instance_id)
        return await self._summary(instance_id, taskflow_engine)

    @post("/{instance_id:uuid}/resume", status_code=HTTP_200_OK)
    async def resume_instance(self, instance_id: UUID, taskflow_engine: LocalExecutionEngine) -> WorkflowInstanceDTO:
        """Resume a paused workflow instance.

        Raises:
            InstanceNotFoundError: If the instance is unknown (404).
            InvalidStateTransitionError: If the instance is not paused (409).
        """
        await taskflow_engine.resume_workflow_instance(instance_id)
        return await self._summary(instance_id, taskflow_engine)

    @post("/{instance_id:uuid}/cancel", status_code=HTTP_200_OK)
    async def cancel_instance(
        self,
        instance_id: UUID,
        taskflow_engine: LocalExecutionEngine,
        data: CancelWorkflowDTO | None = None,
    ) -> WorkflowInstanceDTO:
        """Cancel a workflow instance that has not finished.

        Args:
            instance_id: The workflow instance ID.
            taskflow_engine: Injected execution engine.
            data: Optional cancellation details.

        Returns:
            The cancelled workflow instance.

        Raises:
            InstanceNotFoundError: If the instance is unknown (404).
            InvalidStateTransitionError: If the instance already finished (409).
        """
        await taskflow_engine.cancel_workflow_instance(instance_id, reason=data.reason if data else None)
        return await self._summary(instance_id, taskflow_engine)

    @staticmethod
    async def _summary(instance_id: UUID, engine: LocalExecutionEngine) -> WorkflowInstanceDTO:
        instance = await engine.get_workflow_instance(instance_id)
        if instance is None:  # pragma: no cover
            raise NotFoundException(detail=f"Workflow instance '{instance_id}' not found")
        return WorkflowInstanceDTO.from_instance(instance)
