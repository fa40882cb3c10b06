"""Core protocols for litestar-taskflow.

This module defines the Protocol-based interfaces of the collaborators the engine
depends on: task handlers, the services those handlers call, and the instance
repository used for durability. Using Protocol allows duck typing while
maintaining type safety.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from litestar_taskflow.core.models import WorkflowInstance
    from litestar_taskflow.core.types import Context


__all__ = [
    "DocumentProcessor",
    "ExternalApiCaller",
    "InstanceRepository",
    "NotificationSender",
    "TaskHandler",
]


@runtime_checkable
class TaskHandler(Protocol):
    """Protocol defining the interface for task handlers.

    A handler performs the actual work for one task type. The engine only looks
    at the outcome: a returned value is a success, a raised exception a failure.

    Attributes:
        task_type: The task type tag this handler serves.

    Example:
        >>> class EchoHandler:
        ...     task_type = "echo"
        ...
        ...     async def handle(self, config, data):
        ...         return {"echo": config.get("message")}
    """

    task_type: str

    async def handle(self, config: Mapping[str, Any], data: Context) -> Any:
        """Execute one attempt of a task.

        Args:
            config: The task's handler-specific configuration.
            data: The workflow instance's data context. Handlers should treat it
                as read-only; results re-enter the context through the task's
                output data mapping.

        Returns:
            The task result.
        """
        ...


@runtime_checkable
class NotificationSender(Protocol):
    """Sends a templated notification to a list of recipients."""

    async def send(self, template_id: str | None, recipients: list[Any], data: Mapping[str, Any]) -> Any:
        """Send the notification.

        Args:
            template_id: Identifier of the notification template.
            recipients: Resolved recipients.
            data: Template data.
        """
        ...


@runtime_checkable
class ExternalApiCaller(Protocol):
    """Calls an external HTTP API."""

    async def call(
        self,
        endpoint: str,
        method: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> Any:
        """Perform the request.

        Args:
            endpoint: Absolute URL to call.
            method: HTTP method.
            headers: Request headers.
            body: JSON-compatible request body, if any.

        Returns:
            The response representation.
        """
        ...


@runtime_checkable
class DocumentProcessor(Protocol):
    """Processes a document referenced from the workflow data."""

    async def process(self, document: Any, options: Mapping[str, Any]) -> Any:
        """Process the document and return a JSON-compatible result."""
        ...


@runtime_checkable
class InstanceRepository(Protocol):
    """Durable storage for workflow instances, injected by the host application."""

    async def save_instance(self, instance: WorkflowInstance) -> None:
        """Persist the current state of an instance."""
        ...

    async def load_instance(self, instance_id: UUID) -> WorkflowInstance | None:
        """Load an instance, or return None when it is not stored."""
        ...
