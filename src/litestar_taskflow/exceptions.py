"""Exception hierarchy for litestar-taskflow."""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "DefinitionError",
    "InstanceNotFoundError",
    "InvalidStateTransitionError",
    "LifecycleError",
    "TaskExecutionError",
    "TaskflowError",
    "UnsupportedTaskTypeError",
    "WorkflowNotFoundError",
)


class TaskflowError(Exception):
    """Base exception for all litestar-taskflow errors.

    All exceptions raised by litestar-taskflow inherit from this class, so callers
    can catch every engine-related error with a single except clause.
    """


class DefinitionError(TaskflowError):
    """Raised when a workflow definition fails validation.

    Raised synchronously from ``register_workflow``; a rejected definition is
    never stored and can therefore never produce an instance.

    Attributes:
        errors: List of validation error messages.
    """

    def __init__(self, errors: list[str] | str) -> None:
        """Initialize the exception with validation errors.

        Args:
            errors: One message or a list of validation error messages.
        """
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__(f"Invalid workflow definition: {'; '.join(self.errors)}")


class WorkflowNotFoundError(TaskflowError):
    """Raised when a workflow definition id is not registered.

    Attributes:
        definition_id: The id that was looked up.
    """

    def __init__(self, definition_id: str) -> None:
        """Initialize the exception with the missing definition id.

        Args:
            definition_id: The id that was looked up.
        """
        self.definition_id = definition_id
        super().__init__(f"Workflow definition '{definition_id}' not found")


class InstanceNotFoundError(TaskflowError):
    """Raised when a workflow instance is not known to the engine.

    Attributes:
        instance_id: The ID of the workflow instance that was not found.
    """

    def __init__(self, instance_id: str | UUID) -> None:
        """Initialize the exception with instance details.

        Args:
            instance_id: The ID of the workflow instance that was not found.
        """
        self.instance_id = instance_id
        super().__init__(f"Workflow instance '{instance_id}' not found")


class LifecycleError(TaskflowError):
    """Base exception for pause/resume/cancel failures."""


class InvalidStateTransitionError(LifecycleError):
    """Raised when a lifecycle call is made from an incompatible status.

    Attributes:
        instance_id: The ID of the workflow instance.
        status: The status the instance was in.
        action: The lifecycle action that was attempted.
    """

    def __init__(self, instance_id: str | UUID, status: str, action: str) -> None:
        """Initialize the exception with transition details.

        Args:
            instance_id: The ID of the workflow instance.
            status: The status the instance was in.
            action: The lifecycle action that was attempted.
        """
        self.instance_id = instance_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} workflow instance '{instance_id}' in status '{status}'")


class UnsupportedTaskTypeError(TaskflowError):
    """Raised when no handler is registered for a task type.

    Attributes:
        task_type: The task type without a handler.
    """

    def __init__(self, task_type: str) -> None:
        """Initialize the exception with the unknown task type.

        Args:
            task_type: The task type without a handler.
        """
        self.task_type = task_type
        super().__init__(f"Unsupported task type: '{task_type}'")


class TaskExecutionError(TaskflowError):
    """Raised when a task handler or a data transformation fails.

    This wraps the underlying exception that caused the failure, keeping its
    message and stack so they can be recorded on the task instance.

    Attributes:
        message: Human-readable failure message.
        task_id: The task that failed, when known.
        cause: The underlying exception, if any.
        stack: Formatted traceback of the underlying exception, if any.
        timestamp: When the error was created.
    """

    def __init__(self, message: str, task_id: str | None = None, cause: BaseException | None = None) -> None:
        """Initialize the exception with execution details.

        Args:
            message: Human-readable failure message.
            task_id: The task that failed, when known.
            cause: The underlying exception, if any.
        """
        self.message = message
        self.task_id = task_id
        self.cause = cause
        self.stack = "".join(traceback.format_exception(cause)) if cause is not None else None
        self.timestamp = datetime.now(timezone.utc)
        msg = f"Task '{task_id}' failed: {message}" if task_id else message
        super().__init__(msg)

    @classmethod
    def wrap(cls, error: BaseException, task_id: str | None = None) -> TaskExecutionError:
        """Wrap an arbitrary exception, keeping an existing TaskExecutionError as is.

        Args:
            error: The exception raised by a handler.
            task_id: The task that was executing.

        Returns:
            A TaskExecutionError carrying the original message and stack.
        """
        if isinstance(error, TaskExecutionError):
            if error.task_id is None:
                error.task_id = task_id
            return error
        return cls(str(error) or type(error).__name__, task_id=task_id, cause=error)
