"""Core domain module for litestar-taskflow.

This module exports the fundamental building blocks of the engine: types,
definitions, runtime models, events and collaborator protocols.
"""

from __future__ import annotations

from litestar_taskflow.core.definition import (
    ConditionalExpression,
    RetryStrategy,
    TaskDefinition,
    WorkflowDefinition,
)
from litestar_taskflow.core.events import EventBus, EventListener, WorkflowEvent
from litestar_taskflow.core.models import AuditEntry, TaskError, TaskInstance, WorkflowInstance
from litestar_taskflow.core.protocols import (
    DocumentProcessor,
    ExternalApiCaller,
    InstanceRepository,
    NotificationSender,
    TaskHandler,
)
from litestar_taskflow.core.types import (
    UNDEFINED,
    ConditionOperator,
    Context,
    ErrorHandling,
    EventType,
    TaskStatus,
    TaskType,
    WorkflowStatus,
)

__all__ = [
    "UNDEFINED",
    "AuditEntry",
    "ConditionOperator",
    "ConditionalExpression",
    "Context",
    "DocumentProcessor",
    "ErrorHandling",
    "EventBus",
    "EventListener",
    "EventType",
    "ExternalApiCaller",
    "InstanceRepository",
    "NotificationSender",
    "RetryStrategy",
    "TaskDefinition",
    "TaskError",
    "TaskHandler",
    "TaskInstance",
    "TaskStatus",
    "TaskType",
    "WorkflowDefinition",
    "WorkflowEvent",
    "WorkflowInstance",
    "WorkflowStatus",
]
