"""Litestar Taskflow - Declarative task orchestration for Litestar.

This package provides an asynchronous engine that executes workflows described as
graphs of typed tasks, with dependency ordering, conditional execution, retries
and pause/resume/cancel control.

Key Features:
    - JSON-friendly workflow definitions validated on registration
    - Parallel execution of independent tasks
    - Conditional skipping, retries and per-task error handling
    - Declarative data transformations and output data mapping
    - Event bus and audit log for every transition
    - Optional SQLAlchemy persistence and a Litestar REST API

Example:
    >>> from litestar_taskflow import LocalExecutionEngine
    >>>
    >>> engine = LocalExecutionEngine()
    >>> definition_id = engine.register_workflow(
    ...     {
    ...         "name": "document_review",
    ...         "tasks": [
    ...             {"id": "extract", "type": "document_processing", "config": {"document": "$document"}},
    ...             {"id": "notify", "type": "notification", "depends_on": ["extract"]},
    ...         ],
    ...     }
    ... )
    >>> instance_id = await engine.start_workflow(definition_id, {"document": {"id": "doc_1"}})
"""

from __future__ import annotations

from litestar_taskflow.__metadata__ import __project__, __version__
from litestar_taskflow.config import EngineConfig
from litestar_taskflow.core import (
    ConditionalExpression,
    ErrorHandling,
    EventBus,
    EventType,
    RetryStrategy,
    TaskDefinition,
    TaskStatus,
    TaskType,
    WorkflowDefinition,
    WorkflowEvent,
    WorkflowInstance,
    WorkflowStatus,
)
from litestar_taskflow.engine import LocalExecutionEngine, WorkflowRegistry
from litestar_taskflow.exceptions import (
    DefinitionError,
    InstanceNotFoundError,
    InvalidStateTransitionError,
    LifecycleError,
    TaskExecutionError,
    TaskflowError,
    UnsupportedTaskTypeError,
    WorkflowNotFoundError,
)
from litestar_taskflow.handlers import HandlerRegistry
from litestar_taskflow.plugin import TaskflowPlugin, TaskflowPluginConfig

__all__ = (
    "ConditionalExpression",
    "DefinitionError",
    "EngineConfig",
    "ErrorHandling",
    "EventBus",
    "EventType",
    "HandlerRegistry",
    "InstanceNotFoundError",
    "InvalidStateTransitionError",
    "LifecycleError",
    "LocalExecutionEngine",
    "RetryStrategy",
    "TaskDefinition",
    "TaskExecutionError",
    "TaskStatus",
    "TaskType",
    "TaskflowError",
    "TaskflowPlugin",
    "TaskflowPluginConfig",
    "UnsupportedTaskTypeError",
    "WorkflowDefinition",
    "WorkflowEvent",
    "WorkflowInstance",
    "WorkflowNotFoundError",
    "WorkflowRegistry",
    "WorkflowStatus",
    "__project__",
    "__version__",
)
