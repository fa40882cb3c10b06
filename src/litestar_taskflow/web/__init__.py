"""Web layer for litestar-taskflow.

This module provides the REST API controllers for registering workflow
definitions and controlling workflow instances. The API is automatically enabled
when using TaskflowPlugin with enable_api=True (the default).

Example:
    Basic usage with TaskflowPlugin (API enabled by default)::

        from litestar import Litestar
        from litestar_taskflow import TaskflowPlugin, TaskflowPluginConfig

        app = Litestar(
            plugins=[
                TaskflowPlugin(
                    config=TaskflowPluginConfig(
                        enable_api=True,  # Default
                        api_path_prefix="/taskflow",
                    )
                ),
            ],
        )

    With authentication guards::

        config = TaskflowPluginConfig(
            api_path_prefix="/api/v1/taskflow",
            api_guards=[require_auth_guard],
        )
"""

from __future__ import annotations

from litestar_taskflow.web.controllers import WorkflowDefinitionController, WorkflowInstanceController
from litestar_taskflow.web.dto import (
    CancelWorkflowDTO,
    StartWorkflowDTO,
    TaskInstanceDTO,
    WorkflowDefinitionDTO,
    WorkflowInstanceDetailDTO,
    WorkflowInstanceDTO,
)
from litestar_taskflow.web.exceptions import status_code_for, taskflow_exception_handler

__all__ = [
    "CancelWorkflowDTO",
    "StartWorkflowDTO",
    "TaskInstanceDTO",
    "WorkflowDefinitionController",
    "WorkflowDefinitionDTO",
    "WorkflowInstanceController",
    "WorkflowInstanceDTO",
    "WorkflowInstanceDetailDTO",
    "status_code_for",
    "taskflow_exception_handler",
]
