"""Litestar plugin for taskflow integration.

This module provides the TaskflowPlugin for seamless integration of
litestar-taskflow with Litestar applications.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_taskflow.engine.local import LocalExecutionEngine
from litestar_taskflow.engine.registry import WorkflowRegistry
from litestar_taskflow.handlers.registry import HandlerRegistry

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from litestar_taskflow.config import EngineConfig
    from litestar_taskflow.core.definition import WorkflowDefinition
    from litestar_taskflow.core.protocols import InstanceRepository

__all__ = ["TaskflowPlugin", "TaskflowPluginConfig"]


@dataclass
class TaskflowPluginConfig:
    """Configuration for the TaskflowPlugin.

    Attributes:
        registry: Optional pre-configured WorkflowRegistry. If not provided,
            a new one will be created.
        handlers: Optional pre-configured HandlerRegistry. If not provided, the
            built-in handlers are used.
        engine: Optional pre-configured LocalExecutionEngine. If not provided,
            one will be created from the registries, persistence and engine config.
        persistence: Optional instance repository for a created engine.
        engine_config: Optional EngineConfig for a created engine.
        auto_register_definitions: Workflow definitions (or JSON-like mappings) to
            register on app startup.
        dependency_key_registry: The key used for dependency injection of
            the WorkflowRegistry. Defaults to "taskflow_registry".
        dependency_key_engine: The key used for dependency injection of
            the execution engine. Defaults to "taskflow_engine".
        dependency_key_handlers: The key used for dependency injection of
            the HandlerRegistry. Defaults to "taskflow_handlers".
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all taskflow API endpoints.
            Defaults to "/taskflow".
        api_guards: List of Litestar guards to apply to all taskflow API endpoints.
        api_tags: OpenAPI tags to apply to taskflow API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    registry: WorkflowRegistry | None = None
    handlers: HandlerRegistry | None = None
    engine: LocalExecutionEngine | None = None
    persistence: InstanceRepository | None = None
    engine_config: EngineConfig | None = None
    auto_register_definitions: list[WorkflowDefinition | Mapping[str, Any]] = field(default_factory=list)
    dependency_key_registry: str = "taskflow_registry"
    dependency_key_engine: str = "taskflow_engine"
    dependency_key_handlers: str = "taskflow_handlers"
    enable_api: bool = True
    api_path_prefix: str = "/taskflow"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Taskflow"])
    include_api_in_schema: bool = True


class TaskflowPlugin(InitPluginProtocol):
    """Litestar plugin for task orchestration.

    This plugin integrates litestar-taskflow with a Litestar application,
    providing dependency injection for the WorkflowRegistry, HandlerRegistry and
    execution engine, and mounting the REST API.

    Example:
        Basic usage with auto-registration::

            from litestar import Litestar
            from litestar_taskflow import TaskflowPlugin, TaskflowPluginConfig

            review = {
                "id": "document_review",
                "name": "Document review",
                "tasks": [
                    {"id": "extract", "type": "document_processing", "config": {"document": "$document"}},
                    {"id": "notify", "type": "notification", "depends_on": ["extract"]},
                ],
            }

            app = Litestar(plugins=[TaskflowPlugin(config=TaskflowPluginConfig(auto_register_definitions=[review]))])

        Using in a route handler::

            @post("/documents/{document_id:str}/review")
            async def review_document(document_id: str, taskflow_engine: LocalExecutionEngine) -> dict:
                instance_id = await taskflow_engine.start_workflow("document_review", {"document": {"id": document_id}})
                return {"instance_id": str(instance_id)}
    """

    __slots__ = ("_config", "_engine", "_handlers", "_registry")

    def __init__(self, config: TaskflowPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or TaskflowPluginConfig()
        self._registry: WorkflowRegistry | None = None
        self._handlers: HandlerRegistry | None = None
        self._engine: LocalExecutionEngine | None = None

    @property
    def registry(self) -> WorkflowRegistry:
        """Get the workflow registry.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._registry is None:
            msg = "TaskflowPlugin has not been initialized. Access registry after app startup."
            raise RuntimeError(msg)
        return self._registry

    @property
    def handlers(self) -> HandlerRegistry:
        """Get the handler registry.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._handlers is None:
            msg = "TaskflowPlugin has not been initialized. Access handlers after app startup."
            raise RuntimeError(msg)
        return self._handlers

    @property
    def engine(self) -> LocalExecutionEngine:
        """Get the execution engine.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._engine is None:
            msg = "TaskflowPlugin has not been initialized. Access engine after app startup."
            raise RuntimeError(msg)
        return self._engine

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Creates or uses the provided registries and engine
        2. Registers any auto_register_definitions
        3. Adds dependency providers to the app config
        4. Shuts the engine down with the app
        5. Optionally registers REST API controllers if enable_api=True

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config
        if config.engine is not None:
            self._engine = config.engine
            self._registry = config.engine.registry
            self._handlers = config.engine.handlers
        else:
            self._registry = config.registry or WorkflowRegistry()
            self._handlers = config.handlers or HandlerRegistry.with_defaults()
            self._engine = LocalExecutionEngine(
                registry=self._registry,
                handlers=self._handlers,
                persistence=config.persistence,
                config=config.engine_config,
            )

        for definition in config.auto_register_definitions:
            self._registry.register(definition)

        def provide_registry() -> WorkflowRegistry:
            return self._registry  # type: ignore[return-value]

        def provide_handlers() -> HandlerRegistry:
            return self._handlers  # type: ignore[return-value]

        def provide_engine() -> LocalExecutionEngine:
            return self._engine  # type: ignore[return-value]

        app_config.dependencies[config.dependency_key_registry] = Provide(provide_registry, sync_to_thread=False)
        app_config.dependencies[config.dependency_key_handlers] = Provide(provide_handlers, sync_to_thread=False)
        app_config.dependencies[config.dependency_key_engine] = Provide(provide_engine, sync_to_thread=False)

        app_config.on_shutdown.append(self._shutdown_engine)

        if config.enable_api:
            from litestar import Router

            from litestar_taskflow.exceptions import TaskflowError
            from litestar_taskflow.web.controllers import WorkflowDefinitionController, WorkflowInstanceController
            from litestar_taskflow.web.exceptions import taskflow_exception_handler

            taskflow_router = Router(
                path=config.api_path_prefix,
                route_handlers=[WorkflowDefinitionController, WorkflowInstanceController],
                guards=config.api_guards,
                tags=config.api_tags,
                include_in_schema=config.include_api_in_schema,
            )
            app_config.route_handlers.append(taskflow_router)
            app_config.exception_handlers[TaskflowError] = taskflow_exception_handler  # type: ignore[assignment]

        return app_config

    async def _shutdown_engine(self) -> None:
        if self._engine is not None:
            await self._engine.shutdown()
