"""Workflow registry for managing workflow definitions.

This module provides a registry for validating, storing and retrieving
workflow definitions by id.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

import structlog

from litestar_taskflow.core.definition import WorkflowDefinition
from litestar_taskflow.engine.graph import DependencyGraph, validate_definition
from litestar_taskflow.exceptions import WorkflowNotFoundError

__all__ = ["WorkflowRegistry"]

logger = structlog.get_logger()


class WorkflowRegistry:
    """Registry for storing and retrieving workflow definitions.

    Definitions are validated once, on registration, and stored frozen together
    with their dependency graph.

    Attributes:
        _definitions: Mapping of definition id to WorkflowDefinition.
        _graphs: Mapping of definition id to its validated DependencyGraph.
    """

    def __init__(self) -> None:
        """Initialize an empty workflow registry."""
        self._definitions: dict[str, WorkflowDefinition] = {}
        self._graphs: dict[str, DependencyGraph] = {}

    def register(self, definition: WorkflowDefinition | Mapping[str, Any]) -> str:
        """Validate and register a workflow definition.

        A definition without an id gets a fresh UUID string. Registering an id that
        is already known replaces the stored definition; instances already running
        keep the definition they were started from.

        Args:
            definition: The definition, or JSON-like data describing it.

        Returns:
            The id of the registered definition.

        Raises:
            DefinitionError: If the definition is invalid. Nothing is stored.

        Example:
            >>> registry = WorkflowRegistry()
            >>> definition_id = registry.register({"name": "review", "tasks": [...]})
        """
        if not isinstance(definition, WorkflowDefinition):
            definition = WorkflowDefinition.from_dict(definition)

        graph = validate_definition(definition)

        if not definition.id:
            definition = dataclasses.replace(definition, id=str(uuid4()))
            graph = DependencyGraph(definition)

        definition_id = str(definition.id)
        if definition_id in self._definitions:
            logger.warning("workflow_definition_replaced", definition_id=definition_id, name=definition.name)

        self._definitions[definition_id] = definition
        self._graphs[definition_id] = graph
        logger.info("workflow_registered", definition_id=definition_id, name=definition.name, tasks=len(definition.tasks))
        return definition_id

    def get_definition(self, definition_id: str) -> WorkflowDefinition:
        """Retrieve a workflow definition by id.

        Raises:
            WorkflowNotFoundError: If the id is not registered.
        """
        if definition_id not in self._definitions:
            raise WorkflowNotFoundError(definition_id)
        return self._definitions[definition_id]

    def get_graph(self, definition_id: str) -> DependencyGraph:
        """Retrieve the validated dependency graph of a definition.

        Raises:
            WorkflowNotFoundError: If the id is not registered.
        """
        if definition_id not in self._graphs:
            raise WorkflowNotFoundError(definition_id)
        return self._graphs[definition_id]

    def list_definitions(self) -> list[WorkflowDefinition]:
        """List all registered workflow definitions, in registration order."""
        return list(self._definitions.values())

    def has_workflow(self, definition_id: str) -> bool:
        return definition_id in self._definitions

    def unregister(self, definition_id: str) -> None:
        """Remove a workflow definition from the registry.

        Unknown ids are ignored. Running instances are not affected.
        """
        self._definitions.pop(definition_id, None)
        self._graphs.pop(definition_id, None)

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._definitions
