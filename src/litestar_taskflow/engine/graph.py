"""Dependency graph operations and validation.

This module provides graph-based operations for workflow definitions,
including structural validation, cycle detection, and dependency navigation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_taskflow.exceptions import DefinitionError

if TYPE_CHECKING:
    from litestar_taskflow.core.definition import WorkflowDefinition

__all__ = ["DependencyGraph", "validate_definition"]


class DependencyGraph:
    """Graph representation of a workflow for navigation and validation.

    Edges point from a task to the tasks that depend on it.

    Attributes:
        definition: The workflow definition this graph represents.
        _dependencies: Mapping of task id to the ids it depends on.
        _dependents: Reverse adjacency, mapping task id to the ids depending on it.
    """

    def __init__(self, definition: WorkflowDefinition) -> None:
        """Initialize a dependency graph from a definition.

        Args:
            definition: The workflow definition to represent as a graph.
        """
        self.definition = definition
        self._dependencies: dict[str, tuple[str, ...]] = {}
        self._dependents: dict[str, list[str]] = {}
        self._build_adjacency()

    def _build_adjacency(self) -> None:
        for task in self.definition.tasks:
            self._dependencies[task.id] = task.depends_on
            self._dependents.setdefault(task.id, [])

        for task in self.definition.tasks:
            for dependency in task.depends_on:
                self._dependents.setdefault(dependency, []).append(task.id)

    def dependencies(self, task_id: str) -> tuple[str, ...]:
        """Get the ids a task depends on."""
        return self._dependencies.get(task_id, ())

    def dependents(self, task_id: str) -> list[str]:
        """Get the ids of the tasks that depend on the given task, in definition order.

        Example:
            >>> graph.dependents("extract")
            ['classify', 'notify']
        """
        return list(self._dependents.get(task_id, []))

    def start_tasks(self) -> list[str]:
        """Get the tasks with no dependencies, in definition order."""
        return [task.id for task in self.definition.tasks if not task.depends_on]

    def validate(self) -> None:
        """Validate the graph structure.

        Checks, in order: the workflow has a name and at least one task, every task
        has an id, ids are unique, every dependency is known, retry strategies and
        output mappings are sane, and there is no cycle.

        Raises:
            DefinitionError: With every problem found by the first failing group
                of checks.
        """
        definition = self.definition
        errors: list[str] = []

        if not definition.name:
            errors.append("Workflow name is required")
        if not definition.tasks:
            errors.append("Workflow must have at least one task")
        if errors:
            raise DefinitionError(errors)

        seen: set[str] = set()
        for index, task in enumerate(definition.tasks):
            if not task.id:
                errors.append(f"Task at position {index} has no id")
            elif task.id in seen:
                errors.append(f"Duplicate task id: '{task.id}'")
            seen.add(task.id)
        if errors:
            raise DefinitionError(errors)

        for task in definition.tasks:
            errors.extend(
                f"Task '{task.id}' depends on unknown task '{dependency}'"
                for dependency in task.depends_on
                if dependency not in seen
            )
            retry = task.retry_strategy
            if retry is not None:
                if retry.max_attempts < 1:
                    errors.append(f"Task '{task.id}' must allow at least one attempt")
                if retry.delay < 0:
                    errors.append(f"Task '{task.id}' has a negative retry delay")
            for target, source in task.output_data_mapping.items():
                if not isinstance(target, str) or not target.strip("."):
                    errors.append(f"Task '{task.id}' has an empty output mapping target")
                elif not isinstance(source, str):
                    errors.append(f"Task '{task.id}' output mapping source for '{target}' must be a path")
        if errors:
            raise DefinitionError(errors)

        cycle = self.find_cycle()
        if cycle:
            raise DefinitionError(f"Dependency cycle detected: {' -> '.join(cycle)}")

    def find_cycle(self) -> list[str] | None:
        """Find one dependency cycle, if any.

        Depth-first traversal keeping the active recursion stack; an edge back into
        the stack closes a cycle.

        Returns:
            The cycle as a list of ids whose first and last element are the same
            task, or None when the graph is acyclic.
        """
        visited: set[str] = set()
        stack: list[str] = []
        on_stack: set[str] = set()

        def visit(task_id: str) -> list[str] | None:
            visited.add(task_id)
            stack.append(task_id)
            on_stack.add(task_id)
            for dependency in self._dependencies.get(task_id, ()):
                if dependency in on_stack:
                    return [*stack[stack.index(dependency) :], dependency]
                if dependency not in visited:
                    cycle = visit(dependency)
                    if cycle:
                        return cycle
            stack.pop()
            on_stack.discard(task_id)
            return None

        for task in self.definition.tasks:
            if task.id not in visited:
                cycle = visit(task.id)
                if cycle:
                    return cycle
        return None

    def topological_order(self) -> list[str]:
        """Order the tasks so that every task comes after its dependencies.

        Ties are broken by definition order.

        Raises:
            DefinitionError: If the graph has a cycle.
        """
        remaining = {task_id: len(deps) for task_id, deps in self._dependencies.items()}
        ready = [task.id for task in self.definition.tasks if remaining[task.id] == 0]
        order: list[str] = []

        while ready:
            current = ready.pop(0)
            order.append(current)
            for dependent in self._dependents.get(current, []):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    ready.append(dependent)

        if len(order) != len(remaining):
            msg = "Dependency cycle detected"
            raise DefinitionError(msg)
        return order


def validate_definition(definition: WorkflowDefinition) -> DependencyGraph:
    """Validate a definition and return its graph.

    Args:
        definition: The workflow definition to validate.

    Returns:
        The validated DependencyGraph.

    Raises:
        DefinitionError: If the definition is invalid.
    """
    graph = DependencyGraph(definition)
    graph.validate()
    return graph
