"""Shared test fixtures for litestar-taskflow test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable

import pytest

if TYPE_CHECKING:
    from litestar_taskflow.core.definition import WorkflowDefinition
    from litestar_taskflow.core.events import WorkflowEvent
    from litestar_taskflow.engine.local import LocalExecutionEngine
    from litestar_taskflow.handlers.registry import HandlerRegistry


class RecordingHandler:
    """Handler returning a canned result and recording every call.

    Args:
        task_type: Task type tag to serve.
        result: Value returned on success. Callables receive ``(config, data)``.
        fail_times: Number of leading calls that raise.
        error: Exception raised by failing calls.
    """

    def __init__(
        self,
        task_type: str,
        result: Any = None,
        fail_times: int = 0,
        error: Exception | None = None,
    ) -> None:
        self.task_type = task_type
        self.result = result
        self.fail_times = fail_times
        self.error = error
        self.calls: list[tuple[dict[str, Any], dict[str, Any]]] = []

    async def handle(self, config: Mapping[str, Any], data: dict[str, Any]) -> Any:
        self.calls.append((dict(config), dict(data)))
        if len(self.calls) <= self.fail_times:
            raise self.error or RuntimeError(f"{self.task_type} attempt {len(self.calls)} failed")
        if callable(self.result):
            return self.result(config, data)
        return self.result


class GatedHandler:
    """Handler that blocks until released, for lifecycle tests."""

    def __init__(self, task_type: str, result: Any = None) -> None:
        self.task_type = task_type
        self.result = result
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0
        self.cancelled = False

    async def handle(self, config: Mapping[str, Any], data: dict[str, Any]) -> Any:
        self.calls += 1
        self.started.set()
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return self.result


@pytest.fixture
def handler_registry() -> HandlerRegistry:
    """Handler registry with an ``echo`` type returning its config.

    Returns:
        HandlerRegistry instance
    """
    from litestar_taskflow.handlers.registry import HandlerRegistry

    registry = HandlerRegistry()
    registry.register_function("echo", lambda config, data: {"echo": dict(config)})
    return registry


@pytest.fixture
def engine(handler_registry: HandlerRegistry) -> LocalExecutionEngine:
    """Create a local execution engine for testing.

    Args:
        handler_registry: Handler registry fixture

    Returns:
        LocalExecutionEngine instance
    """
    from litestar_taskflow.engine.local import LocalExecutionEngine

    return LocalExecutionEngine(handlers=handler_registry)


@pytest.fixture
def events(engine: LocalExecutionEngine) -> list[WorkflowEvent]:
    """Record every event published by the engine, in order."""
    recorded: list[WorkflowEvent] = []
    engine.event_bus.subscribe(recorded.append)
    return recorded


@pytest.fixture
def make_definition() -> Callable[..., WorkflowDefinition]:
    """Factory building a definition from task mappings.

    Example:
        >>> make_definition({"id": "a", "type": "echo"}, {"id": "b", "type": "echo", "depends_on": ["a"]})
    """
    from litestar_taskflow.core.definition import WorkflowDefinition

    def _make(*tasks: Mapping[str, Any], name: str = "test_workflow", id: str | None = "test") -> WorkflowDefinition:
        return WorkflowDefinition.from_dict({"id": id, "name": name, "tasks": list(tasks)})

    return _make


@pytest.fixture
def review_definition() -> dict[str, Any]:
    """A document review workflow using the built-in task types."""
    return {
        "id": "document_review",
        "name": "Document review",
        "description": "Process a document, score it and notify the reviewers",
        "tasks": [
            {
                "id": "extract",
                "type": "document_processing",
                "config": {"document": "$document"},
                "output_data_mapping": {"extracted": "document"},
            },
            {
                "id": "score",
                "type": "data_transformation",
                "depends_on": ["extract"],
                "config": {
                    "transformations": [
                        {"type": "reduce", "source": "$document.scores", "target": "total", "operation": "sum"},
                    ]
                },
                "output_data_mapping": {"review.total": "total"},
            },
            {
                "id": "escalate",
                "type": "notification",
                "depends_on": ["score"],
                "conditions": [{"left": "$review.total", "operator": "lt", "right": 10}],
                "config": {"template_id": "low_score", "recipients": ["$document.owner"]},
            },
            {
                "id": "notify",
                "type": "notification",
                "depends_on": ["score", "escalate"],
                "config": {
                    "template_id": "review_done",
                    "recipients": ["$document.owner", "reviewers@example.com"],
                    "data_mapping": {"total": "$review.total"},
                },
            },
        ],
    }


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
