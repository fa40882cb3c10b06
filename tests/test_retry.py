"""Tests for retry and error handling policies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import pytest

from litestar_taskflow.core.types import EventType, TaskStatus, WorkflowStatus

if TYPE_CHECKING:
    from litestar_taskflow.core.definition import WorkflowDefinition
    from litestar_taskflow.core.events import WorkflowEvent
    from litestar_taskflow.engine.local import LocalExecutionEngine
    from litestar_taskflow.handlers.registry import HandlerRegistry

MakeDefinition = Callable[..., "WorkflowDefinition"]


def names(events: list[WorkflowEvent], task_id: str | None = None) -> list[str]:
    return [str(e.event_type) for e in events if task_id is None or e.task_id == task_id]


@pytest.mark.unit
@pytest.mark.asyncio
class TestRetry:
    """Tests for retry scheduling."""

    async def test_succeeds_on_third_attempt(
        self,
        engine: LocalExecutionEngine,
        handler_registry: HandlerRegistry,
        events: list[WorkflowEvent],
        make_definition: MakeDefinition,
    ) -> None:
        """Test a task failing twice with three attempts allowed completes."""
        from tests.conftest import RecordingHandler

        flaky = RecordingHandler("flaky", result={"ok": True}, fail_times=2)
        handler_registry.register(flaky)
        engine.register_workflow(
            make_definition({"id": "x", "type": "flaky", "retry_strategy": {"max_attempts": 3, "delay": 0}})
        )

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.COMPLETED
        task = instance.completed_tasks[0]
        assert task.attempts == 3
        assert task.result == {"ok": True}
        assert len(flaky.calls) == 3
        assert names(events, "x") == [
            "task_queued",
            "task_started",
            "task_error",
            "task_retry_scheduled",
            "task_started",
            "task_error",
            "task_retry_scheduled",
            "task_started",
            "task_completed",
        ]
        scheduled = [e.data for e in events if e.event_type == EventType.TASK_RETRY_SCHEDULED]
        assert [(d["attempt"], d["next_attempt"], d["delay"]) for d in scheduled] == [(1, 2, 0.0), (2, 3, 0.0)]
        assert [e.data["attempt"] for e in events if e.event_type == EventType.TASK_ERROR] == [1, 2]

    async def test_exhausted_retries_fail_workflow(
        self,
        engine: LocalExecutionEngine,
        handler_registry: HandlerRegistry,
        events: list[WorkflowEvent],
        make_definition: MakeDefinition,
    ) -> None:
        """Test a task with ``fail`` handling fails the instance once retries run out."""
        from tests.conftest import RecordingHandler

        broken = RecordingHandler("broken", fail_times=10, error=ValueError("scanner offline"))
        handler_registry.register(broken)
        engine.register_workflow(
            make_definition(
                {"id": "scan", "type": "broken", "retry_strategy": {"max_attempts": 2}},
                {"id": "notify", "type": "echo", "depends_on": ["scan"]},
            )
        )

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.FAILED
        assert instance.end_time is not None
        assert len(broken.calls) == 2
        failed = instance.failed_tasks[0]
        assert failed.status == TaskStatus.FAILED
        assert failed.attempts == 2
        assert failed.error is not None
        assert failed.error.message == "scanner offline"
        assert failed.error.error_type == "ValueError"
        assert "ValueError: scanner offline" in (failed.error.stack or "")
        assert instance.find_task("notify") is None
        assert names(events)[-2:] == ["task_failed", "workflow_failed"]
        assert events[-1].data["failed_task"] == "scan"
        assert events[-1].data["error"]["message"] == "scanner offline"

    async def test_continue_unblocks_dependents(
        self,
        engine: LocalExecutionEngine,
        handler_registry: HandlerRegistry,
        make_definition: MakeDefinition,
    ) -> None:
        """Test a task with ``continue`` handling settles its dependents and the instance completes."""
        from tests.conftest import RecordingHandler

        handler_registry.register(RecordingHandler("broken", fail_times=10))
        engine.register_workflow(
            make_definition(
                {"id": "enrich", "type": "broken", "error_handling": "continue"},
                {"id": "notify", "type": "echo", "depends_on": ["enrich"]},
            )
        )

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.COMPLETED
        assert [t.id for t in instance.failed_tasks] == ["enrich"]
        assert [t.id for t in instance.completed_tasks] == ["notify"]

    async def test_unsupported_task_type_fails_task(
        self,
        engine: LocalExecutionEngine,
        make_definition: MakeDefinition,
    ) -> None:
        """Test a task type without handler is a task failure, not a raised error."""
        engine.register_workflow(make_definition({"id": "ocr", "type": "ocr"}))

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.FAILED
        error = instance.failed_tasks[0].error
        assert error is not None
        assert error.error_type == "UnsupportedTaskTypeError"
        assert "Unsupported task type" in error.message

    async def test_failure_cancels_other_retry_timers(
        self,
        engine: LocalExecutionEngine,
        handler_registry: HandlerRegistry,
        make_definition: MakeDefinition,
    ) -> None:
        """Test a failed instance does not retry its other tasks."""
        from tests.conftest import RecordingHandler

        slow_retry = RecordingHandler("slow_retry", fail_times=1)
        handler_registry.register(slow_retry)
        handler_registry.register(RecordingHandler("broken", fail_times=10))
        engine.register_workflow(
            make_definition(
                {"id": "a", "type": "slow_retry", "retry_strategy": {"max_attempts": 2, "delay": 30}},
                {"id": "b", "type": "broken"},
            )
        )

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.FAILED
        assert len(slow_retry.calls) == 1
        assert instance.get_current_task("a") is not None

    async def test_transformation_error_is_task_failure(
        self,
        engine: LocalExecutionEngine,
        handler_registry: HandlerRegistry,
        make_definition: MakeDefinition,
    ) -> None:
        """Test a transformation error is routed through the retry policy."""
        from litestar_taskflow.handlers.transformation import DataTransformationHandler

        handler_registry.register(DataTransformationHandler())
        engine.register_workflow(
            make_definition(
                {
                    "id": "total",
                    "type": "data_transformation",
                    "config": {"transformations": [{"type": "reduce", "source": "$amounts", "operation": "sum"}]},
                    "retry_strategy": {"max_attempts": 2},
                }
            )
        )

        instance = await engine.wait_for_instance(await engine.start_workflow("test", {"amounts": "12"}), timeout=1)

        assert instance.status == WorkflowStatus.FAILED
        failed = instance.failed_tasks[0]
        assert failed.attempts == 2
        assert failed.error is not None
        assert "array source" in failed.error.message


@pytest.mark.unit
@pytest.mark.asyncio
class TestEngineDefaults:
    """Tests for engine-level defaults."""

    async def test_default_retry_strategy(self, handler_registry: HandlerRegistry, make_definition: MakeDefinition) -> None:
        """Test tasks without a retry strategy use the configured default."""
        from litestar_taskflow.config import EngineConfig
        from litestar_taskflow.core.definition import RetryStrategy
        from litestar_taskflow.engine.local import LocalExecutionEngine
        from tests.conftest import RecordingHandler

        flaky = RecordingHandler("flaky", fail_times=1)
        handler_registry.register(flaky)
        engine = LocalExecutionEngine(
            handlers=handler_registry,
            config=EngineConfig(default_retry_strategy=RetryStrategy(max_attempts=2)),
        )
        engine.register_workflow(make_definition({"id": "a", "type": "flaky"}))

        instance = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)

        assert instance.status == WorkflowStatus.COMPLETED
        assert instance.completed_tasks[0].attempts == 2

    async def test_default_error_handling(self, handler_registry: HandlerRegistry, make_definition: MakeDefinition) -> None:
        """Test the configured default error handling applies unless a task overrides it."""
        from litestar_taskflow.config import EngineConfig
        from litestar_taskflow.core.types import ErrorHandling
        from litestar_taskflow.engine.local import LocalExecutionEngine
        from tests.conftest import RecordingHandler

        handler_registry.register(RecordingHandler("broken", fail_times=10))
        engine = LocalExecutionEngine(
            handlers=handler_registry,
            config=EngineConfig(default_error_handling=ErrorHandling.CONTINUE),
        )
        tasks: list[dict[str, Any]] = [
            {"id": "optional", "type": "broken"},
            {"id": "next", "type": "echo", "depends_on": ["optional"]},
        ]
        engine.register_workflow(make_definition(*tasks))
        engine.register_workflow(make_definition({**tasks[0], "error_handling": "fail"}, tasks[1], id="strict"))

        lenient = await engine.wait_for_instance(await engine.start_workflow("test"), timeout=1)
        strict = await engine.wait_for_instance(await engine.start_workflow("strict"), timeout=1)

        assert lenient.status == WorkflowStatus.COMPLETED
        assert strict.status == WorkflowStatus.FAILED
