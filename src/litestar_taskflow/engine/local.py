"""Local in-memory async execution engine.

This module provides the in-process scheduler that drives workflow instances. It
queues tasks whose dependencies are settled, dispatches them to their handlers as
asyncio tasks, applies the retry and error handling policies, and implements the
pause/resume/cancel lifecycle.

All bookkeeping of an instance happens between ``await`` points, so it is atomic
with respect to the other tasks of the same instance.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import structlog

from litestar_taskflow.config import EngineConfig
from litestar_taskflow.core.events import EventBus, WorkflowEvent
from litestar_taskflow.core.models import AuditEntry, TaskError, TaskInstance, WorkflowInstance, detach
from litestar_taskflow.core.types import ErrorHandling, EventType, TaskStatus, WorkflowStatus
from litestar_taskflow.engine.registry import WorkflowRegistry
from litestar_taskflow.engine.timers import DelayQueue
from litestar_taskflow.exceptions import InstanceNotFoundError, InvalidStateTransitionError, TaskExecutionError
from litestar_taskflow.expressions.conditions import evaluate_conditions
from litestar_taskflow.expressions.transforms import apply_output_data_mapping
from litestar_taskflow.handlers.registry import HandlerRegistry

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.definition import RetryStrategy, TaskDefinition, WorkflowDefinition
    from litestar_taskflow.core.protocols import InstanceRepository
    from litestar_taskflow.engine.graph import DependencyGraph

__all__ = ["LocalExecutionEngine"]

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Execution:
    """Bookkeeping kept beside each instance the engine drives."""

    definition: WorkflowDefinition
    graph: DependencyGraph
    in_flight: dict[str, asyncio.Task[None]] = field(default_factory=dict)
    saves: set[asyncio.Task[None]] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class LocalExecutionEngine:
    """In-memory async execution engine for workflows.

    This engine executes workflows in the same process using asyncio tasks. It is
    suitable for development, testing, and single-instance deployments where
    distributed execution is not required.

    Attributes:
        registry: The workflow registry for looking up definitions.
        handlers: The handler registry used to execute tasks by type.
        persistence: Optional repository the instances are saved to.
        event_bus: Event bus every transition is published on.
        config: Engine defaults and limits.
        _instances: In-memory storage of workflow instances.
        _executions: Per-instance definition, graph and in-flight asyncio tasks.
        _timers: Pending retry timers.

    Example:
        >>> engine = LocalExecutionEngine()
        >>> definition_id = engine.register_workflow(definition)
        >>> instance_id = await engine.start_workflow(definition_id, {"document": {...}})
        >>> instance = await engine.wait_for_instance(instance_id)
    """

    def __init__(
        self,
        registry: WorkflowRegistry | None = None,
        handlers: HandlerRegistry | None = None,
        persistence: InstanceRepository | None = None,
        event_bus: EventBus | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the local execution engine.

        Args:
            registry: The workflow registry. A new one is created when omitted.
            handlers: The handler registry. Defaults to the built-in handlers.
            persistence: Optional repository implementing save/load methods.
            event_bus: Event bus to publish on. A new one is created when omitted.
            config: Engine configuration.
        """
        self.registry = registry if registry is not None else WorkflowRegistry()
        self.handlers = handlers if handlers is not None else HandlerRegistry.with_defaults()
        self.persistence = persistence
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self.config = config or EngineConfig()
        self._instances: dict[UUID, WorkflowInstance] = {}
        self._executions: dict[UUID, _Execution] = {}
        self._timers = DelayQueue()

    # Public API

    def register_workflow(self, definition: WorkflowDefinition | Mapping[str, Any]) -> str:
        """Validate and register a workflow definition.

        Raises:
            DefinitionError: If the definition is invalid.
        """
        return self.registry.register(definition)

    async def start_workflow(self, definition_id: str, initial_data: Mapping[str, Any] | None = None) -> UUID:
        """Start a new workflow instance.

        The instance data is a deep copy of ``initial_data``. Every task without
        dependencies is queued before this method returns; execution then
        continues as asyncio tasks on the running loop.

        Args:
            definition_id: Id of a registered definition.
            initial_data: Optional initial data for the workflow context.

        Returns:
            The id of the new instance.

        Raises:
            WorkflowNotFoundError: If the definition is not registered.

        Example:
            >>> instance_id = await engine.start_workflow("document_review", {"document_id": "doc_123"})
        """
        definition = self.registry.get_definition(definition_id)
        graph = self.registry.get_graph(definition_id)

        instance = WorkflowInstance(
            id=uuid4(),
            definition_id=definition_id,
            data=detach(dict(initial_data or {})),
        )
        self._instances[instance.id] = instance
        self._executions[instance.id] = _Execution(definition=definition, graph=graph)

        self._log(instance).info("workflow_started", name=definition.name)
        self._emit(instance, EventType.WORKFLOW_STARTED, name=definition.name)

        for task_id in graph.start_tasks():
            self._queue_task(instance, task_id)
        # every start task may have been skipped
        self._check_completion(instance)

        await self._flush(instance)
        return instance.id

    async def pause_workflow_instance(self, instance_id: UUID | str) -> None:
        """Stop dispatching new tasks of a running instance.

        Tasks already running are not interrupted.

        Raises:
            InstanceNotFoundError: If the instance is unknown.
            InvalidStateTransitionError: If the instance is not running.
        """
        instance = self._require(instance_id)
        if instance.status != WorkflowStatus.RUNNING:
            raise InvalidStateTransitionError(instance.id, instance.status, "pause")

        instance.status = WorkflowStatus.PAUSED
        self._log(instance).info("workflow_paused")
        self._emit(instance, EventType.WORKFLOW_PAUSED)
        await self._flush(instance)

    async def resume_workflow_instance(self, instance_id: UUID | str) -> None:
        """Resume a paused instance.

        Tasks held in the queue while paused are dispatched, then the instance
        completes if nothing is left to run.

        Raises:
            InstanceNotFoundError: If the instance is unknown.
            InvalidStateTransitionError: If the instance is not paused.
        """
        instance = self._require(instance_id)
        if instance.status != WorkflowStatus.PAUSED:
            raise InvalidStateTransitionError(instance.id, instance.status, "resume")

        instance.status = WorkflowStatus.RUNNING
        self._log(instance).info("workflow_resumed")
        self._emit(instance, EventType.WORKFLOW_RESUMED)

        for task in list(instance.current_tasks):
            if task.status == TaskStatus.QUEUED:
                self._dispatch(instance, task)
        self._check_completion(instance)
        await self._flush(instance)

    async def cancel_workflow_instance(self, instance_id: UUID | str, reason: str | None = None) -> None:
        """Cancel a workflow instance that has not finished.

        Every live task is marked cancelled, in-flight handler calls are cancelled
        and pending retry timers are dropped.

        Args:
            instance_id: The workflow instance ID.
            reason: Optional reason recorded with the event.

        Raises:
            InstanceNotFoundError: If the instance is unknown.
            InvalidStateTransitionError: If the instance is already terminal.
        """
        instance = self._require(instance_id)
        if instance.is_terminal:
            raise InvalidStateTransitionError(instance.id, instance.status, "cancel")

        now = _utcnow()
        instance.status = WorkflowStatus.CANCELLED
        instance.end_time = now
        for task in instance.current_tasks:
            task.status = TaskStatus.CANCELLED
            task.end_time = now
            self._emit(instance, EventType.TASK_CANCELLED, task=task)

        execution = self._executions[instance.id]
        current = asyncio.current_task()
        for runner in list(execution.in_flight.values()):
            if runner is not current:
                runner.cancel()
        self._timers.cancel_all(instance.id)

        self._log(instance).info("workflow_cancelled", reason=reason)
        self._emit(instance, EventType.WORKFLOW_CANCELLED, reason=reason)
        await self._flush(instance)

    async def get_workflow_instance(self, instance_id: UUID | str) -> WorkflowInstance | None:
        """Get a snapshot of an instance.

        Instances unknown to this engine are looked up in the repository.

        Returns:
            A deep copy of the instance, or None if it does not exist.
        """
        key = self._key(instance_id)
        if key is None:
            return None
        instance = self._instances.get(key)
        if instance is not None:
            return instance.snapshot()
        if self.persistence is not None:
            return await self.persistence.load_instance(key)
        return None

    def list_instances(self, status: WorkflowStatus | str | None = None) -> list[WorkflowInstance]:
        """List snapshots of the instances driven by this engine.

        Args:
            status: Only return instances in this status.
        """
        return [
            instance.snapshot()
            for instance in self._instances.values()
            if status is None or instance.status == WorkflowStatus(status)
        ]

    async def wait_for_instance(self, instance_id: UUID | str, timeout: float | None = None) -> WorkflowInstance:
        """Wait until an instance has no handler call in flight and no retry pending.

        A paused instance holding queued tasks counts as settled.

        Args:
            instance_id: The workflow instance ID.
            timeout: Seconds to wait at most.

        Returns:
            A snapshot of the instance.

        Raises:
            InstanceNotFoundError: If the instance is unknown.
            asyncio.TimeoutError: If the timeout expires first.
        """
        instance = self._require(instance_id)
        await asyncio.wait_for(self._settle(instance.id), timeout)
        await self.event_bus.drain()
        return instance.snapshot()

    async def shutdown(self) -> None:
        """Cancel every in-flight handler call and retry timer of this engine.

        Instance statuses are left untouched.
        """
        runners = [runner for execution in self._executions.values() for runner in execution.in_flight.values()]
        for runner in runners:
            runner.cancel()
        await self._timers.shutdown()
        await asyncio.gather(*runners, return_exceptions=True)

        saves = [save for execution in self._executions.values() for save in execution.saves]
        await asyncio.gather(*saves, return_exceptions=True)
        await self.event_bus.drain()

    # Scheduling

    def _queue_task(self, instance: WorkflowInstance, task_id: str) -> None:
        """Queue a task, or skip it when its conditions do not hold."""
        if task_id in instance.skipped_tasks or instance.find_task(task_id) is not None:
            return

        execution = self._executions[instance.id]
        task_def = execution.definition.get_task(task_id)

        if not evaluate_conditions(task_def.conditions, instance.data):
            instance.skipped_tasks.append(task_id)
            self._log(instance).info("task_skipped", task_id=task_id)
            self._emit(instance, EventType.TASK_SKIPPED, task_id=task_id, task_status="skipped")
            self._queue_next(instance, task_id)
            return

        task = TaskInstance(id=task_id)
        instance.current_tasks.append(task)
        self._emit(instance, EventType.TASK_QUEUED, task=task)

        if instance.status == WorkflowStatus.RUNNING:
            self._dispatch(instance, task)

    def _queue_next(self, instance: WorkflowInstance, task_id: str) -> None:
        """Queue every dependent of ``task_id`` whose dependencies are all settled."""
        execution = self._executions[instance.id]
        for dependent in execution.graph.dependents(task_id):
            if all(self._is_settled(instance, dep) for dep in execution.graph.dependencies(dependent)):
                self._queue_task(instance, dependent)

    def _is_settled(self, instance: WorkflowInstance, task_id: str) -> bool:
        if task_id in instance.skipped_tasks or task_id in instance.completed_task_ids:
            return True
        if task_id in instance.failed_task_ids:
            task_def = self._executions[instance.id].definition.get_task(task_id)
            return self._error_handling(task_def) == ErrorHandling.CONTINUE
        return False

    def _dispatch(self, instance: WorkflowInstance, task: TaskInstance) -> None:
        execution = self._executions[instance.id]
        existing = execution.in_flight.get(task.id)
        if existing is not None and not existing.done():
            return
        runner = asyncio.create_task(self._execute_task(instance, task))
        execution.in_flight[task.id] = runner
        runner.add_done_callback(partial(self._forget_runner, execution, task.id))

    @staticmethod
    def _forget_runner(execution: _Execution, task_id: str, runner: asyncio.Task[None]) -> None:
        if execution.in_flight.get(task_id) is runner:
            del execution.in_flight[task_id]

    def _check_completion(self, instance: WorkflowInstance) -> None:
        if instance.status != WorkflowStatus.RUNNING or instance.current_tasks:
            return

        instance.status = WorkflowStatus.COMPLETED
        instance.end_time = _utcnow()
        definition = self._executions[instance.id].definition
        self._log(instance).info(
            "workflow_completed",
            completed=len(instance.completed_tasks),
            failed=len(instance.failed_tasks),
            skipped=len(instance.skipped_tasks),
        )
        self._emit(
            instance,
            EventType.WORKFLOW_COMPLETED,
            total_tasks=len(definition.tasks),
            completed_tasks=len(instance.completed_tasks),
            failed_tasks=len(instance.failed_tasks),
            skipped_tasks=len(instance.skipped_tasks),
        )
        self._persist(instance, force=True)

    # Execution

    async def _execute_task(self, instance: WorkflowInstance, task: TaskInstance) -> None:
        """Run one attempt of a task and route its outcome."""
        if instance.status != WorkflowStatus.RUNNING or task.status != TaskStatus.QUEUED:
            return

        task_def = self._executions[instance.id].definition.get_task(task.id)
        task.status = TaskStatus.RUNNING
        task.attempts += 1
        task.start_time = _utcnow()
        self._emit(instance, EventType.TASK_STARTED, task=task)

        try:
            handler = self.handlers.get(task_def.type)
            result = await handler.handle(task_def.config, instance.data)
            if instance.is_terminal:
                return
            apply_output_data_mapping(task_def.output_data_mapping, result, instance.data)
        except Exception as e:
            if instance.is_terminal:
                return
            self._fail_task(instance, task, TaskExecutionError.wrap(e, task.id))
            return

        self._complete_task(instance, task, result)

    def _complete_task(self, instance: WorkflowInstance, task: TaskInstance, result: Any) -> None:
        task.status = TaskStatus.COMPLETED
        task.result = result
        task.end_time = _utcnow()
        instance.current_tasks.remove(task)
        instance.completed_tasks.append(task)
        self._log(instance).debug("task_completed", task_id=task.id, attempts=task.attempts)
        self._emit(instance, EventType.TASK_COMPLETED, task=task)

        self._queue_next(instance, task.id)
        self._check_completion(instance)
        self._persist(instance)

    def _fail_task(self, instance: WorkflowInstance, task: TaskInstance, error: TaskExecutionError) -> None:
        """Record a failed attempt and either schedule a retry or fail the task."""
        task_def = self._executions[instance.id].definition.get_task(task.id)
        task.error = TaskError(
            message=error.message,
            timestamp=error.timestamp,
            stack=error.stack,
            error_type=type(error.cause or error).__name__,
        )
        self._emit(instance, EventType.TASK_ERROR, task=task, attempt=task.attempts)

        retry = self._retry_strategy(task_def)
        if task.attempts < retry.max_attempts:
            task.status = TaskStatus.RETRY
            self._log(instance).info(
                "task_retry_scheduled",
                task_id=task.id,
                attempt=task.attempts,
                delay=retry.delay,
                error=error.message,
            )
            self._emit(
                instance,
                EventType.TASK_RETRY_SCHEDULED,
                task=task,
                attempt=task.attempts,
                next_attempt=task.attempts + 1,
                delay=retry.delay,
            )
            self._timers.schedule(instance.id, task.id, retry.delay, partial(self._retry_task, instance.id, task.id))
            self._persist(instance)
            return

        task.status = TaskStatus.FAILED
        task.end_time = _utcnow()
        instance.current_tasks.remove(task)
        instance.failed_tasks.append(task)
        self._log(instance).warning("task_failed", task_id=task.id, attempts=task.attempts, error=error.message)
        self._emit(instance, EventType.TASK_FAILED, task=task)

        if self._error_handling(task_def) == ErrorHandling.CONTINUE:
            self._queue_next(instance, task.id)
            self._check_completion(instance)
            self._persist(instance)
            return

        instance.status = WorkflowStatus.FAILED
        instance.end_time = _utcnow()
        self._timers.cancel_all(instance.id)
        self._log(instance).error("workflow_failed", task_id=task.id, error=error.message)
        self._emit(
            instance,
            EventType.WORKFLOW_FAILED,
            failed_task=task.id,
            error=task.error.to_dict(),
        )
        self._persist(instance, force=True)

    def _retry_task(self, instance_id: UUID, task_id: str) -> None:
        """Retry timer callback: requeue the task unless the world moved on."""
        instance = self._instances.get(instance_id)
        if instance is None or instance.is_terminal:
            return
        task = instance.get_current_task(task_id)
        if task is None or task.status != TaskStatus.RETRY:
            return

        task.status = TaskStatus.QUEUED
        if instance.status == WorkflowStatus.RUNNING:
            self._dispatch(instance, task)
        else:
            self._log(instance).debug("task_retry_held", task_id=task_id)
        self._persist(instance)

    def _retry_strategy(self, task_def: TaskDefinition) -> RetryStrategy:
        return task_def.retry_strategy or self.config.default_retry_strategy

    def _error_handling(self, task_def: TaskDefinition) -> ErrorHandling:
        return task_def.error_handling or self.config.default_error_handling

    # Events and persistence

    def _emit(
        self,
        instance: WorkflowInstance,
        event_type: EventType,
        task: TaskInstance | None = None,
        task_id: str | None = None,
        **details: Any,
    ) -> None:
        """Append an audit entry and publish the matching event."""
        data: dict[str, Any]
        if task is not None:
            task_id = task.id
            data = {
                "task_status": str(task.status),
                "task_result": task.result,
                "task_error": task.error.to_dict() if task.error else None,
                "attempts": task.attempts,
            }
        elif task_id is None:
            data = {"status": str(instance.status)}
        else:
            data = {}
        data.update(details)
        data = detach(data)

        entry = AuditEntry(event=event_type, details={"task_id": task_id, **data} if task_id else data)
        instance.audit_log.append(entry)
        limit = self.config.max_audit_entries
        if limit is not None and len(instance.audit_log) > limit:
            del instance.audit_log[: len(instance.audit_log) - limit]

        self.event_bus.emit(
            WorkflowEvent(
                event_type=event_type,
                instance_id=instance.id,
                definition_id=instance.definition_id,
                task_id=task_id,
                timestamp=entry.timestamp,
                data=detach(data),
            )
        )

    def _persist(self, instance: WorkflowInstance, force: bool = False) -> asyncio.Task[None] | None:
        """Schedule a save of the instance's current state.

        Saves of one instance run one at a time, in the order they were scheduled.
        """
        if self.persistence is None or not (force or self.config.persist_on_transition):
            return None
        execution = self._executions[instance.id]
        save = asyncio.create_task(self._save(execution, instance.snapshot()))
        execution.saves.add(save)
        save.add_done_callback(partial(self._on_saved, execution))
        return save

    async def _save(self, execution: _Execution, snapshot: WorkflowInstance) -> None:
        async with execution.lock:
            await self.persistence.save_instance(snapshot)  # type: ignore[union-attr]

    @staticmethod
    def _on_saved(execution: _Execution, save: asyncio.Task[None]) -> None:
        execution.saves.discard(save)
        if not save.cancelled() and save.exception() is not None:
            logger.error("instance_persist_failed", exc_info=save.exception())

    async def _flush(self, instance: WorkflowInstance) -> None:
        save = self._persist(instance, force=True)
        if save is not None:
            await save

    async def _settle(self, instance_id: UUID) -> None:
        execution = self._executions[instance_id]
        while True:
            pending = [
                t
                for t in (*execution.in_flight.values(), *self._timers.pending(instance_id), *execution.saves)
                if not t.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    # Helpers

    @staticmethod
    def _key(instance_id: UUID | str) -> UUID | None:
        if isinstance(instance_id, UUID):
            return instance_id
        try:
            return UUID(str(instance_id))
        except ValueError:
            return None

    def _require(self, instance_id: UUID | str) -> WorkflowInstance:
        key = self._key(instance_id)
        instance = self._instances.get(key) if key is not None else None
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    @staticmethod
    def _log(instance: WorkflowInstance) -> Any:
        return logger.bind(instance_id=str(instance.id), definition_id=instance.definition_id)
