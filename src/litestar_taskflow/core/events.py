"""Domain events and the event bus for workflow lifecycle.

This module defines the event emitted for every workflow and task transition, and
the publish/subscribe bus that delivers them to external observers (UI polling,
logging, alerting). Observers never influence control flow.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union
from uuid import UUID

import structlog

from litestar_taskflow.core.types import EventType

__all__ = ["EventBus", "EventListener", "WorkflowEvent"]

logger = structlog.get_logger()


@dataclass(frozen=True)
class WorkflowEvent:
    """Event emitted on every workflow and task transition.

    Attributes:
        event_type: Tag of the transition.
        instance_id: Unique identifier of the workflow instance.
        definition_id: Identifier of the workflow definition.
        task_id: The task the event is about, for task events.
        timestamp: When the event occurred.
        data: Snapshot of the relevant status, result or error.

    Example:
        >>> event = WorkflowEvent(
        ...     event_type=EventType.TASK_COMPLETED,
        ...     instance_id=uuid4(),
        ...     definition_id="document_review",
        ...     task_id="extract",
        ...     data={"task_status": "completed", "task_result": {"pages": 3}},
        ... )
    """

    event_type: EventType
    instance_id: UUID
    definition_id: str
    task_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": str(self.event_type),
            "instance_id": str(self.instance_id),
            "definition_id": self.definition_id,
            "task_id": self.task_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


EventListener = Callable[[WorkflowEvent], Union[None, Awaitable[None]]]
"""A sync or async callable receiving workflow events."""


class EventBus:
    """Publish/subscribe surface owned by one engine instance.

    Synchronous listeners are called inline, in subscription order. Coroutine
    listeners are scheduled on the running loop and never awaited by the
    emitter. A listener that raises is logged and otherwise ignored.

    Example:
        >>> bus = EventBus()
        >>> unsubscribe = bus.subscribe(print, event_types=[EventType.WORKFLOW_FAILED])
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[EventListener, frozenset[EventType] | None]] = []
        self._pending: set[asyncio.Task[None]] = set()

    def subscribe(
        self,
        listener: EventListener,
        event_types: Iterable[EventType | str] | None = None,
    ) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Callable receiving each matching event.
            event_types: Event types to receive. ``None`` receives everything.

        Returns:
            A callable that removes the subscription.
        """
        types = frozenset(EventType(t) for t in event_types) if event_types is not None else None
        self._listeners.append((listener, types))
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove every subscription of ``listener``. Unknown listeners are ignored."""
        self._listeners = [(fn, types) for fn, types in self._listeners if fn != listener]

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: WorkflowEvent) -> None:
        """Deliver an event to every matching listener.

        Args:
            event: The event to publish.
        """
        for listener, types in list(self._listeners):
            if types is not None and event.event_type not in types:
                continue
            try:
                outcome = listener(event)
            except Exception:
                logger.exception("event_listener_error", event_type=str(event.event_type), listener=repr(listener))
                continue
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(self._run_async_listener(outcome, event))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def _run_async_listener(self, awaitable: Awaitable[None], event: WorkflowEvent) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("event_listener_error", event_type=str(event.event_type))

    async def drain(self) -> None:
        """Wait for scheduled coroutine listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
