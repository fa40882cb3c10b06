"""Registry mapping task types to handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import structlog

from litestar_taskflow.exceptions import UnsupportedTaskTypeError
from litestar_taskflow.handlers.base import FunctionHandler

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.protocols import DocumentProcessor, ExternalApiCaller, NotificationSender, TaskHandler
    from litestar_taskflow.core.types import Context

__all__ = ["HandlerRegistry"]

logger = structlog.get_logger()


class HandlerRegistry:
    """Lookup table from task type tag to :class:`~litestar_taskflow.core.protocols.TaskHandler`.

    Task types are an open set: any handler registered under a tag makes that tag
    usable in workflow definitions.

    Example:
        >>> handlers = HandlerRegistry.with_defaults()
        >>> handlers.register_function("score", lambda config, data: {"score": 1})
        >>> handlers.has("score")
        True
    """

    def __init__(self) -> None:
        self._handlers: dict[str, TaskHandler] = {}

    @classmethod
    def with_defaults(
        cls,
        sender: NotificationSender | None = None,
        api_caller: ExternalApiCaller | None = None,
        document_processor: DocumentProcessor | None = None,
    ) -> HandlerRegistry:
        """Create a registry with the four built-in task types registered.

        Args:
            sender: Notification sender. Defaults to a sender that only logs.
            api_caller: External API caller. Defaults to an httpx-based caller.
            document_processor: Document processor. Without one, documents are
                acknowledged without processing.

        Returns:
            The populated registry.
        """
        from litestar_taskflow.handlers.document import DocumentProcessingHandler
        from litestar_taskflow.handlers.external_api import ExternalApiHandler
        from litestar_taskflow.handlers.notification import NotificationHandler
        from litestar_taskflow.handlers.transformation import DataTransformationHandler

        registry = cls()
        registry.register(DocumentProcessingHandler(document_processor))
        registry.register(NotificationHandler(sender))
        registry.register(ExternalApiHandler(api_caller))
        registry.register(DataTransformationHandler())
        return registry

    def register(self, handler: TaskHandler) -> None:
        """Register a handler under its ``task_type``, replacing any previous one."""
        task_type = str(handler.task_type)
        if task_type in self._handlers:
            logger.debug("task_handler_replaced", task_type=task_type)
        self._handlers[task_type] = handler

    def register_function(self, task_type: str, func: Callable[[Mapping[str, Any], Context], Any]) -> None:
        """Register a plain callable as the handler for ``task_type``."""
        self.register(FunctionHandler(task_type, func))

    def get(self, task_type: str) -> TaskHandler:
        """Get the handler of a task type.

        Raises:
            UnsupportedTaskTypeError: If no handler is registered for the type.
        """
        try:
            return self._handlers[str(task_type)]
        except KeyError:
            raise UnsupportedTaskTypeError(task_type) from None

    def has(self, task_type: str) -> bool:
        return str(task_type) in self._handlers

    @property
    def task_types(self) -> list[str]:
        return list(self._handlers)
