"""Base task handler implementations for litestar-taskflow."""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Generic, TypeVar

from litestar_taskflow.core.types import UNDEFINED
from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.expressions.paths import resolve

if TYPE_CHECKING:
    from litestar_taskflow.core.types import Context

__all__ = ["BaseTaskHandler", "FunctionHandler", "project"]

ConfigT = TypeVar("ConfigT")


def project(mapping: Mapping[str, Any] | None, data: Context) -> dict[str, Any]:
    """Build a payload from the workflow data.

    Keys whose expression does not resolve are left out.

    Args:
        mapping: Output key to expression. ``None`` copies the whole data.
        data: The workflow data.

    Returns:
        A new dictionary.
    """
    if mapping is None:
        return dict(data)
    payload = {key: resolve(expr, data) for key, expr in mapping.items()}
    return {key: value for key, value in payload.items() if value is not UNDEFINED}


class BaseTaskHandler(Generic[ConfigT]):
    """Base implementation with common functionality for typed task handlers.

    Subclasses declare the task type they serve and a dataclass describing their
    configuration. :meth:`handle` parses the raw task config into that dataclass
    and passes it to :meth:`execute`.
    """

    task_type: ClassVar[str]
    """Task type tag this handler serves."""

    config_class: ClassVar[type[Any]]
    """Dataclass the raw task config is parsed into."""

    def parse_config(self, config: Mapping[str, Any]) -> ConfigT:
        """Parse a raw task config into :attr:`config_class`.

        Unknown keys are ignored.

        Raises:
            TaskExecutionError: If a required field is missing.
        """
        names = {f.name for f in dataclasses.fields(self.config_class)}
        try:
            return self.config_class(**{k: v for k, v in config.items() if k in names})
        except TypeError as e:
            msg = f"Invalid {self.task_type} task config: {e}"
            raise TaskExecutionError(msg, cause=e) from e

    async def handle(self, config: Mapping[str, Any], data: Context) -> Any:
        return await self.execute(self.parse_config(config), data)

    async def execute(self, config: ConfigT, data: Context) -> Any:
        """Execute one attempt of the task.

        Override this method to implement the handler logic.

        Args:
            config: The parsed task configuration.
            data: The workflow data.

        Returns:
            The task result.

        Raises:
            NotImplementedError: Must be implemented by subclasses.
        """
        msg = f"Handler for {self.task_type} must implement execute()"
        raise NotImplementedError(msg)


class FunctionHandler:
    """Adapt a plain ``(config, data)`` callable into a task handler.

    The callable may be synchronous or return an awaitable.

    Example:
        >>> async def score(config, data):
        ...     return {"score": len(data["text"])}
        >>> handler = FunctionHandler("score", score)
    """

    def __init__(self, task_type: str, func: Callable[[Mapping[str, Any], Context], Any]) -> None:
        self.task_type = task_type
        self.func = func

    async def handle(self, config: Mapping[str, Any], data: Context) -> Any:
        result = self.func(config, data)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"FunctionHandler(task_type={self.task_type!r}, func={getattr(self.func, '__name__', self.func)!r})"
