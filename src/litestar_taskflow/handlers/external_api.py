"""External API task handler and the httpx-based API caller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from litestar_taskflow.core.types import UNDEFINED, TaskType
from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.expressions.paths import is_reference, resolve, to_text
from litestar_taskflow.handlers.base import BaseTaskHandler, project

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.protocols import ExternalApiCaller
    from litestar_taskflow.core.types import Context

__all__ = ["ExternalApiConfig", "ExternalApiHandler", "HttpxApiCaller"]

logger = structlog.get_logger()


@dataclass
class ExternalApiConfig:
    """Configuration of an ``external_api`` task.

    Attributes:
        endpoint: URL to call; references and ``${...}`` templates are resolved.
        method: HTTP method.
        headers: Header values; references and templates are resolved.
        body: Request body. A ``$`` reference is resolved against the data.
        body_mapping: Body key to expression, used when ``body`` is not a reference.
    """

    endpoint: str
    method: str = "GET"
    headers: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    body_mapping: Mapping[str, Any] | None = None


class HttpxApiCaller:
    """Call external APIs with an ``httpx.AsyncClient``.

    Responses are returned as ``{"status_code", "headers", "body"}``; JSON bodies
    are decoded, anything else is returned as text.

    Args:
        client: Client to reuse. When omitted a client is created per call.
        timeout: Timeout in seconds for per-call clients.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.client = client
        self.timeout = timeout

    async def call(self, endpoint: str, method: str, headers: Mapping[str, str], body: Any = None) -> dict[str, Any]:
        if self.client is not None:
            return await self._send(self.client, endpoint, method, headers, body)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._send(client, endpoint, method, headers, body)

    async def _send(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        method: str,
        headers: Mapping[str, str],
        body: Any,
    ) -> dict[str, Any]:
        response = await client.request(method.upper(), endpoint, headers=dict(headers), json=body)
        logger.debug("external_api_called", method=method.upper(), endpoint=endpoint, status_code=response.status_code)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"{method.upper()} {endpoint} returned {response.status_code}"
            raise TaskExecutionError(msg, cause=e) from e

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text
        return {"status_code": response.status_code, "headers": dict(response.headers), "body": payload}


class ExternalApiHandler(BaseTaskHandler[ExternalApiConfig]):
    """Build a request from the workflow data and delegate to an :class:`ExternalApiCaller`."""

    task_type = TaskType.EXTERNAL_API
    config_class = ExternalApiConfig

    def __init__(self, caller: ExternalApiCaller | None = None) -> None:
        self.caller = caller or HttpxApiCaller()

    async def execute(self, config: ExternalApiConfig, data: Context) -> Any:
        endpoint = to_text(resolve(config.endpoint, data))
        headers = {key: to_text(resolve(value, data)) for key, value in config.headers.items()}

        body = config.body
        if is_reference(body):
            body = resolve(body, data)
            if body is UNDEFINED:
                body = None
        elif config.body_mapping is not None:
            body = project(config.body_mapping, data)

        return await self.caller.call(endpoint, config.method or "GET", headers, body)
