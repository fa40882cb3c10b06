"""Exception handling for taskflow web endpoints.

This module maps the taskflow exception hierarchy onto HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from litestar_taskflow.exceptions import (
    DefinitionError,
    InstanceNotFoundError,
    InvalidStateTransitionError,
    TaskflowError,
    UnsupportedTaskTypeError,
    WorkflowNotFoundError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

__all__ = ["status_code_for", "taskflow_exception_handler"]


def status_code_for(exc: TaskflowError) -> int:
    """Get the HTTP status code of a taskflow error."""
    if isinstance(exc, (DefinitionError, UnsupportedTaskTypeError)):
        return HTTP_400_BAD_REQUEST
    if isinstance(exc, (WorkflowNotFoundError, InstanceNotFoundError)):
        return HTTP_404_NOT_FOUND
    if isinstance(exc, InvalidStateTransitionError):
        return HTTP_409_CONFLICT
    return HTTP_500_INTERNAL_SERVER_ERROR


def taskflow_exception_handler(_request: Request, exc: TaskflowError) -> Response:
    """Exception handler for every :class:`TaskflowError`.

    Args:
        _request: The Litestar request object.
        exc: The raised error.

    Returns:
        JSON response with the status code matching the error.
    """
    status_code = status_code_for(exc)
    content: dict[str, object] = {"status_code": status_code, "detail": str(exc)}
    if isinstance(exc, DefinitionError):
        content["errors"] = exc.errors
    return Response(content=content, status_code=status_code, media_type="application/json")
