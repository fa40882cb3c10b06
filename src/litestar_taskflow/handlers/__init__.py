"""Built-in task handlers for litestar-taskflow."""

from __future__ import annotations

from litestar_taskflow.handlers.base import BaseTaskHandler, FunctionHandler
from litestar_taskflow.handlers.document import DocumentProcessingConfig, DocumentProcessingHandler
from litestar_taskflow.handlers.external_api import ExternalApiConfig, ExternalApiHandler, HttpxApiCaller
from litestar_taskflow.handlers.notification import LoggingNotificationSender, NotificationConfig, NotificationHandler
from litestar_taskflow.handlers.registry import HandlerRegistry
from litestar_taskflow.handlers.transformation import DataTransformationConfig, DataTransformationHandler

__all__ = [
    "BaseTaskHandler",
    "DataTransformationConfig",
    "DataTransformationHandler",
    "DocumentProcessingConfig",
    "DocumentProcessingHandler",
    "ExternalApiConfig",
    "ExternalApiHandler",
    "FunctionHandler",
    "HandlerRegistry",
    "HttpxApiCaller",
    "LoggingNotificationSender",
    "NotificationConfig",
    "NotificationHandler",
]
