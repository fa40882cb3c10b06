"""Notification task handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from litestar_taskflow.core.types import TaskType
from litestar_taskflow.expressions.paths import is_reference, resolve
from litestar_taskflow.handlers.base import BaseTaskHandler, project

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.protocols import NotificationSender
    from litestar_taskflow.core.types import Context

__all__ = ["LoggingNotificationSender", "NotificationConfig", "NotificationHandler"]

logger = structlog.get_logger()


@dataclass
class NotificationConfig:
    """Configuration of a ``notification`` task.

    Attributes:
        template_id: Identifier of the notification template.
        recipients: Recipients; ``$`` references are resolved against the data.
        data_mapping: Template data key to expression. Without it the whole
            workflow data is passed to the template.
    """

    template_id: str | None = None
    recipients: list[Any] = field(default_factory=list)
    data_mapping: Mapping[str, Any] | None = None


class LoggingNotificationSender:
    """Notification sender that only writes a log line.

    Used when the host application does not provide a real sender.
    """

    async def send(self, template_id: str | None, recipients: list[Any], data: Mapping[str, Any]) -> None:
        logger.info("notification_sent", template_id=template_id, recipients=len(recipients), keys=sorted(data))


class NotificationHandler(BaseTaskHandler[NotificationConfig]):
    """Resolve recipients and template data, then delegate to a :class:`NotificationSender`."""

    task_type = TaskType.NOTIFICATION
    config_class = NotificationConfig

    def __init__(self, sender: NotificationSender | None = None) -> None:
        self.sender = sender or LoggingNotificationSender()

    async def execute(self, config: NotificationConfig, data: Context) -> dict[str, Any]:
        recipients = config.recipients if isinstance(config.recipients, (list, tuple)) else []
        resolved = [resolve(r, data) if is_reference(r) else r for r in recipients]

        await self.sender.send(config.template_id, resolved, project(config.data_mapping, data))
        return {"sent": True, "recipients": len(resolved)}
