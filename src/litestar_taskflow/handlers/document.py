"""Document processing task handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar_taskflow.core.types import UNDEFINED, TaskType
from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.expressions.paths import resolve
from litestar_taskflow.handlers.base import BaseTaskHandler

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.protocols import DocumentProcessor
    from litestar_taskflow.core.types import Context

__all__ = ["DocumentProcessingConfig", "DocumentProcessingHandler"]


@dataclass
class DocumentProcessingConfig:
    """Configuration of a ``document_processing`` task.

    Attributes:
        document: The document, usually a ``$`` reference into the workflow data.
        options: Processor-specific options.
    """

    document: Any = None
    options: Mapping[str, Any] = field(default_factory=dict)


class DocumentProcessingHandler(BaseTaskHandler[DocumentProcessingConfig]):
    """Resolve the referenced document and hand it to a :class:`DocumentProcessor`.

    Without a processor the document is acknowledged as processed, so workflows
    can be exercised before a real processing service is wired in.
    """

    task_type = TaskType.DOCUMENT_PROCESSING
    config_class = DocumentProcessingConfig

    def __init__(self, processor: DocumentProcessor | None = None) -> None:
        self.processor = processor

    async def execute(self, config: DocumentProcessingConfig, data: Context) -> Any:
        document = resolve(config.document, data)
        if config.document is not None and document is UNDEFINED:
            msg = f"Document reference {config.document!r} does not resolve"
            raise TaskExecutionError(msg)

        if self.processor is None:
            return {"processed": True, "status": "success", "document": document}
        return await self.processor.process(document, dict(config.options))
