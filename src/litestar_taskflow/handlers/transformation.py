"""Data transformation task handler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar_taskflow.core.types import TaskType
from litestar_taskflow.expressions.transforms import Transformation, apply_transformations
from litestar_taskflow.handlers.base import BaseTaskHandler

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_taskflow.core.types import Context

__all__ = ["DataTransformationConfig", "DataTransformationHandler"]


@dataclass
class DataTransformationConfig:
    """Configuration of a ``data_transformation`` task.

    Attributes:
        transformations: Transformations applied in order; each lands in the
            result under its ``target``.
    """

    transformations: list[Transformation | Mapping[str, Any]] = field(default_factory=list)


class DataTransformationHandler(BaseTaskHandler[DataTransformationConfig]):
    task_type = TaskType.DATA_TRANSFORMATION
    config_class = DataTransformationConfig

    async def execute(self, config: DataTransformationConfig, data: Context) -> dict[str, Any]:
        return apply_transformations(config.transformations, data)
