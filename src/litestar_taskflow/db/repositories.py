"""Repository implementations for workflow persistence.

This module provides the async repository for workflow instance rows, using
advanced-alchemy's repository pattern, and the instance store the execution
engine saves to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import select

from litestar_taskflow.db.models import WorkflowInstanceModel

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_taskflow.core.models import WorkflowInstance
    from litestar_taskflow.core.types import WorkflowStatus

__all__ = ["SQLAlchemyInstanceStore", "WorkflowInstanceRepository"]


class WorkflowInstanceRepository(SQLAlchemyAsyncRepository[WorkflowInstanceModel]):
    """Repository for workflow instance CRUD operations.

    Provides methods for querying workflow instances by definition and status.
    """

    model_type = WorkflowInstanceModel

    async def find_by_definition(
        self,
        definition_id: str,
        status: WorkflowStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[Sequence[WorkflowInstanceModel], int]:
        """Find instances of a workflow definition with optional status filter.

        Args:
            definition_id: The definition id to filter by.
            status: Optional status filter.
            limit: Maximum number of results.
            offset: Number of results to skip.

        Returns:
            Tuple of (instances, total_count).
        """
        conditions = [WorkflowInstanceModel.definition_id == definition_id]

        if status:
            conditions.append(WorkflowInstanceModel.status == status)

        return await self.list_and_count(
            *conditions,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="created_at", sort_order="desc"),
        )

    async def find_by_status(self, status: WorkflowStatus) -> Sequence[WorkflowInstanceModel]:
        """Find every instance in a status, oldest first.

        Args:
            status: The status to filter by.

        Returns:
            List of workflow instances.
        """
        stmt = (
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.status == status)
            .order_by(WorkflowInstanceModel.started_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class SQLAlchemyInstanceStore:
    """Instance repository backed by SQLAlchemy, for use by the execution engine.

    Each call opens its own session, so the store can be shared by every instance
    the engine drives.

    Example:
        >>> session_maker = async_sessionmaker(create_async_engine("sqlite+aiosqlite:///taskflow.db"))
        >>> engine = LocalExecutionEngine(persistence=SQLAlchemyInstanceStore(session_maker))
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def save_instance(self, instance: WorkflowInstance) -> None:
        """Insert or update the row of an instance."""
        async with self.session_maker() as session:
            repo = WorkflowInstanceRepository(session=session)
            model = await repo.get_one_or_none(id=instance.id)
            if model is None:
                await repo.add(WorkflowInstanceModel.from_domain(instance), auto_commit=True)
            else:
                model.apply(instance)
                await repo.update(model, auto_commit=True)

    async def load_instance(self, instance_id: UUID) -> WorkflowInstance | None:
        async with self.session_maker() as session:
            model = await WorkflowInstanceRepository(session=session).get_one_or_none(id=instance_id)
            return model.to_domain() if model is not None else None
