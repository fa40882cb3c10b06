"""Database persistence layer for litestar-taskflow.

This module provides the SQLAlchemy model and repositories for persisting
workflow instances.

Requires the [db] extra:
    pip install litestar-taskflow[db]
"""

from __future__ import annotations

from litestar_taskflow.db.models import WorkflowInstanceModel
from litestar_taskflow.db.repositories import SQLAlchemyInstanceStore, WorkflowInstanceRepository

__all__ = [
    "SQLAlchemyInstanceStore",
    "WorkflowInstanceModel",
    "WorkflowInstanceRepository",
]
