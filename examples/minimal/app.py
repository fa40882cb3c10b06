"""Minimal example of litestar-taskflow integration.

This example demonstrates the basic usage of the TaskflowPlugin with a
document review workflow built from the four built-in task types.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload

Then start a review:
    curl -X POST localhost:8000/documents/doc_42/review \\
        -H 'Content-Type: application/json' \\
        -d '{"owner": "ada@example.com", "scores": [3, 4]}'
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from litestar import Controller, Litestar, get, post
from litestar.exceptions import NotFoundException

from litestar_taskflow import (
    HandlerRegistry,
    LocalExecutionEngine,
    TaskflowPlugin,
    TaskflowPluginConfig,
    WorkflowEvent,
)
from litestar_taskflow.logging import configure_logging

logger = structlog.get_logger()

# =============================================================================
# Workflow Definition
# =============================================================================

DOCUMENT_REVIEW: dict[str, Any] = {
    "id": "document_review",
    "name": "Document review",
    "description": "Extract a document, score it, escalate low scores and notify the owner",
    "tasks": [
        {
            "id": "extract",
            "type": "document_processing",
            "config": {"document": "$document", "options": {"ocr": True}},
            "output_data_mapping": {"extracted": "document"},
            "retry_strategy": {"max_attempts": 3, "delay": 1},
        },
        {
            "id": "score",
            "type": "data_transformation",
            "depends_on": ["extract"],
            "config": {
                "transformations": [
                    {"type": "reduce", "source": "$document.scores", "target": "total", "operation": "sum"},
                ]
            },
            "output_data_mapping": {"review.total": "total"},
        },
        {
            "id": "escalate",
            "type": "notification",
            "depends_on": ["score"],
            "conditions": [{"left": "$review.total", "operator": "lt", "right": 10}],
            "config": {"template_id": "low_score", "recipients": ["reviewers@example.com"]},
            "error_handling": "continue",
        },
        {
            "id": "notify",
            "type": "notification",
            "depends_on": ["score", "escalate"],
            "config": {
                "template_id": "review_done",
                "recipients": ["$document.owner"],
                "data_mapping": {"document_id": "$document.id", "total": "$review.total"},
            },
        },
    ],
}


# =============================================================================
# API Endpoints
# =============================================================================


class DocumentController(Controller):
    """Application endpoints that drive the review workflow."""

    path = "/documents"

    @post("/{document_id:str}/review")
    async def review_document(
        self,
        document_id: str,
        data: dict[str, Any],
        taskflow_engine: LocalExecutionEngine,
    ) -> dict[str, Any]:
        """Start a review of a document."""
        instance_id = await taskflow_engine.start_workflow("document_review", {"document": {"id": document_id, **data}})
        return {"instance_id": str(instance_id), "message": "Review started"}

    @get("/reviews/{instance_id:uuid}")
    async def review_status(self, instance_id: UUID, taskflow_engine: LocalExecutionEngine) -> dict[str, Any]:
        """Get the status of a review."""
        instance = await taskflow_engine.get_workflow_instance(instance_id)
        if instance is None:
            raise NotFoundException(detail=f"Review '{instance_id}' not found")
        return {
            "status": str(instance.status),
            "total": instance.data.get("review", {}).get("total"),
            "completed": [t.id for t in instance.completed_tasks],
            "skipped": instance.skipped_tasks,
        }


# =============================================================================
# Application Setup
# =============================================================================


def log_failures(event: WorkflowEvent) -> None:
    logger.warning("review_failed", instance_id=str(event.instance_id), error=event.data.get("error"))


def create_app() -> Litestar:
    configure_logging()

    plugin = TaskflowPlugin(
        config=TaskflowPluginConfig(
            handlers=HandlerRegistry.with_defaults(),
            auto_register_definitions=[DOCUMENT_REVIEW],
        )
    )
    app = Litestar(route_handlers=[DocumentController], plugins=[plugin], debug=True)
    plugin.engine.event_bus.subscribe(log_failures, event_types=["workflow_failed"])
    return app


app = create_app()
