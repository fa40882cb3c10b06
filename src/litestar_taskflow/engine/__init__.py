"""Workflow execution engine implementations.

This module provides the definition registry, the dependency graph, the retry
delay queue and the local execution engine that drives workflow instances.
"""

from __future__ import annotations

from litestar_taskflow.engine.graph import DependencyGraph, validate_definition
from litestar_taskflow.engine.local import LocalExecutionEngine
from litestar_taskflow.engine.registry import WorkflowRegistry
from litestar_taskflow.engine.timers import DelayQueue

__all__ = [
    "DelayQueue",
    "DependencyGraph",
    "LocalExecutionEngine",
    "WorkflowRegistry",
    "validate_definition",
]
