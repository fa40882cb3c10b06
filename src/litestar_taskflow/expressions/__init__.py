"""Path lookups, conditions and data transformations over the workflow data context."""

from __future__ import annotations

from litestar_taskflow.expressions.conditions import evaluate_condition, evaluate_conditions
from litestar_taskflow.expressions.paths import assign, lookup, render_template, resolve, to_text
from litestar_taskflow.expressions.transforms import (
    Transformation,
    apply_output_data_mapping,
    apply_transformation,
    apply_transformations,
)

__all__ = [
    "Transformation",
    "apply_output_data_mapping",
    "apply_transformation",
    "apply_transformations",
    "assign",
    "evaluate_condition",
    "evaluate_conditions",
    "lookup",
    "render_template",
    "resolve",
    "to_text",
]
