"""Constraint pipelines: staged cone narrowing, queries and dependency analysis."""

from .config import PipelineConfig, get_default_pipeline_config, set_default_pipeline_config
from .dependencies import (
    CyclicDependencies,
    DependencyAnalysis,
    OrderedDependencies,
    analyze_constraint_dependencies,
)
from .manager import (
    HARD_VIOLATION_WEIGHT,
    ConicEvent,
    ConicEventListener,
    ConstraintPipelineManager,
    create_constraint,
)

__all__ = [
    "ConicEvent",
    "ConicEventListener",
    "ConstraintPipelineManager",
    "CyclicDependencies",
    "DependencyAnalysis",
    "HARD_VIOLATION_WEIGHT",
    "OrderedDependencies",
    "PipelineConfig",
    "analyze_constraint_dependencies",
    "create_constraint",
    "get_default_pipeline_config",
    "set_default_pipeline_config",
]
