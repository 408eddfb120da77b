"""Inputs and outputs of the path optimizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, Union

from ..geometry.surfaces import SurfaceEvaluators
from ..types import (
    Bounds,
    ConeConstraint,
    PossibilityCone,
    PossibilityPath,
    StructuralMisuseError,
    ValueField,
)

Algorithm = Literal["a-star", "dijkstra", "gradient-ascent", "simulated-annealing"]
ALGORITHMS: Tuple[str, ...] = ("a-star", "dijkstra", "gradient-ascent", "simulated-annealing")


@dataclass(frozen=True)
class ObjectiveWeights:
    value: float = 1.0
    length: float = 0.3
    risk: float = 0.5
    constraints: float = 0.8


@dataclass(frozen=True)
class OptimizationConfig:
    """Search options, passed per call.

    ``step_size`` of ``None`` means 1% of the search bounds' diagonal.
    ``sampling_resolution`` is either one cell count for every axis or a
    per-axis tuple.
    """

    weights: ObjectiveWeights = field(default_factory=ObjectiveWeights)
    algorithm: Algorithm = "a-star"
    max_iterations: int = 1000
    convergence_threshold: float = 0.001
    sampling_resolution: Union[int, Tuple[int, ...]] = 20
    allow_soft_violations: bool = True
    soft_violation_penalty: float = 0.5
    step_size: Optional[float] = None
    recovery_attempts: int = 10
    initial_temperature: float = 1.0
    cooling_rate: float = 0.995
    perturbation: float = 0.5
    annealing_waypoints: int = 8
    alternatives_limit: int = 5
    random_seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.algorithm not in ALGORITHMS:
            raise StructuralMisuseError(f"unknown algorithm '{self.algorithm}'")
        if self.max_iterations < 0:
            raise StructuralMisuseError("max_iterations must be non-negative")
        if not 0.0 < self.cooling_rate < 1.0:
            raise StructuralMisuseError(f"cooling_rate must lie in (0, 1), got {self.cooling_rate}")
        if isinstance(self.sampling_resolution, int):
            resolution: Tuple[int, ...] = (self.sampling_resolution,)
        else:
            resolution = tuple(int(r) for r in self.sampling_resolution)
            object.__setattr__(self, "sampling_resolution", resolution)
        if not resolution or any(r < 1 for r in resolution):
            raise StructuralMisuseError("sampling_resolution needs at least one cell per axis")

    def grid_resolution(self, dimension: int) -> Tuple[int, ...]:
        if isinstance(self.sampling_resolution, int):
            return (self.sampling_resolution,) * dimension
        if len(self.sampling_resolution) != dimension:
            raise StructuralMisuseError(
                f"sampling_resolution has {len(self.sampling_resolution)} axes but the space has {dimension}"
            )
        return self.sampling_resolution


DEFAULT_OPTIMIZATION_CONFIG = OptimizationConfig()


@dataclass(frozen=True)
class SearchProblem:
    """Region and objective a path search runs against.

    ``evaluators`` resolve the custom surfaces among ``constraints``.
    """

    bounds: Bounds
    cones: Tuple[PossibilityCone, ...] = ()
    constraints: Tuple[ConeConstraint, ...] = ()
    value_field: Optional[ValueField] = None
    evaluators: Optional[SurfaceEvaluators] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cones", tuple(self.cones))
        object.__setattr__(self, "constraints", tuple(self.constraints))
        for cone in self.cones:
            if cone.dimension != self.bounds.dimension:
                raise StructuralMisuseError(
                    f"cone {cone.id} has dimension {cone.dimension} but bounds have {self.bounds.dimension}"
                )
        if self.value_field is not None and len(self.value_field.resolution) != self.bounds.dimension:
            raise StructuralMisuseError(
                f"value field has {len(self.value_field.resolution)} axes but bounds have {self.bounds.dimension}"
            )


@dataclass(frozen=True)
class OptimizationMetrics:
    initial_score: float
    final_score: float
    improvement: float
    runtime: float


@dataclass(frozen=True)
class OptimizationResult:
    best_path: PossibilityPath
    alternatives: Tuple[PossibilityPath, ...]
    iterations: int
    converged: bool
    metrics: OptimizationMetrics


__all__ = [
    "ALGORITHMS",
    "Algorithm",
    "DEFAULT_OPTIMIZATION_CONFIG",
    "ObjectiveWeights",
    "OptimizationConfig",
    "OptimizationMetrics",
    "OptimizationResult",
    "SearchProblem",
]
