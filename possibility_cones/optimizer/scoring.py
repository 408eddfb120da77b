"""Validity, value, risk and scoring shared by every search strategy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..geometry.cones import angular_offset, is_point_in_cone
from ..geometry.surfaces import signed_distance_to_surface
from ..types import (
    DIMENSION,
    PathWaypoint,
    PossibilityPath,
    SpacePoint,
    SpaceVector,
    StructuralMisuseError,
    new_id,
)
from .model import OptimizationConfig, SearchProblem
from .value_field import ValueFieldSampler

ContinuePredicate = Callable[[int], bool]

_GRADIENT_EPS = 1e-6


@dataclass(frozen=True)
class SearchOutcome:
    """What a strategy hands back to :func:`find_optimal_path`."""

    path: PossibilityPath
    iterations: int
    converged: bool
    alternatives: Tuple[PossibilityPath, ...] = ()


class PathEvaluator:
    """Evaluate points and paths of one search problem under one config."""

    def __init__(self, problem: SearchProblem, config: OptimizationConfig) -> None:
        self.problem = problem
        self.config = config
        self.bounds = problem.bounds
        self.dimension = problem.bounds.dimension
        self._sampler = (
            ValueFieldSampler(problem.value_field, problem.bounds) if problem.value_field is not None else None
        )
        self._evaluators = problem.evaluators or {}
        self._soft_ids = {c.id for c in problem.constraints if c.hardness == "soft"}

    @property
    def step_size(self) -> float:
        if self.config.step_size is not None:
            return float(self.config.step_size)
        return 0.01 * self.bounds.diagonal

    def check_point(self, point: SpacePoint, role: str) -> None:
        if point.dimension != self.dimension:
            raise StructuralMisuseError(
                f"{role} has dimension {point.dimension} but the search bounds have {self.dimension}"
            )

    # ------------------------------------------------------------------
    # Point queries
    # ------------------------------------------------------------------

    def _surface_distance(self, point: SpacePoint, constraint) -> float:
        return signed_distance_to_surface(point, constraint.surface, self._evaluators)

    def is_valid(self, point: SpacePoint) -> bool:
        if not self.bounds.contains(point):
            return False
        if not all(is_point_in_cone(point, cone) for cone in self.problem.cones):
            return False
        for constraint in self.problem.constraints:
            binding = constraint.hardness == "hard" or not self.config.allow_soft_violations
            if binding and self._surface_distance(point, constraint) > 0:
                return False
        return True

    def value_at(self, point: SpacePoint) -> float:
        if self._sampler is not None:
            return self._sampler.value_at(point)
        if point.dimension > DIMENSION.VALUE:
            return point.coordinates[DIMENSION.VALUE]
        return 0.0

    def value_gradient(self, point: SpacePoint, epsilon: Optional[float] = None) -> np.ndarray:
        """Central finite-difference gradient of :meth:`value_at`."""

        h = epsilon if epsilon is not None else max(_GRADIENT_EPS, 1e-3 * self.step_size)
        coords = point.as_array()
        grad = np.zeros(self.dimension)
        for axis in range(self.dimension):
            offset = np.zeros(self.dimension)
            offset[axis] = h
            forward = self.value_at(SpacePoint(coords + offset))
            backward = self.value_at(SpacePoint(coords - offset))
            grad[axis] = (forward - backward) / (2.0 * h)
        return grad

    def risk_at(self, point: SpacePoint) -> float:
        """Mean normalized angular offset from each cone's axis, capped at 1."""

        cones = self.problem.cones
        if not cones:
            return 0.0
        total = 0.0
        for cone in cones:
            offset = angular_offset(point, cone)
            if not is_point_in_cone(point, cone):
                total += 1.0
            elif cone.aperture <= 0.0:
                total += 0.0 if offset <= 0.0 else 1.0
            else:
                total += min(offset / cone.aperture, 1.0)
        return total / len(cones)

    def containing_cones(self, point: SpacePoint) -> Tuple[str, ...]:
        return tuple(cone.id for cone in self.problem.cones if is_point_in_cone(point, cone))

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def build_path(self, positions: Sequence[SpacePoint]) -> PossibilityPath:
        waypoints: List[PathWaypoint] = []
        travelled = 0.0
        previous: Optional[np.ndarray] = None
        for position in positions:
            coords = position.as_array()
            if previous is not None:
                travelled += float(np.linalg.norm(coords - previous))
            previous = coords
            waypoints.append(
                PathWaypoint(
                    position=position,
                    value=self.value_at(position),
                    distance_from_start=travelled,
                    containing_cones=self.containing_cones(position),
                    value_gradient=(
                        SpaceVector(self.value_gradient(position)) if self._sampler is not None else None
                    ),
                )
            )

        satisfied: List[str] = []
        violated: List[str] = []
        for constraint in self.problem.constraints:
            if all(self._surface_distance(p, constraint) <= 0.0 for p in positions):
                satisfied.append(constraint.id)
            else:
                violated.append(constraint.id)

        total_value = sum(w.value for w in waypoints)
        risk = sum(self.risk_at(p) for p in positions) / max(1, len(positions))
        score = self.score(total_value, travelled, risk, satisfied, violated)
        return PossibilityPath(
            id=new_id("path"),
            waypoints=tuple(waypoints),
            length=travelled,
            total_value=total_value,
            risk_exposure=risk,
            satisfied_constraints=tuple(satisfied),
            violated_constraints=tuple(violated),
            optimality_score=score,
        )

    def score(
        self,
        total_value: float,
        length: float,
        risk: float,
        satisfied: Sequence[str],
        violated: Sequence[str],
    ) -> float:
        weights = self.config.weights
        score = total_value * weights.value
        score -= length * weights.length
        score -= risk * weights.risk
        score += len(satisfied) / max(1, len(self.problem.constraints)) * weights.constraints
        if self.config.allow_soft_violations:
            soft_violations = sum(1 for cid in violated if cid in self._soft_ids)
            score -= soft_violations * self.config.soft_violation_penalty
        return score

    def direct_path(self, start: SpacePoint, goal: SpacePoint, interior: int = 0) -> PossibilityPath:
        """Straight line from ``start`` to ``goal`` with ``interior`` evenly spaced waypoints."""

        return self.build_path(interpolate(start, goal, interior))


def interpolate(start: SpacePoint, goal: SpacePoint, interior: int) -> List[SpacePoint]:
    a, b = start.as_array(), goal.as_array()
    steps = max(0, int(interior)) + 1
    inner = [SpacePoint(a + (b - a) * (i / steps)) for i in range(1, steps)]
    return [start, *inner, goal]


def _dominates(a: PossibilityPath, b: PossibilityPath) -> bool:
    no_worse = a.total_value >= b.total_value and a.length <= b.length and a.risk_exposure <= b.risk_exposure
    better = a.total_value > b.total_value or a.length < b.length or a.risk_exposure < b.risk_exposure
    return no_worse and better


def pareto_frontier(paths: Sequence[PossibilityPath], limit: Optional[int] = None) -> Tuple[PossibilityPath, ...]:
    """Non-dominated paths (value up, length down, risk down), best score first.

    Paths with identical objectives are kept once.
    """

    frontier: List[PossibilityPath] = []
    seen = set()
    for path in paths:
        key = (path.total_value, path.length, path.risk_exposure)
        if key in seen or any(_dominates(other, path) for other in paths):
            continue
        seen.add(key)
        frontier.append(path)
    frontier.sort(key=lambda p: p.optimality_score, reverse=True)
    if limit is not None:
        frontier = frontier[: max(0, limit)]
    return tuple(frontier)


def should_stop(iteration: int, should_continue: Optional[ContinuePredicate]) -> bool:
    return should_continue is not None and not should_continue(iteration)


__all__ = [
    "ContinuePredicate",
    "PathEvaluator",
    "SearchOutcome",
    "interpolate",
    "pareto_frontier",
    "should_stop",
]
