"""Gradient ascent on goal attraction plus the value gradient."""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from ..types import SpacePoint
from .scoring import ContinuePredicate, PathEvaluator, SearchOutcome, should_stop

logger = logging.getLogger(__name__)


def _recover(evaluator: PathEvaluator, rejected: np.ndarray, step: float) -> Optional[np.ndarray]:
    """Walk from ``rejected`` toward the bounds centre until a valid point turns up."""

    centre = evaluator.bounds.center.as_array()
    current = rejected
    for _ in range(evaluator.config.recovery_attempts):
        to_centre = centre - current
        norm = float(np.linalg.norm(to_centre))
        if norm <= 1e-12:
            return None
        current = current + to_centre / norm * min(step, norm)
        if evaluator.is_valid(SpacePoint(current)):
            return current
    return None


def gradient_ascent(
    evaluator: PathEvaluator,
    start: SpacePoint,
    goal: SpacePoint,
    *,
    should_continue: Optional[ContinuePredicate] = None,
) -> SearchOutcome:
    config = evaluator.config
    weights = config.weights
    step = evaluator.step_size
    target = goal.as_array()

    current = start.as_array()
    positions: List[SpacePoint] = [start]
    converged = float(np.linalg.norm(target - current)) <= config.convergence_threshold
    iterations = 0

    while not converged and iterations < config.max_iterations:
        if should_stop(iterations, should_continue):
            logger.info("Gradient ascent cancelled after %d iteration(s)", iterations)
            break
        iterations += 1

        to_goal = target - current
        remaining = float(np.linalg.norm(to_goal))
        snapped = remaining <= step
        if snapped:
            candidate = target.copy()
        else:
            direction = weights.length * to_goal / remaining
            direction = direction + weights.value * evaluator.value_gradient(SpacePoint(current))
            norm = float(np.linalg.norm(direction))
            if norm <= 1e-12:
                direction, norm = to_goal, remaining
            candidate = current + direction / norm * step

        if not evaluator.is_valid(SpacePoint(candidate)):
            recovered = _recover(evaluator, candidate, step)
            if recovered is None:
                logger.info("Gradient ascent stuck after %d iteration(s); recovery failed", iterations)
                break
            candidate, snapped = recovered, False

        current = candidate
        positions.append(goal if snapped else SpacePoint(candidate))
        converged = float(np.linalg.norm(target - current)) <= config.convergence_threshold

    logger.debug("Gradient ascent finished: %d step(s), converged=%s", len(positions) - 1, converged)
    return SearchOutcome(evaluator.build_path(positions), iterations, converged)


__all__ = ["gradient_ascent"]
