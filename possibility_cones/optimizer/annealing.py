"""Simulated annealing over the interior waypoints of a path."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import numpy as np

from ..types import PossibilityPath, SpacePoint
from .scoring import ContinuePredicate, PathEvaluator, SearchOutcome, interpolate, pareto_frontier, should_stop

logger = logging.getLogger(__name__)


def simulated_annealing(
    evaluator: PathEvaluator,
    start: SpacePoint,
    goal: SpacePoint,
    rng: np.random.Generator,
    *,
    should_continue: Optional[ContinuePredicate] = None,
) -> SearchOutcome:
    """Anneal from the straight path subdivided into ``annealing_waypoints`` interior points.

    Perturbations that leave the valid region are rejected outright. The run
    converges once the temperature falls to ``convergence_threshold``; running
    out of iterations first is reported as not converged.

    With the default schedule (``initial_temperature`` 1.0, ``cooling_rate``
    0.995, threshold 0.001) cooling takes about 1379 iterations, more than the
    default ``max_iterations`` of 1000, so a default run always reports
    ``converged=False``. Raise ``max_iterations`` or lower ``cooling_rate``
    when convergence matters.
    """

    config = evaluator.config
    positions: List[SpacePoint] = interpolate(start, goal, config.annealing_waypoints)
    current = evaluator.build_path(positions)
    best = current
    accepted: List[PossibilityPath] = [current]

    temperature = config.initial_temperature
    iterations = 0
    while iterations < config.max_iterations and temperature > config.convergence_threshold:
        if should_stop(iterations, should_continue):
            logger.info("Annealing cancelled after %d iteration(s)", iterations)
            break
        iterations += 1

        if len(positions) > 2:
            index = int(rng.integers(1, len(positions) - 1))
            jitter = (rng.random(evaluator.dimension) - 0.5) * config.perturbation
            moved = SpacePoint(positions[index].as_array() + jitter)
            if evaluator.is_valid(moved):
                proposal = positions[:index] + [moved] + positions[index + 1 :]
                candidate = evaluator.build_path(proposal)
                delta = candidate.optimality_score - current.optimality_score
                if delta > 0 or rng.random() < math.exp(delta / temperature):
                    positions, current = proposal, candidate
                    accepted.append(candidate)
                    if candidate.optimality_score > best.optimality_score:
                        best = candidate

        temperature *= config.cooling_rate

    converged = temperature <= config.convergence_threshold
    alternatives = pareto_frontier([p for p in accepted if p.id != best.id], config.alternatives_limit)
    logger.debug(
        "Annealing finished: %d iteration(s), %d accepted, temperature %.6g, best score %.6g",
        iterations,
        len(accepted),
        temperature,
        best.optimality_score,
    )
    return SearchOutcome(best, iterations, converged, alternatives)


__all__ = ["simulated_annealing"]
