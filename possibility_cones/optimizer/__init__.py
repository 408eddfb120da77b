"""Value-maximizing path search through the intersection of possibility cones."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

import numpy as np

from ..logging_utils import apply_debug_logging
from ..types import SpacePoint
from .annealing import simulated_annealing
from .gradient import gradient_ascent
from .grid_search import grid_search
from .model import (
    ALGORITHMS,
    DEFAULT_OPTIMIZATION_CONFIG,
    Algorithm,
    ObjectiveWeights,
    OptimizationConfig,
    OptimizationMetrics,
    OptimizationResult,
    SearchProblem,
)
from .scoring import ContinuePredicate, PathEvaluator, SearchOutcome, pareto_frontier
from .value_field import ValueFieldSampler

logger = logging.getLogger(__name__)

Strategy = Callable[
    [PathEvaluator, SpacePoint, SpacePoint, np.random.Generator, Optional[ContinuePredicate]],
    SearchOutcome,
]


def _a_star(evaluator, start, goal, rng, should_continue):
    return grid_search(evaluator, start, goal, use_heuristic=True, should_continue=should_continue)


def _dijkstra(evaluator, start, goal, rng, should_continue):
    return grid_search(evaluator, start, goal, use_heuristic=False, should_continue=should_continue)


def _gradient_ascent(evaluator, start, goal, rng, should_continue):
    return gradient_ascent(evaluator, start, goal, should_continue=should_continue)


def _simulated_annealing(evaluator, start, goal, rng, should_continue):
    return simulated_annealing(evaluator, start, goal, rng, should_continue=should_continue)


STRATEGIES: Dict[str, Strategy] = {
    "a-star": _a_star,
    "dijkstra": _dijkstra,
    "gradient-ascent": _gradient_ascent,
    "simulated-annealing": _simulated_annealing,
}


def find_optimal_path(
    problem: SearchProblem,
    start: SpacePoint,
    goal: SpacePoint,
    config: OptimizationConfig = DEFAULT_OPTIMIZATION_CONFIG,
    *,
    rng: Optional[np.random.Generator] = None,
    should_continue: Optional[ContinuePredicate] = None,
) -> OptimizationResult:
    """Search ``problem`` for the best path from ``start`` to ``goal``.

    ``rng`` drives the stochastic strategies; without one a generator seeded
    from ``config.random_seed`` is used. ``should_continue(iteration)`` is
    polled once per outer iteration and ends the search when it returns
    ``False``.
    """

    started = time.perf_counter()
    evaluator = PathEvaluator(problem, config)
    evaluator.check_point(start, "start")
    evaluator.check_point(goal, "goal")

    if np.array_equal(start.as_array(), goal.as_array()):
        path = evaluator.build_path([start])
        logger.info("Start equals goal; returning a single-waypoint path")
        return OptimizationResult(
            best_path=path,
            alternatives=(),
            iterations=0,
            converged=True,
            metrics=OptimizationMetrics(
                initial_score=path.optimality_score,
                final_score=path.optimality_score,
                improvement=0.0,
                runtime=time.perf_counter() - started,
            ),
        )

    initial_score = evaluator.direct_path(start, goal).optimality_score
    generator = rng if rng is not None else np.random.default_rng(config.random_seed)
    logger.info(
        "Searching with %s over %d cone(s) and %d constraint(s)",
        config.algorithm,
        len(problem.cones),
        len(problem.constraints),
    )
    outcome = STRATEGIES[config.algorithm](evaluator, start, goal, generator, should_continue)

    final_score = outcome.path.optimality_score
    runtime = time.perf_counter() - started
    logger.info(
        "%s finished after %d iteration(s): converged=%s score %.6g (initial %.6g) in %.3fs",
        config.algorithm,
        outcome.iterations,
        outcome.converged,
        final_score,
        initial_score,
        runtime,
    )
    return OptimizationResult(
        best_path=outcome.path,
        alternatives=outcome.alternatives,
        iterations=outcome.iterations,
        converged=outcome.converged,
        metrics=OptimizationMetrics(
            initial_score=initial_score,
            final_score=final_score,
            improvement=final_score - initial_score,
            runtime=runtime,
        ),
    )


class PathOptimizer:
    """Holds an :class:`OptimizationConfig` and forwards to :func:`find_optimal_path`."""

    def __init__(self, config: OptimizationConfig = DEFAULT_OPTIMIZATION_CONFIG) -> None:
        self.config = config

    def find_optimal_path(
        self,
        problem: SearchProblem,
        start: SpacePoint,
        goal: SpacePoint,
        *,
        rng: Optional[np.random.Generator] = None,
        should_continue: Optional[ContinuePredicate] = None,
    ) -> OptimizationResult:
        return find_optimal_path(problem, start, goal, self.config, rng=rng, should_continue=should_continue)


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "ALGORITHMS",
    "Algorithm",
    "DEFAULT_OPTIMIZATION_CONFIG",
    "ObjectiveWeights",
    "OptimizationConfig",
    "OptimizationMetrics",
    "OptimizationResult",
    "PathEvaluator",
    "PathOptimizer",
    "STRATEGIES",
    "SearchProblem",
    "ValueFieldSampler",
    "find_optimal_path",
    "pareto_frontier",
]
