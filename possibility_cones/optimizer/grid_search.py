"""A* and Dijkstra over a regular grid laid across the search bounds."""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..types import SpacePoint
from .scoring import ContinuePredicate, PathEvaluator, SearchOutcome, should_stop

logger = logging.getLogger(__name__)

Cell = Tuple[int, ...]


class _Grid:
    def __init__(self, evaluator: PathEvaluator) -> None:
        bounds = evaluator.bounds
        self.resolution = np.asarray(evaluator.config.grid_resolution(evaluator.dimension), dtype=int)
        self.lower = bounds.min.as_array()
        self.cell_size = bounds.spans / self.resolution
        self.offsets = [o for o in itertools.product((-1, 0, 1), repeat=evaluator.dimension) if any(o)]
        self._centres: Dict[Cell, SpacePoint] = {}

    def cell_of(self, point: SpacePoint) -> Cell:
        with np.errstate(divide="ignore", invalid="ignore"):
            raw = np.floor((point.as_array() - self.lower) / self.cell_size)
        raw = np.nan_to_num(raw, nan=0.0, posinf=0.0, neginf=0.0)
        return tuple(int(i) for i in np.clip(raw, 0, self.resolution - 1))

    def centre(self, cell: Cell) -> SpacePoint:
        point = self._centres.get(cell)
        if point is None:
            point = SpacePoint(self.lower + (np.asarray(cell) + 0.5) * self.cell_size)
            self._centres[cell] = point
        return point

    def neighbours(self, cell: Cell):
        for offset in self.offsets:
            candidate = tuple(c + o for c, o in zip(cell, offset))
            if all(0 <= c < r for c, r in zip(candidate, self.resolution)):
                yield candidate


def _move_cost(evaluator: PathEvaluator, a: SpacePoint, b: SpacePoint, value_a: float, value_b: float) -> float:
    weights = evaluator.config.weights
    dist = float(np.linalg.norm(b.as_array() - a.as_array()))
    mean_value = 0.5 * (value_a + value_b)
    return dist * weights.length - mean_value * weights.value + evaluator.risk_at(b) * weights.risk


def grid_search(
    evaluator: PathEvaluator,
    start: SpacePoint,
    goal: SpacePoint,
    *,
    use_heuristic: bool = True,
    should_continue: Optional[ContinuePredicate] = None,
) -> SearchOutcome:
    """Best-first search from the start cell to the goal cell.

    Move costs can be negative (value is rewarded), so the cell-distance
    heuristic is not admissible and the result is not guaranteed optimal.
    The closed set keeps each cell expanded at most once.
    """

    grid = _Grid(evaluator)
    start_cell = grid.cell_of(start)
    goal_cell = grid.cell_of(goal)
    goal_idx = np.asarray(goal_cell, dtype=float)

    def heuristic(cell: Cell) -> float:
        if not use_heuristic:
            return 0.0
        return float(np.linalg.norm(np.asarray(cell, dtype=float) - goal_idx))

    values: Dict[Cell, float] = {start_cell: evaluator.value_at(grid.centre(start_cell))}
    valid: Dict[Cell, bool] = {}
    g_score: Dict[Cell, float] = {start_cell: 0.0}
    came_from: Dict[Cell, Cell] = {}
    closed = set()
    counter = itertools.count()
    open_heap: List[Tuple[float, int, Cell]] = [(heuristic(start_cell), next(counter), start_cell)]

    iterations = 0
    max_iterations = evaluator.config.max_iterations
    while open_heap and iterations < max_iterations:
        if should_stop(iterations, should_continue):
            logger.info("Grid search cancelled after %d iteration(s)", iterations)
            break
        _, _, cell = heapq.heappop(open_heap)
        if cell in closed:
            continue
        iterations += 1

        if cell == goal_cell:
            cells = [cell]
            while cells[-1] in came_from:
                cells.append(came_from[cells[-1]])
            cells.reverse()
            positions = [start, *(grid.centre(c) for c in cells[1:-1]), goal]
            logger.debug("Grid search reached goal cell %s through %d cell(s)", goal_cell, len(cells))
            return SearchOutcome(evaluator.build_path(positions), iterations, True)

        closed.add(cell)
        here = grid.centre(cell)
        for neighbour in grid.neighbours(cell):
            if neighbour in closed:
                continue
            point = grid.centre(neighbour)
            if neighbour not in valid:
                valid[neighbour] = evaluator.is_valid(point)
            if not valid[neighbour]:
                continue
            if neighbour not in values:
                values[neighbour] = evaluator.value_at(point)
            tentative = g_score[cell] + _move_cost(evaluator, here, point, values[cell], values[neighbour])
            if tentative < g_score.get(neighbour, math.inf):
                g_score[neighbour] = tentative
                came_from[neighbour] = cell
                heapq.heappush(open_heap, (tentative + heuristic(neighbour), next(counter), neighbour))

    logger.info(
        "Grid search found no route to goal cell %s after %d iteration(s); returning the direct path",
        goal_cell,
        iterations,
    )
    return SearchOutcome(evaluator.direct_path(start, goal), iterations, False)


__all__ = ["grid_search"]
