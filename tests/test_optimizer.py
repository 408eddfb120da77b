import math
from dataclasses import replace

import numpy as np
import pytest

from possibility_cones.geometry.cones import create_cone
from possibility_cones.optimizer import (
    ALGORITHMS,
    DEFAULT_OPTIMIZATION_CONFIG,
    ObjectiveWeights,
    OptimizationConfig,
    PathEvaluator,
    PathOptimizer,
    SearchProblem,
    ValueFieldSampler,
    find_optimal_path,
    pareto_frontier,
)
from possibility_cones.types import (
    Bounds,
    ConeConstraint,
    CustomSurface,
    HyperplaneSurface,
    PossibilityPath,
    SpacePoint,
    SpaceVector,
    SphereSurface,
    StructuralMisuseError,
    ValueField,
)

BOX = Bounds.from_sequences((0.0, 0.0), (100.0, 100.0))
START = SpacePoint((10.0, 50.0))
GOAL = SpacePoint((90.0, 50.0))


def _cone():
    return create_cone(SpacePoint((0.0, 50.0)), SpaceVector((1.0, 0.0)), math.pi / 4)


def _constraint(cid, surface, hardness="hard"):
    return ConeConstraint(
        id=cid, label=cid, type="exclusion", surface=surface, restrictiveness=0.1, hardness=hardness
    )


def _problem(**kwargs):
    kwargs.setdefault("cones", (_cone(),))
    return SearchProblem(bounds=BOX, **kwargs)


def _config(**kwargs):
    return replace(DEFAULT_OPTIMIZATION_CONFIG, **kwargs)


def _assert_ends(path, start=START, goal=GOAL):
    assert path.waypoints[0].position == start
    assert path.waypoints[-1].position == goal
    assert path.waypoints[0].distance_from_start == 0.0
    assert path.length == pytest.approx(path.waypoints[-1].distance_from_start)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def test_score_formula_for_direct_path():
    problem = SearchProblem(bounds=BOX)
    evaluator = PathEvaluator(problem, DEFAULT_OPTIMIZATION_CONFIG)
    path = evaluator.direct_path(SpacePoint((0.0, 0.0)), SpacePoint((3.0, 4.0)))

    assert path.total_value == pytest.approx(4.0)
    assert path.length == pytest.approx(5.0)
    assert path.risk_exposure == 0.0
    assert path.optimality_score == pytest.approx(4.0 - 5.0 * 0.3)


def test_score_counts_satisfied_constraints_and_soft_penalty():
    hard = _constraint("hard", HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=10.0))
    soft = _constraint("soft", HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=1.0), hardness="soft")
    problem = SearchProblem(bounds=BOX, constraints=(hard, soft))
    start, goal = SpacePoint((0.0, 0.0)), SpacePoint((3.0, 4.0))

    path = PathEvaluator(problem, DEFAULT_OPTIMIZATION_CONFIG).direct_path(start, goal)
    assert path.satisfied_constraints == ("hard",)
    assert path.violated_constraints == ("soft",)
    assert path.optimality_score == pytest.approx(2.5 + 0.5 * 0.8 - 0.5)

    strict = PathEvaluator(problem, _config(allow_soft_violations=False)).direct_path(start, goal)
    assert strict.optimality_score == pytest.approx(2.5 + 0.5 * 0.8)


def test_soft_constraints_bind_when_violations_are_not_allowed():
    soft = _constraint("soft", HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=50.0), hardness="soft")
    problem = SearchProblem(bounds=BOX, constraints=(soft,))
    point = SpacePoint((70.0, 50.0))

    assert PathEvaluator(problem, DEFAULT_OPTIMIZATION_CONFIG).is_valid(point)
    assert not PathEvaluator(problem, _config(allow_soft_violations=False)).is_valid(point)


def test_validity_requires_bounds_and_cones():
    evaluator = PathEvaluator(_problem(), DEFAULT_OPTIMIZATION_CONFIG)
    assert evaluator.is_valid(SpacePoint((50.0, 50.0)))
    assert not evaluator.is_valid(SpacePoint((10.0, 90.0)))
    assert not evaluator.is_valid(SpacePoint((120.0, 50.0)))


def test_risk_is_normalized_angular_offset():
    evaluator = PathEvaluator(_problem(), DEFAULT_OPTIMIZATION_CONFIG)
    assert evaluator.risk_at(SpacePoint((50.0, 50.0))) == pytest.approx(0.0)
    assert evaluator.risk_at(SpacePoint((50.0, 50.0 + 50.0 * math.tan(math.pi / 8)))) == pytest.approx(0.5)
    assert evaluator.risk_at(SpacePoint((10.0, 90.0))) == 1.0

    no_cones = PathEvaluator(SearchProblem(bounds=BOX), DEFAULT_OPTIMIZATION_CONFIG)
    assert no_cones.risk_at(SpacePoint((10.0, 90.0))) == 0.0


def test_value_defaults_to_value_coordinate():
    evaluator = PathEvaluator(SearchProblem(bounds=BOX), DEFAULT_OPTIMIZATION_CONFIG)
    assert evaluator.value_at(SpacePoint((3.0, 42.0))) == 42.0
    assert evaluator.value_gradient(SpacePoint((3.0, 42.0))) == pytest.approx([0.0, 1.0])


def test_custom_surfaces_use_problem_evaluators():
    band = _constraint("band", CustomSurface(name="band", params={"half_width": 5.0}))
    evaluators = {"band": lambda point, params: abs(point.coordinates[1] - 50.0) - params["half_width"]}
    evaluator = PathEvaluator(SearchProblem(bounds=BOX, constraints=(band,), evaluators=evaluators), DEFAULT_OPTIMIZATION_CONFIG)

    assert evaluator.is_valid(SpacePoint((20.0, 52.0)))
    assert not evaluator.is_valid(SpacePoint((20.0, 60.0)))


# ---------------------------------------------------------------------------
# Value field
# ---------------------------------------------------------------------------


def _linear_field(interpolation="linear"):
    # f(x, y) = x + 10 y on a 3x3 grid over [0, 2]^2.
    values = [x + 10.0 * y for x in (0.0, 1.0, 2.0) for y in (0.0, 1.0, 2.0)]
    return ValueField(resolution=(3, 3), values=values, interpolation=interpolation)


def test_value_field_sampler_interpolates_and_clamps():
    bounds = Bounds.from_sequences((0.0, 0.0), (2.0, 2.0))
    sampler = ValueFieldSampler(_linear_field(), bounds)

    assert sampler.value_at(SpacePoint((0.5, 1.5))) == pytest.approx(15.5)
    assert sampler.value_at(SpacePoint((5.0, -1.0))) == pytest.approx(2.0)
    assert sampler.values_at(np.array([[0.0, 0.0], [2.0, 2.0]])) == pytest.approx([0.0, 22.0])

    nearest = ValueFieldSampler(_linear_field("nearest"), bounds)
    assert nearest.value_at(SpacePoint((0.9, 0.2))) == pytest.approx(1.0)


def test_value_field_validation():
    with pytest.raises(StructuralMisuseError):
        ValueField(resolution=(3, 3), values=[0.0] * 8)
    with pytest.raises(StructuralMisuseError):
        ValueField(resolution=(3, 3), values=[0.0] * 9, interpolation="cubic")
    with pytest.raises(StructuralMisuseError):
        ValueField(resolution=(1, 3), values=[0.0] * 3)
    with pytest.raises(StructuralMisuseError):
        SearchProblem(bounds=BOX, value_field=ValueField(resolution=(2,), values=[0.0, 1.0]))


def test_value_field_feeds_waypoints():
    field = ValueField(resolution=(2, 2), values=[0.0, 0.0, 100.0, 100.0])
    evaluator = PathEvaluator(SearchProblem(bounds=BOX, value_field=field), DEFAULT_OPTIMIZATION_CONFIG)
    path = evaluator.direct_path(SpacePoint((0.0, 0.0)), SpacePoint((50.0, 0.0)))

    assert [w.value for w in path.waypoints] == pytest.approx([0.0, 50.0])
    assert path.waypoints[1].value_gradient.components == pytest.approx((1.0, 0.0), abs=1e-6)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_start_equal_to_goal_is_immediate(algorithm):
    result = find_optimal_path(_problem(), START, START, _config(algorithm=algorithm))

    assert result.converged
    assert result.iterations == 0
    assert len(result.best_path.waypoints) == 1
    assert result.best_path.length == 0.0
    assert result.metrics.improvement == 0.0


def test_dimension_mismatch_raises():
    with pytest.raises(StructuralMisuseError):
        find_optimal_path(_problem(), SpacePoint((1.0, 2.0, 3.0)), GOAL)


@pytest.mark.parametrize("algorithm", ["a-star", "dijkstra"])
def test_grid_search_reaches_goal_through_valid_cells(algorithm):
    result = find_optimal_path(_problem(), START, GOAL, _config(algorithm=algorithm))
    path = result.best_path

    assert result.converged
    assert 0 < result.iterations <= DEFAULT_OPTIMIZATION_CONFIG.max_iterations
    _assert_ends(path)
    evaluator = PathEvaluator(_problem(), DEFAULT_OPTIMIZATION_CONFIG)
    assert all(evaluator.is_valid(w.position) for w in path.waypoints[1:-1])
    assert result.metrics.improvement == pytest.approx(result.metrics.final_score - result.metrics.initial_score)
    assert result.metrics.final_score == path.optimality_score
    assert result.metrics.runtime >= 0.0


def test_grid_search_avoids_hard_obstacle():
    obstacle = _constraint(
        "pond", SphereSurface(center=SpacePoint((50.0, 50.0)), radius=15.0, valid_region="outside")
    )
    result = find_optimal_path(_problem(constraints=(obstacle,)), START, GOAL, _config(algorithm="a-star"))

    assert result.converged
    centre = np.array([50.0, 50.0])
    assert all(np.linalg.norm(w.position.as_array() - centre) >= 15.0 for w in result.best_path.waypoints)
    assert "pond" in result.best_path.satisfied_constraints


def test_grid_search_unreachable_goal_falls_back_to_direct_path():
    goal = SpacePoint((10.0, 95.0))
    result = find_optimal_path(_problem(), START, goal, _config(algorithm="a-star"))

    assert not result.converged
    assert [w.position for w in result.best_path.waypoints] == [START, goal]
    assert result.metrics.improvement == pytest.approx(0.0)


def test_grid_search_honours_cancellation():
    result = find_optimal_path(_problem(), START, GOAL, _config(algorithm="dijkstra"), should_continue=lambda i: False)
    assert not result.converged
    assert result.iterations == 0
    assert len(result.best_path.waypoints) == 2


def test_grid_search_per_axis_resolution():
    config = _config(algorithm="a-star", sampling_resolution=(10, 5))
    assert config.grid_resolution(2) == (10, 5)
    result = find_optimal_path(_problem(), START, GOAL, config)
    assert result.converged

    with pytest.raises(StructuralMisuseError):
        config.grid_resolution(3)


def test_gradient_ascent_walks_to_goal():
    config = _config(algorithm="gradient-ascent", weights=ObjectiveWeights(value=0.0))
    result = find_optimal_path(_problem(), START, GOAL, config)

    assert result.converged
    _assert_ends(result.best_path)
    assert result.best_path.length == pytest.approx(80.0)
    step = 0.01 * BOX.diagonal
    assert result.iterations == math.ceil(80.0 / step)


def test_gradient_ascent_stops_on_iteration_cap():
    config = _config(algorithm="gradient-ascent", weights=ObjectiveWeights(value=0.0), max_iterations=5)
    result = find_optimal_path(_problem(), START, GOAL, config)

    assert not result.converged
    assert result.iterations == 5
    assert len(result.best_path.waypoints) == 6


def test_gradient_ascent_recovers_or_stops_when_blocked():
    wall = _constraint("wall", HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=40.0))
    config = _config(algorithm="gradient-ascent", weights=ObjectiveWeights(value=0.0), recovery_attempts=3)
    result = find_optimal_path(_problem(constraints=(wall,)), START, GOAL, config)

    assert not result.converged
    assert all(w.position.coordinates[0] <= 40.0 for w in result.best_path.waypoints)


def test_annealing_is_reproducible_with_seeded_rng():
    config = _config(algorithm="simulated-annealing", max_iterations=300)
    first = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(3))
    second = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(3))

    assert first.best_path.positions == second.best_path.positions
    assert first.best_path.optimality_score == second.best_path.optimality_score
    assert first.iterations == second.iterations == 300


def test_annealing_uses_config_seed_without_rng():
    config = _config(algorithm="simulated-annealing", max_iterations=200, random_seed=11)
    first = find_optimal_path(_problem(), START, GOAL, config)
    second = find_optimal_path(_problem(), START, GOAL, config)
    assert first.best_path.positions == second.best_path.positions


def test_annealing_converges_when_cooled():
    config = _config(algorithm="simulated-annealing", max_iterations=5000)
    result = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(0))

    expected = math.ceil(math.log(config.convergence_threshold) / math.log(config.cooling_rate))
    assert result.converged
    assert abs(result.iterations - expected) <= 1
    _assert_ends(result.best_path)
    assert len(result.best_path.waypoints) == config.annealing_waypoints + 2

    seed_path = PathEvaluator(_problem(), config).direct_path(START, GOAL, config.annealing_waypoints)
    assert result.best_path.optimality_score >= seed_path.optimality_score


def test_annealing_iteration_cap_is_not_convergence():
    config = _config(algorithm="simulated-annealing", max_iterations=50)
    result = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(0))
    assert not result.converged
    assert result.iterations == 50


def test_default_annealing_schedule_outlasts_iteration_cap():
    defaults = DEFAULT_OPTIMIZATION_CONFIG
    final_temperature = defaults.initial_temperature * defaults.cooling_rate ** defaults.max_iterations
    assert final_temperature > defaults.convergence_threshold

    config = _config(algorithm="simulated-annealing")
    result = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(2))
    assert not result.converged
    assert result.iterations == defaults.max_iterations


def test_annealing_alternatives_are_a_pareto_frontier():
    config = _config(algorithm="simulated-annealing", max_iterations=400, alternatives_limit=3)
    result = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(21))

    assert len(result.alternatives) <= 3
    assert all(alt.id != result.best_path.id for alt in result.alternatives)
    scores = [alt.optimality_score for alt in result.alternatives]
    assert scores == sorted(scores, reverse=True)


def test_annealing_honours_cancellation():
    config = _config(algorithm="simulated-annealing")
    result = find_optimal_path(
        _problem(), START, GOAL, config, rng=np.random.default_rng(0), should_continue=lambda i: i < 10
    )
    assert result.iterations == 10
    assert not result.converged


def test_path_optimizer_facade_forwards_config():
    config = _config(algorithm="simulated-annealing", max_iterations=100)
    optimizer = PathOptimizer(config)
    via_facade = optimizer.find_optimal_path(_problem(), START, GOAL, rng=np.random.default_rng(5))
    direct = find_optimal_path(_problem(), START, GOAL, config, rng=np.random.default_rng(5))
    assert via_facade.best_path.positions == direct.best_path.positions


def test_optimization_config_validation():
    with pytest.raises(StructuralMisuseError):
        OptimizationConfig(algorithm="gradient-descent")
    with pytest.raises(StructuralMisuseError):
        OptimizationConfig(cooling_rate=1.0)
    with pytest.raises(StructuralMisuseError):
        OptimizationConfig(sampling_resolution=(4, 0))


def test_search_problem_rejects_mismatched_cone():
    cone = create_cone(SpacePoint((0.0, 0.0, 0.0)), SpaceVector((1.0, 0.0, 0.0)), 0.5)
    with pytest.raises(StructuralMisuseError):
        SearchProblem(bounds=BOX, cones=(cone,))


def _path(pid, value, length, risk, score):
    return PossibilityPath(
        id=pid,
        waypoints=(),
        length=length,
        total_value=value,
        risk_exposure=risk,
        satisfied_constraints=(),
        violated_constraints=(),
        optimality_score=score,
    )


def test_pareto_frontier_drops_dominated_paths():
    best = _path("a", 10.0, 5.0, 0.1, 9.0)
    dominated = _path("b", 8.0, 6.0, 0.2, 5.0)
    tradeoff = _path("c", 12.0, 9.0, 0.1, 7.0)
    duplicate = _path("d", 10.0, 5.0, 0.1, 9.0)

    frontier = pareto_frontier([dominated, tradeoff, best, duplicate])
    assert [p.id for p in frontier] == ["a", "c"]
    assert [p.id for p in pareto_frontier([dominated, tradeoff, best], limit=1)] == ["a"]
