import argparse
import json
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from possibility_cones import (
    Bounds,
    ConstraintPipeline,
    ConstraintPipelineManager,
    MalformedInputError,
    OptimizationConfig,
    PipelineConfig,
    SearchProblem,
    SpacePoint,
    SpaceVector,
    StructuralMisuseError,
    ValueField,
    find_optimal_path,
    intersection_to_dict,
    pipeline_from_dict,
    pipeline_to_dict,
    result_to_dict,
)
from possibility_cones.optimizer import ALGORITHMS
from possibility_cones.serialization import constraint_from_dict
from possibility_cones.types import new_id

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_point(value: str, role: str) -> SpacePoint:
    parts = [part.strip() for part in value.split(",") if part.strip()]
    if not parts:
        raise MalformedInputError(f"{role}: expected comma-separated coordinates")
    try:
        return SpacePoint(tuple(float(part) for part in parts))
    except ValueError as exc:
        raise MalformedInputError(f"{role}: {exc}") from exc


def _coordinates(value: Any, where: str) -> Tuple[float, ...]:
    if not isinstance(value, list) or not value:
        raise MalformedInputError(f"{where}: expected a non-empty list of numbers")
    if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in value):
        raise MalformedInputError(f"{where}: expected a non-empty list of numbers")
    return tuple(float(v) for v in value)


def _parse_bounds(doc: Mapping[str, Any], dimension: int) -> Bounds:
    record = doc.get("bounds")
    if record is None:
        defaults = PipelineConfig()
        if dimension != defaults.dimensions:
            raise MalformedInputError(f"document: 'bounds' is required for a {dimension}-dimensional space")
        return defaults.bounds
    if not isinstance(record, Mapping):
        raise MalformedInputError("bounds: expected an object with 'min' and 'max'")
    bounds = Bounds.from_sequences(
        _coordinates(record.get("min"), "bounds.min"),
        _coordinates(record.get("max"), "bounds.max"),
    )
    if bounds.dimension != dimension:
        raise MalformedInputError(f"bounds: expected {dimension} coordinates, got {bounds.dimension}")
    return bounds


def _parse_value_field(doc: Mapping[str, Any]) -> Optional[ValueField]:
    record = doc.get("value_field")
    if record is None:
        return None
    if not isinstance(record, Mapping):
        raise MalformedInputError("value_field: expected an object")
    resolution = record.get("resolution")
    if not isinstance(resolution, list) or any(isinstance(r, bool) or not isinstance(r, int) for r in resolution):
        raise MalformedInputError("value_field.resolution: expected a list of integers")
    return ValueField(
        resolution=tuple(resolution),
        values=_coordinates(record.get("values"), "value_field.values"),
        interpolation=record.get("interpolation", "linear"),
    )


def _manager_for(bounds: Bounds, seed: Optional[int]) -> ConstraintPipelineManager:
    config = PipelineConfig(
        dimensions=bounds.dimension,
        dimension_labels=tuple(f"x{idx}" for idx in range(bounds.dimension)),
        bounds_min=bounds.min.coordinates,
        bounds_max=bounds.max.coordinates,
    )
    return ConstraintPipelineManager(config, random_seed=seed)


def _build_from_description(
    doc: Mapping[str, Any], seed: Optional[int]
) -> Tuple[ConstraintPipelineManager, ConstraintPipeline, Bounds]:
    name = doc.get("name")
    if not isinstance(name, str):
        raise MalformedInputError("document: 'name' must be a string")
    origin = SpacePoint(_coordinates(doc.get("origin"), "origin"))
    bounds = _parse_bounds(doc, origin.dimension)
    axis = doc.get("axis")

    manager = _manager_for(bounds, seed)
    pipeline = manager.create_pipeline(
        name, origin, SpaceVector(_coordinates(axis, "axis")) if axis is not None else None
    )

    stages = doc.get("stages", [])
    if not isinstance(stages, list):
        raise MalformedInputError("stages: expected a list")
    for idx, stage in enumerate(stages):
        where = f"stages[{idx}]"
        if not isinstance(stage, Mapping) or not isinstance(stage.get("name"), str):
            raise MalformedInputError(f"{where}: expected an object with a 'name'")
        records = stage.get("constraints", [])
        if not isinstance(records, list):
            raise MalformedInputError(f"{where}.constraints: expected a list")
        constraints = []
        for cidx, record in enumerate(records):
            if isinstance(record, Mapping) and "id" not in record:
                record = {**record, "id": new_id("constraint")}
            constraints.append(constraint_from_dict(record, f"{where}.constraints[{cidx}]"))
        manager.add_stage(pipeline.id, stage["name"], constraints)
    return manager, pipeline, bounds


def _build_from_export(
    doc: Mapping[str, Any], text: str, seed: Optional[int]
) -> Tuple[ConstraintPipelineManager, ConstraintPipeline, Bounds]:
    dimension = pipeline_from_dict(doc).initial_cone.dimension
    bounds = _parse_bounds(doc, dimension)
    manager = _manager_for(bounds, seed)
    pipeline = manager.import_pipeline(text)
    if pipeline is None:
        raise MalformedInputError("pipeline: import rejected")
    return manager, pipeline, bounds


def load_document(text: str, seed: Optional[int] = None):
    """Load either an exported pipeline or a pipeline description.

    Returns ``(manager, pipeline, bounds, value_field)``.
    """

    try:
        doc = json.loads(text)
    except ValueError as exc:
        raise MalformedInputError(f"document: not valid JSON ({exc})") from exc
    if not isinstance(doc, Mapping):
        raise MalformedInputError("document: expected a JSON object")
    try:
        if "initial_cone" in doc:
            manager, pipeline, bounds = _build_from_export(doc, text, seed)
        else:
            manager, pipeline, bounds = _build_from_description(doc, seed)
        value_field = _parse_value_field(doc)
    except StructuralMisuseError as exc:
        raise MalformedInputError(str(exc)) from exc
    return manager, pipeline, bounds, value_field


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run a constraint pipeline and search it for a path")
    parser.add_argument("path", help="Path to the pipeline JSON document")
    parser.add_argument("--start", required=True, help="Start point, e.g. 0,50")
    parser.add_argument("--goal", required=True, help="Goal point, e.g. 90,50")
    parser.add_argument(
        "--algorithm",
        choices=list(ALGORITHMS),
        default="a-star",
        help="Search strategy (default: a-star)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=123,
        help="Random seed for volume sampling and annealing (default: 123)",
    )
    parser.add_argument(
        "--resolution",
        type=int,
        default=20,
        help="Grid cells per axis for grid search (default: 20)",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=1000,
        help="Iteration cap for every strategy (default: 1000)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    with open(args.path) as fin:
        text = fin.read()

    try:
        manager, pipeline, bounds, value_field = load_document(text, args.seed)
        start = _parse_point(args.start, "start")
        goal = _parse_point(args.goal, "goal")
        logger.info("Loaded pipeline %s (%s) with %d stage(s)", pipeline.id, pipeline.name, len(pipeline.stages))

        intersection = manager.run_pipeline(pipeline.id)
        bottleneck = manager.get_bottleneck(pipeline.id)
        problem = SearchProblem(
            bounds=bounds,
            cones=tuple(stage.resulting_cone for stage in pipeline.stages),
            constraints=tuple(c for stage in pipeline.stages for c in stage.constraints),
            value_field=value_field,
        )
        config = OptimizationConfig(
            algorithm=args.algorithm,
            max_iterations=args.max_iterations,
            sampling_resolution=args.resolution,
            random_seed=args.seed,
        )
        result = find_optimal_path(problem, start, goal, config)
    except (MalformedInputError, StructuralMisuseError) as exc:
        logger.error("Malformed input: %s", exc)
        raise SystemExit(1)

    report: Dict[str, Any] = {
        "pipeline": pipeline_to_dict(pipeline),
        "intersection": intersection_to_dict(intersection) if intersection is not None else None,
        "bottleneck": (
            {"id": bottleneck.id, "name": bottleneck.name, "remaining_volume_fraction": bottleneck.remaining_volume_fraction}
            if bottleneck is not None
            else None
        ),
        "optimization": result_to_dict(result),
    }
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
