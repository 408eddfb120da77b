"""Plain-record export of value objects and validated pipeline import.

Exported records only contain dicts, lists, strings, numbers, booleans and
``None`` so they can be written with :mod:`json`. Loaders check every field
they read and raise :class:`MalformedInputError` with the location of the
first problem.
"""

from __future__ import annotations

import json
import math
import numbers
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .types import (
    CONE_DIRECTIONS,
    CONSTRAINT_TYPES,
    Bounds,
    ConeConstraint,
    ConeIntersection,
    ConeSurface,
    ConstraintPipeline,
    ConstraintSurface,
    CustomSurface,
    HyperplaneSurface,
    IntersectionBoundary,
    MalformedInputError,
    PathWaypoint,
    PipelineStage,
    PossibilityCone,
    PossibilityPath,
    SpacePoint,
    SpaceVector,
    SphereSurface,
    StructuralMisuseError,
    Waist,
)

if TYPE_CHECKING:
    from .optimizer.model import OptimizationResult

# Exported axes are unit vectors up to float rounding.
_AXIS_TOLERANCE = 1e-9
_MAX_APERTURE = math.pi / 2


def _number(value: float) -> Optional[float]:
    value = float(value)
    return value if math.isfinite(value) else None


def point_to_dict(point: SpacePoint) -> Dict[str, Any]:
    record: Dict[str, Any] = {"coordinates": list(point.coordinates)}
    if point.dimensions is not None:
        record["dimensions"] = list(point.dimensions)
    if point.weight is not None:
        record["weight"] = point.weight
    return record


def vector_to_dict(vector: SpaceVector) -> Dict[str, Any]:
    return {"components": list(vector.components)}


def bounds_to_dict(bounds: Bounds) -> Dict[str, Any]:
    return {"min": point_to_dict(bounds.min), "max": point_to_dict(bounds.max)}


def cone_to_dict(cone: PossibilityCone) -> Dict[str, Any]:
    return {
        "id": cone.id,
        "apex": point_to_dict(cone.apex),
        "axis": vector_to_dict(cone.axis),
        "aperture": cone.aperture,
        "direction": cone.direction,
        "extent": cone.extent,
        "constraints": list(cone.constraints),
        "metadata": dict(cone.metadata),
    }


def surface_to_dict(surface: ConstraintSurface) -> Dict[str, Any]:
    if isinstance(surface, HyperplaneSurface):
        return {
            "type": "hyperplane",
            "normal": vector_to_dict(surface.normal),
            "offset": surface.offset,
            "valid_side": surface.valid_side,
        }
    if isinstance(surface, SphereSurface):
        return {
            "type": "sphere",
            "center": point_to_dict(surface.center),
            "radius": surface.radius,
            "valid_region": surface.valid_region,
        }
    if isinstance(surface, ConeSurface):
        return {"type": "cone", "cone": cone_to_dict(surface.cone), "valid_region": surface.valid_region}
    return {"type": "custom", "name": surface.name, "params": dict(surface.params)}


def constraint_to_dict(constraint: ConeConstraint) -> Dict[str, Any]:
    return {
        "id": constraint.id,
        "label": constraint.label,
        "type": constraint.type,
        "surface": surface_to_dict(constraint.surface),
        "restrictiveness": constraint.restrictiveness,
        "dependencies": list(constraint.dependencies),
        "hardness": constraint.hardness,
        "weight": constraint.weight,
        "pipeline_position": constraint.pipeline_position,
    }


def waist_to_dict(waist: Optional[Waist]) -> Optional[Dict[str, Any]]:
    if waist is None:
        return None
    return {"position": point_to_dict(waist.position), "area": waist.area}


def intersection_to_dict(intersection: ConeIntersection) -> Dict[str, Any]:
    return {
        "id": intersection.id,
        "cone_ids": list(intersection.cone_ids),
        "constraint_ids": list(intersection.constraint_ids),
        "volume": intersection.volume,
        "waist": waist_to_dict(intersection.waist),
        "boundary": {"kind": intersection.boundary.kind, "bounds": bounds_to_dict(intersection.boundary.bounds)},
    }


def stage_to_dict(stage: PipelineStage) -> Dict[str, Any]:
    return {
        "id": stage.id,
        "name": stage.name,
        "position": stage.position,
        "constraints": [constraint_to_dict(c) for c in stage.constraints],
        "resulting_cone": cone_to_dict(stage.resulting_cone),
        "remaining_volume_fraction": stage.remaining_volume_fraction,
    }


def pipeline_to_dict(pipeline: ConstraintPipeline) -> Dict[str, Any]:
    return {
        "id": pipeline.id,
        "name": pipeline.name,
        "initial_cone": cone_to_dict(pipeline.initial_cone),
        "stages": [stage_to_dict(stage) for stage in pipeline.stages],
        "final_intersection": (
            intersection_to_dict(pipeline.final_intersection) if pipeline.final_intersection else None
        ),
        "metadata": dict(pipeline.metadata),
    }


def waypoint_to_dict(waypoint: PathWaypoint) -> Dict[str, Any]:
    return {
        "position": point_to_dict(waypoint.position),
        "value": _number(waypoint.value),
        "distance_from_start": waypoint.distance_from_start,
        "containing_cones": list(waypoint.containing_cones),
        "value_gradient": vector_to_dict(waypoint.value_gradient) if waypoint.value_gradient else None,
    }


def path_to_dict(path: PossibilityPath) -> Dict[str, Any]:
    return {
        "id": path.id,
        "waypoints": [waypoint_to_dict(w) for w in path.waypoints],
        "length": path.length,
        "total_value": _number(path.total_value),
        "risk_exposure": path.risk_exposure,
        "satisfied_constraints": list(path.satisfied_constraints),
        "violated_constraints": list(path.violated_constraints),
        "optimality_score": _number(path.optimality_score),
    }


def result_to_dict(result: OptimizationResult) -> Dict[str, Any]:
    """Render an optimizer result (best path, alternatives, iterations, metrics)."""

    metrics = result.metrics
    return {
        "best_path": path_to_dict(result.best_path),
        "alternatives": [path_to_dict(p) for p in result.alternatives],
        "iterations": result.iterations,
        "converged": result.converged,
        "metrics": {
            "initial_score": _number(metrics.initial_score),
            "final_score": _number(metrics.final_score),
            "improvement": _number(metrics.improvement),
            "runtime": metrics.runtime,
        },
    }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _fail(where: str, message: str) -> MalformedInputError:
    return MalformedInputError(f"{where}: {message}")


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise _fail(where, f"expected an object, got {type(value).__name__}")
    return value


def _field(record: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in record:
        raise _fail(where, f"missing required field '{key}'")
    return record[key]


def _string(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise _fail(where, f"expected a string, got {type(value).__name__}")
    return value


def _float(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise _fail(where, f"expected a number, got {type(value).__name__}")
    return float(value)


def _optional_float(value: Any, where: str) -> Optional[float]:
    return None if value is None else _float(value, where)


def _choice(value: Any, allowed: Sequence[str], where: str) -> str:
    text = _string(value, where)
    if text not in allowed:
        raise _fail(where, f"expected one of {', '.join(allowed)}, got '{text}'")
    return text


def _list(value: Any, where: str) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise _fail(where, f"expected a list, got {type(value).__name__}")
    return list(value)


def _floats(value: Any, where: str) -> Tuple[float, ...]:
    items = _list(value, where)
    if not items:
        raise _fail(where, "expected at least one number")
    return tuple(_float(item, f"{where}[{idx}]") for idx, item in enumerate(items))


def _strings(value: Any, where: str) -> Tuple[str, ...]:
    return tuple(_string(item, f"{where}[{idx}]") for idx, item in enumerate(_list(value, where)))


def point_from_dict(value: Any, where: str = "point") -> SpacePoint:
    record = _mapping(value, where)
    dims = record.get("dimensions")
    return SpacePoint(
        _floats(_field(record, "coordinates", where), f"{where}.coordinates"),
        dimensions=None if dims is None else _strings(dims, f"{where}.dimensions"),
        weight=_optional_float(record.get("weight"), f"{where}.weight"),
    )


def vector_from_dict(value: Any, where: str = "vector") -> SpaceVector:
    record = _mapping(value, where)
    return SpaceVector(_floats(_field(record, "components", where), f"{where}.components"))


def bounds_from_dict(value: Any, where: str = "bounds") -> Bounds:
    record = _mapping(value, where)
    return Bounds(
        point_from_dict(_field(record, "min", where), f"{where}.min"),
        point_from_dict(_field(record, "max", where), f"{where}.max"),
    )


def cone_from_dict(value: Any, where: str = "cone") -> PossibilityCone:
    """Load a cone record; the axis must be a unit vector and the aperture lie in [0, pi/2]."""

    record = _mapping(value, where)
    metadata = record.get("metadata", {})
    axis = vector_from_dict(_field(record, "axis", where), f"{where}.axis")
    length = math.sqrt(sum(c * c for c in axis.components))
    if not abs(length - 1.0) <= _AXIS_TOLERANCE:
        raise _fail(f"{where}.axis", f"expected a unit vector, got length {length:.6g}")
    aperture = _float(_field(record, "aperture", where), f"{where}.aperture")
    if not 0.0 <= aperture <= _MAX_APERTURE:
        raise _fail(f"{where}.aperture", f"must lie in [0, pi/2], got {aperture}")
    return PossibilityCone(
        id=_string(_field(record, "id", where), f"{where}.id"),
        apex=point_from_dict(_field(record, "apex", where), f"{where}.apex"),
        axis=axis,
        aperture=aperture,
        direction=_choice(record.get("direction", "forward"), CONE_DIRECTIONS, f"{where}.direction"),
        extent=_optional_float(record.get("extent"), f"{where}.extent"),
        constraints=_strings(record.get("constraints", []), f"{where}.constraints"),
        metadata=dict(_mapping(metadata, f"{where}.metadata")),
    )


def surface_from_dict(value: Any, where: str = "surface") -> ConstraintSurface:
    record = _mapping(value, where)
    kind = _choice(_field(record, "type", where), ("hyperplane", "sphere", "cone", "custom"), f"{where}.type")
    if kind == "hyperplane":
        return HyperplaneSurface(
            normal=vector_from_dict(_field(record, "normal", where), f"{where}.normal"),
            offset=_float(_field(record, "offset", where), f"{where}.offset"),
            valid_side=_choice(record.get("valid_side", "negative"), ("positive", "negative"), f"{where}.valid_side"),
        )
    if kind == "sphere":
        return SphereSurface(
            center=point_from_dict(_field(record, "center", where), f"{where}.center"),
            radius=_float(_field(record, "radius", where), f"{where}.radius"),
            valid_region=_choice(record.get("valid_region", "inside"), ("inside", "outside"), f"{where}.valid_region"),
        )
    if kind == "cone":
        return ConeSurface(
            cone=cone_from_dict(_field(record, "cone", where), f"{where}.cone"),
            valid_region=_choice(record.get("valid_region", "inside"), ("inside", "outside"), f"{where}.valid_region"),
        )
    return CustomSurface(
        name=_string(_field(record, "name", where), f"{where}.name"),
        params=dict(_mapping(record.get("params", {}), f"{where}.params")),
    )


def constraint_from_dict(value: Any, where: str = "constraint") -> ConeConstraint:
    record = _mapping(value, where)
    restrictiveness = _float(_field(record, "restrictiveness", where), f"{where}.restrictiveness")
    if not 0.0 <= restrictiveness <= 1.0:
        raise _fail(f"{where}.restrictiveness", f"must lie in [0, 1], got {restrictiveness}")
    position = record.get("pipeline_position", 0)
    if isinstance(position, bool) or not isinstance(position, int):
        raise _fail(f"{where}.pipeline_position", "expected an integer")
    return ConeConstraint(
        id=_string(_field(record, "id", where), f"{where}.id"),
        label=_string(record.get("label", ""), f"{where}.label"),
        type=_choice(_field(record, "type", where), CONSTRAINT_TYPES, f"{where}.type"),
        surface=surface_from_dict(_field(record, "surface", where), f"{where}.surface"),
        restrictiveness=restrictiveness,
        dependencies=_strings(record.get("dependencies", []), f"{where}.dependencies"),
        hardness=_choice(record.get("hardness", "hard"), ("hard", "soft"), f"{where}.hardness"),
        weight=_optional_float(record.get("weight"), f"{where}.weight"),
        pipeline_position=position,
    )


def stage_from_dict(value: Any, where: str = "stage") -> PipelineStage:
    record = _mapping(value, where)
    position = _field(record, "position", where)
    if isinstance(position, bool) or not isinstance(position, int):
        raise _fail(f"{where}.position", "expected an integer")
    constraints = _list(_field(record, "constraints", where), f"{where}.constraints")
    return PipelineStage(
        id=_string(_field(record, "id", where), f"{where}.id"),
        name=_string(_field(record, "name", where), f"{where}.name"),
        position=position,
        constraints=tuple(
            constraint_from_dict(item, f"{where}.constraints[{idx}]") for idx, item in enumerate(constraints)
        ),
        resulting_cone=cone_from_dict(_field(record, "resulting_cone", where), f"{where}.resulting_cone"),
        remaining_volume_fraction=_float(
            _field(record, "remaining_volume_fraction", where), f"{where}.remaining_volume_fraction"
        ),
    )


def intersection_from_dict(value: Any, where: str = "intersection") -> ConeIntersection:
    record = _mapping(value, where)
    boundary = _mapping(_field(record, "boundary", where), f"{where}.boundary")
    waist_record = record.get("waist")
    waist = None
    if waist_record is not None:
        waist_map = _mapping(waist_record, f"{where}.waist")
        waist = Waist(
            position=point_from_dict(_field(waist_map, "position", f"{where}.waist"), f"{where}.waist.position"),
            area=_float(_field(waist_map, "area", f"{where}.waist"), f"{where}.waist.area"),
        )
    return ConeIntersection(
        id=_string(_field(record, "id", where), f"{where}.id"),
        cone_ids=_strings(_field(record, "cone_ids", where), f"{where}.cone_ids"),
        constraint_ids=_strings(_field(record, "constraint_ids", where), f"{where}.constraint_ids"),
        volume=_float(_field(record, "volume", where), f"{where}.volume"),
        boundary=IntersectionBoundary(
            bounds=bounds_from_dict(_field(boundary, "bounds", f"{where}.boundary"), f"{where}.boundary.bounds")
        ),
        waist=waist,
    )


def pipeline_from_dict(value: Any) -> ConstraintPipeline:
    """Rebuild a pipeline from :func:`pipeline_to_dict` output.

    Stage positions must run 0, 1, 2, ... in order, every stage cone must
    share the initial cone's dimension, and a ``sampling_seed`` in the
    metadata must be a non-negative integer.
    """

    where = "pipeline"
    try:
        record = _mapping(value, where)
        stages = [
            stage_from_dict(item, f"{where}.stages[{idx}]")
            for idx, item in enumerate(_list(_field(record, "stages", where), f"{where}.stages"))
        ]
        for idx, stage in enumerate(stages):
            if stage.position != idx:
                raise _fail(f"{where}.stages[{idx}].position", f"expected {idx}, got {stage.position}")
        initial_cone = cone_from_dict(_field(record, "initial_cone", where), f"{where}.initial_cone")
        for idx, stage in enumerate(stages):
            if stage.resulting_cone.dimension != initial_cone.dimension:
                raise _fail(
                    f"{where}.stages[{idx}].resulting_cone",
                    f"has dimension {stage.resulting_cone.dimension} "
                    f"but the initial cone has {initial_cone.dimension}",
                )
        metadata = dict(_mapping(record.get("metadata", {}), f"{where}.metadata"))
        if "sampling_seed" in metadata:
            seed = metadata["sampling_seed"]
            if isinstance(seed, bool) or not isinstance(seed, int) or seed < 0:
                raise _fail(f"{where}.metadata.sampling_seed", f"expected a non-negative integer, got {seed!r}")
        final = record.get("final_intersection")
        return ConstraintPipeline(
            id=_string(_field(record, "id", where), f"{where}.id"),
            name=_string(_field(record, "name", where), f"{where}.name"),
            initial_cone=initial_cone,
            stages=stages,
            final_intersection=None if final is None else intersection_from_dict(final, f"{where}.final_intersection"),
            metadata=metadata,
        )
    except StructuralMisuseError as exc:
        raise MalformedInputError(f"{where}: {exc}") from exc


def dumps_pipeline(pipeline: ConstraintPipeline) -> str:
    return json.dumps(pipeline_to_dict(pipeline), indent=2)


def loads_pipeline(text: str) -> ConstraintPipeline:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedInputError(f"pipeline: not valid JSON ({exc})") from exc
    return pipeline_from_dict(data)


__all__ = [
    "bounds_from_dict",
    "bounds_to_dict",
    "cone_from_dict",
    "cone_to_dict",
    "constraint_from_dict",
    "constraint_to_dict",
    "dumps_pipeline",
    "intersection_from_dict",
    "intersection_to_dict",
    "loads_pipeline",
    "path_to_dict",
    "pipeline_from_dict",
    "pipeline_to_dict",
    "point_from_dict",
    "point_to_dict",
    "result_to_dict",
    "stage_from_dict",
    "stage_to_dict",
    "surface_from_dict",
    "surface_to_dict",
    "vector_from_dict",
    "vector_to_dict",
    "waypoint_to_dict",
]
