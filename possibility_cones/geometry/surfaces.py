"""Signed distances to constraint surfaces (negative on the valid side)."""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np

from ..types import (
    ConeSurface,
    ConstraintSurface,
    CustomSurface,
    HyperplaneSurface,
    SpacePoint,
    SphereSurface,
    StructuralMisuseError,
    SurfaceEvaluator,
)
from .cones import signed_distance_to_cone

SurfaceEvaluators = Mapping[str, SurfaceEvaluator]


def _check_dimension(point: SpacePoint, expected: int, what: str) -> None:
    if point.dimension != expected:
        raise StructuralMisuseError(
            f"point has dimension {point.dimension} but {what} has dimension {expected}"
        )


def signed_distance_to_hyperplane(point: SpacePoint, plane: HyperplaneSurface) -> float:
    _check_dimension(point, plane.normal.dimension, "hyperplane normal")
    dist = float(np.dot(point.as_array(), plane.normal.as_array())) - float(plane.offset)
    return -dist if plane.valid_side == "positive" else dist


def signed_distance_to_sphere(point: SpacePoint, sphere: SphereSurface) -> float:
    _check_dimension(point, sphere.center.dimension, "sphere centre")
    dist = float(np.linalg.norm(point.as_array() - sphere.center.as_array())) - float(sphere.radius)
    return dist if sphere.valid_region == "inside" else -dist


def signed_distance_to_cone_surface(point: SpacePoint, surface: ConeSurface) -> float:
    dist = signed_distance_to_cone(point, surface.cone)
    return dist if surface.valid_region == "inside" else -dist


def signed_distance_to_custom(
    point: SpacePoint,
    surface: CustomSurface,
    evaluators: Optional[SurfaceEvaluators] = None,
) -> float:
    evaluator = (evaluators or {}).get(surface.name)
    if evaluator is None:
        raise StructuralMisuseError(f"no evaluator registered for custom surface '{surface.name}'")
    return float(evaluator(point, surface.params))


def signed_distance_to_surface(
    point: SpacePoint,
    surface: ConstraintSurface,
    evaluators: Optional[SurfaceEvaluators] = None,
) -> float:
    if isinstance(surface, HyperplaneSurface):
        return signed_distance_to_hyperplane(point, surface)
    if isinstance(surface, SphereSurface):
        return signed_distance_to_sphere(point, surface)
    if isinstance(surface, ConeSurface):
        return signed_distance_to_cone_surface(point, surface)
    if isinstance(surface, CustomSurface):
        return signed_distance_to_custom(point, surface, evaluators)
    raise StructuralMisuseError(f"unsupported constraint surface {type(surface).__name__}")


def satisfies_constraint(
    point: SpacePoint,
    surface: ConstraintSurface,
    evaluators: Optional[SurfaceEvaluators] = None,
) -> bool:
    return signed_distance_to_surface(point, surface, evaluators) <= 0.0


__all__ = [
    "SurfaceEvaluators",
    "satisfies_constraint",
    "signed_distance_to_cone_surface",
    "signed_distance_to_custom",
    "signed_distance_to_hyperplane",
    "signed_distance_to_sphere",
    "signed_distance_to_surface",
]
