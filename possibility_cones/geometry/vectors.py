"""Vector algebra over :class:`SpaceVector` and :class:`SpacePoint`."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from ..types import SpacePoint, SpaceVector, StructuralMisuseError

_ZERO_EPS = 1e-12


def _require_same_dimension(a: Sequence[float], b: Sequence[float], operation: str) -> None:
    if len(a) != len(b):
        raise StructuralMisuseError(f"{operation} requires equal dimensions, got {len(a)} and {len(b)}")


def zero_vector(dim: int) -> SpaceVector:
    return SpaceVector(np.zeros(dim, dtype=float))


def unit_vector(dim: int, axis: int) -> SpaceVector:
    if not 0 <= axis < dim:
        raise StructuralMisuseError(f"axis index {axis} out of range for dimension {dim}")
    components = np.zeros(dim, dtype=float)
    components[axis] = 1.0
    return SpaceVector(components)


def add_vectors(a: SpaceVector, b: SpaceVector) -> SpaceVector:
    _require_same_dimension(a.components, b.components, "add_vectors")
    return SpaceVector(a.as_array() + b.as_array())


def subtract_vectors(a: SpaceVector, b: SpaceVector) -> SpaceVector:
    """Return ``a - b``."""

    _require_same_dimension(a.components, b.components, "subtract_vectors")
    return SpaceVector(a.as_array() - b.as_array())


def scale_vector(v: SpaceVector, scalar: float) -> SpaceVector:
    return SpaceVector(v.as_array() * float(scalar))


def dot_product(a: SpaceVector, b: SpaceVector) -> float:
    _require_same_dimension(a.components, b.components, "dot_product")
    return float(np.dot(a.as_array(), b.as_array()))


def magnitude(v: SpaceVector) -> float:
    return float(np.linalg.norm(v.as_array()))


def normalize(v: SpaceVector) -> SpaceVector:
    """Return ``v`` scaled to unit length; the zero vector is returned unchanged."""

    norm = magnitude(v)
    if norm == 0.0:
        return v
    return scale_vector(v, 1.0 / norm)


def cross_product(a: SpaceVector, b: SpaceVector) -> SpaceVector:
    if a.dimension != 3 or b.dimension != 3:
        raise StructuralMisuseError(
            f"cross product is only defined for 3D vectors, got {a.dimension}D and {b.dimension}D"
        )
    return SpaceVector(np.cross(a.as_array(), b.as_array()))


def distance(a: SpacePoint, b: SpacePoint) -> float:
    _require_same_dimension(a.coordinates, b.coordinates, "distance")
    return float(np.linalg.norm(a.as_array() - b.as_array()))


def point_to_vector(p: SpacePoint) -> SpaceVector:
    return SpaceVector(p.coordinates)


def vector_to_point(v: SpaceVector) -> SpacePoint:
    return SpacePoint(v.components)


def translate_point(p: SpacePoint, v: SpaceVector) -> SpacePoint:
    _require_same_dimension(p.coordinates, v.components, "translate_point")
    return SpacePoint(p.as_array() + v.as_array())


def angle_between(a: SpaceVector, b: SpaceVector) -> float:
    """Angle in radians between two non-zero vectors."""

    denom = magnitude(a) * magnitude(b)
    if denom <= _ZERO_EPS:
        raise StructuralMisuseError("angle_between is undefined for a zero vector")
    cos_angle = dot_product(a, b) / denom
    return math.acos(max(-1.0, min(1.0, cos_angle)))


__all__ = [
    "add_vectors",
    "angle_between",
    "cross_product",
    "distance",
    "dot_product",
    "magnitude",
    "normalize",
    "point_to_vector",
    "scale_vector",
    "subtract_vectors",
    "translate_point",
    "unit_vector",
    "vector_to_point",
    "zero_vector",
]
