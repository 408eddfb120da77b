"""Cone construction, membership and narrowing."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, Iterable, Mapping, Optional

import numpy as np

from ..types import (
    ConeDirection,
    PossibilityCone,
    SpacePoint,
    SpaceVector,
    StructuralMisuseError,
    new_id,
)
from .vectors import magnitude, normalize, scale_vector, translate_point

logger = logging.getLogger(__name__)

MAX_APERTURE = math.pi / 2
_APEX_EPS = 1e-12
_COS_EPS = 1e-12


def create_cone(
    apex: SpacePoint,
    axis: SpaceVector,
    aperture: float,
    direction: ConeDirection = "forward",
    extent: Optional[float] = None,
    constraints: Iterable[str] = (),
    metadata: Optional[Mapping[str, Any]] = None,
) -> PossibilityCone:
    """Create a cone with a unit axis and an aperture clamped to ``[0, pi/2]``."""

    if magnitude(axis) <= _APEX_EPS:
        raise StructuralMisuseError("cone axis must be a non-zero vector")
    if extent is not None and extent < 0:
        raise StructuralMisuseError(f"cone extent must be non-negative, got {extent}")
    return PossibilityCone(
        id=new_id("cone"),
        apex=apex,
        axis=normalize(axis),
        aperture=max(0.0, min(MAX_APERTURE, float(aperture))),
        direction=direction,
        extent=extent,
        constraints=tuple(constraints),
        metadata=dict(metadata or {}),
    )


def _as_points(points: np.ndarray, cone: PossibilityCone) -> np.ndarray:
    pts = np.atleast_2d(np.asarray(points, dtype=float))
    if pts.shape[1] != cone.dimension:
        raise StructuralMisuseError(
            f"points have dimension {pts.shape[1]} but cone {cone.id} has dimension {cone.dimension}"
        )
    return pts


def points_in_cone(points: np.ndarray, cone: PossibilityCone) -> np.ndarray:
    """Vectorized membership test for an ``(n, d)`` array of coordinates."""

    pts = _as_points(points, cone)
    rel = pts - cone.apex.as_array()
    axial = rel @ cone.axis.as_array()
    dist = np.linalg.norm(rel, axis=1)

    mask = np.ones(pts.shape[0], dtype=bool)
    if cone.direction == "forward":
        mask &= axial >= 0.0
        if cone.extent is not None:
            mask &= axial <= cone.extent
    elif cone.direction == "backward":
        mask &= axial <= 0.0
        if cone.extent is not None:
            mask &= axial >= -cone.extent
    elif cone.extent is not None:
        mask &= np.abs(axial) <= cone.extent

    at_apex = dist <= _APEX_EPS
    with np.errstate(divide="ignore", invalid="ignore"):
        cos_angle = np.where(at_apex, 1.0, np.abs(axial) / np.where(at_apex, 1.0, dist))
    mask &= at_apex | (cos_angle >= math.cos(cone.aperture) - _COS_EPS)
    return mask


def is_point_in_cone(point: SpacePoint, cone: PossibilityCone) -> bool:
    return bool(points_in_cone(point.as_array(), cone)[0])


def points_in_intersection(points: np.ndarray, cones: Iterable[PossibilityCone]) -> np.ndarray:
    pts = np.atleast_2d(np.asarray(points, dtype=float))
    mask = np.ones(pts.shape[0], dtype=bool)
    for cone in cones:
        mask &= points_in_cone(pts, cone)
        if not mask.any():
            break
    return mask


def is_point_in_intersection(point: SpacePoint, cones: Iterable[PossibilityCone]) -> bool:
    return bool(points_in_intersection(point.as_array(), cones)[0])


def angular_offset(point: SpacePoint, cone: PossibilityCone) -> float:
    """Angle between the apex-to-point vector and the cone axis.

    Bidirectional cones measure against the nearer nappe. The apex itself has
    offset 0.
    """

    rel = _as_points(point.as_array(), cone)[0] - cone.apex.as_array()
    dist = float(np.linalg.norm(rel))
    if dist <= _APEX_EPS:
        return 0.0
    axial = float(np.dot(rel, cone.axis.as_array()))
    if cone.direction == "bidirectional":
        axial = abs(axial)
    elif cone.direction == "backward":
        axial = -axial
    return math.acos(max(-1.0, min(1.0, axial / dist)))


def signed_distance_to_cone(point: SpacePoint, cone: PossibilityCone) -> float:
    """Approximate signed distance to the lateral surface (negative inside).

    The angular deviation from the aperture is multiplied by the distance from
    the apex. This preserves sign and ordering near the axis but is not the
    Euclidean distance to the surface far from it. Extent is ignored.
    """

    rel = _as_points(point.as_array(), cone)[0] - cone.apex.as_array()
    dist = float(np.linalg.norm(rel))
    if dist <= _APEX_EPS:
        return 0.0
    axial = float(np.dot(rel, cone.axis.as_array()))
    if cone.direction == "forward" and axial < 0:
        return dist
    if cone.direction == "backward" and axial > 0:
        return dist
    cos_angle = abs(axial) / dist
    angle = math.acos(max(-1.0, min(1.0, cos_angle)))
    return (angle - cone.aperture) * dist


def narrow_cone(cone: PossibilityCone, factor: float, constraint_id: str) -> PossibilityCone:
    """Return a new cone with ``aperture * clamp(factor, 0, 1)`` and ``constraint_id`` appended."""

    clamped = max(0.0, min(1.0, float(factor)))
    narrowed = replace(
        cone,
        id=new_id("cone"),
        aperture=cone.aperture * clamped,
        constraints=cone.constraints + (constraint_id,),
    )
    logger.debug(
        "Narrowed cone %s -> %s by %s (factor=%.6g aperture %.6g -> %.6g)",
        cone.id,
        narrowed.id,
        constraint_id,
        clamped,
        cone.aperture,
        narrowed.aperture,
    )
    return narrowed


def shift_cone_apex(cone: PossibilityCone, distance: float) -> PossibilityCone:
    """Return a copy of ``cone`` with its apex moved ``distance`` along the axis."""

    return replace(
        cone,
        id=new_id("cone"),
        apex=translate_point(cone.apex, scale_vector(cone.axis, distance)),
    )


__all__ = [
    "MAX_APERTURE",
    "angular_offset",
    "create_cone",
    "is_point_in_cone",
    "is_point_in_intersection",
    "narrow_cone",
    "points_in_cone",
    "points_in_intersection",
    "shift_cone_apex",
    "signed_distance_to_cone",
]
