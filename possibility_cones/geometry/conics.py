"""Conic sections obtained by slicing a possibility cone with a plane."""

from __future__ import annotations

import math

import numpy as np

from ..types import ConicSection, ConicSectionType, PossibilityCone, SpaceVector, StructuralMisuseError
from .vectors import dot_product, magnitude, normalize

# Fixed angular tolerance in radians. Comparisons are strict: a plane angle of
# exactly CONIC_TOLERANCE is not classified as a circle.
CONIC_TOLERANCE = 1e-3


def classify_conic_section(aperture: float, plane_angle: float) -> ConicSectionType:
    """Classify the section of a cone with half-angle ``aperture``.

    ``plane_angle`` is the angle of the cutting plane's normal from the cone
    axis (0 means the plane is perpendicular to the axis).
    """

    angle = abs(plane_angle)
    if angle < CONIC_TOLERANCE:
        return "circle"
    if abs(angle - aperture) < CONIC_TOLERANCE:
        return "parabola"
    if angle < aperture:
        return "ellipse"
    return "hyperbola"


def conic_eccentricity(aperture: float, plane_angle: float) -> float:
    kind = classify_conic_section(aperture, plane_angle)
    if kind == "circle":
        return 0.0
    if kind == "parabola":
        return 1.0
    sin_aperture = math.sin(aperture)
    if sin_aperture == 0.0:
        return math.inf
    return math.sin(abs(plane_angle)) / sin_aperture


def plane_angle_to_axis(cone: PossibilityCone, plane_normal: SpaceVector) -> float:
    if magnitude(plane_normal) == 0.0:
        raise StructuralMisuseError("plane normal must be a non-zero vector")
    cos_angle = abs(dot_product(normalize(plane_normal), cone.axis))
    return math.acos(min(1.0, cos_angle))


def create_conic_section(
    cone: PossibilityCone,
    plane_normal: SpaceVector,
    plane_offset: float,
) -> ConicSection:
    """Build the section cut from ``cone`` by the plane ``normal . x = offset``.

    Semi-axes are derived from the radius of the cone where the plane crosses
    the axis, measured from the apex. The section centre is reported in the
    plane's own frame.
    """

    plane_angle = plane_angle_to_axis(cone, plane_normal)
    kind = classify_conic_section(cone.aperture, plane_angle)
    eccentricity = conic_eccentricity(cone.aperture, plane_angle)

    along_axis = dot_product(plane_normal, cone.axis)
    apex_offset = float(plane_offset) - float(np.dot(plane_normal.as_array(), cone.apex.as_array()))
    depth = apex_offset / along_axis if along_axis != 0.0 else math.inf
    radius = abs(depth) * math.tan(cone.aperture)

    a = b = p = None
    if kind == "circle":
        a = b = radius
    elif kind == "parabola":
        p = 2.0 * radius
    else:
        spread = 1.0 - eccentricity * eccentricity
        if spread == 0.0:
            a = b = math.inf
        else:
            a = radius / spread
            b = a * math.sqrt(abs(spread))

    return ConicSection(
        kind=kind,
        eccentricity=eccentricity,
        a=a,
        b=b,
        p=p,
        plane_normal=plane_normal,
        plane_offset=float(plane_offset),
    )


__all__ = [
    "CONIC_TOLERANCE",
    "classify_conic_section",
    "conic_eccentricity",
    "create_conic_section",
    "plane_angle_to_axis",
]
