"""Geometry kernel: vectors, cones, conic sections, surfaces and sampling."""

from .cones import (
    MAX_APERTURE,
    angular_offset,
    create_cone,
    is_point_in_cone,
    is_point_in_intersection,
    narrow_cone,
    points_in_cone,
    points_in_intersection,
    shift_cone_apex,
    signed_distance_to_cone,
)
from .conics import (
    CONIC_TOLERANCE,
    classify_conic_section,
    conic_eccentricity,
    create_conic_section,
    plane_angle_to_axis,
)
from .sampling import (
    estimate_intersection_volume,
    find_intersection_waist,
    sample_bounds,
    sample_cross_section_area,
)
from .surfaces import SurfaceEvaluators, satisfies_constraint, signed_distance_to_surface
from .vectors import (
    add_vectors,
    angle_between,
    cross_product,
    distance,
    dot_product,
    magnitude,
    normalize,
    point_to_vector,
    scale_vector,
    subtract_vectors,
    translate_point,
    unit_vector,
    vector_to_point,
    zero_vector,
)

__all__ = [
    "CONIC_TOLERANCE",
    "MAX_APERTURE",
    "SurfaceEvaluators",
    "add_vectors",
    "angle_between",
    "angular_offset",
    "classify_conic_section",
    "conic_eccentricity",
    "create_cone",
    "create_conic_section",
    "cross_product",
    "distance",
    "dot_product",
    "estimate_intersection_volume",
    "find_intersection_waist",
    "is_point_in_cone",
    "is_point_in_intersection",
    "magnitude",
    "narrow_cone",
    "normalize",
    "plane_angle_to_axis",
    "point_to_vector",
    "points_in_cone",
    "points_in_intersection",
    "sample_bounds",
    "sample_cross_section_area",
    "satisfies_constraint",
    "scale_vector",
    "shift_cone_apex",
    "signed_distance_to_cone",
    "signed_distance_to_surface",
    "subtract_vectors",
    "translate_point",
    "unit_vector",
    "vector_to_point",
    "zero_vector",
]
