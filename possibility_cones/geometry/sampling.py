"""Monte Carlo estimators for cone intersections.

Every estimator draws from an explicit ``numpy.random.Generator``. Passing a
seeded generator (``np.random.default_rng(seed)``) makes the estimate
reproducible; omitting it falls back to fresh OS entropy.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from ..types import Bounds, PossibilityCone, SpacePoint, StructuralMisuseError, Waist
from .cones import points_in_intersection

logger = logging.getLogger(__name__)


def _check_cones(cones: Sequence[PossibilityCone], bounds: Bounds) -> None:
    for cone in cones:
        if cone.dimension != bounds.dimension:
            raise StructuralMisuseError(
                f"cone {cone.id} has dimension {cone.dimension} but bounds have dimension {bounds.dimension}"
            )


def sample_bounds(bounds: Bounds, count: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``count`` points uniformly from ``bounds`` as an ``(count, d)`` array."""

    return rng.uniform(bounds.min.as_array(), bounds.max.as_array(), size=(count, bounds.dimension))


def estimate_intersection_volume(
    cones: Sequence[PossibilityCone],
    bounds: Bounds,
    samples: int = 10000,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """Estimate the measure of the region of ``bounds`` inside every cone.

    An empty cone list is the vacuous intersection, so the whole box volume is
    returned without sampling.
    """

    cones = list(cones)
    if not cones:
        return bounds.volume
    if samples <= 0:
        raise StructuralMisuseError(f"sample count must be positive, got {samples}")
    _check_cones(cones, bounds)

    rng = rng if rng is not None else np.random.default_rng()
    points = sample_bounds(bounds, samples, rng)
    inside = int(np.count_nonzero(points_in_intersection(points, cones)))
    volume = inside / samples * bounds.volume
    logger.debug(
        "Volume estimate for %d cone(s): %d/%d samples inside -> %.6g", len(cones), inside, samples, volume
    )
    return volume


def _cross_section_measure(bounds: Bounds, axis_index: int) -> float:
    spans = np.delete(bounds.spans, axis_index)
    return float(np.prod(spans)) if spans.size else 1.0


def sample_cross_section_area(
    cones: Sequence[PossibilityCone],
    axis_index: int,
    position: float,
    bounds: Bounds,
    samples: int = 1000,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """Estimate the area of the intersection's slice at ``position`` on ``axis_index``."""

    cones = list(cones)
    if not 0 <= axis_index < bounds.dimension:
        raise StructuralMisuseError(f"axis index {axis_index} out of range for dimension {bounds.dimension}")
    if samples <= 0:
        raise StructuralMisuseError(f"sample count must be positive, got {samples}")
    _check_cones(cones, bounds)

    rng = rng if rng is not None else np.random.default_rng()
    points = sample_bounds(bounds, samples, rng)
    points[:, axis_index] = position
    fraction = float(np.count_nonzero(points_in_intersection(points, cones))) / samples
    return fraction * _cross_section_measure(bounds, axis_index)


def find_intersection_waist(
    cones: Sequence[PossibilityCone],
    axis_index: int,
    bounds: Bounds,
    resolution: int = 50,
    slice_samples: int = 1000,
    rng: Optional[np.random.Generator] = None,
) -> Optional[Waist]:
    """Scan ``resolution + 1`` slices along ``axis_index`` for the narrowest one.

    Only strictly positive areas qualify; when no slice has any sampled area
    the result is ``None``. The first of several equal minima wins.
    """

    cones = list(cones)
    if not cones:
        return None
    if resolution <= 0:
        raise StructuralMisuseError(f"waist resolution must be positive, got {resolution}")
    if not 0 <= axis_index < bounds.dimension:
        raise StructuralMisuseError(f"axis index {axis_index} out of range for dimension {bounds.dimension}")

    rng = rng if rng is not None else np.random.default_rng()
    lower = bounds.min.coordinates[axis_index]
    upper = bounds.max.coordinates[axis_index]

    min_area = math.inf
    min_position: Optional[float] = None
    for position in np.linspace(lower, upper, resolution + 1):
        area = sample_cross_section_area(cones, axis_index, float(position), bounds, slice_samples, rng)
        if 0.0 < area < min_area:
            min_area = area
            min_position = float(position)

    if min_position is None:
        logger.debug("No positive cross-section found along axis %d", axis_index)
        return None

    coords = bounds.center.as_array()
    coords[axis_index] = min_position
    logger.debug("Waist along axis %d at %.6g with area %.6g", axis_index, min_position, min_area)
    return Waist(position=SpacePoint(coords), area=min_area)


__all__ = [
    "estimate_intersection_volume",
    "find_intersection_waist",
    "sample_bounds",
    "sample_cross_section_area",
]
