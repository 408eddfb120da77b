"""Interpolated access to a :class:`ValueField` over the search bounds."""

from __future__ import annotations

import numpy as np
from scipy.interpolate import RegularGridInterpolator

from ..types import Bounds, SpacePoint, StructuralMisuseError, ValueField


class ValueFieldSampler:
    """Evaluate a value field anywhere in ``bounds``.

    Sample ``i`` on axis ``k`` sits at ``linspace(min_k, max_k, resolution_k)[i]``.
    Queries outside the bounds are clamped onto them.
    """

    def __init__(self, field: ValueField, bounds: Bounds) -> None:
        if len(field.resolution) != bounds.dimension:
            raise StructuralMisuseError(
                f"value field has {len(field.resolution)} axes but bounds have {bounds.dimension}"
            )
        if np.any(bounds.spans <= 0):
            raise StructuralMisuseError("value field bounds must have a positive span on every axis")
        self.field = field
        self._lower = bounds.min.as_array()
        self._upper = bounds.max.as_array()
        grid = tuple(
            np.linspace(lo, hi, count) for lo, hi, count in zip(self._lower, self._upper, field.resolution)
        )
        self._interpolator = RegularGridInterpolator(
            grid, field.as_grid(), method=field.interpolation, bounds_error=False, fill_value=None
        )

    def values_at(self, coords: np.ndarray) -> np.ndarray:
        pts = np.atleast_2d(np.asarray(coords, dtype=float))
        return np.asarray(self._interpolator(np.clip(pts, self._lower, self._upper)), dtype=float)

    def value_at(self, point: SpacePoint) -> float:
        return float(self.values_at(point.as_array())[0])


__all__ = ["ValueFieldSampler"]
