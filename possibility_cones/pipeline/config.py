"""Configuration for constraint pipelines."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from ..types import Bounds, StructuralMisuseError


@dataclass(frozen=True)
class PipelineConfig:
    """Space and sampling settings shared by every pipeline of a manager."""

    dimensions: int = 4
    dimension_labels: Tuple[str, ...] = ("Time", "Value", "Risk", "Resources")
    initial_aperture: float = math.pi / 4
    initial_axis: int = 0
    bounds_min: Tuple[float, ...] = (0.0, 0.0, 0.0, 0.0)
    bounds_max: Tuple[float, ...] = (100.0, 100.0, 100.0, 100.0)
    volume_samples: int = 5000
    waist_resolution: int = 50
    waist_slice_samples: int = 1000

    def __post_init__(self) -> None:
        if len(self.bounds_min) != self.dimensions or len(self.bounds_max) != self.dimensions:
            raise StructuralMisuseError(
                f"bounds must have {self.dimensions} coordinates, got {len(self.bounds_min)} and {len(self.bounds_max)}"
            )
        if not 0 <= self.initial_axis < self.dimensions:
            raise StructuralMisuseError(
                f"initial axis {self.initial_axis} out of range for {self.dimensions} dimensions"
            )

    @property
    def bounds(self) -> Bounds:
        return Bounds.from_sequences(self.bounds_min, self.bounds_max)


_DEFAULT_PIPELINE_CONFIG = PipelineConfig()


def get_default_pipeline_config() -> PipelineConfig:
    return _DEFAULT_PIPELINE_CONFIG


def set_default_pipeline_config(config: PipelineConfig) -> None:
    global _DEFAULT_PIPELINE_CONFIG
    _DEFAULT_PIPELINE_CONFIG = config


__all__ = ["PipelineConfig", "get_default_pipeline_config", "set_default_pipeline_config"]
