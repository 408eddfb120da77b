"""Value objects shared by the geometry kernel, the pipeline and the optimizer."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Literal, Mapping, Optional, Tuple, Union

import numpy as np

ConeDirection = Literal["forward", "backward", "bidirectional"]
ConstraintType = Literal[
    "temporal",
    "resource",
    "dependency",
    "exclusion",
    "capacity",
    "quality",
    "risk",
    "value",
    "custom",
]
Hardness = Literal["hard", "soft"]
ValidSide = Literal["positive", "negative"]
ValidRegion = Literal["inside", "outside"]
ConicSectionType = Literal["circle", "ellipse", "parabola", "hyperbola"]
Interpolation = Literal["nearest", "linear", "cubic"]

CONE_DIRECTIONS: Tuple[str, ...] = ("forward", "backward", "bidirectional")
CONSTRAINT_TYPES: Tuple[str, ...] = (
    "temporal",
    "resource",
    "dependency",
    "exclusion",
    "capacity",
    "quality",
    "risk",
    "value",
    "custom",
)
INTERPOLATIONS: Tuple[str, ...] = ("nearest", "linear", "cubic")


class DIMENSION:
    """Conventional axis indices of a possibility space."""

    TIME = 0
    VALUE = 1
    RISK = 2
    RESOURCE = 3
    ATTENTION = 4
    TRUST = 5


class StructuralMisuseError(ValueError):
    """Raised when an operation is invoked on structurally invalid operands."""


class MalformedInputError(ValueError):
    """Raised when a serialized document does not have the expected shape."""


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _as_float_tuple(values: Iterable[Any]) -> Tuple[float, ...]:
    return tuple(float(v) for v in np.asarray(values, dtype=float).ravel())


@dataclass(frozen=True)
class SpacePoint:
    """A point in n-dimensional possibility space."""

    coordinates: Tuple[float, ...]
    dimensions: Optional[Tuple[str, ...]] = None
    weight: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "coordinates", _as_float_tuple(self.coordinates))
        if self.dimensions is not None:
            object.__setattr__(self, "dimensions", tuple(str(d) for d in self.dimensions))
        if self.weight is not None:
            object.__setattr__(self, "weight", float(self.weight))

    @property
    def dimension(self) -> int:
        return len(self.coordinates)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.coordinates, dtype=float)

    def __len__(self) -> int:
        return len(self.coordinates)


@dataclass(frozen=True)
class SpaceVector:
    """A direction or displacement in possibility space."""

    components: Tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", _as_float_tuple(self.components))

    @property
    def dimension(self) -> int:
        return len(self.components)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.components, dtype=float)

    def __len__(self) -> int:
        return len(self.components)


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned box used for sampling and search."""

    min: SpacePoint
    max: SpacePoint

    def __post_init__(self) -> None:
        if self.min.dimension != self.max.dimension:
            raise StructuralMisuseError(
                f"bounds corners differ in dimension: {self.min.dimension} != {self.max.dimension}"
            )
        if any(hi < lo for lo, hi in zip(self.min.coordinates, self.max.coordinates)):
            raise StructuralMisuseError("bounds max must not be below bounds min on any axis")

    @classmethod
    def from_sequences(cls, lower: Iterable[float], upper: Iterable[float]) -> "Bounds":
        return cls(SpacePoint(tuple(lower)), SpacePoint(tuple(upper)))

    @property
    def dimension(self) -> int:
        return self.min.dimension

    @property
    def spans(self) -> np.ndarray:
        return self.max.as_array() - self.min.as_array()

    @property
    def volume(self) -> float:
        return float(np.prod(self.spans)) if self.dimension else 0.0

    @property
    def center(self) -> SpacePoint:
        return SpacePoint((self.min.as_array() + self.max.as_array()) * 0.5)

    @property
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.spans))

    def contains(self, point: SpacePoint) -> bool:
        coords = point.as_array()
        return bool(np.all(coords >= self.min.as_array()) and np.all(coords <= self.max.as_array()))


@dataclass(frozen=True)
class PossibilityCone:
    """Cone of reachable states opening from ``apex`` along ``axis``.

    ``aperture`` is the half-angle in radians (0 is a ray, pi/2 a half-space).
    ``constraints`` lists, in order, the ids of the constraints that narrowed
    the cone from its seed.
    """

    id: str
    apex: SpacePoint
    axis: SpaceVector
    aperture: float
    direction: ConeDirection = "forward"
    extent: Optional[float] = None
    constraints: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "aperture", float(self.aperture))
        object.__setattr__(self, "constraints", tuple(self.constraints))
        if self.extent is not None:
            object.__setattr__(self, "extent", float(self.extent))
        if self.direction not in CONE_DIRECTIONS:
            raise StructuralMisuseError(f"unknown cone direction '{self.direction}'")
        if self.apex.dimension != self.axis.dimension:
            raise StructuralMisuseError(
                f"cone apex has dimension {self.apex.dimension} but axis has {self.axis.dimension}"
            )

    @property
    def dimension(self) -> int:
        return self.apex.dimension


@dataclass(frozen=True)
class HyperplaneSurface:
    normal: SpaceVector
    offset: float
    valid_side: ValidSide = "negative"
    type: Literal["hyperplane"] = "hyperplane"


@dataclass(frozen=True)
class SphereSurface:
    center: SpacePoint
    radius: float
    valid_region: ValidRegion = "inside"
    type: Literal["sphere"] = "sphere"


@dataclass(frozen=True)
class ConeSurface:
    cone: PossibilityCone
    valid_region: ValidRegion = "inside"
    type: Literal["cone"] = "cone"


@dataclass(frozen=True)
class CustomSurface:
    """Surface evaluated by a caller-supplied evaluator registered under ``name``."""

    name: str
    params: Mapping[str, Any] = field(default_factory=dict)
    type: Literal["custom"] = "custom"


ConstraintSurface = Union[HyperplaneSurface, SphereSurface, ConeSurface, CustomSurface]

# Signed distance (negative on the valid side) for a CustomSurface.
SurfaceEvaluator = Callable[[SpacePoint, Mapping[str, Any]], float]


@dataclass(frozen=True)
class ConeConstraint:
    """A constraint that narrows possibility cones."""

    id: str
    label: str
    type: ConstraintType
    surface: ConstraintSurface
    restrictiveness: float
    dependencies: Tuple[str, ...] = ()
    hardness: Hardness = "hard"
    weight: Optional[float] = None
    pipeline_position: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "restrictiveness", float(self.restrictiveness))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        if self.weight is not None:
            object.__setattr__(self, "weight", float(self.weight))


@dataclass(frozen=True)
class Waist:
    position: SpacePoint
    area: float


@dataclass(frozen=True)
class IntersectionBoundary:
    bounds: Bounds
    kind: Literal["implicit"] = "implicit"


@dataclass(frozen=True)
class ConeIntersection:
    id: str
    cone_ids: Tuple[str, ...]
    constraint_ids: Tuple[str, ...]
    volume: float
    boundary: IntersectionBoundary
    waist: Optional[Waist] = None


@dataclass(frozen=True)
class PipelineStage:
    id: str
    name: str
    position: int
    constraints: Tuple[ConeConstraint, ...]
    resulting_cone: PossibilityCone
    remaining_volume_fraction: float


@dataclass
class ConstraintPipeline:
    """Ordered stages narrowing ``initial_cone``; stages are only ever appended."""

    id: str
    name: str
    initial_cone: PossibilityCone
    stages: list = field(default_factory=list)
    final_intersection: Optional[ConeIntersection] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConicSection:
    kind: ConicSectionType
    eccentricity: float
    center: Tuple[float, float] = (0.0, 0.0)
    rotation: float = 0.0
    a: Optional[float] = None
    b: Optional[float] = None
    p: Optional[float] = None
    plane_normal: Optional[SpaceVector] = None
    plane_offset: Optional[float] = None


@dataclass(frozen=True)
class ValueField:
    """Scalar samples on a regular grid spanning the search bounds.

    ``values`` is flattened in row-major order (last axis fastest).
    """

    resolution: Tuple[int, ...]
    values: Tuple[float, ...]
    interpolation: Interpolation = "linear"

    def __post_init__(self) -> None:
        object.__setattr__(self, "resolution", tuple(int(r) for r in self.resolution))
        object.__setattr__(self, "values", _as_float_tuple(self.values))
        if self.interpolation not in INTERPOLATIONS:
            raise StructuralMisuseError(f"unknown interpolation '{self.interpolation}'")
        if not self.resolution or any(r < 2 for r in self.resolution):
            raise StructuralMisuseError("value field needs at least two samples per axis")
        if self.interpolation == "cubic" and any(r < 4 for r in self.resolution):
            raise StructuralMisuseError("cubic interpolation needs at least four samples per axis")
        expected = math.prod(self.resolution)
        if len(self.values) != expected:
            raise StructuralMisuseError(
                f"value field expects {expected} samples for resolution {self.resolution}, got {len(self.values)}"
            )

    def as_grid(self) -> np.ndarray:
        return np.asarray(self.values, dtype=float).reshape(self.resolution)


@dataclass(frozen=True)
class PathWaypoint:
    position: SpacePoint
    value: float
    distance_from_start: float
    containing_cones: Tuple[str, ...] = ()
    value_gradient: Optional[SpaceVector] = None


@dataclass(frozen=True)
class PossibilityPath:
    id: str
    waypoints: Tuple[PathWaypoint, ...]
    length: float
    total_value: float
    risk_exposure: float
    satisfied_constraints: Tuple[str, ...]
    violated_constraints: Tuple[str, ...]
    optimality_score: float

    @property
    def positions(self) -> Tuple[SpacePoint, ...]:
        return tuple(w.position for w in self.waypoints)


__all__ = [
    "Bounds",
    "CONE_DIRECTIONS",
    "CONSTRAINT_TYPES",
    "ConeConstraint",
    "ConeDirection",
    "ConeIntersection",
    "ConeSurface",
    "ConicSection",
    "ConicSectionType",
    "ConstraintPipeline",
    "ConstraintSurface",
    "ConstraintType",
    "CustomSurface",
    "DIMENSION",
    "Hardness",
    "HyperplaneSurface",
    "INTERPOLATIONS",
    "IntersectionBoundary",
    "Interpolation",
    "MalformedInputError",
    "PathWaypoint",
    "PipelineStage",
    "PossibilityCone",
    "PossibilityPath",
    "SpacePoint",
    "SpaceVector",
    "SphereSurface",
    "StructuralMisuseError",
    "SurfaceEvaluator",
    "ValidRegion",
    "ValidSide",
    "ValueField",
    "Waist",
    "new_id",
]
