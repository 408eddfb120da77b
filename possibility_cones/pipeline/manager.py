"""Registry of constraint pipelines that narrow an initial possibility cone."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence

import numpy as np

from ..geometry.cones import create_cone, is_point_in_cone, narrow_cone
from ..geometry.sampling import estimate_intersection_volume, find_intersection_waist
from ..geometry.surfaces import SurfaceEvaluators, signed_distance_to_surface
from ..geometry.vectors import unit_vector
from ..logging_utils import apply_debug_logging
from ..serialization import dumps_pipeline, loads_pipeline
from ..types import (
    ConeConstraint,
    ConeIntersection,
    ConstraintPipeline,
    ConstraintSurface,
    ConstraintType,
    Hardness,
    HyperplaneSurface,
    IntersectionBoundary,
    MalformedInputError,
    PipelineStage,
    PossibilityCone,
    SpacePoint,
    SpaceVector,
    StructuralMisuseError,
    new_id,
)
from .config import PipelineConfig, get_default_pipeline_config

logger = logging.getLogger(__name__)

HARD_VIOLATION_WEIGHT = 1000.0

EventType = Literal[
    "pipeline:created",
    "pipeline:stage-completed",
    "intersection:computed",
    "waist:detected",
]


@dataclass(frozen=True)
class ConicEvent:
    type: EventType
    payload: Any


ConicEventListener = Callable[[ConicEvent], None]


class ConstraintPipelineManager:
    """Create pipelines, append constraint stages and query the narrowed space.

    Every pipeline gets its own ``sampling_seed`` (kept in its metadata). All
    volume estimates for that pipeline draw the same samples, so a cone nested
    in another never gets a larger estimate.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        random_seed: Optional[int] = None,
        evaluators: Optional[SurfaceEvaluators] = None,
    ) -> None:
        self.config = config or get_default_pipeline_config()
        self.evaluators: SurfaceEvaluators = dict(evaluators or {})
        self._rng = np.random.default_rng(random_seed)
        self._pipelines: Dict[str, ConstraintPipeline] = {}
        self._listeners: List[ConicEventListener] = []

    # ------------------------------------------------------------------
    # Pipeline construction
    # ------------------------------------------------------------------

    def create_pipeline(
        self, name: str, origin: SpacePoint, axis: Optional[SpaceVector] = None
    ) -> ConstraintPipeline:
        if origin.dimension != self.config.dimensions:
            raise StructuralMisuseError(
                f"origin has dimension {origin.dimension} but the space has {self.config.dimensions}"
            )
        cone = create_cone(
            apex=origin,
            axis=axis if axis is not None else unit_vector(self.config.dimensions, self.config.initial_axis),
            aperture=self.config.initial_aperture,
            direction="forward",
        )
        pipeline = ConstraintPipeline(
            id=new_id("pipeline"),
            name=name,
            initial_cone=cone,
            metadata={"sampling_seed": int(self._rng.integers(0, 2**32))},
        )
        self._pipelines[pipeline.id] = pipeline
        logger.info("Created pipeline %s (%s)", pipeline.id, name)
        self._emit("pipeline:created", pipeline)
        return pipeline

    def add_stage(
        self, pipeline_id: str, name: str, constraints: Sequence[ConeConstraint]
    ) -> Optional[PipelineStage]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return None

        position = len(pipeline.stages)
        previous = pipeline.stages[-1].resulting_cone if pipeline.stages else pipeline.initial_cone
        cone = previous
        for constraint in constraints:
            cone = narrow_cone(cone, 1.0 - constraint.restrictiveness, constraint.id)

        initial_volume = self._estimate_volume(pipeline, [pipeline.initial_cone])
        current_volume = self._estimate_volume(pipeline, [cone])
        fraction = current_volume / initial_volume if initial_volume > 0 else 0.0

        stage = PipelineStage(
            id=new_id("stage"),
            name=name,
            position=position,
            constraints=tuple(constraints),
            resulting_cone=cone,
            remaining_volume_fraction=fraction,
        )
        pipeline.stages.append(stage)
        logger.info(
            "Pipeline %s stage %d (%s): aperture %.6g, remaining fraction %.4f",
            pipeline_id,
            position,
            name,
            cone.aperture,
            fraction,
        )
        self._emit("pipeline:stage-completed", stage)
        return stage

    def run_pipeline(self, pipeline_id: str) -> Optional[ConeIntersection]:
        """Intersect every stage cone, estimating its volume and waist."""

        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None or not pipeline.stages:
            return None

        cones = [stage.resulting_cone for stage in pipeline.stages]
        bounds = self.config.bounds
        waist = find_intersection_waist(
            cones,
            self.config.initial_axis,
            bounds,
            resolution=self.config.waist_resolution,
            slice_samples=self.config.waist_slice_samples,
            rng=self._sampling_rng(pipeline),
        )
        intersection = ConeIntersection(
            id=new_id("intersection"),
            cone_ids=tuple(cone.id for cone in cones),
            constraint_ids=tuple(c.id for stage in pipeline.stages for c in stage.constraints),
            volume=self._estimate_volume(pipeline, cones),
            boundary=IntersectionBoundary(bounds=bounds),
            waist=waist,
        )
        pipeline.final_intersection = intersection
        logger.info(
            "Pipeline %s intersection: volume %.6g, waist %s",
            pipeline_id,
            intersection.volume,
            "none" if waist is None else f"area {waist.area:.6g}",
        )
        self._emit("intersection:computed", intersection)
        if waist is not None:
            self._emit("waist:detected", waist)
        return intersection

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pipeline(self, pipeline_id: str) -> Optional[ConstraintPipeline]:
        return self._pipelines.get(pipeline_id)

    def get_all_pipelines(self) -> List[ConstraintPipeline]:
        return list(self._pipelines.values())

    def is_point_valid(self, pipeline_id: str, point: SpacePoint) -> bool:
        """Inside every stage cone and on the valid side of every hard constraint.

        The two checks are independent: a hard constraint's surface is not
        implied by the cone its restrictiveness produced.
        """

        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return False
        if not all(is_point_in_cone(point, stage.resulting_cone) for stage in pipeline.stages):
            return False
        return all(
            signed_distance_to_surface(point, constraint.surface, self.evaluators) <= 0.0
            for constraint in self._constraints(pipeline)
            if constraint.hardness == "hard"
        )

    def get_violation_score(self, pipeline_id: str, point: SpacePoint) -> Optional[float]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return None
        total = 0.0
        for constraint in self._constraints(pipeline):
            dist = signed_distance_to_surface(point, constraint.surface, self.evaluators)
            if dist > 0:
                if constraint.hardness == "hard":
                    weight = HARD_VIOLATION_WEIGHT
                else:
                    weight = constraint.weight if constraint.weight is not None else 1.0
                total += dist * weight
        return total

    def get_bottleneck(self, pipeline_id: str) -> Optional[PipelineStage]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None or not pipeline.stages:
            return None
        return min(pipeline.stages, key=lambda stage: stage.remaining_volume_fraction)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, listener: ConicEventListener) -> Callable[[], None]:
        """Subscribe ``listener``; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: EventType, payload: Any) -> None:
        event = ConicEvent(type=event_type, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s event", listener, event_type)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def export_pipeline(self, pipeline_id: str) -> Optional[str]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return None
        return dumps_pipeline(pipeline)

    def import_pipeline(self, text: str) -> Optional[ConstraintPipeline]:
        """Register a pipeline from exported JSON, or return ``None`` if it is malformed."""

        try:
            pipeline = loads_pipeline(text)
        except MalformedInputError as exc:
            logger.warning("Rejected pipeline import: %s", exc)
            return None
        if pipeline.initial_cone.dimension != self.config.dimensions:
            logger.warning(
                "Rejected pipeline import: %s has dimension %d but the space has %d",
                pipeline.id,
                pipeline.initial_cone.dimension,
                self.config.dimensions,
            )
            return None
        pipeline.metadata.setdefault("sampling_seed", int(self._rng.integers(0, 2**32)))
        self._pipelines[pipeline.id] = pipeline
        logger.info("Imported pipeline %s (%s) with %d stage(s)", pipeline.id, pipeline.name, len(pipeline.stages))
        return pipeline

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _constraints(pipeline: ConstraintPipeline) -> Iterable[ConeConstraint]:
        for stage in pipeline.stages:
            yield from stage.constraints

    def _sampling_rng(self, pipeline: ConstraintPipeline) -> np.random.Generator:
        return np.random.default_rng(pipeline.metadata.get("sampling_seed"))

    def _estimate_volume(self, pipeline: ConstraintPipeline, cones: Sequence[PossibilityCone]) -> float:
        return estimate_intersection_volume(
            cones,
            self.config.bounds,
            samples=self.config.volume_samples,
            rng=self._sampling_rng(pipeline),
        )


def create_constraint(
    label: str,
    type: ConstraintType,
    restrictiveness: float,
    hardness: Hardness = "hard",
    dependencies: Iterable[str] = (),
    surface: Optional[ConstraintSurface] = None,
    weight: Optional[float] = None,
    dimensions: int = 4,
) -> ConeConstraint:
    """Build a constraint with a fresh id.

    Without ``surface`` the constraint is the half-space ``x0 >= 0``.
    """

    if not 0.0 <= restrictiveness <= 1.0:
        raise StructuralMisuseError(f"restrictiveness must lie in [0, 1], got {restrictiveness}")
    return ConeConstraint(
        id=new_id("constraint"),
        label=label,
        type=type,
        surface=surface
        if surface is not None
        else HyperplaneSurface(normal=unit_vector(dimensions, 0), offset=0.0, valid_side="positive"),
        restrictiveness=restrictiveness,
        dependencies=tuple(dependencies),
        hardness=hardness,
        weight=weight,
    )


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "ConicEvent",
    "ConicEventListener",
    "ConstraintPipelineManager",
    "HARD_VIOLATION_WEIGHT",
    "create_constraint",
]
