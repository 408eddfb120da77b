from .types import (
    DIMENSION,
    Bounds,
    ConeConstraint,
    ConeIntersection,
    ConeSurface,
    ConicSection,
    ConstraintPipeline,
    CustomSurface,
    HyperplaneSurface,
    MalformedInputError,
    PathWaypoint,
    PipelineStage,
    PossibilityCone,
    PossibilityPath,
    SpacePoint,
    SpaceVector,
    SphereSurface,
    StructuralMisuseError,
    ValueField,
    Waist,
)
from .geometry import (
    classify_conic_section,
    create_cone,
    create_conic_section,
    estimate_intersection_volume,
    find_intersection_waist,
    is_point_in_cone,
    narrow_cone,
    signed_distance_to_surface,
)
from .pipeline import (
    ConstraintPipelineManager,
    CyclicDependencies,
    OrderedDependencies,
    PipelineConfig,
    analyze_constraint_dependencies,
    create_constraint,
    get_default_pipeline_config,
    set_default_pipeline_config,
)
from .optimizer import (
    DEFAULT_OPTIMIZATION_CONFIG,
    ObjectiveWeights,
    OptimizationConfig,
    OptimizationResult,
    PathOptimizer,
    SearchProblem,
    find_optimal_path,
)
from .serialization import (
    cone_to_dict,
    intersection_to_dict,
    path_to_dict,
    pipeline_from_dict,
    pipeline_to_dict,
    result_to_dict,
)

__all__ = [
    'DIMENSION',
    'Bounds',
    'ConeConstraint',
    'ConeIntersection',
    'ConeSurface',
    'ConicSection',
    'ConstraintPipeline',
    'CustomSurface',
    'HyperplaneSurface',
    'MalformedInputError',
    'PathWaypoint',
    'PipelineStage',
    'PossibilityCone',
    'PossibilityPath',
    'SpacePoint',
    'SpaceVector',
    'SphereSurface',
    'StructuralMisuseError',
    'ValueField',
    'Waist',
    'classify_conic_section',
    'create_cone',
    'create_conic_section',
    'estimate_intersection_volume',
    'find_intersection_waist',
    'is_point_in_cone',
    'narrow_cone',
    'signed_distance_to_surface',
    'ConstraintPipelineManager',
    'CyclicDependencies',
    'OrderedDependencies',
    'PipelineConfig',
    'analyze_constraint_dependencies',
    'create_constraint',
    'get_default_pipeline_config',
    'set_default_pipeline_config',
    'DEFAULT_OPTIMIZATION_CONFIG',
    'ObjectiveWeights',
    'OptimizationConfig',
    'OptimizationResult',
    'PathOptimizer',
    'SearchProblem',
    'find_optimal_path',
    'cone_to_dict',
    'intersection_to_dict',
    'path_to_dict',
    'pipeline_from_dict',
    'pipeline_to_dict',
    'result_to_dict',
]
