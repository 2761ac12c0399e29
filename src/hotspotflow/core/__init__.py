"""Core module containing generic, dataset-agnostic primitives."""

from hotspotflow.core.errors import (
    DimensionMismatchError,
    GeometryError,
    HotspotflowError,
    JoinError,
)
from hotspotflow.core.joiners import AttributeJoin
from hotspotflow.core.neighbors import (
    AdjacencyRelation,
    contiguity,
    queen_contiguity,
    rook_contiguity,
)
from hotspotflow.core.pipeline import LambdaStep, Pipeline, Step
from hotspotflow.core.schema import (
    AnalysisConfig,
    ContiguityRule,
    FeatureProvenance,
    UnitMetadata,
    UnitSchema,
    WeightsStyle,
)
from hotspotflow.core.statistics import (
    LocalStatisticResult,
    classify_hotspots,
    getis_ord_gi_star,
)
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.weights import SpatialWeights, build_weights

__all__ = [
    "UnitFrame",
    "UnitSchema",
    "UnitMetadata",
    "FeatureProvenance",
    "AnalysisConfig",
    "ContiguityRule",
    "WeightsStyle",
    "AttributeJoin",
    "AdjacencyRelation",
    "contiguity",
    "queen_contiguity",
    "rook_contiguity",
    "SpatialWeights",
    "build_weights",
    "LocalStatisticResult",
    "getis_ord_gi_star",
    "classify_hotspots",
    "Pipeline",
    "Step",
    "LambdaStep",
    "HotspotflowError",
    "GeometryError",
    "DimensionMismatchError",
    "JoinError",
]
