"""Hotspotflow: contiguity weights and Getis-Ord Gi* hotspot analysis for polygon data."""

__version__ = "0.1.0"

from hotspotflow.core.neighbors import AdjacencyRelation
from hotspotflow.core.schema import UnitMetadata, UnitSchema, WeightsStyle
from hotspotflow.core.statistics import getis_ord_gi_star
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.weights import SpatialWeights

__all__ = [
    "UnitFrame",
    "UnitSchema",
    "UnitMetadata",
    "AdjacencyRelation",
    "SpatialWeights",
    "WeightsStyle",
    "getis_ord_gi_star",
    "__version__",
]
