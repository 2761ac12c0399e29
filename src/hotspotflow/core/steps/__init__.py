"""
Step implementations for the hotspot analysis pipeline.

All steps in this package:
- Inherit from hotspotflow.core.pipeline.Step
- Register derived columns with provenance tracking
- Validate their parameters through Pydantic config models
"""

from hotspotflow.core.steps.spatial import (
    AttributeJoinStep,
    GetisOrdStep,
    PointCountStep,
    TransformCRSStep,
)

__all__ = [
    "AttributeJoinStep",
    "GetisOrdStep",
    "PointCountStep",
    "TransformCRSStep",
]
