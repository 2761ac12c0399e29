"""Spatial pipeline steps.

Each step:
- Inherits from Step base class
- Registers outputs via FeatureProvenance
- Returns a new UnitFrame, leaving its input untouched
- Has a Pydantic config model for validation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl
from pydantic import BaseModel, Field

from hotspotflow.core import spatial
from hotspotflow.core.joiners import AttributeJoin
from hotspotflow.core.neighbors import contiguity
from hotspotflow.core.pipeline import Step
from hotspotflow.core.schema import ContiguityRule, FeatureProvenance, WeightsStyle
from hotspotflow.core.statistics import classify_hotspots, getis_ord_gi_star
from hotspotflow.core.utils import get_logger
from hotspotflow.core.weights import build_weights

if TYPE_CHECKING:
    from hotspotflow.core.unit_frame import UnitFrame

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Pydantic Config Models for Step Parameters
# -----------------------------------------------------------------------------


class TransformCRSConfig(BaseModel):
    """Configuration for CRS transformation step."""

    target_crs: str = Field(..., description="Target CRS (e.g., 'EPSG:27700')")


class AttributeJoinConfig(BaseModel):
    """Configuration for attribute join step."""

    key_col: str | None = Field(default=None, description="Unit key; defaults to id_col")
    table_key_col: str | None = Field(default=None, description="Table key; defaults to key_col")
    strict: bool = Field(default=False, description="Raise on units without a table row")
    columns: list[str] | None = Field(default=None, description="Table columns to join")


class PointCountConfig(BaseModel):
    """Configuration for point overlay step."""

    lon_col: str = Field(default="longitude", description="Point x / longitude column")
    lat_col: str = Field(default="latitude", description="Point y / latitude column")
    output_col: str = Field(default="point_count", description="Output count column")
    points_crs: str | None = Field(
        default=None, description="CRS of the points; defaults to the units' CRS"
    )
    buffer_distance: float | None = Field(
        default=None, ge=0, description="Buffer radius in CRS units; count buffers touching units"
    )


class GetisOrdConfig(BaseModel):
    """Configuration for Getis-Ord Gi* step."""

    value_col: str = Field(..., description="Column to compute hotspot statistics for")
    rule: ContiguityRule = Field(default=ContiguityRule.QUEEN, description="Contiguity rule")
    style: WeightsStyle = Field(default=WeightsStyle.BINARY, description="Weights style")
    classify: bool = Field(default=True, description="Add a hot/cold spot class column")
    require_projected: bool = Field(
        default=True, description="Refuse geographic CRSs before building contiguity"
    )


# -----------------------------------------------------------------------------
# Spatial Steps
# -----------------------------------------------------------------------------


class TransformCRSStep(Step):
    """Reproject unit geometries into another CRS.

    Outputs:
        - geometry column rewritten in the target CRS
        - Updated CRS in metadata
    """

    def __init__(self, target_crs: str) -> None:
        self.config = TransformCRSConfig(target_crs=target_crs)

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Execute CRS transformation."""
        return spatial.transform_crs(unit_frame, self.config.target_crs)

    def __repr__(self) -> str:
        return f"TransformCRSStep(target_crs={self.config.target_crs})"


class AttributeJoinStep(Step):
    """Join tabular attributes onto units by key.

    Inputs:
        - key column on the units and on the table

    Outputs:
        - table columns (null for unmatched units unless strict)
    """

    def __init__(
        self,
        table: pl.DataFrame,
        key_col: str | None = None,
        table_key_col: str | None = None,
        strict: bool = False,
        columns: list[str] | None = None,
    ) -> None:
        self.table = table
        self.config = AttributeJoinConfig(
            key_col=key_col, table_key_col=table_key_col, strict=strict, columns=columns
        )

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Execute attribute join."""
        joiner = AttributeJoin(
            key_col=self.config.key_col,
            table_key_col=self.config.table_key_col,
            strict=self.config.strict,
            columns=self.config.columns,
        )
        return joiner.join(unit_frame, self.table)


class PointCountStep(Step):
    """Count points (optionally buffered) per unit.

    Inputs:
        - points DataFrame with coordinate columns

    Outputs:
        - output_col with the per-unit count
    """

    def __init__(
        self,
        points: pl.DataFrame,
        lon_col: str = "longitude",
        lat_col: str = "latitude",
        output_col: str = "point_count",
        points_crs: str | None = None,
        buffer_distance: float | None = None,
    ) -> None:
        self.points = points
        self.config = PointCountConfig(
            lon_col=lon_col,
            lat_col=lat_col,
            output_col=output_col,
            points_crs=points_crs,
            buffer_distance=buffer_distance,
        )

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Execute point overlay."""
        cfg = self.config
        points = self.points
        if cfg.points_crs and cfg.points_crs != unit_frame.metadata.crs:
            points = spatial.transform_points(
                points, cfg.points_crs, unit_frame.metadata.crs, cfg.lon_col, cfg.lat_col
            )
        if cfg.buffer_distance is not None:
            spatial.require_projected(unit_frame)

        return spatial.count_points_in_units(
            unit_frame,
            points,
            lon_col=cfg.lon_col,
            lat_col=cfg.lat_col,
            output_col=cfg.output_col,
            buffer_distance=cfg.buffer_distance,
        )


class GetisOrdStep(Step):
    """Compute Getis-Ord Gi* hotspot statistic over contiguity weights.

    Inputs:
        - value_col to compute hotspot statistics for
        - unit geometries for the contiguity graph

    Outputs:
        - {value_col}_gi_star: Gi* z-score (null where the variance is degenerate)
        - {value_col}_hotspot: Confidence class (Hot/Cold Spot 90-99%, Not Significant)
        - metadata.custom["gi_star"][value_col]: neighbor graph summary
    """

    def __init__(
        self,
        value_col: str,
        rule: ContiguityRule | str = ContiguityRule.QUEEN,
        style: WeightsStyle | str = WeightsStyle.BINARY,
        classify: bool = True,
        require_projected: bool = True,
    ) -> None:
        self.config = GetisOrdConfig(
            value_col=value_col,
            rule=ContiguityRule(rule),
            style=WeightsStyle.parse(style),
            classify=classify,
            require_projected=require_projected,
        )

    def run(self, unit_frame: UnitFrame) -> UnitFrame:
        """Execute Getis-Ord Gi* computation."""
        cfg = self.config
        if cfg.require_projected:
            spatial.require_projected(unit_frame)

        values = unit_frame.values(cfg.value_col)
        adjacency = contiguity(unit_frame, cfg.rule)
        weights = build_weights(adjacency, cfg.style)
        result = getis_ord_gi_star(values, weights)

        gi_col = f"{cfg.value_col}_gi_star"
        hotspot_col = f"{cfg.value_col}_hotspot"

        columns = [pl.Series(gi_col, result.z, dtype=pl.Float64).fill_nan(None)]
        if cfg.classify:
            columns.append(pl.Series(hotspot_col, classify_hotspots(result.z), dtype=pl.Utf8))
        lf = unit_frame.lazy_frame.with_columns(columns)

        provenance = FeatureProvenance(
            produced_by="GetisOrdStep",
            inputs=[cfg.value_col],
            tags={"spatial", "hotspot"},
            description=f"Getis-Ord Gi* for {cfg.value_col}",
            metadata={"rule": cfg.rule.value, "style": cfg.style.value},
        )

        summary = {**adjacency.summary(), "style": cfg.style.value, "rule": cfg.rule.value}
        custom = dict(unit_frame.metadata.custom)
        gi_summaries = dict(custom.get("gi_star", {}))
        gi_summaries[cfg.value_col] = summary
        custom["gi_star"] = gi_summaries

        out = unit_frame.with_lazy_frame(lf).with_metadata(custom=custom)
        out = out.register_feature(
            gi_col,
            {"source_step": "GetisOrdStep", "value_col": cfg.value_col},
            provenance=provenance,
            numeric=True,
        )
        if cfg.classify:
            out = out.register_feature(
                hotspot_col,
                {"source_step": "GetisOrdStep", "value_col": cfg.value_col},
                provenance=provenance,
            )
        return out

    def __repr__(self) -> str:
        return f"GetisOrdStep(value_col={self.config.value_col}, style={self.config.style.value})"
