"""Schema definitions for spatial unit collections and analysis configuration."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, field_validator


class WeightsStyle(str, Enum):
    """Standardization schemes for spatial weights."""

    BINARY = "binary"
    ROW_STANDARDIZED = "row_standardized"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value

    @classmethod
    def parse(cls, value: str | WeightsStyle) -> WeightsStyle:
        """Coerce a style name, accepting the spdep codes "C" and "W" as aliases."""
        if isinstance(value, WeightsStyle):
            return value
        aliases = {"C": cls.BINARY, "W": cls.ROW_STANDARDIZED, "row": cls.ROW_STANDARDIZED}
        if value in aliases:
            return aliases[value]
        try:
            return cls(value.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported weights style: {value!r}") from exc


class ContiguityRule(str, Enum):
    """Rules deciding when two polygons are neighbors."""

    QUEEN = "queen"
    ROOK = "rook"

    def __str__(self) -> str:  # pragma: no cover - trivial wrapper
        return self.value


class FeatureProvenance(BaseModel):
    """Record describing how a feature was produced during a pipeline run."""

    produced_by: str | None = None
    inputs: list[str] = Field(default_factory=list)
    tags: set[str] = Field(default_factory=set)
    description: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UnitSchema(BaseModel):
    """
    Describes the structure of a spatial unit collection.

    Attributes:
        id_col: Name of the unique identifier column (e.g., area code)
        geometry_col: Name of the geometry column (WKT text)
        numeric_cols: List of numeric attribute columns
        categorical_cols: List of categorical attribute columns
        feature_provenance: Provenance metadata keyed by feature name
    """

    id_col: str
    geometry_col: str = "geometry"
    numeric_cols: list[str] = Field(default_factory=list)
    categorical_cols: list[str] = Field(default_factory=list)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        """Validate that identifier and geometry live in distinct columns."""
        if self.id_col == self.geometry_col:
            raise ValueError("id_col and geometry_col must be different columns")

    def compatibility_issues(self, other: UnitSchema) -> list[str]:
        """Return human-readable compatibility issues when transitioning to *other*."""

        issues: list[str] = []

        if self.id_col != other.id_col:
            issues.append(f"id_col mismatch: {self.id_col!r} -> {other.id_col!r}")
        if self.geometry_col != other.geometry_col:
            issues.append(
                f"geometry_col mismatch: {self.geometry_col!r} -> {other.geometry_col!r}"
            )

        missing_features = set(self.feature_provenance) - set(other.feature_provenance)
        if missing_features:
            issues.append(
                "missing feature provenance entries: " + ", ".join(sorted(missing_features))
            )

        return issues


class UnitMetadata(BaseModel):
    """
    Metadata about a spatial unit collection.

    Attributes:
        dataset_name: Name of the dataset
        crs: Coordinate reference system shared by every geometry
        feature_catalog: Free-form description of derived columns
        feature_provenance: Provenance metadata keyed by feature name
        custom: Additional custom metadata (e.g., neighbor summaries)
    """

    dataset_name: str
    crs: str = "EPSG:4326"
    feature_catalog: dict[str, Any] = Field(default_factory=dict)
    feature_provenance: dict[str, FeatureProvenance] = Field(default_factory=dict)
    custom: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)


# -----------------------------------------------------------------------------
# Analysis configuration
# -----------------------------------------------------------------------------


class BoundarySource(BaseModel):
    """Polygon boundary file with an identifier column."""

    path: str
    id_col: str
    crs: str | None = Field(
        default=None, description="Source CRS; read from the file when omitted"
    )


class TableSource(BaseModel):
    """Delimited attribute table joined onto the boundaries."""

    path: str
    key_col: str
    unit_key_col: str | None = Field(
        default=None, description="Unit column to match on; defaults to the boundary id_col"
    )
    separator: str = ","
    columns: list[str] | None = None
    strict: bool = False


class PointSource(BaseModel):
    """Point layer (e.g., station locations) overlaid on the units."""

    path: str
    lon_col: str = "longitude"
    lat_col: str = "latitude"
    name_col: str | None = None
    crs: str = "EPSG:4326"
    output_col: str = "point_count"
    buffer_m: float | None = Field(default=None, ge=0)


class HotspotConfig(BaseModel):
    """Parameters for the Getis-Ord Gi* stage."""

    value_col: str
    contiguity: ContiguityRule = ContiguityRule.QUEEN
    style: WeightsStyle = WeightsStyle.BINARY
    classify: bool = True

    @field_validator("style", mode="before")
    @classmethod
    def parse_style(cls, v: Any) -> WeightsStyle:
        """Accept spdep style codes as well as explicit names."""
        return WeightsStyle.parse(v)


class OutputConfig(BaseModel):
    """Where and how to write the annotated collection."""

    path: str | None = None
    format: Literal["geojson", "csv"] = "geojson"


class AnalysisConfig(BaseModel):
    """
    Configuration for a full hotspot analysis run.

    Attributes:
        dataset_name: Name of the dataset
        recipe: Registered recipe name
        target_crs: Projected CRS all geometries are moved into
        boundaries: Polygon boundary source
        table: Optional attribute table source
        points: Optional point layers
        hotspot: Getis-Ord parameters
        output: Output configuration
    """

    dataset_name: str
    recipe: str = "hotspot"
    target_crs: str = "EPSG:27700"
    boundaries: BoundarySource
    table: TableSource | None = None
    points: list[PointSource] = Field(default_factory=list)
    hotspot: HotspotConfig
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> AnalysisConfig:
        """Load and validate a YAML configuration file."""
        with open(path) as f:
            config_dict = yaml.safe_load(f)
        if not isinstance(config_dict, dict):
            raise ValueError(f"Configuration file {path} does not contain a mapping")
        return cls(**config_dict)
