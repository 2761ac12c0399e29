"""UnitFrame: central abstraction for an ordered collection of spatial units."""

from typing import Any

import numpy as np
import polars as pl
import shapely
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from hotspotflow.core.errors import GeometryError
from hotspotflow.core.schema import FeatureProvenance, UnitMetadata, UnitSchema
from hotspotflow.core.utils import get_logger

logger = get_logger(__name__)


class UnitFrame:
    """
    Central abstraction for a spatial unit collection.

    Wraps a Polars LazyFrame whose rows are spatial units (identifier,
    WKT geometry, attributes) together with a schema and metadata. Row order
    is stable and doubles as the index of adjacency relations, weights and
    statistic results, so operations never reorder rows implicitly.

    Attributes:
        lazy_frame: The underlying Polars LazyFrame
        schema: The unit schema describing column structure
        metadata: Metadata about the dataset (CRS, feature catalog, etc.)
    """

    def __init__(
        self,
        lazy_frame: pl.LazyFrame,
        schema: UnitSchema,
        metadata: UnitMetadata,
    ) -> None:
        """
        Initialize a UnitFrame.

        Args:
            lazy_frame: Polars LazyFrame containing one row per unit
            schema: Schema describing the unit structure
            metadata: Metadata about the dataset
        """
        self.lazy_frame = lazy_frame

        # Keep provenance identical on schema and metadata.
        combined_provenance = dict(metadata.feature_provenance)
        combined_provenance.update(schema.feature_provenance)

        if combined_provenance != metadata.feature_provenance:
            metadata = metadata.model_copy(update={"feature_provenance": combined_provenance})
        if combined_provenance != schema.feature_provenance:
            schema = schema.model_copy(update={"feature_provenance": combined_provenance})

        self.schema = schema
        self.metadata = metadata
        logger.debug(
            f"Created UnitFrame for dataset '{metadata.dataset_name}' "
            f"with id_col='{schema.id_col}' crs='{metadata.crs}'"
        )

    @classmethod
    def from_records(
        cls,
        ids: list[Any],
        geometries: list[BaseGeometry],
        *,
        id_col: str = "id",
        dataset_name: str = "units",
        crs: str = "EPSG:4326",
        attributes: dict[str, list[Any]] | None = None,
    ) -> "UnitFrame":
        """
        Build a UnitFrame from parallel lists of identifiers and geometries.

        Args:
            ids: Unit identifiers in collection order
            geometries: Shapely geometries aligned with *ids*
            id_col: Name of the identifier column
            dataset_name: Dataset name stored in metadata
            crs: CRS shared by the geometries
            attributes: Optional extra columns aligned with *ids*

        Returns:
            New UnitFrame
        """
        if len(ids) != len(geometries):
            raise ValueError(
                f"Got {len(ids)} identifiers but {len(geometries)} geometries"
            )
        data: dict[str, list[Any]] = {
            id_col: [str(value) for value in ids],
            "geometry": [geom.wkt for geom in geometries],
        }
        for name, values in (attributes or {}).items():
            if len(values) != len(ids):
                raise ValueError(f"Attribute '{name}' has {len(values)} values, expected {len(ids)}")
            data[name] = list(values)

        df = pl.DataFrame(data)
        schema = UnitSchema(
            id_col=id_col,
            numeric_cols=[
                name for name in (attributes or {}) if df.schema[name].is_numeric()
            ],
        )
        metadata = UnitMetadata(dataset_name=dataset_name, crs=crs)
        return cls(df.lazy(), schema, metadata)

    def with_lazy_frame(self, lazy_frame: pl.LazyFrame) -> "UnitFrame":
        """Return a new UnitFrame wrapping *lazy_frame*."""
        return self._spawn(lazy_frame=lazy_frame)

    def with_metadata(self, **updates: Any) -> "UnitFrame":
        """Return a new UnitFrame with metadata updates applied immutably."""
        new_metadata = self.metadata.model_copy(update=updates)
        return self._spawn(metadata=new_metadata)

    def with_schema(self, **updates: Any) -> "UnitFrame":
        """Return a new UnitFrame with schema updates applied immutably."""
        new_schema = self.schema.model_copy(update=updates)
        return self._spawn(schema=new_schema)

    def _spawn(
        self,
        *,
        lazy_frame: pl.LazyFrame | None = None,
        schema: UnitSchema | None = None,
        metadata: UnitMetadata | None = None,
    ) -> "UnitFrame":
        """Internal helper to create new UnitFrame instances preserving invariants."""

        return UnitFrame(
            lazy_frame if lazy_frame is not None else self.lazy_frame,
            schema or self.schema,
            metadata or self.metadata,
        )

    def register_feature(
        self,
        name: str,
        info: dict[str, Any],
        *,
        provenance: FeatureProvenance | None = None,
        numeric: bool = False,
    ) -> "UnitFrame":
        """Return a new UnitFrame with the feature catalog updated.

        Args:
            name: Feature identifier to register.
            info: Arbitrary metadata describing the feature.
            provenance: Optional provenance record; inferred from *info* when omitted.
            numeric: Whether to list the feature among the schema's numeric columns.

        Returns:
            UnitFrame whose metadata includes the registered feature.
        """
        catalog = dict(self.metadata.feature_catalog)
        catalog[name] = info

        if provenance is None:
            provenance = FeatureProvenance(
                produced_by=info.get("source_step"),
                inputs=list(info.get("inputs", [])),
                tags=set(info.get("tags", [])),
                description=info.get("description"),
                metadata={
                    k: v
                    for k, v in info.items()
                    if k not in {"source_step", "inputs", "tags", "description"}
                },
            )

        metadata_provenance = dict(self.metadata.feature_provenance)
        metadata_provenance[name] = provenance
        schema_provenance = dict(self.schema.feature_provenance)
        schema_provenance[name] = provenance

        schema_update: dict[str, Any] = {"feature_provenance": schema_provenance}
        if numeric and name not in self.schema.numeric_cols:
            schema_update["numeric_cols"] = [*self.schema.numeric_cols, name]

        logger.debug(
            "Registering feature '%s' on dataset '%s'", name, self.metadata.dataset_name
        )

        return self._spawn(
            schema=self.schema.model_copy(update=schema_update),
            metadata=self.metadata.model_copy(
                update={"feature_catalog": catalog, "feature_provenance": metadata_provenance}
            ),
        )

    def collect(self) -> pl.DataFrame:
        """Materialize the lazy frame into a DataFrame."""

        logger.debug("Collecting UnitFrame for dataset '%s'", self.metadata.dataset_name)
        df = self.lazy_frame.collect()
        logger.info("Collected %s units, %s columns", len(df), len(df.columns))
        return df

    def head(self, n: int = 5) -> pl.DataFrame:
        """Collect the first *n* units."""

        return self.lazy_frame.head(n).collect()

    def columns(self) -> list[str]:
        """Return the column names without materializing the data."""

        return self.lazy_frame.collect_schema().names()

    def with_columns(self, *exprs: pl.Expr, **named_exprs: pl.Expr) -> "UnitFrame":
        """Return a new UnitFrame with additional or transformed columns."""

        return self.with_lazy_frame(self.lazy_frame.with_columns(*exprs, **named_exprs))

    def select(self, *exprs: pl.Expr | str) -> "UnitFrame":
        """Return a new UnitFrame selecting the provided expressions."""

        return self.with_lazy_frame(self.lazy_frame.select(*exprs))

    def ids(self) -> list[str]:
        """Return unit identifiers in collection order."""

        df = self.lazy_frame.select(pl.col(self.schema.id_col).cast(pl.Utf8)).collect()
        return df.get_column(self.schema.id_col).to_list()

    def geometries(self) -> list[BaseGeometry]:
        """
        Decode unit geometries in collection order.

        Raises:
            GeometryError: If a geometry is missing or its WKT cannot be parsed
        """
        geometry_col = self.schema.geometry_col
        wkts = self.lazy_frame.select(geometry_col).collect().get_column(geometry_col)

        geoms: list[BaseGeometry] = []
        for position, wkt in enumerate(wkts.to_list()):
            if wkt is None:
                raise GeometryError(f"Unit at position {position} has no geometry")
            try:
                geoms.append(shapely.from_wkt(wkt))
            except ShapelyError as exc:
                raise GeometryError(
                    f"Unit at position {position} has unreadable geometry: {exc}"
                ) from exc
        return geoms

    def values(self, column: str) -> np.ndarray:
        """
        Return a numeric column as a float64 vector aligned to collection order.

        Nulls become NaN so downstream validation can reject them.

        Raises:
            KeyError: If the column does not exist
            ValueError: If the column cannot be read as numbers
        """
        if column not in self.columns():
            raise KeyError(f"Column '{column}' not found in dataset '{self.metadata.dataset_name}'")

        try:
            series = (
                self.lazy_frame.select(pl.col(column).cast(pl.Float64)).collect().get_column(column)
            )
        except pl.exceptions.PolarsError as exc:
            raise ValueError(
                f"Column '{column}' in dataset '{self.metadata.dataset_name}' is not numeric: {exc}"
            ) from exc
        return series.fill_null(float("nan")).to_numpy().astype(np.float64, copy=False)

    def validate_unique_ids(self) -> "UnitFrame":
        """
        Check that unit identifiers are unique within the collection.

        Returns:
            Self, for chaining

        Raises:
            GeometryError: If identifiers repeat
        """
        id_col = self.schema.id_col
        dupes = (
            self.lazy_frame.group_by(id_col)
            .agg(pl.len().alias("_n"))
            .filter(pl.col("_n") > 1)
            .collect()
        )
        if len(dupes) > 0:
            sample = sorted(str(v) for v in dupes.get_column(id_col).to_list())[:5]
            raise GeometryError(f"Duplicate unit identifiers in '{id_col}': {sample}")
        return self

    def count(self) -> int:
        """Return the number of units."""

        result = self.lazy_frame.select(pl.len().alias("_count")).collect()
        rows = result.rows()
        return int(rows[0][0]) if rows else 0

    def __repr__(self) -> str:
        """String representation of the UnitFrame."""

        return (
            "UnitFrame(\n"
            f"  dataset={self.metadata.dataset_name},\n"
            f"  id_col={self.schema.id_col},\n"
            f"  crs={self.metadata.crs}\n"
            ")"
        )

    def __len__(self) -> int:
        """Return the number of units."""

        return self.count()
