"""Spatial operations on unit collections and point layers."""

import polars as pl
import shapely
from pyproj import Transformer
from shapely import STRtree, geometry
from shapely.ops import transform as transform_geometry

from hotspotflow.core.errors import GeometryError
from hotspotflow.core.schema import FeatureProvenance
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.utils import get_logger, is_projected_crs

logger = get_logger(__name__)


def transform_crs(
    unit_frame: UnitFrame,
    target_crs: str,
) -> UnitFrame:
    """
    Reproject every unit geometry into a different CRS.

    Args:
        unit_frame: Input UnitFrame
        target_crs: Target CRS (e.g., "EPSG:27700")

    Returns:
        UnitFrame with transformed geometries and updated CRS metadata
    """
    if unit_frame.metadata.crs == target_crs:
        logger.debug(f"CRS already matches target: {target_crs}")
        return unit_frame

    logger.info(f"Transforming CRS from {unit_frame.metadata.crs} to {target_crs}")

    transformer = Transformer.from_crs(
        unit_frame.metadata.crs,
        target_crs,
        always_xy=True,
    )

    projected = [
        transform_geometry(transformer.transform, geom) for geom in unit_frame.geometries()
    ]
    geometry_col = unit_frame.schema.geometry_col
    lf = unit_frame.lazy_frame.with_columns(
        pl.Series(geometry_col, [geom.wkt for geom in projected], dtype=pl.Utf8)
    )

    return unit_frame.with_lazy_frame(lf).with_metadata(crs=target_crs)


def transform_points(
    points: pl.DataFrame,
    source_crs: str,
    target_crs: str,
    lon_col: str = "longitude",
    lat_col: str = "latitude",
) -> pl.DataFrame:
    """
    Reproject point coordinates in place of the original columns.

    Args:
        points: DataFrame with coordinate columns
        source_crs: CRS of the coordinates
        target_crs: CRS to move them into

    Returns:
        DataFrame with transformed coordinate columns
    """
    if source_crs == target_crs or len(points) == 0:
        return points

    transformer = Transformer.from_crs(source_crs, target_crs, always_xy=True)
    xs, ys = transformer.transform(
        points.get_column(lon_col).to_numpy(),
        points.get_column(lat_col).to_numpy(),
    )
    return points.with_columns(
        pl.Series(lon_col, xs, dtype=pl.Float64),
        pl.Series(lat_col, ys, dtype=pl.Float64),
    )


def require_projected(unit_frame: UnitFrame) -> UnitFrame:
    """
    Ensure the collection lives in a planar CRS before distance or adjacency work.

    Raises:
        GeometryError: If the CRS is geographic or unrecognised
    """
    crs = unit_frame.metadata.crs
    try:
        projected = is_projected_crs(crs)
    except ValueError as exc:
        raise GeometryError(str(exc)) from exc
    if not projected:
        raise GeometryError(
            f"Dataset '{unit_frame.metadata.dataset_name}' uses geographic CRS {crs}; "
            "reproject to a planar CRS first"
        )
    return unit_frame


def buffer_points(
    points: pl.DataFrame,
    distance: float,
    lon_col: str = "longitude",
    lat_col: str = "latitude",
    output_col: str = "buffer",
) -> pl.DataFrame:
    """
    Create buffer polygons around points.

    Args:
        points: DataFrame with projected coordinates
        distance: Buffer radius in CRS units (meters for projected CRSs)
        output_col: Name of the WKT buffer column to add

    Returns:
        DataFrame with a WKT buffer column added
    """
    if distance < 0:
        raise ValueError(f"Buffer distance must be non-negative, got {distance}")

    coords = points.select([lon_col, lat_col]).to_numpy()
    centres = shapely.points(coords) if len(coords) else []
    buffers = shapely.buffer(centres, distance) if len(coords) else []

    logger.info(f"Buffered {len(points)} points by {distance}")
    return points.with_columns(
        pl.Series(output_col, [geom.wkt for geom in buffers], dtype=pl.Utf8)
    )


def count_points_in_units(
    unit_frame: UnitFrame,
    points: pl.DataFrame,
    lon_col: str = "longitude",
    lat_col: str = "latitude",
    output_col: str = "point_count",
    buffer_distance: float | None = None,
) -> UnitFrame:
    """
    Count points falling inside each unit.

    With *buffer_distance* set, each point is first buffered and the count
    becomes the number of buffers intersecting the unit.

    Args:
        unit_frame: Input UnitFrame (same CRS as the points)
        points: DataFrame with point coordinates
        output_col: Name of the count column to add
        buffer_distance: Optional buffer radius in CRS units

    Returns:
        UnitFrame with the count column added
    """
    unit_geoms = unit_frame.geometries()
    tree = STRtree(unit_geoms)
    counts = [0] * len(unit_geoms)

    if buffer_distance is None:
        probes = [geometry.Point(x, y) for x, y in points.select([lon_col, lat_col]).iter_rows()]
        predicate = "within"
    else:
        buffered = buffer_points(points, buffer_distance, lon_col, lat_col, output_col="_buffer")
        probes = [shapely.from_wkt(wkt) for wkt in buffered.get_column("_buffer").to_list()]
        predicate = "intersects"

    for probe in probes:
        for idx in tree.query(probe, predicate=predicate):
            counts[int(idx)] += 1

    lf = unit_frame.lazy_frame.with_columns(pl.Series(output_col, counts, dtype=pl.Int64))

    description = (
        f"Points within {buffer_distance} of each unit"
        if buffer_distance is not None
        else "Points contained in each unit"
    )
    provenance = FeatureProvenance(
        produced_by="count_points_in_units",
        inputs=[lon_col, lat_col],
        tags={"spatial", "overlay"},
        description=description,
        metadata={"buffer_distance": buffer_distance, "n_points": len(points)},
    )
    result = unit_frame.with_lazy_frame(lf)
    return result.register_feature(
        output_col,
        {"source_step": "count_points_in_units", "inputs": [lon_col, lat_col]},
        provenance=provenance,
        numeric=True,
    )
