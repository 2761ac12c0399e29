"""Reading boundary, table and point files, and writing annotated collections."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import polars as pl
from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape

from hotspotflow.core.errors import GeometryError
from hotspotflow.core.schema import UnitMetadata, UnitSchema
from hotspotflow.core.unit_frame import UnitFrame
from hotspotflow.core.utils import CRS, get_logger, is_numeric_col

logger = get_logger(__name__)


def _crs_from_geojson(payload: dict[str, Any]) -> str | None:
    """Extract the legacy ``crs`` member of a GeoJSON document, if present."""
    crs_member = payload.get("crs")
    if not isinstance(crs_member, dict):
        return None
    name = crs_member.get("properties", {}).get("name")
    if not name:
        return None
    # urn:ogc:def:crs:EPSG::27700 -> EPSG:27700
    if name.startswith("urn:ogc:def:crs:EPSG::"):
        return "EPSG:" + name.rsplit(":", 1)[-1]
    if name == "urn:ogc:def:crs:OGC:1.3:CRS84":
        return CRS.WGS84.value
    return name


def read_boundaries(
    path: str | Path,
    id_col: str,
    crs: str | None = None,
    dataset_name: str | None = None,
) -> UnitFrame:
    """
    Load polygon boundaries from a GeoJSON FeatureCollection.

    Args:
        path: Path to the GeoJSON file
        id_col: Feature property holding the unit identifier
        crs: Source CRS; overrides the file's ``crs`` member when given
        dataset_name: Dataset name (defaults to the file stem)

    Returns:
        UnitFrame with one row per feature, in file order

    Raises:
        GeometryError: If a feature has no geometry or the identifier is missing
    """
    path = Path(path)
    logger.info(f"Reading boundaries from {path}")

    with open(path) as f:
        payload = json.load(f)

    if payload.get("type") != "FeatureCollection":
        raise GeometryError(f"{path} is not a GeoJSON FeatureCollection")

    ids: list[str] = []
    wkts: list[str] = []
    properties: list[dict[str, Any]] = []

    for position, feature in enumerate(payload.get("features", [])):
        props = dict(feature.get("properties") or {})
        if props.get(id_col) is None:
            raise GeometryError(f"Feature {position} in {path} has no '{id_col}' property")
        if feature.get("geometry") is None:
            raise GeometryError(f"Feature {props[id_col]!r} in {path} has no geometry")
        try:
            geom = shape(feature["geometry"])
        except (KeyError, TypeError, ValueError, AttributeError, ShapelyError) as exc:
            raise GeometryError(
                f"Feature {props[id_col]!r} in {path} has unreadable geometry: {exc}"
            ) from exc

        ids.append(str(props.pop(id_col)))
        wkts.append(geom.wkt)
        props.pop("geometry", None)
        properties.append(props)

    attribute_names: list[str] = []
    for props in properties:
        for key in props:
            if key not in attribute_names:
                attribute_names.append(key)

    data: dict[str, list[Any]] = {id_col: ids, "geometry": wkts}
    for key in attribute_names:
        data[key] = [props.get(key) for props in properties]

    df = pl.DataFrame(data, strict=False)
    source_crs = crs or _crs_from_geojson(payload) or CRS.WGS84.value

    schema = UnitSchema(
        id_col=id_col,
        numeric_cols=[key for key in attribute_names if is_numeric_col(df.schema[key])],
        categorical_cols=[key for key in attribute_names if df.schema[key] == pl.Utf8],
    )
    metadata = UnitMetadata(
        dataset_name=dataset_name or path.stem,
        crs=source_crs,
        custom={"source_path": str(path)},
    )
    frame = UnitFrame(df.lazy(), schema, metadata).validate_unique_ids()
    logger.info(f"Loaded {len(ids)} units with CRS {source_crs}")
    return frame


def read_table(
    path: str | Path,
    key_col: str,
    separator: str = ",",
) -> pl.DataFrame:
    """
    Load a delimited attribute table.

    Args:
        path: Path to the delimited text file
        key_col: Column holding the join key (read as text)
        separator: Field separator

    Returns:
        DataFrame with the key column as Utf8
    """
    logger.info(f"Reading attribute table from {path}")
    df = pl.read_csv(path, separator=separator, schema_overrides={key_col: pl.Utf8})
    if key_col not in df.columns:
        raise KeyError(f"Key column '{key_col}' not found in {path}")
    return df


def read_points(
    path: str | Path,
    lon_col: str = "longitude",
    lat_col: str = "latitude",
    name_col: str | None = None,
) -> pl.DataFrame:
    """
    Load a point layer such as station locations.

    CSV files must carry coordinate columns; GeoJSON files must contain
    Point features and have their coordinates copied into *lon_col*/*lat_col*.

    Returns:
        DataFrame with at least the coordinate columns (and *name_col* if given)
    """
    path = Path(path)
    logger.info(f"Reading points from {path}")

    if path.suffix.lower() in {".geojson", ".json"}:
        with open(path) as f:
            payload = json.load(f)
        rows: list[dict[str, Any]] = []
        for position, feature in enumerate(payload.get("features", [])):
            geom = feature.get("geometry") or {}
            if geom.get("type") != "Point":
                raise GeometryError(f"Feature {position} in {path} is not a Point")
            lon, lat = geom["coordinates"][:2]
            row = dict(feature.get("properties") or {})
            row[lon_col] = float(lon)
            row[lat_col] = float(lat)
            rows.append(row)
        df = pl.DataFrame(rows, strict=False) if rows else pl.DataFrame(
            {lon_col: [], lat_col: []}, schema={lon_col: pl.Float64, lat_col: pl.Float64}
        )
    else:
        df = pl.read_csv(path)

    missing = [col for col in (lon_col, lat_col, name_col) if col and col not in df.columns]
    if missing:
        raise KeyError(f"Point layer {path} is missing columns: {missing}")

    return df.with_columns(pl.col(lon_col).cast(pl.Float64), pl.col(lat_col).cast(pl.Float64))


def write_geojson(frame: UnitFrame, path: str | Path) -> Path:
    """
    Write a UnitFrame as a GeoJSON FeatureCollection.

    Non-finite floats are written as null.
    """
    path = Path(path)
    df = frame.collect()
    geometries = frame.geometries()
    geometry_col = frame.schema.geometry_col

    features = []
    for row, geom in zip(df.iter_rows(named=True), geometries, strict=True):
        props = {
            key: _json_value(value) for key, value in row.items() if key != geometry_col
        }
        features.append({"type": "Feature", "properties": props, "geometry": mapping(geom)})

    payload = {
        "type": "FeatureCollection",
        "crs": {"type": "name", "properties": {"name": frame.metadata.crs}},
        "features": features,
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(payload, f)

    logger.info(f"Wrote {len(features)} units to {path}")
    return path


def write_table(frame: UnitFrame, path: str | Path, include_geometry: bool = False) -> Path:
    """Write a UnitFrame's attributes as CSV."""
    path = Path(path)
    df = frame.collect()
    if not include_geometry:
        df = df.drop(frame.schema.geometry_col)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(path)
    logger.info(f"Wrote {len(df)} rows to {path}")
    return path


def _json_value(value: Any) -> Any:
    """Map NaN/inf to None so the output stays valid JSON."""
    if isinstance(value, float) and (value != value or value in (float("inf"), float("-inf"))):
        return None
    return value
