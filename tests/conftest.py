"""Common test fixtures and utilities."""

import json

import pytest
from shapely import geometry

from hotspotflow.core.unit_frame import UnitFrame

BNG = "EPSG:27700"


def _make_grid(
    n_rows: int,
    n_cols: int,
    size: float = 100.0,
    origin: tuple[float, float] = (530000.0, 180000.0),
    values: list[float] | None = None,
    crs: str = BNG,
) -> UnitFrame:
    """Build a row-major grid of square units named r{row}c{col}."""
    x0, y0 = origin
    ids = []
    geoms = []
    for row in range(n_rows):
        for col in range(n_cols):
            ids.append(f"r{row}c{col}")
            geoms.append(
                geometry.box(
                    x0 + col * size,
                    y0 + row * size,
                    x0 + (col + 1) * size,
                    y0 + (row + 1) * size,
                )
            )
    attributes = {"value": values} if values is not None else None
    return UnitFrame.from_records(
        ids, geoms, id_col="code", dataset_name="grid", crs=crs, attributes=attributes
    )


@pytest.fixture
def row_units() -> UnitFrame:
    """Three unit squares in a row: A - B - C."""
    geoms = [geometry.box(0, 0, 1, 1), geometry.box(1, 0, 2, 1), geometry.box(2, 0, 3, 1)]
    return UnitFrame.from_records(
        ["A", "B", "C"],
        geoms,
        id_col="code",
        dataset_name="row",
        crs=BNG,
        attributes={"value": [1.0, 100.0, 1.0]},
    )


@pytest.fixture
def grid_units() -> UnitFrame:
    """A 3x3 grid of 100 m squares in British National Grid."""
    return _make_grid(3, 3, values=[float(v) for v in range(9)])


@pytest.fixture
def boundary_file(tmp_path):
    """Write a GeoJSON boundary file (3x3 grid, BNG) and return its path."""
    frame = _make_grid(3, 3)
    features = []
    for unit_id, geom in zip(frame.ids(), frame.geometries()):
        features.append(
            {
                "type": "Feature",
                "properties": {"code": unit_id, "name": f"Area {unit_id}"},
                "geometry": geometry.mapping(geom),
            }
        )
    payload = {
        "type": "FeatureCollection",
        "crs": {"type": "name", "properties": {"name": "urn:ogc:def:crs:EPSG::27700"}},
        "features": features,
    }
    path = tmp_path / "boundaries.geojson"
    path.write_text(json.dumps(payload))
    return path


@pytest.fixture
def table_file(tmp_path):
    """Write an attribute table keyed on the boundary codes."""
    path = tmp_path / "attributes.csv"
    rates = [12.5, 9.0, 3.0, 8.0, 6.5, 2.0, 1.5, 1.0, 0.5]
    rows = [f"r{i // 3}c{i % 3},{rate}" for i, rate in enumerate(rates)]
    path.write_text("code,rate\n" + "\n".join(rows) + "\n")
    return path


@pytest.fixture
def make_grid():
    """Factory fixture building square-grid unit frames."""
    return _make_grid


@pytest.fixture
def points_file(tmp_path):
    """Write a point layer in BNG coordinates: three points in r0c0, one in r1c1."""
    path = tmp_path / "stations.csv"
    path.write_text(
        "name,easting,northing\n"
        "a,530020,180020\n"
        "b,530050,180050\n"
        "c,530080,180080\n"
        "d,530150,180150\n"
    )
    return path


@pytest.fixture
def config_file(tmp_path, boundary_file, table_file, points_file):
    """Write an analysis config wired to the boundary, table and point fixtures."""
    out_path = tmp_path / "out" / "hotspots.geojson"
    path = tmp_path / "analysis.yaml"
    path.write_text(
        f"""
dataset_name: test_grid
recipe: hotspot
target_crs: "EPSG:27700"
boundaries:
  path: "{boundary_file}"
  id_col: code
table:
  path: "{table_file}"
  key_col: code
  strict: true
points:
  - path: "{points_file}"
    lon_col: easting
    lat_col: northing
    name_col: name
    crs: "EPSG:27700"
    output_col: stations
hotspot:
  value_col: rate
  contiguity: queen
  style: W
output:
  path: "{out_path}"
  format: geojson
"""
    )
    return path
