"""Tests for spatial operations."""

from __future__ import annotations

import polars as pl
import pytest
import shapely
from shapely import geometry

from hotspotflow.core import spatial
from hotspotflow.core.errors import GeometryError
from hotspotflow.core.unit_frame import UnitFrame

# Trafalgar Square, roughly.
LONDON_LON, LONDON_LAT = -0.1281, 51.5080


@pytest.fixture
def wgs84_units() -> UnitFrame:
    square = geometry.box(LONDON_LON - 0.01, LONDON_LAT - 0.01, LONDON_LON + 0.01, LONDON_LAT + 0.01)
    return UnitFrame.from_records(["central"], [square], id_col="code", crs="EPSG:4326")


def test_transform_crs(wgs84_units: UnitFrame) -> None:
    projected = spatial.transform_crs(wgs84_units, "EPSG:27700")
    x, y = projected.geometries()[0].centroid.coords[0]

    assert projected.metadata.crs == "EPSG:27700"
    assert 525000 < x < 535000
    assert 175000 < y < 185000
    assert wgs84_units.metadata.crs == "EPSG:4326"


def test_transform_crs_noop(row_units: UnitFrame) -> None:
    assert spatial.transform_crs(row_units, "EPSG:27700") is row_units


def test_transform_points() -> None:
    points = pl.DataFrame({"longitude": [LONDON_LON], "latitude": [LONDON_LAT]})
    out = spatial.transform_points(points, "EPSG:4326", "EPSG:27700")

    assert 525000 < out.get_column("longitude")[0] < 535000
    assert 175000 < out.get_column("latitude")[0] < 185000


def test_require_projected(wgs84_units: UnitFrame, row_units: UnitFrame) -> None:
    assert spatial.require_projected(row_units) is row_units
    with pytest.raises(GeometryError, match="geographic"):
        spatial.require_projected(wgs84_units)


def test_require_projected_unknown_crs(row_units: UnitFrame) -> None:
    with pytest.raises(GeometryError, match="Unrecognised"):
        spatial.require_projected(row_units.with_metadata(crs="NOT:A:CRS"))


def test_buffer_points() -> None:
    points = pl.DataFrame({"longitude": [0.0], "latitude": [0.0]})
    out = spatial.buffer_points(points, 10.0)
    buffer = shapely.from_wkt(out["buffer"][0])

    assert buffer.area == pytest.approx(314.0, rel=0.01)


def test_buffer_points_negative() -> None:
    points = pl.DataFrame({"longitude": [0.0], "latitude": [0.0]})

    with pytest.raises(ValueError, match="non-negative"):
        spatial.buffer_points(points, -1.0)


class TestCountPointsInUnits:
    """Point-in-polygon overlay."""

    def test_counts(self, row_units: UnitFrame) -> None:
        points = pl.DataFrame(
            {"longitude": [0.5, 0.2, 1.5, 10.0], "latitude": [0.5, 0.8, 0.5, 10.0]}
        )
        out = spatial.count_points_in_units(row_units, points)

        assert out.collect().get_column("point_count").to_list() == [2, 1, 0]
        assert "point_count" in out.schema.numeric_cols
        assert out.metadata.feature_provenance["point_count"].metadata["n_points"] == 4

    def test_buffered_counts(self, row_units: UnitFrame) -> None:
        points = pl.DataFrame({"x": [0.9], "y": [0.5]})
        out = spatial.count_points_in_units(
            row_units, points, lon_col="x", lat_col="y", output_col="near", buffer_distance=0.3
        )

        assert out.collect().get_column("near").to_list() == [1, 1, 0]

    def test_no_points(self, row_units: UnitFrame) -> None:
        points = pl.DataFrame(
            {"longitude": [], "latitude": []},
            schema={"longitude": pl.Float64, "latitude": pl.Float64},
        )
        out = spatial.count_points_in_units(row_units, points)

        assert out.collect().get_column("point_count").to_list() == [0, 0, 0]
