"""Tests for file readers and writers."""

from __future__ import annotations

import json

import pytest

from hotspotflow.core import io
from hotspotflow.core.errors import GeometryError
from hotspotflow.core.unit_frame import UnitFrame


class TestReadBoundaries:
    """Reading GeoJSON polygon boundaries."""

    def test_reads_units_in_file_order(self, boundary_file) -> None:
        frame = io.read_boundaries(boundary_file, "code")

        assert frame.ids() == [f"r{r}c{c}" for r in range(3) for c in range(3)]
        assert frame.metadata.crs == "EPSG:27700"
        assert frame.metadata.dataset_name == "boundaries"
        assert "name" in frame.schema.categorical_cols
        assert all(g.geom_type == "Polygon" for g in frame.geometries())

    def test_crs_override(self, boundary_file) -> None:
        frame = io.read_boundaries(boundary_file, "code", crs="EPSG:32630", dataset_name="x")

        assert frame.metadata.crs == "EPSG:32630"
        assert frame.metadata.dataset_name == "x"

    def test_defaults_to_wgs84(self, tmp_path) -> None:
        path = tmp_path / "plain.geojson"
        path.write_text(
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [
                        {
                            "type": "Feature",
                            "properties": {"id": 1},
                            "geometry": {
                                "type": "Polygon",
                                "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                            },
                        }
                    ],
                }
            )
        )
        frame = io.read_boundaries(path, "id")

        assert frame.metadata.crs == "EPSG:4326"
        assert frame.ids() == ["1"]

    def test_missing_identifier(self, tmp_path) -> None:
        path = tmp_path / "bad.geojson"
        path.write_text(
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [{"type": "Feature", "properties": {}, "geometry": None}],
                }
            )
        )

        with pytest.raises(GeometryError, match="no 'code' property"):
            io.read_boundaries(path, "code")

    def test_missing_geometry(self, tmp_path) -> None:
        path = tmp_path / "bad.geojson"
        path.write_text(
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [{"type": "Feature", "properties": {"code": "a"}, "geometry": None}],
                }
            )
        )

        with pytest.raises(GeometryError, match="no geometry"):
            io.read_boundaries(path, "code")

    def test_not_a_feature_collection(self, tmp_path) -> None:
        path = tmp_path / "point.geojson"
        path.write_text(json.dumps({"type": "Point", "coordinates": [0, 0]}))

        with pytest.raises(GeometryError, match="FeatureCollection"):
            io.read_boundaries(path, "code")


class TestReadTable:
    """Reading delimited attribute tables."""

    def test_key_read_as_text(self, tmp_path) -> None:
        path = tmp_path / "codes.csv"
        path.write_text("code;rate\n0012;1.5\n0345;2.5\n")

        df = io.read_table(path, "code", separator=";")

        assert df.get_column("code").to_list() == ["0012", "0345"]
        assert df.get_column("rate").to_list() == [1.5, 2.5]

    def test_missing_key(self, table_file) -> None:
        with pytest.raises(KeyError):
            io.read_table(table_file, "nope")


class TestReadPoints:
    """Reading point layers."""

    def test_csv(self, tmp_path) -> None:
        path = tmp_path / "stations.csv"
        path.write_text("name,longitude,latitude\nBank,-0.0886,51.5133\nOval,-0.1123,51.4819\n")

        df = io.read_points(path, name_col="name")

        assert df.columns == ["name", "longitude", "latitude"]
        assert df.get_column("longitude").to_list() == [-0.0886, -0.1123]

    def test_geojson(self, tmp_path) -> None:
        path = tmp_path / "stations.geojson"
        path.write_text(
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [
                        {
                            "type": "Feature",
                            "properties": {"name": "Bank"},
                            "geometry": {"type": "Point", "coordinates": [-0.0886, 51.5133]},
                        }
                    ],
                }
            )
        )

        df = io.read_points(path, "x", "y")

        assert df.row(0, named=True) == {"name": "Bank", "x": -0.0886, "y": 51.5133}

    def test_geojson_rejects_non_points(self, tmp_path) -> None:
        path = tmp_path / "lines.geojson"
        path.write_text(
            json.dumps(
                {
                    "type": "FeatureCollection",
                    "features": [
                        {
                            "type": "Feature",
                            "properties": {},
                            "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
                        }
                    ],
                }
            )
        )

        with pytest.raises(GeometryError, match="not a Point"):
            io.read_points(path)

    def test_missing_columns(self, tmp_path) -> None:
        path = tmp_path / "stations.csv"
        path.write_text("name,x,y\nBank,1,2\n")

        with pytest.raises(KeyError):
            io.read_points(path)


class TestWriters:
    """Writing annotated collections."""

    def test_geojson_round_trip(self, tmp_path, boundary_file) -> None:
        frame = io.read_boundaries(boundary_file, "code")
        out = io.write_geojson(frame, tmp_path / "out" / "units.geojson")

        reread = io.read_boundaries(out, "code")

        assert reread.ids() == frame.ids()
        assert reread.metadata.crs == "EPSG:27700"

    def test_geojson_nan_becomes_null(self, tmp_path, row_units: UnitFrame) -> None:
        import polars as pl

        frame = row_units.with_columns(pl.lit(float("nan")).alias("z"))
        out = io.write_geojson(frame, tmp_path / "nan.geojson")

        payload = json.loads(out.read_text())
        assert [f["properties"]["z"] for f in payload["features"]] == [None, None, None]
        assert payload["features"][0]["properties"]["code"] == "A"
        assert "geometry" not in payload["features"][0]["properties"]

    def test_table(self, tmp_path, row_units: UnitFrame) -> None:
        out = io.write_table(row_units, tmp_path / "units.csv")

        assert out.read_text().splitlines()[0] == "code,value"
