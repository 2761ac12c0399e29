"""Tests for the command-line interface."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from hotspotflow import __version__
from hotspotflow.cli.main import app

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_recipes() -> None:
    result = runner.invoke(app, ["list-recipes"])

    assert result.exit_code == 0
    assert "hotspot" in result.output


def test_validate(config_file) -> None:
    result = runner.invoke(app, ["validate", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "Valid analysis configuration" in result.output


def test_validate_invalid(tmp_path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("dataset_name: d\n")

    result = runner.invoke(app, ["validate", "--config", str(path)])

    assert result.exit_code == 1


def test_validate_missing_file(tmp_path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1


def test_run_writes_geojson(config_file, tmp_path) -> None:
    out = tmp_path / "cli_out.geojson"

    result = runner.invoke(app, ["run", "--config", str(config_file), "--output", str(out)])

    assert result.exit_code == 0, result.output
    payload = json.loads(out.read_text())
    assert len(payload["features"]) == 9
    props = payload["features"][4]["properties"]
    assert props["rate_gi_star"] is None
    assert props["rate_hotspot"] == "Not Significant"


def test_run_writes_csv(config_file, tmp_path) -> None:
    out = tmp_path / "cli_out.csv"

    result = runner.invoke(app, ["run", "--config", str(config_file), "--output", str(out)])

    assert result.exit_code == 0, result.output
    header = out.read_text().splitlines()[0].split(",")
    assert "rate_gi_star" in header
    assert "geometry" not in header


def test_run_reports_errors(config_file, table_file) -> None:
    table_file.write_text("code,rate\nr0c0,1.0\n")

    result = runner.invoke(app, ["run", "--config", str(config_file)])

    assert result.exit_code == 1


def test_run_rejects_text_value_column(config_file) -> None:
    config_file.write_text(config_file.read_text().replace("value_col: rate", "value_col: name"))

    result = runner.invoke(app, ["run", "--config", str(config_file)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_neighbors(boundary_file) -> None:
    result = runner.invoke(
        app, ["neighbors", "--boundaries", str(boundary_file), "--id-col", "code", "--rule", "rook"]
    )

    assert result.exit_code == 0, result.output
    assert "Units:          9" in result.output
    assert "Links:          24" in result.output
    assert "Isolates:       0" in result.output
