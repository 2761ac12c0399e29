"""End-to-end tests for the hotspot recipe."""

from __future__ import annotations

import polars as pl
import pytest

from hotspotflow.core import io
from hotspotflow.core.errors import JoinError
from hotspotflow.core.schema import AnalysisConfig
from hotspotflow.recipes import HotspotRecipe, get_recipe


@pytest.fixture
def config(config_file) -> AnalysisConfig:
    return AnalysisConfig.from_yaml(config_file)


def test_build_pipeline(config: AnalysisConfig) -> None:
    pipeline = HotspotRecipe(config).build_pipeline()

    assert repr(pipeline) == (
        "Pipeline(TransformCRSStep -> AttributeJoinStep -> PointCountStep -> GetisOrdStep)"
    )


def test_run_from_files(config: AnalysisConfig) -> None:
    units = io.read_boundaries(config.boundaries.path, config.boundaries.id_col)

    result = get_recipe(config).run(units)
    df = result.collect()

    assert df.height == 9
    assert df.get_column("code").to_list() == units.ids()
    assert df.get_column("stations").to_list() == [3, 0, 0, 0, 1, 0, 0, 0, 0]
    assert {"rate", "rate_gi_star", "rate_hotspot"} <= set(df.columns)
    assert result.metadata.custom["gi_star"]["rate"]["n_units"] == 9

    gi = df.get_column("rate_gi_star").to_list()
    # The centre cell touches every other cell, so its neighborhood is the whole grid.
    assert gi[4] is None
    # High rates sit in the bottom-left corner, low rates in the top-right.
    assert gi[0] > 0
    assert gi[8] < 0


def test_injected_inputs(config: AnalysisConfig) -> None:
    units = io.read_boundaries(config.boundaries.path, config.boundaries.id_col)
    table = pl.DataFrame({"code": units.ids(), "rate": [float(i) for i in range(9)]})
    points = pl.DataFrame({"name": [], "easting": [], "northing": []}).cast(
        {"easting": pl.Float64, "northing": pl.Float64}
    )

    result = HotspotRecipe(config, table=table, points=[points]).run(units)

    assert result.collect().get_column("stations").to_list() == [0] * 9


def test_point_layer_count_mismatch(config: AnalysisConfig) -> None:
    with pytest.raises(ValueError, match="point layers"):
        HotspotRecipe(config, points=[]).build_pipeline()


def test_strict_table_missing_unit(config: AnalysisConfig) -> None:
    units = io.read_boundaries(config.boundaries.path, config.boundaries.id_col)
    table = pl.DataFrame({"code": units.ids()[:-1], "rate": [1.0] * 8})

    with pytest.raises(JoinError):
        HotspotRecipe(config, table=table).run(units)
