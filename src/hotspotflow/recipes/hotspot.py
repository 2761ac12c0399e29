"""Hotspot recipe: reproject, join, overlay points, then Getis-Ord Gi*."""

import polars as pl

from hotspotflow.core import io
from hotspotflow.core.pipeline import Pipeline, Step
from hotspotflow.core.schema import AnalysisConfig
from hotspotflow.core.steps import (
    AttributeJoinStep,
    GetisOrdStep,
    PointCountStep,
    TransformCRSStep,
)
from hotspotflow.recipes.base import BaseRecipe


class HotspotRecipe(BaseRecipe):
    """
    Linear hotspot analysis driven by an AnalysisConfig.

    Steps, in order:
    - reproject boundaries into ``target_crs``
    - join the attribute table (if configured)
    - count each point layer per unit (if configured)
    - Getis-Ord Gi* on ``hotspot.value_col``

    Tables and point layers are read from the configured paths unless they
    are passed in already loaded.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        *,
        table: pl.DataFrame | None = None,
        points: list[pl.DataFrame] | None = None,
    ) -> None:
        super().__init__(config)
        self._table = table
        self._points = points

    def _load_table(self) -> pl.DataFrame | None:
        if self._table is not None:
            return self._table
        source = self.config.table
        if source is None:
            return None
        return io.read_table(source.path, source.key_col, separator=source.separator)

    def _load_points(self) -> list[pl.DataFrame]:
        if self._points is not None:
            if len(self._points) != len(self.config.points):
                raise ValueError(
                    f"Got {len(self._points)} point layers for "
                    f"{len(self.config.points)} configured sources"
                )
            return self._points
        return [
            io.read_points(src.path, src.lon_col, src.lat_col, src.name_col)
            for src in self.config.points
        ]

    def build_pipeline(self) -> Pipeline:
        """Build the transformation pipeline."""
        cfg = self.config
        steps: list[Step] = [TransformCRSStep(cfg.target_crs)]

        table = self._load_table()
        if table is not None:
            table_cfg = cfg.table
            steps.append(
                AttributeJoinStep(
                    table,
                    key_col=table_cfg.unit_key_col if table_cfg else None,
                    table_key_col=table_cfg.key_col if table_cfg else None,
                    strict=table_cfg.strict if table_cfg else False,
                    columns=table_cfg.columns if table_cfg else None,
                )
            )

        for source, points in zip(cfg.points, self._load_points(), strict=True):
            steps.append(
                PointCountStep(
                    points,
                    lon_col=source.lon_col,
                    lat_col=source.lat_col,
                    output_col=source.output_col,
                    points_crs=source.crs,
                    buffer_distance=source.buffer_m,
                )
            )

        steps.append(
            GetisOrdStep(
                cfg.hotspot.value_col,
                rule=cfg.hotspot.contiguity,
                style=cfg.hotspot.style,
                classify=cfg.hotspot.classify,
            )
        )
        return Pipeline(steps)
