"""Main CLI application using Typer."""

from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from hotspotflow.core.errors import HotspotflowError

app = typer.Typer(help="Hotspotflow: contiguity weights and Getis-Ord Gi* hotspot analysis")


@app.command()
def run(
    config: str = typer.Option(..., help="Path to analysis config YAML"),
    output: str | None = typer.Option(None, help="Output path (overrides output.path)"),
) -> None:
    """
    Run an analysis described by a configuration file.

    Example:
        hotspotflow run --config configs/london_hotspots.yaml --output out/hotspots.geojson
    """
    from hotspotflow.core import io
    from hotspotflow.core.schema import AnalysisConfig
    from hotspotflow.recipes import get_recipe

    config_path = Path(config)
    if not config_path.exists():
        typer.echo(f"Error: Config file not found: {config}", err=True)
        raise typer.Exit(code=1) from None

    try:
        analysis = AnalysisConfig.from_yaml(config_path)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"Running recipe '{analysis.recipe}' on dataset '{analysis.dataset_name}'...")

    try:
        boundaries = io.read_boundaries(
            analysis.boundaries.path,
            analysis.boundaries.id_col,
            crs=analysis.boundaries.crs,
            dataset_name=analysis.dataset_name,
        )
        recipe = get_recipe(analysis)
        result = recipe.run(boundaries)
    except (HotspotflowError, ValueError, KeyError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    out_path = output or analysis.output.path
    if out_path is None:
        typer.echo(str(result.collect().drop(result.schema.geometry_col)))
        return

    if analysis.output.format == "csv" or out_path.endswith(".csv"):
        written = io.write_table(result, out_path)
    else:
        written = io.write_geojson(result, out_path)
    typer.echo(f"Wrote {result.count()} units to {written}")


@app.command()
def validate(
    config: str = typer.Option(..., help="Path to config YAML to validate"),
) -> None:
    """Validate a configuration file."""
    from hotspotflow.core.schema import AnalysisConfig

    config_path = Path(config)
    if not config_path.exists():
        typer.echo(f"Error: Config file not found: {config}", err=True)
        raise typer.Exit(code=1) from None

    try:
        AnalysisConfig.from_yaml(config_path)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"✓ Valid analysis configuration: {config}")


@app.command()
def neighbors(
    boundaries: Annotated[str, typer.Option(help="GeoJSON boundary file")],
    id_col: Annotated[str, typer.Option(help="Identifier property")],
    rule: Annotated[str, typer.Option(help="Contiguity rule: queen or rook")] = "queen",
    crs: Annotated[str | None, typer.Option(help="Source CRS override")] = None,
) -> None:
    """Summarise the contiguity graph of a boundary file."""
    from hotspotflow.core import io
    from hotspotflow.core.neighbors import contiguity

    try:
        frame = io.read_boundaries(boundaries, id_col, crs=crs)
        relation = contiguity(frame, rule)
    except (HotspotflowError, ValueError, KeyError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    summary = relation.summary()
    typer.echo(f"Units:          {summary['n_units']}")
    typer.echo(f"Links:          {summary['total_links']}")
    typer.echo(f"Mean neighbors: {summary['mean_neighbors']:.2f}")
    typer.echo(f"Isolates:       {summary['n_isolates']}")
    for unit_id in relation.isolates():
        typer.echo(f"  - {unit_id}")


@app.command()
def list_recipes() -> None:
    """List all available recipes."""
    from hotspotflow.recipes import list_recipes as get_recipes

    recipes = get_recipes()
    if not recipes:
        typer.echo("No recipes registered")
        return

    typer.echo("Available recipes:")
    for name in recipes:
        typer.echo(f"  - {name}")


@app.command()
def version() -> None:
    """Show hotspotflow version."""
    from hotspotflow import __version__

    typer.echo(f"hotspotflow version {__version__}")


if __name__ == "__main__":
    app()
