"""Command line interface for overlap analysis.

Reads two vector datasets with geopandas, computes the overlap of the old
features by the new ones, and writes the records as CSV.

Usage:
    spatial-overlap new_boundaries.gpkg old_boundaries.shp --key-field NAME
    spatial-overlap new.geojson old.geojson --key-field id --to-crs EPSG:27700 -o overlap.csv
    spatial-overlap --help
"""

import json
import logging
import logging.config
from pathlib import Path
from typing import Annotated

import geopandas as gpd
import typer

from spatial_overlap.config import DebugConfig, OverlapConfig
from spatial_overlap.outputs import CSVOutputStrategy
from spatial_overlap.runner import calculate_spatial_overlap
from spatial_overlap.spatial.utils import ensure_crs
from spatial_overlap.validation.errors import OverlapError

logger = logging.getLogger(__name__)

app = typer.Typer(help="Compute the proportion of each old polygon covered by new polygons")


def configure_logging(verbose: bool = False) -> None:
    """Configure logging from logging-dev.json, falling back to a basic text format."""
    config_path = Path(__file__).parent.parent / "logging-dev.json"

    if config_path.exists():
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if verbose:
        logging.getLogger("spatial_overlap").setLevel(logging.DEBUG)


@app.command()
def main(
    new_path: Annotated[Path, typer.Argument(exists=True, help="New polygon dataset")],
    old_path: Annotated[Path, typer.Argument(exists=True, help="Old polygon dataset")],
    key_field: Annotated[str, typer.Option("--key-field", "-k", help="Join key column")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="CSV output path (prints if omitted)")
    ] = None,
    new_layer: Annotated[str | None, typer.Option(help="Layer name in the new dataset")] = None,
    old_layer: Annotated[str | None, typer.Option(help="Layer name in the old dataset")] = None,
    to_crs: Annotated[
        str | None, typer.Option(help="Reproject both datasets to this CRS first")
    ] = None,
    duplicate_key_policy: Annotated[
        str | None, typer.Option(help="Repeated key handling: sum, first or error")
    ] = None,
    strict: Annotated[
        bool, typer.Option(help="Fail on geometries that cannot be repaired")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
) -> None:
    """Compute overlap records for NEW_PATH against OLD_PATH."""
    configure_logging(verbose)

    overrides = {"strict_geometry": strict}
    if duplicate_key_policy is not None:
        overrides["duplicate_key_policy"] = duplicate_key_policy
    try:
        config = OverlapConfig(**overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from e

    new_gdf = gpd.read_file(new_path, layer=new_layer)
    old_gdf = gpd.read_file(old_path, layer=old_layer)
    if to_crs is not None:
        try:
            new_gdf = ensure_crs(new_gdf, to_crs)
            old_gdf = ensure_crs(old_gdf, to_crs)
        except ValueError as e:
            typer.secho(f"Cannot reproject to {to_crs}: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2) from e

    try:
        result = calculate_spatial_overlap(
            new_gdf, old_gdf, key_field, config=config, debug_config=DebugConfig.from_env()
        )
    except OverlapError as e:
        typer.secho(f"Overlap failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e

    writer = CSVOutputStrategy()
    if output is not None:
        written = writer.write(result, output)
        typer.secho(f"Wrote {len(result)} records to {written}", fg=typer.colors.GREEN)
    else:
        typer.echo(writer.to_dataframe(result).to_string(index=False))

    _print_diagnostics(result.diagnostics)


def _print_diagnostics(diagnostics) -> None:
    if not diagnostics.has_issues():
        return

    lines = []
    if diagnostics.geographic_crs:
        lines.append("Areas computed in a geographic CRS (squared degrees)")
    if diagnostics.invalid_old_keys or diagnostics.invalid_new_keys:
        lines.append(
            f"Invalid geometries excluded: {len(diagnostics.invalid_new_keys)} new, "
            f"{len(diagnostics.invalid_old_keys)} old"
        )
    if diagnostics.degenerate_keys:
        lines.append(f"Zero-area features (undefined proportion): {diagnostics.degenerate_keys}")
    if diagnostics.degenerate_new_keys:
        lines.append(f"Zero-area new features excluded: {diagnostics.degenerate_new_keys}")
    if diagnostics.oversized_keys:
        lines.append(f"Intersections larger than the original area: {diagnostics.oversized_keys}")
    if diagnostics.duplicate_keys:
        lines.append(f"Repeated keys: {diagnostics.duplicate_keys}")
    if diagnostics.missing_key_count:
        lines.append(f"Features without a key: {diagnostics.missing_key_count}")
    if diagnostics.dropped_key_count:
        lines.append(
            f"Keys dropped by join: {len(diagnostics.unmatched_original_keys)} without overlap, "
            f"{len(diagnostics.unmatched_intersection_keys)} without original area"
        )

    for line in lines:
        typer.secho(line, fg=typer.colors.YELLOW, err=True)


if __name__ == "__main__":
    app()
