"""Unit tests for the command line interface."""

import geopandas as gpd
import pandas as pd
import pytest
from typer.testing import CliRunner

from spatial_overlap import cli
from tests.utils import keyed_gdf, square

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_logging_config(monkeypatch):
    """Keep the CLI from reconfiguring logging for the rest of the session."""
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False: None)


@pytest.fixture
def datasets(tmp_path):
    """Write a new and an old GeoPackage in British National Grid."""
    new_path = tmp_path / "new.gpkg"
    old_path = tmp_path / "old.gpkg"
    keyed_gdf(["n1"], [square(0, 0, 5)]).to_file(new_path, driver="GPKG")
    keyed_gdf(["A", "B"], [square(0, 0, 10), square(50, 50, 10)]).to_file(old_path, driver="GPKG")
    return new_path, old_path


def test_writes_csv(tmp_path, datasets):
    """Overlap records are written to the requested CSV."""
    new_path, old_path = datasets
    output = tmp_path / "out" / "overlap.csv"

    result = runner.invoke(
        cli.app, [str(new_path), str(old_path), "--key-field", "name", "-o", str(output)]
    )

    assert result.exit_code == 0, result.output
    df = pd.read_csv(output)
    assert df["name"].tolist() == ["A"]
    assert df["proportion"].iloc[0] == pytest.approx(25.0)
    assert df["original_area_ha"].iloc[0] == pytest.approx(0.01)


def test_prints_table_without_output(datasets):
    """Without --output the records are printed."""
    new_path, old_path = datasets

    result = runner.invoke(cli.app, [str(new_path), str(old_path), "-k", "name"])

    assert result.exit_code == 0, result.output
    assert "proportion" in result.output
    assert "25.0" in result.output


def test_reprojects_with_to_crs(tmp_path, datasets):
    """--to-crs brings both datasets into one CRS before computing."""
    new_path, old_path = datasets
    wgs84_path = tmp_path / "new_wgs84.gpkg"
    keyed_gdf(["n1"], [square(0, 0, 5)]).to_crs("EPSG:4326").to_file(wgs84_path, driver="GPKG")

    mismatched = runner.invoke(cli.app, [str(wgs84_path), str(old_path), "-k", "name"])
    reprojected = runner.invoke(
        cli.app, [str(wgs84_path), str(old_path), "-k", "name", "--to-crs", "EPSG:27700"]
    )

    assert mismatched.exit_code == 1
    assert reprojected.exit_code == 0, reprojected.output


def test_missing_key_field_exits_with_error(datasets):
    """Structural errors exit with status 1."""
    new_path, old_path = datasets

    result = runner.invoke(cli.app, [str(new_path), str(old_path), "-k", "district"])

    assert result.exit_code == 1


def test_invalid_duplicate_policy(datasets):
    """An unknown duplicate key policy is a configuration error."""
    new_path, old_path = datasets

    result = runner.invoke(
        cli.app,
        [str(new_path), str(old_path), "-k", "name", "--duplicate-key-policy", "average"],
    )

    assert result.exit_code == 2


def test_to_crs_without_source_crs_exits_with_error(monkeypatch, datasets):
    """Reprojecting a dataset that has no CRS is a usage error, not a traceback."""
    new_path, old_path = datasets
    no_crs = gpd.GeoDataFrame({"name": ["A"]}, geometry=[square(0, 0, 10)])
    monkeypatch.setattr(cli.gpd, "read_file", lambda *_args, **_kwargs: no_crs)

    result = runner.invoke(
        cli.app, [str(new_path), str(old_path), "-k", "name", "--to-crs", "EPSG:27700"]
    )

    assert result.exit_code == 2
    assert result.exception is None or isinstance(result.exception, SystemExit)
