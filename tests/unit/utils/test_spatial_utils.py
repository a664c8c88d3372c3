"""Unit tests for spatial utilities."""

import geopandas as gpd
import pytest
from shapely.geometry import Point

from spatial_overlap.spatial import area_unit_name, ensure_crs, require_same_crs, warn_if_geographic
from spatial_overlap.validation import CrsMismatchError, GeographicCrsWarning
from tests.utils import keyed_gdf, square


def test_ensure_crs_no_transformation_when_already_correct():
    """Test that no transformation occurs when GDF is already in target CRS."""
    gdf = gpd.GeoDataFrame(
        {"id": [1, 2]},
        geometry=[Point(529000, 179000), Point(530000, 180000)],
        crs="EPSG:27700",
    )

    result = ensure_crs(gdf, "EPSG:27700")

    assert result is gdf


def test_ensure_crs_transforms_when_needed():
    """Test that transformation occurs when GDF is in a different CRS."""
    gdf = gpd.GeoDataFrame({"id": [1]}, geometry=[Point(-0.1276, 51.5072)], crs="EPSG:4326")

    result = ensure_crs(gdf, "EPSG:27700")

    assert result.crs.to_epsg() == 27700
    # Central London in British National Grid
    assert 520000 < result.geometry.iloc[0].x < 540000
    assert 170000 < result.geometry.iloc[0].y < 190000


def test_ensure_crs_raises_without_crs():
    """Test that a GeoDataFrame without CRS cannot be transformed."""
    gdf = gpd.GeoDataFrame({"id": [1]}, geometry=[Point(0, 0)])

    with pytest.raises(ValueError, match="no CRS"):
        ensure_crs(gdf, "EPSG:27700")


def test_require_same_crs():
    """Matching CRSs pass; differing or undefined CRSs raise."""
    bng = keyed_gdf(["A"], [square(0, 0, 1)])
    albers = keyed_gdf(["A"], [square(0, 0, 1)], crs="EPSG:5070")
    undefined = gpd.GeoDataFrame({"name": ["A"]}, geometry=[square(0, 0, 1)])

    require_same_crs(bng, bng.copy())

    with pytest.raises(CrsMismatchError) as exc_info:
        require_same_crs(bng, albers)
    assert exc_info.value.old_crs == albers.crs

    with pytest.raises(CrsMismatchError, match="undefined"):
        require_same_crs(bng, undefined)


def test_area_unit_name():
    """Linear unit names come from the CRS axis info."""
    assert area_unit_name(keyed_gdf(["A"], [square(0, 0, 1)])) == "metre"
    assert area_unit_name(keyed_gdf(["A"], [square(0, 0, 1)], crs="EPSG:4326")) == "degree"
    assert area_unit_name(gpd.GeoDataFrame(geometry=[square(0, 0, 1)])) is None


def test_warn_if_geographic():
    """Only geographic CRSs trigger the warning."""
    assert warn_if_geographic(keyed_gdf(["A"], [square(0, 0, 1)])) is False

    with pytest.warns(GeographicCrsWarning, match="EPSG:4326"):
        assert warn_if_geographic(keyed_gdf(["A"], [square(0, 0, 1)], crs="EPSG:4326")) is True
