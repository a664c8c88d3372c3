"""General spatial utilities.

This module provides common spatial utilities used by the overlap pipeline:
- CRS comparison, inspection and explicit transformation
- Join key column checks
"""

import logging
import warnings

import geopandas as gpd

from spatial_overlap.config import ResultColumns
from spatial_overlap.validation.errors import (
    CrsMismatchError,
    GeographicCrsWarning,
    MissingKeyFieldError,
    ReservedKeyFieldError,
)

logger = logging.getLogger(__name__)


def ensure_crs(gdf: gpd.GeoDataFrame, target_crs: str) -> gpd.GeoDataFrame:
    """Ensure GeoDataFrame is in the target CRS, transforming if necessary.

    The overlap computation itself never reprojects; callers use this at the
    boundary when they want both collections in one projected CRS.

    Args:
        gdf: Input GeoDataFrame
        target_crs: Target coordinate reference system (e.g. "EPSG:27700")

    Returns:
        GeoDataFrame in target CRS (transformed if necessary, original if
        already correct)

    Raises:
        ValueError: If input GeoDataFrame has no CRS defined
    """
    if gdf.crs is None:
        msg = "Input GeoDataFrame has no CRS defined"
        raise ValueError(msg)

    if gdf.crs != target_crs:
        return gdf.to_crs(target_crs)

    return gdf


def require_same_crs(new_gdf: gpd.GeoDataFrame, old_gdf: gpd.GeoDataFrame) -> None:
    """Fail unless both GeoDataFrames declare the same CRS.

    Raises:
        CrsMismatchError: If either CRS is undefined or the two differ
    """
    if new_gdf.crs is None or old_gdf.crs is None or new_gdf.crs != old_gdf.crs:
        raise CrsMismatchError(new_gdf.crs, old_gdf.crs)


def area_unit_name(gdf: gpd.GeoDataFrame) -> str | None:
    """Return the linear unit name of the GeoDataFrame CRS (e.g. "metre", "degree")."""
    if gdf.crs is None or not gdf.crs.axis_info:
        return None
    return gdf.crs.axis_info[0].unit_name


def warn_if_geographic(gdf: gpd.GeoDataFrame) -> bool:
    """Warn when areas would be computed in an unprojected CRS.

    Returns:
        True if the CRS is geographic
    """
    if gdf.crs is None or not gdf.crs.is_geographic:
        return False

    msg = (
        f"CRS {gdf.crs.to_string()} is geographic; areas are in squared degrees and "
        f"are not meaningful. Reproject to a projected CRS first."
    )
    logger.warning(msg)
    warnings.warn(msg, GeographicCrsWarning, stacklevel=3)
    return True



def require_key_field(gdf: gpd.GeoDataFrame, key_field: str, collection: str = "old") -> None:
    """Fail unless ``key_field`` is a usable column of ``gdf``.

    Raises:
        ReservedKeyFieldError: If the name clashes with a pipeline output column
        MissingKeyFieldError: If the column is absent
    """
    if key_field in ResultColumns.reserved():
        raise ReservedKeyFieldError(key_field)
    if key_field not in gdf.columns:
        raise MissingKeyFieldError(key_field, collection)
