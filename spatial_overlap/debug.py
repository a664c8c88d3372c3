"""Debug output helpers for inspecting intermediate geometries.

WARNING: For local development and debugging only.
"""

import logging
from datetime import UTC, datetime

import geopandas as gpd

from spatial_overlap.config import DebugConfig

logger = logging.getLogger(__name__)


def save_debug_gdf(
    gdf: gpd.GeoDataFrame,
    name: str,
    run_id: str,
    config: DebugConfig,
) -> None:
    """Save GeoDataFrame for debugging if debug output is enabled.

    Args:
        gdf: GeoDataFrame to save
        name: Descriptive name (e.g., "old_validated", "intersections")
        run_id: Run identifier for organizing output
        config: Debug configuration
    """
    if not config.enabled:
        return
    if gdf.empty:
        logger.debug(f"Skipping empty debug output {name}")
        return

    output_dir = config.output_dir / run_id
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now(UTC).strftime("%H%M%S")
    output_path = output_dir / f"{timestamp}_{name}.gpkg"

    # Keys can be any hashable; GeoPackage columns need a single scalar type
    writable = gdf.copy()
    for column in writable.columns:
        if column != writable.geometry.name and writable[column].dtype == object:
            writable[column] = writable[column].map(lambda v: None if v is None else str(v))

    try:
        writable.to_file(output_path, driver="GPKG")
        logger.debug(f"Saved debug output: {output_path} ({len(gdf)} features)")
    except Exception as e:
        logger.warning(f"Failed to save debug output {name}: {e}")
