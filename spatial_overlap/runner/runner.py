"""Overlap pipeline execution

This module chains geometry validation, overlap computation and the
proportion join into a single call.
"""

import logging
from uuid import uuid4

import geopandas as gpd

from spatial_overlap.calculators.proportion import join_and_rate
from spatial_overlap.config import DEFAULT_CONFIG, DebugConfig, OverlapConfig
from spatial_overlap.debug import save_debug_gdf
from spatial_overlap.models.adapters import collection_to_gdf
from spatial_overlap.models.domain import OverlapDiagnostics, OverlapResult, PolygonCollection
from spatial_overlap.spatial.overlay import compute_overlap
from spatial_overlap.spatial.utils import require_key_field, require_same_crs
from spatial_overlap.validation.geometry import GeometryValidator

logger = logging.getLogger(__name__)


def calculate_spatial_overlap(
    new: gpd.GeoDataFrame | PolygonCollection,
    old: gpd.GeoDataFrame | PolygonCollection,
    key_field: str,
    config: OverlapConfig | None = None,
    debug_config: DebugConfig | None = None,
) -> OverlapResult:
    """Compute how much of each old feature is covered by the new features.

    This is the main entry point. Inputs are never modified.

    Args:
        new: New polygon collection (GeoDataFrame or PolygonCollection)
        old: Old polygon collection, keyed by ``key_field``
        key_field: Join key column (or feature key name for PolygonCollections)
        config: Overlap configuration (defaults to DEFAULT_CONFIG)
        debug_config: Optional debug output configuration

    Returns:
        OverlapResult with one record per overlapping (new, old) pair and
        diagnostics describing excluded, flagged and dropped features

    Raises:
        CrsMismatchError: If the collections are in different CRSs
        ReservedKeyFieldError: If key_field clashes with an output column name
        MissingKeyFieldError: If key_field is absent from the old collection
        DuplicateKeyError: If keys repeat and duplicate_key_policy is "error"
        InvalidGeometryError: If strict_geometry is set and repair fails
    """
    config = config or DEFAULT_CONFIG
    debug_config = debug_config or DebugConfig()
    run_id = uuid4().hex[:8]

    new_gdf = _as_gdf(new, key_field)
    old_gdf = _as_gdf(old, key_field)

    # Structural checks run before any geometry work
    require_key_field(old_gdf, key_field)
    require_same_crs(new_gdf, old_gdf)

    logger.info(
        f"Calculating overlap of {len(new_gdf)} new and {len(old_gdf)} old features "
        f"on '{key_field}' (run {run_id})"
    )

    validator = GeometryValidator(config)
    new_valid = validator.validate(new_gdf, key_field)
    old_valid = validator.validate(old_gdf, key_field)
    save_debug_gdf(old_valid, "old_validated", run_id, debug_config)
    save_debug_gdf(new_valid, "new_validated", run_id, debug_config)

    computation = compute_overlap(new_valid, old_valid, key_field, config)
    save_debug_gdf(computation.pieces, "intersections", run_id, debug_config)

    records, join_diagnostics = join_and_rate(
        computation.intersections,
        computation.original_areas,
        key_field,
        config.duplicate_key_policy,
    )

    diagnostics = OverlapDiagnostics(
        invalid_new_keys=computation.invalid_new_keys,
        invalid_old_keys=computation.invalid_old_keys,
        repaired_keys=computation.repaired_keys,
        degenerate_keys=computation.degenerate_keys,
        degenerate_new_keys=computation.degenerate_new_keys,
        duplicate_keys=computation.duplicate_keys,
        missing_key_count=computation.missing_key_count,
        empty_intersection_count=computation.empty_intersection_count,
        unmatched_intersection_keys=join_diagnostics.unmatched_intersection_keys,
        unmatched_original_keys=join_diagnostics.unmatched_original_keys,
        oversized_keys=join_diagnostics.oversized_keys,
        geographic_crs=computation.geographic_crs,
        area_unit=computation.area_unit,
    )

    logger.info(
        f"Overlap run {run_id} produced {len(records)} records "
        f"({len(diagnostics.degenerate_keys)} degenerate, "
        f"{len(diagnostics.invalid_old_keys) + len(diagnostics.invalid_new_keys)} invalid excluded)"
    )

    return OverlapResult(
        key_field=key_field,
        crs=old_gdf.crs.to_string() if old_gdf.crs is not None else None,
        records=records,
        diagnostics=diagnostics,
    )


def _as_gdf(collection: gpd.GeoDataFrame | PolygonCollection, key_field: str) -> gpd.GeoDataFrame:
    if isinstance(collection, PolygonCollection):
        return collection_to_gdf(collection, key_field)
    if isinstance(collection, gpd.GeoDataFrame):
        return collection
    msg = f"Expected GeoDataFrame or PolygonCollection, got {type(collection).__name__}"
    raise TypeError(msg)
