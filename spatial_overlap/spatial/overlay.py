"""Polygon overlap computation.

For every new feature and every old feature it overlaps, computes the area of
the intersection, along with the original area of each old feature. Areas are
plain floats in CRS-native squared units.

Old features that collapsed to zero area during validation are matched with an
intersects predicate instead of an overlay, so they still produce a record with
intersect_area 0.0 and can be flagged downstream.
"""

import logging
import os
import warnings
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

import geopandas as gpd
import numpy as np
import pandas as pd

from spatial_overlap.config import DEFAULT_CONFIG, OverlapConfig, ResultColumns
from spatial_overlap.models.adapters import keys_as_list
from spatial_overlap.models.enums import GeometryStatus
from spatial_overlap.spatial.utils import (
    area_unit_name,
    require_key_field,
    require_same_crs,
    warn_if_geographic,
)
from spatial_overlap.validation.errors import (
    DuplicateKeyError,
    EmptyIntersectionWarning,
    InvalidGeometryError,
)

logger = logging.getLogger(__name__)

# Internal name for the old key during overlay, avoids suffixing collisions
_OLD_KEY = "_old_key"

# Below this many new features the parallel path is not worth the process overhead
PARALLEL_MIN_FEATURES = 100


@dataclass
class OverlapComputation:
    """Intermediate result of compute_overlap.

    Attributes:
        key_field: Name of the key column in both DataFrames
        intersections: One row per overlapping pair: key, new_index, new_key, intersect_area
        original_areas: One row per kept old feature: key, original_area
        pieces: Intersection geometries (same rows as intersections)
        invalid_new_keys / invalid_old_keys: Features excluded for invalid geometry
        repaired_keys: Old features whose geometry was repaired
        degenerate_keys: Old features with zero area
        degenerate_new_keys: New features with zero area (cannot cover anything)
        duplicate_keys: Keys repeated in the old collection
        missing_key_count: Old rows excluded for a null key
        empty_intersection_count: Overlapping candidates whose intersection had no area
        geographic_crs: Whether areas were computed in an unprojected CRS
        area_unit: Linear unit name of the CRS
    """

    key_field: str
    intersections: pd.DataFrame
    original_areas: pd.DataFrame
    pieces: gpd.GeoDataFrame
    invalid_new_keys: list = field(default_factory=list)
    invalid_old_keys: list = field(default_factory=list)
    degenerate_new_keys: list = field(default_factory=list)
    repaired_keys: list = field(default_factory=list)
    degenerate_keys: list = field(default_factory=list)
    duplicate_keys: list = field(default_factory=list)
    missing_key_count: int = 0
    empty_intersection_count: int = 0
    geographic_crs: bool = False
    area_unit: str | None = None


def compute_overlap(
    new_gdf: gpd.GeoDataFrame,
    old_gdf: gpd.GeoDataFrame,
    key_field: str,
    config: OverlapConfig | None = None,
) -> OverlapComputation:
    """Compute intersection areas between overlapping new and old features.

    Both GeoDataFrames should have been through GeometryValidator. When the
    ``geometry_status`` column is absent, status is inferred from the validity
    predicate and nothing is repaired.

    Args:
        new_gdf: New polygon collection
        old_gdf: Old polygon collection, must contain ``key_field``
        key_field: Join key column on old_gdf (also reported for new_gdf if present)
        config: Overlap configuration (defaults to DEFAULT_CONFIG)

    Returns:
        OverlapComputation with intersection and original area tables

    Raises:
        ReservedKeyFieldError: If key_field clashes with an output column name
        MissingKeyFieldError: If key_field is not a column of old_gdf
        CrsMismatchError: If the CRSs are undefined or differ
        DuplicateKeyError: If keys repeat and duplicate_key_policy is "error"
        InvalidGeometryError: If strict_geometry is set and a geometry is invalid
    """
    config = config or DEFAULT_CONFIG

    require_key_field(old_gdf, key_field)
    require_same_crs(new_gdf, old_gdf)
    geographic = warn_if_geographic(old_gdf)

    new_status = _statuses(new_gdf)
    old_status = _statuses(old_gdf)
    has_new_key = key_field in new_gdf.columns

    # New side: positional index plus optional key
    left = gpd.GeoDataFrame(
        {ResultColumns.NEW_INDEX: np.arange(len(new_gdf))},
        geometry=new_gdf.geometry.to_numpy(),
        crs=new_gdf.crs,
    )
    left[ResultColumns.NEW_KEY] = new_gdf[key_field].to_numpy() if has_new_key else None
    new_label = ResultColumns.NEW_KEY if has_new_key else ResultColumns.NEW_INDEX
    new_invalid_mask = (new_status == GeometryStatus.INVALID.value).to_numpy()
    invalid_new_keys = keys_as_list(left.loc[new_invalid_mask, new_label])
    new_degenerate_mask = (new_status == GeometryStatus.DEGENERATE.value).to_numpy()
    degenerate_new_keys = keys_as_list(left.loc[new_degenerate_mask, new_label])
    if degenerate_new_keys:
        logger.warning(
            f"Excluding {len(degenerate_new_keys)} zero-area new features: {degenerate_new_keys}"
        )
    # Zero-area new features cannot cover anything; overlay also rejects mixed dimensions
    usable_new = new_status.isin([GeometryStatus.VALID.value, GeometryStatus.REPAIRED.value])
    left = left[usable_new.to_numpy()]

    # Old side: drop null keys, then invalid geometries
    missing_key_mask = old_gdf[key_field].isna().to_numpy()
    missing_key_count = int(missing_key_mask.sum())
    if missing_key_count:
        logger.warning(f"Excluding {missing_key_count} old features with a null '{key_field}'")

    keyed = old_gdf[~missing_key_mask]
    keyed_status = old_status[~missing_key_mask]
    old_invalid_mask = (keyed_status == GeometryStatus.INVALID.value).to_numpy()
    invalid_old_keys = keys_as_list(keyed.loc[old_invalid_mask, key_field])

    if config.strict_geometry and (invalid_new_keys or invalid_old_keys):
        if invalid_old_keys:
            raise InvalidGeometryError(invalid_old_keys, "old")
        raise InvalidGeometryError(invalid_new_keys, "new")

    duplicated = keyed[key_field].duplicated(keep=False)
    duplicate_keys = keys_as_list(keyed.loc[duplicated.to_numpy(), key_field])
    if duplicate_keys:
        if config.duplicate_key_policy == "error":
            raise DuplicateKeyError(duplicate_keys)
        logger.warning(
            f"{len(duplicate_keys)} keys repeat in the old collection; "
            f"applying duplicate_key_policy='{config.duplicate_key_policy}'"
        )

    if invalid_old_keys or invalid_new_keys:
        logger.warning(
            f"Excluding invalid geometries: {len(invalid_new_keys)} new, "
            f"{len(invalid_old_keys)} old"
        )

    right = gpd.GeoDataFrame(
        {_OLD_KEY: keyed[key_field].to_numpy(), "_status": keyed_status.to_numpy()},
        geometry=keyed.geometry.to_numpy(),
        crs=old_gdf.crs,
    )
    right = right[right["_status"] != GeometryStatus.INVALID.value].reset_index(drop=True)
    if duplicate_keys and config.duplicate_key_policy == "first":
        # Later features of a repeated key contribute neither area nor intersections
        first_only = ~right[_OLD_KEY].duplicated(keep="first")
        logger.info(f"Dropping {int((~first_only).sum())} later features of repeated keys")
        right = right[first_only].reset_index(drop=True)
    repaired_mask = right["_status"] == GeometryStatus.REPAIRED.value
    repaired_keys = keys_as_list(right.loc[repaired_mask, _OLD_KEY])
    degenerate_mask = right["_status"] == GeometryStatus.DEGENERATE.value
    degenerate = right.loc[degenerate_mask, [_OLD_KEY, "geometry"]]
    regular = right.loc[~degenerate_mask, [_OLD_KEY, "geometry"]]

    original_areas = pd.DataFrame(
        {
            key_field: right[_OLD_KEY].to_numpy(),
            ResultColumns.ORIGINAL_AREA: right.geometry.area.astype(float).to_numpy(),
        }
    )
    # Zero area after repair is degenerate regardless of the recorded status
    zero_area_keys = original_areas.loc[original_areas[ResultColumns.ORIGINAL_AREA] == 0, key_field]
    degenerate_keys = keys_as_list(zero_area_keys)

    pieces = _intersect(left, regular, config)
    pieces[ResultColumns.INTERSECT_AREA] = pieces.geometry.area.astype(float)
    empty_mask = (pieces[ResultColumns.INTERSECT_AREA] <= 0) | pieces.geometry.is_empty
    empty_count = int(empty_mask.sum())
    pieces = pieces[~empty_mask]

    if len(degenerate) and len(left):
        touching = gpd.sjoin(left, degenerate, how="inner", predicate="intersects")
        remainders = gpd.GeoSeries(
            degenerate.geometry.loc[touching["index_right"]].to_numpy(),
            index=touching.index,
            crs=old_gdf.crs,
        )
        touching = touching.drop(columns=["index_right"])
        touching["geometry"] = touching.geometry.intersection(remainders)
        touching[ResultColumns.INTERSECT_AREA] = 0.0
        pieces = gpd.GeoDataFrame(
            pd.concat([pieces, touching], ignore_index=True), geometry="geometry", crs=old_gdf.crs
        )

    if empty_count:
        logger.debug(f"{empty_count} candidate pairs had empty or zero-area intersections")
        warnings.warn(
            f"{empty_count} candidate pairs produced empty intersections and were omitted",
            EmptyIntersectionWarning,
            stacklevel=2,
        )

    pieces = pieces.rename(columns={_OLD_KEY: key_field}).reset_index(drop=True)
    pieces = pieces[
        [
            key_field,
            ResultColumns.NEW_INDEX,
            ResultColumns.NEW_KEY,
            ResultColumns.INTERSECT_AREA,
            "geometry",
        ]
    ]
    if config.sort_by_key:
        pieces = _sort_by_key(pieces, [key_field, ResultColumns.NEW_INDEX])

    intersections = pd.DataFrame(pieces.drop(columns="geometry"))

    logger.info(
        f"Computed {len(intersections)} intersections between {len(left)} new and "
        f"{len(right)} old features"
    )

    return OverlapComputation(
        key_field=key_field,
        intersections=intersections,
        original_areas=original_areas,
        pieces=pieces,
        invalid_new_keys=invalid_new_keys,
        invalid_old_keys=invalid_old_keys,
        degenerate_new_keys=degenerate_new_keys,
        repaired_keys=repaired_keys,
        degenerate_keys=degenerate_keys,
        duplicate_keys=duplicate_keys,
        missing_key_count=missing_key_count,
        empty_intersection_count=empty_count,
        geographic_crs=geographic,
        area_unit=area_unit_name(old_gdf),
    )


def _statuses(gdf: gpd.GeoDataFrame) -> pd.Series:
    """Return geometry status per row, inferring it when validation was skipped."""
    if ResultColumns.GEOMETRY_STATUS in gdf.columns:
        return gdf[ResultColumns.GEOMETRY_STATUS].astype(str)

    geoms = gdf.geometry
    usable = geoms.notna() & ~geoms.is_empty & geoms.geom_type.isin(["Polygon", "MultiPolygon"])
    usable &= geoms.is_valid
    return pd.Series(
        np.where(usable, GeometryStatus.VALID.value, GeometryStatus.INVALID.value),
        index=gdf.index,
    )


def _intersect(
    left: gpd.GeoDataFrame,
    right: gpd.GeoDataFrame,
    config: OverlapConfig,
) -> gpd.GeoDataFrame:
    """Overlay new features with old features, in parallel chunks when enabled."""
    if len(left) == 0 or len(right) == 0:
        return gpd.GeoDataFrame(
            {ResultColumns.NEW_INDEX: [], ResultColumns.NEW_KEY: [], _OLD_KEY: []},
            geometry=[],
            crs=left.crs,
        )

    if not config.parallel or len(left) < PARALLEL_MIN_FEATURES:
        return _intersection_chunk(left, right)

    max_workers = config.max_workers
    if max_workers is None:
        # Cap at 80% of available CPUs to avoid saturating the host
        max_workers = max(1, int((os.cpu_count() or 4) * 0.8))

    chunks = _partition_by_bounds(left, max_workers)
    if len(chunks) <= 1:
        return _intersection_chunk(left, right)

    logger.info(f"Intersecting {len(left)} features in {len(chunks)} parallel chunks")

    try:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(_intersection_chunk, chunk, right) for chunk in chunks]
            results = [f.result() for f in futures]
    except (NotImplementedError, PermissionError, OSError) as exc:
        logger.warning(f"Parallel intersection unavailable ({exc}); falling back to sequential")
        return _intersection_chunk(left, right)

    return gpd.GeoDataFrame(pd.concat(results, ignore_index=True), crs=left.crs)


def _intersection_chunk(
    left_chunk: gpd.GeoDataFrame,
    right_gdf: gpd.GeoDataFrame,
) -> gpd.GeoDataFrame:
    """Run an intersection overlay for one new-side chunk."""
    return gpd.overlay(left_chunk, right_gdf, how="intersection", keep_geom_type=False)


def _partition_by_bounds(gdf: gpd.GeoDataFrame, n_chunks: int) -> list[gpd.GeoDataFrame]:
    """Partition GeoDataFrame into spatial chunks along the longer axis of its bounds.

    Each feature lands in exactly one chunk (by centroid), so chunk results can
    be concatenated without duplicates.
    """
    if len(gdf) == 0 or n_chunks <= 1:
        return [gdf]

    min_x, min_y, max_x, max_y = gdf.total_bounds
    centroids = gdf.geometry.centroid
    if max_x - min_x >= max_y - min_y:
        coords, lower, upper = centroids.x, min_x, max_x
    else:
        coords, lower, upper = centroids.y, min_y, max_y

    step = (upper - lower) / n_chunks
    edges = [lower + i * step for i in range(n_chunks)]
    chunks = []
    for i, start in enumerate(edges):
        if i < n_chunks - 1:
            chunk = gdf[(coords >= start) & (coords < edges[i + 1])]
        else:
            chunk = gdf[coords >= start]
        if len(chunk) > 0:
            chunks.append(chunk)

    return chunks if chunks else [gdf]


def _sort_by_key(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    try:
        return df.sort_values(columns, kind="mergesort").reset_index(drop=True)
    except TypeError:
        # Mixed key types cannot be ordered; keep computation order
        logger.warning("Keys of mixed types cannot be sorted; keeping computation order")
        return df
