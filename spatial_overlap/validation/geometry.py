"""Geometry validation and repair for polygon collections."""

import logging

import geopandas as gpd
import shapely
from shapely import set_precision
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity, make_valid

from spatial_overlap.config import DEFAULT_CONFIG, OverlapConfig, ResultColumns
from spatial_overlap.models.enums import GeometryStatus
from spatial_overlap.validation.errors import ValidationError

logger = logging.getLogger(__name__)


class GeometryValidator:
    """Repairs invalid polygon geometries before overlap computation.

    Every feature is kept. Each row gets a ``geometry_status``:
    - valid: geometry already satisfied the validity predicate
    - repaired: geometry was invalid and make_valid produced a polygon
    - degenerate: repair left no polygonal part but a non-empty remainder
      (e.g. a polygon collapsed to a line); area is zero
    - invalid: null, empty, non-polygonal or unrepairable geometry

    Repaired geometries keep only the polygonal parts of make_valid's output.
    When the repaired area differs from the absolute input area by more than
    ``repair_area_tolerance`` (relative) a warning is logged.
    """

    def __init__(self, config: OverlapConfig | None = None):
        self.config = config or DEFAULT_CONFIG

    def validate(self, gdf: gpd.GeoDataFrame, key_field: str | None = None) -> gpd.GeoDataFrame:
        """Return a repaired copy of ``gdf`` with status columns added.

        Args:
            gdf: Input GeoDataFrame (may contain invalid geometries)
            key_field: Optional key column used to label log messages

        Returns:
            New GeoDataFrame with repaired geometries plus ``geometry_status``
            and ``invalid_reason`` columns. The input is not modified.
        """
        if gdf.geometry.name != ResultColumns.GEOMETRY:
            gdf = gdf.rename_geometry(ResultColumns.GEOMETRY)

        if self.config.precision_grid_size is not None:
            gdf = apply_precision(gdf, grid_size=self.config.precision_grid_size)
        else:
            gdf = gdf.copy()

        geometries = []
        statuses = []
        reasons = []
        for label, geom in zip(self._labels(gdf, key_field), gdf.geometry, strict=True):
            repaired, status, reason = self._repair(geom, label)
            geometries.append(repaired)
            statuses.append(status.value)
            reasons.append(reason)

        gdf[ResultColumns.GEOMETRY] = gpd.GeoSeries(geometries, index=gdf.index, crs=gdf.crs)
        gdf = gdf.set_geometry(ResultColumns.GEOMETRY)
        gdf[ResultColumns.GEOMETRY_STATUS] = statuses
        gdf[ResultColumns.INVALID_REASON] = reasons

        counts = gdf[ResultColumns.GEOMETRY_STATUS].value_counts().to_dict()
        if counts.get(GeometryStatus.VALID.value, 0) != len(gdf):
            logger.info(f"Geometry validation summary: {counts}")

        return gdf

    def report(self, gdf: gpd.GeoDataFrame) -> list[ValidationError]:
        """Describe problems in a GeoDataFrame without repairing it.

        Args:
            gdf: GeoDataFrame to inspect

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if gdf.crs is None:
            errors.append(ValidationError(message="Collection has no defined CRS", field="crs"))

        if len(gdf) == 0:
            return errors

        valid_geom_types = {"Polygon", "MultiPolygon"}
        geom_types = set(gdf.geometry.dropna().geom_type.unique())
        invalid_types = geom_types - valid_geom_types
        if invalid_types:
            errors.append(
                ValidationError(
                    message=f"Invalid geometry types found: {', '.join(sorted(invalid_types))}. "
                    f"Expected: Polygon or MultiPolygon",
                    field="geometry",
                )
            )

        null_count = gdf.geometry.isna().sum()
        if null_count > 0:
            errors.append(
                ValidationError(message=f"Found {null_count} null geometries", field="geometry")
            )

        invalid_count = (~gdf.geometry.dropna().is_valid).sum()
        if invalid_count > 0:
            errors.append(
                ValidationError(
                    message=f"Found {invalid_count} invalid geometries (self-intersections, etc.)",
                    field="geometry",
                )
            )

        return errors

    def _repair(self, geom, label) -> tuple:
        if geom is None:
            return None, GeometryStatus.INVALID, "null geometry"
        if geom.is_empty:
            return geom, GeometryStatus.INVALID, "empty geometry"
        if not isinstance(geom, Polygon | MultiPolygon):
            return geom, GeometryStatus.INVALID, f"unsupported geometry type {geom.geom_type}"
        if geom.is_valid:
            return geom, GeometryStatus.VALID, None

        reason = explain_validity(geom)
        repaired = make_valid(geom)
        polygons = polygonal_part(repaired)

        if polygons is None:
            if repaired is not None and not repaired.is_empty:
                logger.warning(f"Feature {label} collapsed to zero area during repair: {reason}")
                return repaired, GeometryStatus.DEGENERATE, reason
            logger.warning(f"Feature {label} could not be repaired: {reason}")
            return geom, GeometryStatus.INVALID, reason

        if not polygons.is_valid:
            logger.warning(f"Feature {label} still invalid after repair: {reason}")
            return geom, GeometryStatus.INVALID, reason

        self._check_area_change(geom, polygons, label)
        return polygons, GeometryStatus.REPAIRED, reason

    def _check_area_change(self, original, repaired, label) -> None:
        original_area = abs(float(original.area))
        if original_area == 0:
            return
        change = abs(float(repaired.area) - original_area) / original_area
        if change > self.config.repair_area_tolerance:
            logger.warning(
                f"Repair of feature {label} changed area by {change:.1%} "
                f"(tolerance {self.config.repair_area_tolerance:.1%})"
            )

    @staticmethod
    def _labels(gdf: gpd.GeoDataFrame, key_field: str | None) -> list:
        if key_field is not None and key_field in gdf.columns:
            return list(gdf[key_field])
        return list(gdf.index)


def apply_precision(
    gdf: gpd.GeoDataFrame,
    grid_size: float,
) -> gpd.GeoDataFrame:
    """Snap geometry coordinates to a grid.

    Args:
        gdf: Input GeoDataFrame
        grid_size: Grid size in CRS units

    Returns:
        GeoDataFrame with precision-snapped geometries

    Note:
        This operation may slightly modify geometry coordinates and areas.
    """
    gdf = gdf.copy()
    gdf["geometry"] = gdf.geometry.apply(
        lambda geom: set_precision(geom, grid_size=grid_size) if geom else geom
    )
    return gdf


def polygonal_part(geom: BaseGeometry | None) -> Polygon | MultiPolygon | None:
    """Extract the polygonal component of a geometry.

    make_valid can return GeometryCollections mixing polygons with lines or
    points. Only polygon parts carry area.

    Returns:
        Polygon or MultiPolygon, or None when there is no polygonal part
    """
    if geom is None or geom.is_empty:
        return None
    if isinstance(geom, Polygon | MultiPolygon):
        return geom

    polygons = []
    for part in shapely.get_parts(geom):
        if isinstance(part, Polygon) and not part.is_empty:
            polygons.append(part)
        elif isinstance(part, MultiPolygon):
            polygons.extend(p for p in part.geoms if not p.is_empty)

    if not polygons:
        return None
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)
