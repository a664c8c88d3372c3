"""Core domain models for spatial overlap analysis.

These models represent inputs and results as immutable value objects,
separate from the GeoDataFrames used inside the spatial operations.

Areas are plain floats in the squared linear unit of the collection CRS.
"""

import math
from collections.abc import Hashable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pyproj import CRS
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from spatial_overlap.validation.errors import CrsMismatchError


class PolygonFeature(BaseModel):
    """A keyed polygon feature.

    Attributes:
        key: Identifying value used to join results (name, ID, ...)
        geometry: Polygon or MultiPolygon, possibly topologically invalid
        crs: CRS the geometry is expressed in, if known at feature level
        attributes: Additional attributes carried along but never used
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: Hashable = Field(description="Feature key")
    geometry: BaseGeometry = Field(description="Polygon or MultiPolygon geometry")
    crs: str | None = Field(default=None, description="Feature CRS (EPSG code or WKT)")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Extra attributes")

    @field_validator("geometry")
    @classmethod
    def must_be_polygonal(cls, v: BaseGeometry) -> BaseGeometry:
        if v is None:
            msg = "geometry must not be null"
            raise ValueError(msg)
        if not isinstance(v, Polygon | MultiPolygon):
            msg = f"geometry must be Polygon or MultiPolygon, got {v.geom_type}"
            raise ValueError(msg)
        return v


class PolygonCollection(BaseModel):
    """An ordered sequence of polygon features sharing one CRS."""

    model_config = ConfigDict(frozen=True)

    crs: str = Field(description="Collection CRS (EPSG code or WKT)")
    features: tuple[PolygonFeature, ...] = Field(default=(), description="Features in order")

    @model_validator(mode="after")
    def features_share_crs(self) -> "PolygonCollection":
        collection_crs = CRS.from_user_input(self.crs)
        for feature in self.features:
            if feature.crs is not None and CRS.from_user_input(feature.crs) != collection_crs:
                raise CrsMismatchError(feature.crs, self.crs)
        return self

    def __len__(self) -> int:
        return len(self.features)

    @property
    def keys(self) -> list[Hashable]:
        return [feature.key for feature in self.features]


class OverlapRecord(BaseModel):
    """Intersection of one new feature with one old feature.

    Attributes:
        key: Key of the old feature
        new_key: Key of the new feature (None when the new collection has no key column)
        original_area: Area of the old feature (or key group) in CRS units squared
        intersect_area: Area of the intersection in CRS units squared
        proportion: intersect_area / original_area * 100 (NaN when undefined)
        is_degenerate: True when original_area is zero and proportion is undefined
    """

    model_config = ConfigDict(frozen=True)

    key: Hashable = Field(description="Old feature key")
    new_key: Hashable | None = Field(default=None, description="New feature key")
    original_area: float = Field(ge=0, description="Original area (CRS units squared)")
    intersect_area: float = Field(ge=0, description="Intersection area (CRS units squared)")
    proportion: float = Field(description="Percentage of original area covered, NaN if undefined")
    is_degenerate: bool = Field(default=False, description="original_area is zero")

    @model_validator(mode="after")
    def proportion_in_range(self) -> "OverlapRecord":
        if self.is_degenerate:
            if not math.isnan(self.proportion):
                msg = "Degenerate records must carry a NaN proportion"
                raise ValueError(msg)
        elif math.isnan(self.proportion) or not 0.0 <= self.proportion <= 100.0:
            msg = f"proportion must be within [0, 100], got {self.proportion}"
            raise ValueError(msg)
        return self

    @property
    def has_defined_proportion(self) -> bool:
        return not self.is_degenerate


class OverlapDiagnostics(BaseModel):
    """Per-feature issues recovered during an overlap computation.

    Attributes:
        invalid_new_keys: New features excluded because their geometry stayed invalid
        invalid_old_keys: Old features excluded because their geometry stayed invalid
        repaired_keys: Old features whose geometry was repaired
        degenerate_keys: Old features with zero area
        degenerate_new_keys: New features with zero area, excluded from the overlay
        duplicate_keys: Keys repeated in the old collection
        missing_key_count: Old rows excluded because their key was null
        empty_intersection_count: Candidate pairs whose intersection had no area
        unmatched_intersection_keys: Intersection keys with no original area record
        unmatched_original_keys: Original keys with no intersection record
        oversized_keys: Keys whose intersection exceeded the original area and were dropped
        geographic_crs: Areas were computed in an unprojected CRS
        area_unit: Linear unit name of the CRS (areas are this unit squared)
    """

    model_config = ConfigDict(frozen=True)

    invalid_new_keys: list[Any] = Field(default_factory=list)
    invalid_old_keys: list[Any] = Field(default_factory=list)
    repaired_keys: list[Any] = Field(default_factory=list)
    degenerate_keys: list[Any] = Field(default_factory=list)
    degenerate_new_keys: list[Any] = Field(default_factory=list)
    duplicate_keys: list[Any] = Field(default_factory=list)
    missing_key_count: int = Field(default=0, ge=0)
    empty_intersection_count: int = Field(default=0, ge=0)
    unmatched_intersection_keys: list[Any] = Field(default_factory=list)
    unmatched_original_keys: list[Any] = Field(default_factory=list)
    oversized_keys: list[Any] = Field(default_factory=list)
    geographic_crs: bool = False
    area_unit: str | None = None

    @property
    def dropped_key_count(self) -> int:
        """Number of keys dropped by the join (either side)."""
        return len(self.unmatched_intersection_keys) + len(self.unmatched_original_keys)

    def has_issues(self) -> bool:
        """Check whether any feature was excluded, flagged or dropped."""
        return bool(
            self.invalid_new_keys
            or self.invalid_old_keys
            or self.degenerate_keys
            or self.degenerate_new_keys
            or self.oversized_keys
            or self.duplicate_keys
            or self.missing_key_count
            or self.dropped_key_count
            or self.geographic_crs
        )


class OverlapResult(BaseModel):
    """Complete result of an overlap computation."""

    model_config = ConfigDict(frozen=True)

    key_field: str = Field(description="Name of the join key")
    crs: str | None = Field(default=None, description="CRS the areas were computed in")
    records: list[OverlapRecord] = Field(default_factory=list)
    diagnostics: OverlapDiagnostics = Field(default_factory=OverlapDiagnostics)

    def __len__(self) -> int:
        return len(self.records)

    def records_for(self, key: Hashable) -> list[OverlapRecord]:
        """Return all records for an old feature key."""
        return [record for record in self.records if record.key == key]
