"""Spatial overlap analysis.

Computes, for two polygon collections, the area of each old feature covered
by the new features and the covered proportion as a percentage.

Commonly used exports:
- calculate_spatial_overlap: Validate, compute overlap and join in one call
- GeometryValidator: Geometry repair stage
- compute_overlap: Intersection and original area tables
- join_and_rate: Keyed join and proportion derivation
"""

from spatial_overlap.validation import (
    CrsMismatchError,
    DegenerateAreaWarning,
    DuplicateKeyError,
    EmptyIntersectionWarning,
    GeographicCrsWarning,
    GeometryValidator,
    InvalidGeometryError,
    MissingKeyFieldError,
    OverlapError,
    ReservedKeyFieldError,
)
from spatial_overlap.models import (
    OverlapDiagnostics,
    OverlapRecord,
    OverlapResult,
    PolygonCollection,
    PolygonFeature,
)
from spatial_overlap.spatial import compute_overlap
from spatial_overlap.calculators import join_and_rate
from spatial_overlap.runner import calculate_spatial_overlap

__all__ = [
    "calculate_spatial_overlap",
    "GeometryValidator",
    "compute_overlap",
    "join_and_rate",
    "PolygonFeature",
    "PolygonCollection",
    "OverlapRecord",
    "OverlapDiagnostics",
    "OverlapResult",
    "OverlapError",
    "CrsMismatchError",
    "MissingKeyFieldError",
    "ReservedKeyFieldError",
    "DuplicateKeyError",
    "InvalidGeometryError",
    "GeographicCrsWarning",
    "EmptyIntersectionWarning",
    "DegenerateAreaWarning",
]
