"""Domain models for spatial overlap analysis."""

from spatial_overlap.models.domain import (
    OverlapDiagnostics,
    OverlapRecord,
    OverlapResult,
    PolygonCollection,
    PolygonFeature,
)
from spatial_overlap.models.enums import DuplicateKeyPolicy, GeometryStatus

__all__ = [
    "PolygonFeature",
    "PolygonCollection",
    "OverlapRecord",
    "OverlapDiagnostics",
    "OverlapResult",
    "GeometryStatus",
    "DuplicateKeyPolicy",
]
