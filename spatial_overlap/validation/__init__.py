"""Validation module for polygon collections.

This module provides:
1. Geometry validation and repair (GeometryValidator)
2. The error and warning taxonomy used across the overlap pipeline
"""

from spatial_overlap.validation.errors import (
    CrsMismatchError,
    DegenerateAreaWarning,
    DuplicateKeyError,
    EmptyIntersectionWarning,
    GeographicCrsWarning,
    InvalidGeometryError,
    MissingKeyFieldError,
    OverlapError,
    ReservedKeyFieldError,
    ValidationError,
)
from spatial_overlap.validation.geometry import GeometryValidator

__all__ = [
    "ValidationError",
    "GeometryValidator",
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
