"""Spatial operations for overlap analysis.

This package provides:
- Overlap computation (intersection areas with optional parallel chunks)
- General utilities (CRS comparison, inspection and transformation)

Commonly used exports:
- compute_overlap: Intersection and original area tables for two collections
- ensure_crs: Explicit CRS transformation at the input boundary
- require_same_crs: Fail on mismatched CRSs
"""

# General utilities
from spatial_overlap.spatial.utils import (
    area_unit_name,
    ensure_crs,
    require_key_field,
    require_same_crs,
    warn_if_geographic,
)

# Overlap operations
from spatial_overlap.spatial.overlay import OverlapComputation, compute_overlap

__all__ = [
    "compute_overlap",
    "OverlapComputation",
    "ensure_crs",
    "require_same_crs",
    "require_key_field",
    "area_unit_name",
    "warn_if_geographic",
]
