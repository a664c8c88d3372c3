"""Overlap pipeline execution.

This package provides the runner for a complete overlap computation:
- calculate_spatial_overlap(): validate -> compute overlap -> join and rate
"""

from spatial_overlap.runner.runner import calculate_spatial_overlap

__all__ = [
    "calculate_spatial_overlap",
]
