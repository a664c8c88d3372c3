"""Calculators for overlap proportions."""

from spatial_overlap.calculators.proportion import (
    JoinDiagnostics,
    calculate_proportion,
    join_and_rate,
)

__all__ = [
    "JoinDiagnostics",
    "calculate_proportion",
    "join_and_rate",
]
