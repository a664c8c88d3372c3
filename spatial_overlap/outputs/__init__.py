"""Output strategies for overlap results."""

from spatial_overlap.outputs.base import OutputStrategy
from spatial_overlap.outputs.csv import CSVOutputStrategy

__all__ = ["OutputStrategy", "CSVOutputStrategy"]
