"""Base output strategy interface for overlap results."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from spatial_overlap.models.domain import OverlapResult


@runtime_checkable
class OutputStrategy(Protocol):
    """Protocol for output strategies that serialize overlap results.

    The pipeline returns domain models; the caller decides when and where to
    write them using an appropriate strategy.
    """

    def write(self, result: OverlapResult, output_path: Path) -> Path:
        """Write an overlap result to a file.

        Args:
            result: Overlap result (domain model)
            output_path: Path where output file should be written

        Returns:
            Path to the written output file

        Raises:
            IOError: If writing fails
        """
        ...
