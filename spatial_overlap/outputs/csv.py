"""CSV output strategy for overlap results.

One row per overlap record. Areas are written in CRS-native units; when the
CRS unit is metres, hectare columns are added as an explicit conversion.
"""

from pathlib import Path

import pandas as pd

from spatial_overlap.config import CONSTANTS, ResultColumns
from spatial_overlap.models.adapters import records_to_dataframe
from spatial_overlap.models.domain import OverlapResult


class CSVOutputStrategy:
    """Writes overlap records to CSV.

    Degenerate records keep an empty proportion cell (NaN) alongside
    ``is_degenerate=True`` so consumers never read them as 0%.
    """

    def __init__(self, float_precision: int | None = 6):
        self.float_precision = float_precision

    def write(self, result: OverlapResult, output_path: Path) -> Path:
        """Write overlap records to a CSV file.

        Args:
            result: Overlap result to serialize
            output_path: Path where the CSV file should be written

        Returns:
            Path to the written CSV file
        """
        df = self.to_dataframe(result)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        float_format = f"%.{self.float_precision}f" if self.float_precision is not None else None
        df.to_csv(output_path, index=False, float_format=float_format)

        return output_path

    def to_dataframe(self, result: OverlapResult) -> pd.DataFrame:
        """Convert an overlap result into the CSV column layout."""
        df = records_to_dataframe(result.records, result.key_field)

        if _is_metric(result.diagnostics.area_unit):
            df[f"{ResultColumns.ORIGINAL_AREA}_ha"] = (
                df[ResultColumns.ORIGINAL_AREA].astype(float) / CONSTANTS.SQUARE_METRES_PER_HECTARE
            )
            df[f"{ResultColumns.INTERSECT_AREA}_ha"] = (
                df[ResultColumns.INTERSECT_AREA].astype(float) / CONSTANTS.SQUARE_METRES_PER_HECTARE
            )

        return df


def _is_metric(unit_name: str | None) -> bool:
    return unit_name is not None and unit_name.lower() in CONSTANTS.METRE_UNIT_NAMES
