"""Unit tests for CSV output."""

import math

import pandas as pd
import pytest

from spatial_overlap.models import OverlapDiagnostics, OverlapRecord, OverlapResult
from spatial_overlap.outputs import CSVOutputStrategy, OutputStrategy


@pytest.fixture
def result():
    """Result with one regular and one degenerate record, in metres."""
    return OverlapResult(
        key_field="district",
        crs="EPSG:27700",
        records=[
            OverlapRecord(
                key="A", new_key="n", original_area=20000.0, intersect_area=5000.0, proportion=25.0
            ),
            OverlapRecord(
                key="flat",
                new_key="n",
                original_area=0.0,
                intersect_area=0.0,
                proportion=math.nan,
                is_degenerate=True,
            ),
        ],
        diagnostics=OverlapDiagnostics(area_unit="metre", degenerate_keys=["flat"]),
    )


def test_csv_strategy_satisfies_protocol():
    """CSVOutputStrategy implements the OutputStrategy interface."""
    assert isinstance(CSVOutputStrategy(), OutputStrategy)


def test_write_csv(tmp_path, result):
    """Records are written one per row with the key column first."""
    output_path = tmp_path / "nested" / "overlap.csv"

    written = CSVOutputStrategy().write(result, output_path)

    assert written == output_path
    df = pd.read_csv(output_path)
    assert list(df.columns[:6]) == [
        "district",
        "new_key",
        "original_area",
        "intersect_area",
        "proportion",
        "is_degenerate",
    ]
    assert df["proportion"].iloc[0] == pytest.approx(25.0)
    # Undefined proportion stays empty, never 0
    assert math.isnan(df["proportion"].iloc[1])
    assert df["is_degenerate"].tolist() == [False, True]


def test_hectare_columns_for_metric_crs(result):
    """Metre-based CRSs get explicit hectare conversions."""
    df = CSVOutputStrategy().to_dataframe(result)

    assert df["original_area_ha"].iloc[0] == pytest.approx(2.0)
    assert df["intersect_area_ha"].iloc[0] == pytest.approx(0.5)


def test_no_hectare_columns_for_degrees(result):
    """Areas in other units are left unconverted."""
    degrees = result.model_copy(update={"diagnostics": OverlapDiagnostics(area_unit="degree")})

    df = CSVOutputStrategy().to_dataframe(degrees)

    assert "original_area_ha" not in df.columns


def test_empty_result(tmp_path):
    """An empty result still writes the header row."""
    output_path = tmp_path / "empty.csv"

    CSVOutputStrategy().write(OverlapResult(key_field="id"), output_path)

    assert output_path.read_text().strip().startswith("id,new_key,original_area")
