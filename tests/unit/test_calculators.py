"""Unit tests for the keyed join and proportion calculation."""

import math

import pandas as pd
import pytest

from spatial_overlap.calculators import calculate_proportion, join_and_rate
from spatial_overlap.validation import (
    DegenerateAreaWarning,
    DuplicateKeyError,
    MissingKeyFieldError,
    ReservedKeyFieldError,
)


class TestCalculateProportion:
    """Tests for the scalar proportion formula."""

    def test_partial_coverage(self):
        """Test a quarter of the original area covered."""
        assert calculate_proportion(25.0, 100.0) == 25.0

    def test_zero_original_area_is_undefined(self):
        """Test that zero original area yields NaN, never 0 or infinity."""
        assert math.isnan(calculate_proportion(0.0, 0.0))

    def test_overshoot_is_clipped(self):
        """Test floating point overshoot is clipped to 100."""
        assert calculate_proportion(100.00000001, 100.0) == 100.0
        assert calculate_proportion(-1e-12, 100.0) == 0.0

    def test_real_excess_is_rejected(self):
        """Test an intersection clearly larger than the original is not clipped."""
        with pytest.raises(ValueError, match="exceeds"):
            calculate_proportion(100.0, 1.0)


class TestJoinAndRate:
    """Tests for joining intersections to original areas."""

    def test_basic_join(self):
        """Each intersection row becomes one record with its proportion."""
        intersections = pd.DataFrame(
            {
                "district": ["A", "A", "B"],
                "new_key": [1, 2, 1],
                "intersect_area": [40.0, 60.0, 25.0],
            }
        )
        original_areas = pd.DataFrame(
            {"district": ["A", "B"], "original_area": [100.0, 50.0]}
        )

        records, diagnostics = join_and_rate(intersections, original_areas, "district")

        assert [(r.key, r.new_key) for r in records] == [("A", 1), ("A", 2), ("B", 1)]
        assert [r.proportion for r in records] == pytest.approx([40.0, 60.0, 50.0])
        assert [r.original_area for r in records] == [100.0, 100.0, 50.0]
        assert all(not r.is_degenerate for r in records)
        assert diagnostics.dropped_key_count == 0

    def test_accepts_plain_mappings(self):
        """Inputs may be iterables of mappings instead of DataFrames."""
        records, _ = join_and_rate(
            [{"id": 7, "intersect_area": 5.0}],
            [{"id": 7, "original_area": 20.0}],
            "id",
        )

        assert len(records) == 1
        assert records[0].key == 7
        assert records[0].new_key is None
        assert records[0].proportion == 25.0

    def test_unmatched_keys_are_dropped_and_reported(self):
        """Keys present on only one side are dropped and listed in diagnostics."""
        intersections = pd.DataFrame({"id": ["A", "orphan"], "intersect_area": [10.0, 5.0]})
        original_areas = pd.DataFrame({"id": ["A", "untouched"], "original_area": [20.0, 30.0]})

        records, diagnostics = join_and_rate(intersections, original_areas, "id")

        assert [r.key for r in records] == ["A"]
        assert diagnostics.unmatched_intersection_keys == ["orphan"]
        assert diagnostics.unmatched_original_keys == ["untouched"]
        assert diagnostics.dropped_key_count == 2

    def test_zero_original_area_is_flagged(self):
        """Degenerate originals carry NaN and the is_degenerate flag."""
        intersections = pd.DataFrame({"id": ["flat", "A"], "intersect_area": [0.0, 10.0]})
        original_areas = pd.DataFrame({"id": ["flat", "A"], "original_area": [0.0, 10.0]})

        with pytest.warns(DegenerateAreaWarning):
            records, diagnostics = join_and_rate(intersections, original_areas, "id")

        flat = next(r for r in records if r.key == "flat")
        assert flat.is_degenerate
        assert math.isnan(flat.proportion)
        assert diagnostics.degenerate_keys == ["flat"]

        other = next(r for r in records if r.key == "A")
        assert other.proportion == 100.0

    def test_proportion_is_clipped(self):
        """Intersection slightly larger than original is reported as 100%."""
        records, _ = join_and_rate(
            pd.DataFrame({"id": ["A"], "intersect_area": [100.00000001]}),
            pd.DataFrame({"id": ["A"], "original_area": [100.0]}),
            "id",
        )

        assert records[0].proportion == 100.0

    def test_empty_inputs(self):
        """Empty intersections yield no records; originals are reported as unmatched."""
        records, diagnostics = join_and_rate(
            pd.DataFrame({"id": [], "intersect_area": []}),
            pd.DataFrame({"id": ["A"], "original_area": [10.0]}),
            "id",
        )

        assert records == []
        assert diagnostics.unmatched_original_keys == ["A"]

    def test_missing_key_column_raises(self):
        """The key column must be present on both inputs."""
        with pytest.raises(MissingKeyFieldError):
            join_and_rate(
                pd.DataFrame({"name": ["A"], "intersect_area": [1.0]}),
                pd.DataFrame({"id": ["A"], "original_area": [1.0]}),
                "id",
            )


class TestDuplicateKeys:
    """Tests for repeated keys in the original areas."""

    @pytest.fixture
    def frames(self):
        intersections = pd.DataFrame({"id": ["D"], "intersect_area": [100.0]})
        original_areas = pd.DataFrame({"id": ["D", "D"], "original_area": [100.0, 300.0]})
        return intersections, original_areas

    def test_sum_policy(self, frames):
        """Test original areas of a repeated key are summed."""
        records, _ = join_and_rate(*frames, "id", duplicate_key_policy="sum")

        assert len(records) == 1
        assert records[0].original_area == 400.0
        assert records[0].proportion == 25.0

    def test_first_policy(self, frames):
        """Test only the first original area of a repeated key is kept."""
        records, _ = join_and_rate(*frames, "id", duplicate_key_policy="first")

        assert len(records) == 1
        assert records[0].original_area == 100.0
        assert records[0].proportion == 100.0

    def test_error_policy(self, frames):
        """Test repeated keys raise under the error policy."""
        with pytest.raises(DuplicateKeyError) as exc_info:
            join_and_rate(*frames, "id", duplicate_key_policy="error")

        assert exc_info.value.keys == ["D"]

    def test_first_policy_drops_pairs_larger_than_kept_area(self):
        """Test a pair from a later duplicate cannot be rated against the first area."""
        intersections = pd.DataFrame({"id": ["D", "D"], "intersect_area": [1.0, 100.0]})
        original_areas = pd.DataFrame({"id": ["D", "D"], "original_area": [1.0, 100.0]})

        records, diagnostics = join_and_rate(
            intersections, original_areas, "id", duplicate_key_policy="first"
        )

        assert len(records) == 1
        assert records[0].intersect_area == 1.0
        assert records[0].proportion == 100.0
        assert diagnostics.oversized_keys == ["D"]


@pytest.mark.parametrize("key_field", ["new_key", "intersect_area", "original_area", "proportion"])
def test_reserved_key_field_rejected(key_field):
    """Key columns named like output columns are rejected before joining."""
    with pytest.raises(ReservedKeyFieldError):
        join_and_rate(
            pd.DataFrame({key_field: ["A"]}),
            pd.DataFrame({key_field: ["A"]}),
            key_field,
        )
