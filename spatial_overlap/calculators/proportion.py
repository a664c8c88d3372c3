"""Overlap proportion calculation.

Joins intersection areas back onto original areas by key and derives the
percentage of each original feature covered by the intersection.
"""

import logging
import math
import warnings
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from spatial_overlap.config import ResultColumns
from spatial_overlap.models.adapters import keys_as_list, to_python_scalar
from spatial_overlap.models.domain import OverlapRecord
from spatial_overlap.models.enums import DuplicateKeyPolicy
from spatial_overlap.validation.errors import (
    DegenerateAreaWarning,
    DuplicateKeyError,
    MissingKeyFieldError,
    ReservedKeyFieldError,
)

logger = logging.getLogger(__name__)

# Relative overshoot of intersect_area over original_area attributed to floating point error
OVERSHOOT_TOLERANCE = 1e-9


@dataclass
class JoinDiagnostics:
    """Keys dropped or flagged while joining intersections to original areas."""

    unmatched_intersection_keys: list = field(default_factory=list)
    unmatched_original_keys: list = field(default_factory=list)
    degenerate_keys: list = field(default_factory=list)
    oversized_keys: list = field(default_factory=list)

    @property
    def dropped_key_count(self) -> int:
        return len(self.unmatched_intersection_keys) + len(self.unmatched_original_keys)


def calculate_proportion(intersect_area: float, original_area: float) -> float:
    """Calculate the percentage of ``original_area`` covered by ``intersect_area``.

    Returns NaN when original_area is zero. Overshoot within OVERSHOOT_TOLERANCE
    (a feature overlapping itself) is clipped to 100.

    Raises:
        ValueError: If intersect_area exceeds original_area beyond the tolerance
    """
    if original_area == 0:
        return math.nan
    ratio = intersect_area / original_area
    if ratio > 1.0 + OVERSHOOT_TOLERANCE:
        msg = f"intersect_area {intersect_area} exceeds original_area {original_area}"
        raise ValueError(msg)
    return min(max(ratio * 100.0, 0.0), 100.0)


def join_and_rate(
    intersections: pd.DataFrame | Iterable[Mapping],
    original_areas: pd.DataFrame | Iterable[Mapping],
    key_field: str,
    duplicate_key_policy: DuplicateKeyPolicy | str = DuplicateKeyPolicy.SUM,
) -> tuple[list[OverlapRecord], JoinDiagnostics]:
    """Join intersection areas to original areas and derive proportions.

    Inner join on ``key_field``: keys present on only one side are dropped and
    reported in the diagnostics. Intersections larger than their original area
    (beyond floating point overshoot) cannot be rated; they are dropped and
    listed in ``oversized_keys``.

    Formula:
        proportion = intersect_area / original_area * 100

    Args:
        intersections: Rows with ``key_field`` and ``intersect_area``
            (optionally ``new_key``)
        original_areas: Rows with ``key_field`` and ``original_area``
        key_field: Join key column
        duplicate_key_policy: How repeated keys in original_areas are resolved:
            "sum" adds the areas of the group, "first" keeps the first row,
            "error" raises

    Returns:
        Tuple of (records, diagnostics). Records with original_area == 0 carry a
        NaN proportion and ``is_degenerate=True``.

    Raises:
        ReservedKeyFieldError: If key_field clashes with an output column name
        MissingKeyFieldError: If key_field is missing from either input
        DuplicateKeyError: If original_areas repeats keys under the "error" policy
    """
    intersections = pd.DataFrame(intersections)
    original_areas = pd.DataFrame(original_areas)
    policy = DuplicateKeyPolicy(duplicate_key_policy)

    if key_field in ResultColumns.reserved():
        raise ReservedKeyFieldError(key_field)

    if key_field not in intersections.columns and len(intersections.columns):
        raise MissingKeyFieldError(key_field, "intersection")
    if key_field not in original_areas.columns and len(original_areas.columns):
        raise MissingKeyFieldError(key_field, "original area")

    if intersections.empty or original_areas.empty:
        diagnostics = JoinDiagnostics(
            unmatched_intersection_keys=_keys(intersections, key_field),
            unmatched_original_keys=_keys(original_areas, key_field),
        )
        _log_dropped(diagnostics)
        return [], diagnostics

    originals = _resolve_duplicates(original_areas, key_field, policy)

    matched_intersections = intersections[key_field].isin(originals[key_field])
    matched_originals = originals[key_field].isin(intersections[key_field])
    diagnostics = JoinDiagnostics(
        unmatched_intersection_keys=keys_as_list(
            intersections.loc[~matched_intersections, key_field]
        ),
        unmatched_original_keys=keys_as_list(originals.loc[~matched_originals, key_field]),
    )
    _log_dropped(diagnostics)

    merged = intersections.merge(
        originals[[key_field, ResultColumns.ORIGINAL_AREA]], on=key_field, how="inner"
    )

    intersect_area = merged[ResultColumns.INTERSECT_AREA].astype(float).to_numpy()
    original_area = merged[ResultColumns.ORIGINAL_AREA].astype(float).to_numpy()
    oversized = intersect_area > original_area * (1.0 + OVERSHOOT_TOLERANCE)
    if oversized.any():
        diagnostics.oversized_keys = keys_as_list(merged.loc[oversized, key_field])
        logger.warning(
            f"Dropping {int(oversized.sum())} intersections larger than their original area "
            f"for keys {diagnostics.oversized_keys}"
        )
        merged = merged.loc[~oversized].reset_index(drop=True)
        intersect_area = intersect_area[~oversized]
        original_area = original_area[~oversized]

    degenerate = original_area == 0
    with np.errstate(divide="ignore", invalid="ignore"):
        proportion = np.clip(intersect_area / original_area * 100.0, 0.0, 100.0)
    proportion = np.where(degenerate, np.nan, proportion)

    if degenerate.any():
        diagnostics.degenerate_keys = keys_as_list(merged.loc[degenerate, key_field])
        msg = (
            f"{len(diagnostics.degenerate_keys)} original features have zero area; "
            f"their proportion is undefined (NaN)"
        )
        logger.warning(msg)
        warnings.warn(msg, DegenerateAreaWarning, stacklevel=2)

    new_keys = (
        merged[ResultColumns.NEW_KEY].tolist()
        if ResultColumns.NEW_KEY in merged.columns
        else [None] * len(merged)
    )

    records = [
        OverlapRecord(
            key=to_python_scalar(key),
            new_key=_optional_key(new_key),
            original_area=float(original),
            intersect_area=float(intersect),
            proportion=float(ratio),
            is_degenerate=bool(flag),
        )
        for key, new_key, original, intersect, ratio, flag in zip(
            merged[key_field].tolist(),
            new_keys,
            original_area,
            intersect_area,
            proportion,
            degenerate,
            strict=True,
        )
    ]

    logger.info(f"Joined {len(records)} overlap records on '{key_field}'")
    return records, diagnostics


def _resolve_duplicates(
    original_areas: pd.DataFrame, key_field: str, policy: DuplicateKeyPolicy
) -> pd.DataFrame:
    duplicated = original_areas[key_field].duplicated(keep=False)
    if not duplicated.any():
        return original_areas

    if policy is DuplicateKeyPolicy.ERROR:
        raise DuplicateKeyError(keys_as_list(original_areas.loc[duplicated, key_field]))
    if policy is DuplicateKeyPolicy.FIRST:
        return original_areas.drop_duplicates(subset=key_field, keep="first")
    return (
        original_areas.groupby(key_field, sort=False, dropna=False)[ResultColumns.ORIGINAL_AREA]
        .sum()
        .reset_index()
    )


def _keys(df: pd.DataFrame, key_field: str) -> list:
    if df.empty or key_field not in df.columns:
        return []
    return keys_as_list(df[key_field])


def _optional_key(value):
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return to_python_scalar(value)


def _log_dropped(diagnostics: JoinDiagnostics) -> None:
    if not diagnostics.dropped_key_count:
        return
    # Originals without an intersection are expected (no overlap); orphaned intersections are not
    log = logger.warning if diagnostics.unmatched_intersection_keys else logger.info
    log(
        f"Join dropped {diagnostics.dropped_key_count} keys: "
        f"{len(diagnostics.unmatched_intersection_keys)} without an original area, "
        f"{len(diagnostics.unmatched_original_keys)} without an intersection"
    )
