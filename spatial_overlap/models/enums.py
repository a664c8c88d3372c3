"""Enumerations shared by the overlap pipeline."""

from enum import StrEnum


class GeometryStatus(StrEnum):
    """Outcome of geometry validation for a single feature."""

    VALID = "valid"
    REPAIRED = "repaired"
    DEGENERATE = "degenerate"  # Repaired to a zero-area remainder
    INVALID = "invalid"


class DuplicateKeyPolicy(StrEnum):
    """How repeated keys in the old collection are resolved."""

    SUM = "sum"
    FIRST = "first"
    ERROR = "error"
