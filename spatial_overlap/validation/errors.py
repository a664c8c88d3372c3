"""Error and warning definitions for overlap analysis.

Structural problems (CRS mismatch, missing or duplicated join keys) are raised
as exceptions before any computation. Per-feature data issues are recovered
and reported through diagnostics; the warning classes below are emitted via
the ``warnings`` module so callers can filter or escalate them.
"""

from collections.abc import Hashable, Iterable
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Represents a per-feature validation issue with descriptive message."""

    message: str
    field: str | None = None
    key: Hashable | None = None


class OverlapError(Exception):
    """Base class for fatal overlap analysis errors."""


class CrsMismatchError(OverlapError):
    """The two collections are not in the same coordinate reference system."""

    def __init__(self, new_crs, old_crs):
        self.new_crs = new_crs
        self.old_crs = old_crs
        super().__init__(
            f"CRS mismatch: new collection is {_crs_label(new_crs)}, "
            f"old collection is {_crs_label(old_crs)}"
        )


class MissingKeyFieldError(OverlapError):
    """The join key column is not present on a collection."""

    def __init__(self, key_field: str, collection: str = "old"):
        self.key_field = key_field
        self.collection = collection
        super().__init__(f"key_field '{key_field}' not found in {collection} collection")


class ReservedKeyFieldError(OverlapError):
    """The join key column name clashes with a column the pipeline produces."""

    def __init__(self, key_field: str):
        self.key_field = key_field
        super().__init__(
            f"key_field '{key_field}' is reserved for overlap output; rename the column first"
        )


class DuplicateKeyError(OverlapError):
    """The old collection repeats keys and the duplicate policy forbids it."""

    def __init__(self, keys: Iterable[Hashable]):
        self.keys = list(keys)
        preview = ", ".join(repr(k) for k in self.keys[:5])
        suffix = ", ..." if len(self.keys) > 5 else ""
        super().__init__(f"Found {len(self.keys)} duplicated key(s): {preview}{suffix}")


class InvalidGeometryError(OverlapError):
    """Geometries remain invalid after repair (raised only in strict mode)."""

    def __init__(self, keys: Iterable[Hashable], collection: str = "old"):
        self.keys = list(keys)
        self.collection = collection
        super().__init__(
            f"{len(self.keys)} geometries in {collection} collection remain invalid after repair"
        )


class GeographicCrsWarning(UserWarning):
    """Areas are being computed in an unprojected (degree-based) CRS."""


class EmptyIntersectionWarning(UserWarning):
    """Candidate feature pairs produced empty or zero-area intersections."""


class DegenerateAreaWarning(UserWarning):
    """Original features with zero area produced undefined proportions."""


def _crs_label(crs) -> str:
    if crs is None:
        return "undefined"
    to_string = getattr(crs, "to_string", None)
    return to_string() if callable(to_string) else str(crs)
