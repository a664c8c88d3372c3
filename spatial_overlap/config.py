"""Configuration and constants for spatial overlap analysis.

Includes configuration for:
- Geometry repair and overlap computation (OverlapConfig with OVERLAP_ prefix)
- Debug output of intermediate GeoDataFrames (DebugConfig)

Configuration can be overridden via:
1. Environment variables (e.g., OVERLAP_DUPLICATE_KEY_POLICY=first, OVERLAP_PARALLEL=true)
2. .env file in the current directory
3. Default values in code
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class PhysicalConstants:
    """Fixed conversion factors used when reporting areas.

    These are NOT configurable. Areas are always computed in CRS-native units
    and only converted at the output boundary.
    """

    SQUARE_METRES_PER_HECTARE: float = 10_000.0

    # Linear unit names reported by pyproj for metre-based CRSs
    METRE_UNIT_NAMES: tuple[str, ...] = ("metre", "meter", "m")


# Module-level singleton for physical constants
CONSTANTS = PhysicalConstants()


class ResultColumns:
    """Column names used in intermediate and output DataFrames."""

    NEW_KEY = "new_key"
    NEW_INDEX = "new_index"
    ORIGINAL_AREA = "original_area"
    INTERSECT_AREA = "intersect_area"
    PROPORTION = "proportion"
    IS_DEGENERATE = "is_degenerate"
    GEOMETRY_STATUS = "geometry_status"
    INVALID_REASON = "invalid_reason"
    GEOMETRY = "geometry"

    @classmethod
    def record_order(cls) -> list[str]:
        """Get the ordered list of record fields (excluding the key column)."""
        return [
            cls.NEW_KEY,
            cls.ORIGINAL_AREA,
            cls.INTERSECT_AREA,
            cls.PROPORTION,
            cls.IS_DEGENERATE,
        ]

    @classmethod
    def reserved(cls) -> set[str]:
        """Column names the pipeline adds itself; a key field cannot use them."""
        return {
            *cls.record_order(),
            cls.NEW_INDEX,
            cls.GEOMETRY_STATUS,
            cls.INVALID_REASON,
            cls.GEOMETRY,
        }


class OverlapConfig(BaseSettings):
    """Configuration for geometry repair and overlap computation.

    Can be overridden via environment variables with OVERLAP_ prefix:
    - OVERLAP_REPAIR_AREA_TOLERANCE
    - OVERLAP_PRECISION_GRID_SIZE
    - OVERLAP_STRICT_GEOMETRY
    - OVERLAP_DUPLICATE_KEY_POLICY
    - OVERLAP_SORT_BY_KEY
    - OVERLAP_PARALLEL
    - OVERLAP_MAX_WORKERS

    Attributes:
        repair_area_tolerance: Relative area change above which a geometry repair
            is logged as a warning
        precision_grid_size: Grid size for coordinate snapping before validation
            (None disables snapping)
        strict_geometry: Raise InvalidGeometryError instead of excluding features
            that remain invalid after repair
        duplicate_key_policy: How repeated keys in the old collection are handled
        sort_by_key: Sort output records by key for a stable order
        parallel: Enable chunked parallel intersection for large inputs
        max_workers: Number of worker processes (None = 80% of cpu_count)
    """

    model_config = SettingsConfigDict(
        env_prefix="OVERLAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    repair_area_tolerance: float = Field(
        default=0.01,
        ge=0,
        description="Relative area change tolerated by geometry repair before warning",
    )
    precision_grid_size: float | None = Field(
        default=None,
        gt=0,
        description="Coordinate precision grid size in CRS units (None disables snapping)",
    )
    strict_geometry: bool = Field(
        default=False,
        description="Raise on geometries that remain invalid instead of excluding them",
    )
    duplicate_key_policy: Literal["sum", "first", "error"] = Field(
        default="sum",
        description="Handling of repeated keys in the old collection (sum, first, error)",
    )
    sort_by_key: bool = Field(default=True, description="Sort output records by key")
    parallel: bool = Field(
        default=False, description="Enable parallel intersection for large collections"
    )
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Number of worker processes for parallel intersection (None = auto-detect)",
    )


DEFAULT_CONFIG = OverlapConfig()


class DebugConfig:
    """Debug output configuration.

    WARNING: For local development only.
    - Adds disk I/O overhead
    - May expose sensitive geometry data
    """

    def __init__(
        self,
        enabled: bool = False,
        output_dir: Path = Path("/tmp/spatial-overlap-debug"),
    ):
        self.enabled = enabled
        self.output_dir = output_dir

    @classmethod
    def from_env(cls) -> "DebugConfig":
        return cls(
            enabled=os.environ.get("DEBUG_OUTPUT", "false").lower() == "true",
            output_dir=Path(os.environ.get("DEBUG_OUTPUT_DIR", "/tmp/spatial-overlap-debug")),
        )
