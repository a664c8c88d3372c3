"""Adapters between domain models and (Geo)DataFrames.

The spatial operations work on GeoDataFrames; callers and output strategies
work on typed models. These helpers are the only place the two meet.
"""

from collections.abc import Hashable

import geopandas as gpd
import numpy as np
import pandas as pd

from spatial_overlap.config import ResultColumns
from spatial_overlap.models.domain import OverlapRecord, PolygonCollection, PolygonFeature


def to_python_scalar(value):
    """Unwrap numpy scalars so keys compare and serialize as plain Python values."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def collection_to_gdf(collection: PolygonCollection, key_field: str) -> gpd.GeoDataFrame:
    """Convert a PolygonCollection into a GeoDataFrame keyed by ``key_field``.

    Extra feature attributes become columns; an attribute named like the key
    field or the geometry column is ignored.
    """
    rows = []
    geometries = []
    for feature in collection.features:
        row = {
            name: value
            for name, value in feature.attributes.items()
            if name not in (key_field, ResultColumns.GEOMETRY)
        }
        row[key_field] = feature.key
        rows.append(row)
        geometries.append(feature.geometry)

    frame = pd.DataFrame(rows) if rows else pd.DataFrame({key_field: []})
    return gpd.GeoDataFrame(frame, geometry=geometries, crs=collection.crs)


def gdf_to_collection(gdf: gpd.GeoDataFrame, key_field: str) -> PolygonCollection:
    """Convert a GeoDataFrame into a PolygonCollection.

    Raises:
        ValueError: If the GeoDataFrame has no CRS or lacks the key column
    """
    if gdf.crs is None:
        msg = "Input GeoDataFrame has no CRS defined"
        raise ValueError(msg)
    if key_field not in gdf.columns:
        msg = f"key_field '{key_field}' not found in GeoDataFrame"
        raise ValueError(msg)

    geometry_name = gdf.geometry.name
    attribute_columns = [c for c in gdf.columns if c not in (key_field, geometry_name)]
    features = [
        PolygonFeature(
            key=to_python_scalar(row[key_field]),
            geometry=row[geometry_name],
            attributes={c: to_python_scalar(row[c]) for c in attribute_columns},
        )
        for _, row in gdf.iterrows()
    ]
    return PolygonCollection(crs=gdf.crs.to_string(), features=tuple(features))


def records_to_dataframe(records: list[OverlapRecord], key_field: str) -> pd.DataFrame:
    """Convert overlap records into a DataFrame with ``key_field`` as first column."""
    columns = [key_field, *ResultColumns.record_order()]
    if not records:
        return pd.DataFrame(columns=columns)

    rows = []
    for record in records:
        row = record.model_dump()
        row[key_field] = row.pop("key")
        rows.append(row)
    return pd.DataFrame(rows)[columns]


def keys_as_list(values) -> list[Hashable]:
    """Return unique keys from a Series or iterable as plain Python values, in order."""
    seen = []
    for value in pd.unique(pd.Series(list(values), dtype=object)):
        seen.append(to_python_scalar(value))
    return seen
