import geopandas as gpd
from shapely.geometry import Polygon


def square(x: float, y: float, size: float) -> Polygon:
    """Axis-aligned square with its lower-left corner at (x, y)."""
    return Polygon([(x, y), (x + size, y), (x + size, y + size), (x, y + size)])


def keyed_gdf(keys: list, geometries: list, crs: str = "EPSG:27700", key_field: str = "name"):
    """Build a GeoDataFrame with one key column."""
    return gpd.GeoDataFrame({key_field: keys}, geometry=geometries, crs=crs)


def records_by_key(result) -> dict:
    """Index overlap records by old key, asserting each key appears once."""
    indexed = {}
    for record in result.records:
        assert record.key not in indexed, f"Key {record.key!r} appears more than once"
        indexed[record.key] = record
    return indexed
