import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator

from shapely.geometry import shape

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ValidationError

# Web-Mercator latitude limit in degrees
MAX_LATITUDE = 85.0511287798


@dataclass(frozen=True)
class Tile:
    """Slippy-map tile address"""
    x: int
    y: int
    z: int

    def __str__(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"


@dataclass(frozen=True)
class TileRange:
    """Inclusive rectangle of tiles at a single zoom level"""
    zoom: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    def __len__(self) -> int:
        return (self.max_x - self.min_x + 1) * (self.max_y - self.min_y + 1)

    def __iter__(self) -> Iterator[Tile]:
        for x in range(self.min_x, self.max_x + 1):
            for y in range(self.min_y, self.max_y + 1):
                yield Tile(x, y, self.zoom)


@dataclass(frozen=True)
class BoundingBox:
    """Bounding box with north/south/east/west boundaries in radians.

    Every boundary must lie in [-pi, pi]. North is not required to be greater
    than south; the enumerator orders each axis itself.
    """
    north: float
    south: float
    east: float
    west: float

    def __post_init__(self):
        for name in ('north', 'south', 'east', 'west'):
            value = getattr(self, name)
            if not -math.pi <= value <= math.pi:
                raise ValidationError(f"{name} must be within [-pi, pi] radians, got {value}")

    @classmethod
    def from_degrees(cls, north: float, south: float, east: float, west: float,
                     clamp_latitude: bool = True) -> 'BoundingBox':
        """Create a bounding box from degree values in [-180, 180].

        Latitudes are clamped to the Web-Mercator limit unless
        ``clamp_latitude`` is False.
        """
        values = {'north': north, 'south': south, 'east': east, 'west': west}
        for name, value in values.items():
            if not -180.0 <= value <= 180.0:
                raise ValidationError(f"{name} must be within [-180, 180] degrees, got {value}")

        if clamp_latitude:
            north = max(-MAX_LATITUDE, min(MAX_LATITUDE, north))
            south = max(-MAX_LATITUDE, min(MAX_LATITUDE, south))

        return cls(
            north=math.radians(north),
            south=math.radians(south),
            east=math.radians(east),
            west=math.radians(west),
        )

    @classmethod
    def from_lonlat_bbox(cls, bbox) -> 'BoundingBox':
        """Create from a ``[min_lon, min_lat, max_lon, max_lat]`` sequence"""
        if len(bbox) != 4:
            raise ValidationError(f"bbox needs 4 values, got {len(bbox)}")
        min_lon, min_lat, max_lon, max_lat = (float(v) for v in bbox)
        return cls.from_degrees(north=max_lat, south=min_lat, east=max_lon, west=min_lon)

    @classmethod
    def from_geojson(cls, geojson: Dict[str, Any]) -> 'BoundingBox':
        """Create from the envelope of a GeoJSON geometry, Feature or FeatureCollection"""
        kind = geojson.get('type')
        if kind == 'FeatureCollection':
            geometries = [f['geometry'] for f in geojson.get('features', []) if f.get('geometry')]
        elif kind == 'Feature':
            geometries = [geojson['geometry']] if geojson.get('geometry') else []
        else:
            geometries = [geojson]

        if not geometries:
            raise ValidationError("GeoJSON contains no geometry")

        bounds = [shape(g).bounds for g in geometries]
        return cls.from_lonlat_bbox([
            min(b[0] for b in bounds),
            min(b[1] for b in bounds),
            max(b[2] for b in bounds),
            max(b[3] for b in bounds),
        ])

    def to_degrees(self) -> Dict[str, float]:
        return {
            'north': math.degrees(self.north),
            'south': math.degrees(self.south),
            'east': math.degrees(self.east),
            'west': math.degrees(self.west),
        }
