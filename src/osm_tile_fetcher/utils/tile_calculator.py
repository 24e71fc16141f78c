import math
from typing import List, Tuple

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError
from osm_tile_fetcher.models.tile import BoundingBox, TileRange


class TileCalculator:
    """Utility class for tile coordinate calculations"""

    @staticmethod
    def project_tile(lat_rad: float, lon_rad: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon in radians to tile coordinates.

        https://wiki.openstreetmap.org/wiki/Slippy_map_tilenames
        Indices are truncated, not rounded. Latitudes outside the Mercator
        range give meaningless results.
        """
        n = 2.0 ** zoom
        lon_deg = math.degrees(lon_rad)
        xtile = int((lon_deg + 180.0) / 360.0 * n)
        ytile = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
        return xtile, ytile

    @staticmethod
    def deg2num(lat_deg: float, lon_deg: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon in degrees to tile coordinates"""
        return TileCalculator.project_tile(math.radians(lat_deg), math.radians(lon_deg), zoom)

    @staticmethod
    def check_zoom_range(min_zoom: int, max_zoom: int) -> None:
        if min_zoom < 1 or max_zoom < 1:
            raise ConfigurationError(f"Zoom levels must be >= 1, got {min_zoom}-{max_zoom}")
        if min_zoom > max_zoom:
            raise ConfigurationError(f"Minimum zoom {min_zoom} is greater than maximum zoom {max_zoom}")

    @staticmethod
    def tile_range(bbox: BoundingBox, zoom: int) -> TileRange:
        """Tile rectangle covering ``bbox`` at ``zoom``.

        Corners are swapped per axis so the range always runs low to high,
        then clamped to the grid.
        """
        nw_x, nw_y = TileCalculator.project_tile(bbox.north, bbox.west, zoom)
        se_x, se_y = TileCalculator.project_tile(bbox.south, bbox.east, zoom)

        min_x, max_x = min(nw_x, se_x), max(nw_x, se_x)
        min_y, max_y = min(nw_y, se_y), max(nw_y, se_y)

        last = 2 ** zoom - 1
        return TileRange(
            zoom=zoom,
            min_x=max(0, min(min_x, last)),
            max_x=max(0, min(max_x, last)),
            min_y=max(0, min(min_y, last)),
            max_y=max(0, min(max_y, last)),
        )

    @staticmethod
    def get_ranges_for_bbox(bbox: BoundingBox, min_zoom: int, max_zoom: int) -> List[TileRange]:
        """Get per-zoom tile ranges for given bbox and zoom range"""
        TileCalculator.check_zoom_range(min_zoom, max_zoom)
        return [TileCalculator.tile_range(bbox, zoom) for zoom in range(min_zoom, max_zoom + 1)]

    @staticmethod
    def calculate_tile_count(bbox: BoundingBox, min_zoom: int, max_zoom: int) -> int:
        """Calculate total number of tiles for given bbox and zoom range"""
        return sum(len(r) for r in TileCalculator.get_ranges_for_bbox(bbox, min_zoom, max_zoom))
