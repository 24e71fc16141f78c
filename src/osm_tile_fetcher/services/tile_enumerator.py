from typing import Iterator, List

from osm_tile_fetcher.models.tile import BoundingBox, Tile, TileRange
from osm_tile_fetcher.utils.tile_calculator import TileCalculator


class TileEnumerator:
    """Lazy, re-iterable sequence of the tiles covering a bounding box.

    Tiles are ordered by zoom, then x, then y. Each iteration starts a fresh
    traversal; nothing is materialized, and ``len()`` is computed from the
    per-zoom ranges.
    """

    def __init__(self, bbox: BoundingBox, min_zoom: int, max_zoom: int):
        TileCalculator.check_zoom_range(min_zoom, max_zoom)
        self.bbox = bbox
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom

    def ranges(self) -> List[TileRange]:
        return TileCalculator.get_ranges_for_bbox(self.bbox, self.min_zoom, self.max_zoom)

    def __iter__(self) -> Iterator[Tile]:
        for zoom in range(self.min_zoom, self.max_zoom + 1):
            yield from TileCalculator.tile_range(self.bbox, zoom)

    def __len__(self) -> int:
        return TileCalculator.calculate_tile_count(self.bbox, self.min_zoom, self.max_zoom)

    def __repr__(self) -> str:
        return f"TileEnumerator({self.bbox!r}, {self.min_zoom}, {self.max_zoom})"
