from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from osm_tile_fetcher.models.tile import BoundingBox


@dataclass(frozen=True)
class FetchConfig:
    """Data model for a single fetch run"""
    bounding_box: BoundingBox
    min_zoom: int
    max_zoom: int
    output_dir: Path
    url_template: str
    concurrency: int = 5
    retries: int = 3
    timeout: float = 10  # seconds, 0 disables the timeout
    fetch_existing: bool = False

    @property
    def request_timeout(self) -> Optional[float]:
        """Timeout in the form requests expects"""
        return self.timeout if self.timeout > 0 else None


@dataclass(frozen=True)
class Region:
    """Data model for a named geographic region"""
    name: str
    bounding_box: BoundingBox
    min_zoom: Optional[int] = None
    max_zoom: Optional[int] = None
    description: str = ''
