import os
import sys

import pytest

# Allow running the suite without installing the package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from osm_tile_fetcher.models.tile import BoundingBox  # noqa: E402


@pytest.fixture
def aachen_bbox() -> BoundingBox:
    return BoundingBox.from_degrees(north=50.811, south=50.7492, east=6.1649, west=6.031)
