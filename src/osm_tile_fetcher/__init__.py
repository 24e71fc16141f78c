"""OSM Tile Fetcher - download slippy-map tiles for a bounding box"""

__version__ = "0.1.0"

USER_AGENT = f"osm-tile-fetcher/{__version__}"
