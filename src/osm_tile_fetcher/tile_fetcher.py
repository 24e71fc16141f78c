#!/usr/bin/env python3
"""
OSM Tile Fetcher - Main Entry Point
Downloads slippy-map tiles for a bounding box and zoom range
"""

import sys
from typing import List, Optional

from osm_tile_fetcher.core.tile_fetch_manager import TileFetchManager
from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import TileFetcherException


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tile fetcher application"""
    try:
        manager = TileFetchManager()
        return manager.run_from_command_line(argv)

    except KeyboardInterrupt:
        print("\nDownload interrupted by user.", file=sys.stderr)
        return 1
    except TileFetcherException as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        print("Please check your configuration and try again.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
