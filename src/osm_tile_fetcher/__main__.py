import sys

from osm_tile_fetcher.tile_fetcher import main

sys.exit(main())
