import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from osm_tile_fetcher import __version__
from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError
from osm_tile_fetcher.infrastructure.logging import LoggingManager
from osm_tile_fetcher.models.fetch_config import FetchConfig
from osm_tile_fetcher.models.tile import BoundingBox
from osm_tile_fetcher.services.config_service import MAX_CONCURRENCY, ConfigService
from osm_tile_fetcher.services.tile_download_service import TileDownloadService
from osm_tile_fetcher.services.tile_enumerator import TileEnumerator
from osm_tile_fetcher.utils.file_utils import FileUtils

logger = logging.getLogger(__name__)

ESTIMATED_TILE_SIZE = 10_000  # bytes


def geo_coord(value: str) -> float:
    try:
        val = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError("must be numeric")
    if val < -180.0:
        raise argparse.ArgumentTypeError("must be >= -180°")
    if val > 180.0:
        raise argparse.ArgumentTypeError("must be <= 180°")
    return val


def int_at_least(minimum: int, maximum: Optional[int] = None):
    def parse(value: str) -> int:
        try:
            val = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError("must be an integer")
        if val < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}")
        if maximum is not None and val > maximum:
            raise argparse.ArgumentTypeError(f"must be <= {maximum}")
        return val
    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='osm-tile-fetcher',
        description='Download slippy-map tiles covering a bounding box into <output>/<z>/<x>/<y>.png.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            'Examples:\n\n'
            '1) Aachen at zoom 10:\n'
            '   osm-tile-fetcher -n 50.811 -s 50.7492 -e 6.1649 -w 6.031 -z 10 \\\n'
            '       -u "https://{s}.tile.openstreetmap.de/{z}/{x}/{y}.png"\n\n'
            '2) Named region, count only:\n'
            '   osm-tile-fetcher --region usa --max-zoom 8 --dry-run\n\n'
            '3) Bounding box of a GeoJSON file:\n'
            '   osm-tile-fetcher --geojson area.geojson --min-zoom 12 --max-zoom 14 -u URL'
        )
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-n', '--north', type=geo_coord, help='Latitude of north bounding box boundary (in degrees)')
    parser.add_argument('-s', '--south', type=geo_coord, help='Latitude of south bounding box boundary (in degrees)')
    parser.add_argument('-e', '--east', type=geo_coord, help='Longitude of east bounding box boundary (in degrees)')
    parser.add_argument('-w', '--west', type=geo_coord, help='Longitude of west bounding box boundary (in degrees)')
    parser.add_argument('-f', '--fixture', '--region', dest='region',
                        help='Use a known, named bounding box (e.g. usa, aachen, or a region from --config)')
    parser.add_argument('--geojson', help='Use the envelope of a GeoJSON file as bounding box')
    parser.add_argument('-r', '--rate', dest='concurrency', type=int_at_least(1, MAX_CONCURRENCY),
                        help='The amount of tiles fetched in parallel (default: 5)')
    parser.add_argument('--retries', type=int_at_least(0),
                        help='The amount of times to retry a failed HTTP request (default: 3)')
    parser.add_argument('-t', '--timeout', type=int_at_least(0),
                        help='Timeout in seconds for fetching a single tile, 0 for none (default: 10)')
    parser.add_argument('--min-zoom', type=int_at_least(1), help='The minimum zoom level to fetch (default: 1)')
    parser.add_argument('--max-zoom', type=int_at_least(1), help='The maximum zoom level to fetch (default: 18)')
    parser.add_argument('-z', '--zoom', type=int_at_least(1),
                        help='Only fetch a single zoom level (implies min=x/max=x)')
    parser.add_argument('-o', '--output', dest='output_dir', help='The folder to output the tiles to (default: output)')
    parser.add_argument('-u', '--url',
                        help='Tile URL with format specifiers {x}, {y}, {z}; {s} is replaced with a, b or c in turn')
    parser.add_argument('--fetch-existing', action='store_true', default=None,
                        help="Fetch tiles that we've already downloaded")
    parser.add_argument('--dry-run', action='store_true',
                        help="Don't fetch anything, just report how many tiles would be fetched")
    parser.add_argument('--config', help='JSON configuration file with defaults and regions')
    parser.add_argument('--log-level', help='Logging level (default: INFO)')
    parser.add_argument('--no-progress', action='store_true', help='Disable the progress bar')
    parser.add_argument('--list-regions', action='store_true', help='List named regions and exit')
    return parser


class TileFetchManager:
    """Main manager class for tile fetching operations"""

    def __init__(self, config_path: Optional[str] = None,
                 download_service: Optional[TileDownloadService] = None):
        self.config_service = ConfigService()
        self.config = self.config_service.load_config(config_path)
        self.download_service = download_service or TileDownloadService()

    def list_regions(self) -> None:
        """List available regions"""
        print("Available regions:")
        for region in self.config_service.list_regions(self.config):
            box = region.bounding_box.to_degrees()
            print(f"  {region.name}: {region.description or 'No description'}")
            print(f"      N {box['north']:.4f}  S {box['south']:.4f}  "
                  f"E {box['east']:.4f}  W {box['west']:.4f}")

    def apply_arguments(self, args: argparse.Namespace) -> Dict[str, Any]:
        """Merge command line values over the loaded configuration"""
        config = dict(self.config)
        for key in ('concurrency', 'retries', 'timeout', 'min_zoom', 'max_zoom',
                    'output_dir', 'url', 'fetch_existing'):
            value = getattr(args, key)
            if value is not None:
                config[key] = value

        if args.zoom is not None:
            config['min_zoom'] = config['max_zoom'] = args.zoom
        return config

    def resolve_bounding_box(self, args: argparse.Namespace, config: Dict[str, Any]) -> BoundingBox:
        coords = [args.north, args.south, args.east, args.west]
        given = [c is not None for c in coords]

        if args.region:
            region = self.config_service.get_region(config, args.region)
            # Region zooms only apply when none were given on the command line
            if args.zoom is None and args.min_zoom is None and region.min_zoom is not None:
                config['min_zoom'] = region.min_zoom
            if args.zoom is None and args.max_zoom is None and region.max_zoom is not None:
                config['max_zoom'] = region.max_zoom
            return region.bounding_box

        if args.geojson:
            try:
                with open(args.geojson, 'r', encoding='utf-8') as f:
                    geojson = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Failed to read GeoJSON {args.geojson}: {e}")
            return BoundingBox.from_geojson(geojson)

        if all(given):
            return BoundingBox.from_degrees(
                north=args.north, south=args.south, east=args.east, west=args.west
            )
        if any(given):
            raise ConfigurationError("--north, --south, --east and --west must be given together")
        raise ConfigurationError("Provide --north/--south/--east/--west, --region or --geojson")

    def dry_run(self, bbox: BoundingBox, min_zoom: int, max_zoom: int) -> int:
        """Report the tile count and an approximate download size"""
        tile_count = len(TileEnumerator(bbox, min_zoom, max_zoom))
        size = FileUtils.format_size(tile_count * ESTIMATED_TILE_SIZE)
        print(f"would download {tile_count} tiles (approx {size}, assuming 10 kb per tile)",
              file=sys.stderr)
        return tile_count

    def fetch(self, fetch_config: FetchConfig) -> Dict[str, Any]:
        """Run the download and print terminal failures and a summary"""
        result = self.download_service.run(fetch_config)

        for error in result['errors']:
            print(f"Failed fetching tile {error}", file=sys.stderr)

        print(f"Done: {result['saved']} saved, {result['skipped']} skipped, "
              f"{result['failed']} failed of {result['total']} tiles")
        return result

    def run_from_command_line(self, argv: Optional[List[str]] = None) -> int:
        """Run tile fetch command-line interface"""
        parser = build_parser()
        args = parser.parse_args(argv)

        if args.config:
            self.config = self.config_service.load_config(args.config)

        LoggingManager.setup_logging(self.config, args.log_level)

        if args.list_regions:
            self.list_regions()
            return 0

        if args.no_progress:
            self.download_service.show_progress = False

        config = self.apply_arguments(args)
        bbox = self.resolve_bounding_box(args, config)

        if args.dry_run:
            self.dry_run(bbox, config['min_zoom'], config['max_zoom'])
            return 0

        fetch_config = self.config_service.build_fetch_config(config, bbox)
        logger.debug(f"Fetch configuration: {fetch_config}")
        self.fetch(fetch_config)
        return 0
