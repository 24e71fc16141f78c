import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError, ValidationError
from osm_tile_fetcher.interfaces.tile_fetcher import IConfigLoader
from osm_tile_fetcher.models.fetch_config import FetchConfig, Region
from osm_tile_fetcher.models.tile import BoundingBox
from osm_tile_fetcher.utils.tile_calculator import TileCalculator

DEFAULT_CONFIG: Dict[str, Any] = {
    'output_dir': 'output',
    'url': None,
    'concurrency': 5,
    'retries': 3,
    'timeout': 10,
    'min_zoom': 1,
    'max_zoom': 18,
    'fetch_existing': False,
    'logging': {'level': 'INFO'},
    'regions': {},
}

# Known boxes available without a config file, matched by name prefix
BUILTIN_REGIONS: Dict[str, Dict[str, Any]] = {
    'usa': {
        'north': 49.4325, 'south': 23.8991, 'east': -65.7421, 'west': -125.3321,
        'description': 'Contiguous United States',
    },
    'aachen': {
        'north': 50.811, 'south': 50.7492, 'east': 6.1649, 'west': 6.031,
        'description': 'Aachen, Germany',
    },
}

MAX_CONCURRENCY = 255


class ConfigService(IConfigLoader):
    """Service for loading and validating configuration"""

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from a JSON file, filling in defaults.

        Without a path the defaults are returned as-is.
        """
        config = copy.deepcopy(DEFAULT_CONFIG)
        if config_path is None:
            return config

        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config file {config_path} not found!")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading config {config_path}: {e}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")

        for key, value in loaded.items():
            if key == 'logging' and isinstance(value, dict):
                config['logging'].update(value)
            else:
                config[key] = value

        self.validate_config(config)
        return config

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration structure"""
        for key in ('concurrency', 'retries', 'min_zoom', 'max_zoom'):
            if not isinstance(config.get(key), int) or isinstance(config.get(key), bool):
                raise ValidationError(f"{key} must be an integer")

        if not isinstance(config.get('timeout'), (int, float)):
            raise ValidationError("timeout must be a number")

        if not isinstance(config.get('fetch_existing'), bool):
            raise ValidationError("fetch_existing must be true or false")

        if not isinstance(config.get('regions'), dict):
            raise ValidationError("regions must be a dictionary")

        for name, region in config['regions'].items():
            if not isinstance(region, dict) or 'bbox' not in region:
                raise ValidationError(f"Region '{name}' needs a bbox")

        return True

    def list_regions(self, config: Dict[str, Any]) -> List[Region]:
        """Configured regions followed by the built-in ones"""
        regions = [self._configured_region(name, data)
                   for name, data in config.get('regions', {}).items()]
        regions.extend(self._builtin_region(name) for name in BUILTIN_REGIONS)
        return regions

    def get_region(self, config: Dict[str, Any], region_name: str) -> Region:
        """Get region by name: exact match in the config, then built-in prefix match"""
        regions = config.get('regions', {})
        if region_name in regions:
            return self._configured_region(region_name, regions[region_name])

        lowered = region_name.lower()
        for name in BUILTIN_REGIONS:
            if lowered and (lowered.startswith(name) or name.startswith(lowered)):
                return self._builtin_region(name)

        raise ConfigurationError(f"Region '{region_name}' not found")

    def _configured_region(self, name: str, data: Dict[str, Any]) -> Region:
        return Region(
            name=name,
            bounding_box=BoundingBox.from_lonlat_bbox(data['bbox']),
            min_zoom=data.get('min_zoom'),
            max_zoom=data.get('max_zoom'),
            description=data.get('description', '')
        )

    def _builtin_region(self, name: str) -> Region:
        data = BUILTIN_REGIONS[name]
        return Region(
            name=name,
            bounding_box=BoundingBox.from_degrees(
                north=data['north'], south=data['south'],
                east=data['east'], west=data['west']
            ),
            description=data['description']
        )

    def build_fetch_config(self, config: Dict[str, Any], bounding_box: BoundingBox) -> FetchConfig:
        """Validate ranges and freeze the settings of one run"""
        url = config.get('url')
        if not url:
            raise ConfigurationError("A tile URL template is required")

        concurrency = config['concurrency']
        if not 1 <= concurrency <= MAX_CONCURRENCY:
            raise ConfigurationError(f"concurrency must be within 1-{MAX_CONCURRENCY}, got {concurrency}")
        if config['retries'] < 0:
            raise ConfigurationError(f"retries must be >= 0, got {config['retries']}")
        if config['timeout'] < 0:
            raise ConfigurationError(f"timeout must be >= 0, got {config['timeout']}")

        TileCalculator.check_zoom_range(config['min_zoom'], config['max_zoom'])

        return FetchConfig(
            bounding_box=bounding_box,
            min_zoom=config['min_zoom'],
            max_zoom=config['max_zoom'],
            output_dir=Path(config['output_dir']),
            url_template=url,
            concurrency=concurrency,
            retries=config['retries'],
            timeout=config['timeout'],
            fetch_existing=config['fetch_existing']
        )
