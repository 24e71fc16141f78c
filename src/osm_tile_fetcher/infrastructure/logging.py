"""Logging configuration"""
import logging
import sys
from typing import Any, Dict, Optional, Union

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty HTTP libraries only report warnings
QUIET_LOGGERS = ('urllib3', 'requests')


class LoggingManager:
    """Manages application logging configuration"""

    @staticmethod
    def resolve_level(level: Union[int, str]) -> int:
        """Turn a level name such as ``debug`` or a number into a logging level"""
        if isinstance(level, int):
            return level
        resolved = logging.getLevelName(str(level).upper())
        if not isinstance(resolved, int):
            raise ConfigurationError(f"Unknown log level {level!r}")
        return resolved

    @staticmethod
    def setup_logging(config: Dict[str, Any], level: Optional[Union[int, str]] = None) -> int:
        """Setup logging from the ``logging`` section of the configuration.

        ``level`` comes from ``--log-level`` and wins over the configured one.
        Records go to stdout; while a download runs they are routed through
        tqdm so the progress bar stays intact.
        """
        logging_config = config.get('logging', {})
        resolved = LoggingManager.resolve_level(
            level if level is not None else logging_config.get('level', 'INFO')
        )

        logging.basicConfig(
            level=resolved,
            format=logging_config.get('format', DEFAULT_FORMAT),
            stream=sys.stdout
        )
        logging.getLogger().setLevel(resolved)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

        return resolved
