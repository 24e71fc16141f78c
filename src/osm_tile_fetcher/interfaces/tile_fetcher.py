from abc import ABC, abstractmethod
from typing import Dict, Any


class ITileDownloader(ABC):
    """Interface for tile downloader implementations"""
    
    @abstractmethod
    def download_tile(self, tile, output_dir, url_template, session, config):
        """Download a single tile and report its terminal state"""
        pass
    
    @abstractmethod
    def run(self, config) -> Dict[str, Any]:
        """Download every tile described by ``config``"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""
    
    @abstractmethod
    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file"""
        pass
    
    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
