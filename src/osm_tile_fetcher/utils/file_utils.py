import os
from pathlib import Path
from typing import Union

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError

PathLike = Union[str, Path]

SIZE_UNITS = ['B', 'kB', 'MB', 'GB', 'TB']


class FileUtils:
    """Utility class for file operations"""

    @staticmethod
    def ensure_directory_exists(directory_path: PathLike) -> None:
        """Create directory if it doesn't exist"""
        os.makedirs(directory_path, exist_ok=True)

    @staticmethod
    def prepare_output_dir(output_dir: PathLike) -> Path:
        """Create the root output directory, refusing paths that are regular files"""
        path = Path(output_dir)
        if path.exists() and not path.is_dir():
            raise ConfigurationError(f"Output path {path} exists and is not a directory")
        try:
            FileUtils.ensure_directory_exists(path)
        except OSError as e:
            raise ConfigurationError(f"Failed to create output directory {path}: {e}") from e
        return path

    @staticmethod
    def get_tile_path(output_dir: PathLike, zoom: int, x: int, y: int,
                      extension: str = 'png') -> Path:
        """Generate tile file path: <output_dir>/<z>/<x>/<y>.<ext>"""
        return Path(output_dir) / str(zoom) / str(x) / f"{y}.{extension}"

    @staticmethod
    def file_exists(file_path: PathLike) -> bool:
        """Check if file exists"""
        return os.path.isfile(file_path)

    @staticmethod
    def format_size(num_bytes: float) -> str:
        """Human readable size using decimal units (1 kB = 1000 B)"""
        value = float(num_bytes)
        for unit in SIZE_UNITS[:-1]:
            if abs(value) < 1000:
                return f"{value:.0f} {unit}" if unit == 'B' else f"{value:.2f} {unit}"
            value /= 1000
        return f"{value:.2f} {SIZE_UNITS[-1]}"
