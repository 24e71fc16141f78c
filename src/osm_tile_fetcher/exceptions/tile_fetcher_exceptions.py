class TileFetcherException(Exception):
    """Base exception for tile fetcher"""
    pass


class ConfigurationError(TileFetcherException):
    """Configuration related errors"""
    pass


class ValidationError(ConfigurationError):
    """Coordinate and range validation errors"""
    pass


class TemplateError(TileFetcherException):
    """Malformed URL template or unsupported token"""
    pass


class SessionError(TileFetcherException):
    """HTTP session could not be constructed"""
    pass


class DownloadError(TileFetcherException):
    """A tile exhausted its retry budget"""

    def __init__(self, tile, cause: Exception):
        self.tile = tile
        self.cause = cause
        super().__init__(f"Failed fetching tile {tile}: {cause}")
