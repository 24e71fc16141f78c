import threading
from string import Formatter
from typing import Dict, List, Sequence

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import TemplateError
from osm_tile_fetcher.models.tile import Tile

SUBDOMAINS = ('a', 'b', 'c')
SUPPORTED_TOKENS = frozenset({'x', 'y', 'z', 's'})


class UrlTemplate:
    """Tile URL formatter.

    Supported tokens are ``{x}``, ``{y}``, ``{z}`` and ``{s}``. The subdomain
    token cycles through ``a``, ``b``, ``c`` using a counter shared by every
    thread that renders through the same instance, so consecutive renders
    spread requests across mirrors.

    Example::

        template = UrlTemplate("https://{s}.tile.example.org/{z}/{x}/{y}.png")
        template.render(Tile(1, 2, 3))  # https://a.tile.example.org/3/1/2.png
        template.render(Tile(1, 2, 3))  # https://b.tile.example.org/3/1/2.png
    """

    def __init__(self, format_str: str, subdomains: Sequence[str] = SUBDOMAINS):
        self.format_str = format_str
        self.subdomains = tuple(subdomains)
        self._counter = 0
        self._lock = threading.Lock()

    def validate(self) -> List[str]:
        """Return the tokens used by the template, raising TemplateError if any is unsupported"""
        tokens = []
        try:
            parsed = list(Formatter().parse(self.format_str))
        except ValueError as e:
            raise TemplateError(f"Malformed URL template {self.format_str!r}: {e}") from e

        for _, field_name, format_spec, conversion in parsed:
            if field_name is None:
                continue
            if field_name not in SUPPORTED_TOKENS:
                raise TemplateError(
                    f"Unsupported token {{{field_name}}} in URL template {self.format_str!r}"
                )
            if format_spec or conversion:
                raise TemplateError(
                    f"Format specifiers are not supported in URL template {self.format_str!r}"
                )
            tokens.append(field_name)
        return tokens

    def next_subdomain(self) -> str:
        with self._lock:
            value = self._counter
            self._counter += 1
        return self.subdomains[value % len(self.subdomains)]

    def render(self, tile: Tile) -> str:
        """Generate the download URL for ``tile``"""
        tokens = self.validate()

        values: Dict[str, str] = {
            'x': str(tile.x),
            'y': str(tile.y),
            'z': str(tile.z),
        }
        if 's' in tokens:
            values['s'] = self.next_subdomain()

        return self.format_str.format(**values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, UrlTemplate):
            return NotImplemented
        return self.format_str == other.format_str

    def __hash__(self) -> int:
        return hash(self.format_str)

    def __repr__(self) -> str:
        return f"UrlTemplate({self.format_str!r})"
