from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import TemplateError
from osm_tile_fetcher.models.tile import Tile
from osm_tile_fetcher.models.url_template import UrlTemplate


def test_render_substitutes_coordinates():
    template = UrlTemplate("https://tile.example.org/{z}/{x}/{y}.png")

    assert template.render(Tile(1, 2, 3)) == "https://tile.example.org/3/1/2.png"


def test_subdomains_cycle_in_order():
    template = UrlTemplate("https://{s}.foo.com/{x}/{y}/{z}.png")
    tile = Tile(1, 2, 3)

    urls = [template.render(tile) for _ in range(6)]

    assert urls[0] == "https://a.foo.com/1/2/3.png"
    assert [u.split('.')[0] for u in urls] == ["https://a", "https://b", "https://c"] * 2


def test_unsupported_token_fails_without_substitution():
    template = UrlTemplate("https://{s}.foo.com/{q}/{x}/{y}/{z}.png")

    with pytest.raises(TemplateError, match="q"):
        template.render(Tile(1, 2, 3))

    # The failed render must not advance the subdomain counter
    assert template.next_subdomain() == "a"


@pytest.mark.parametrize("format_str", [
    "https://foo.com/{x}/{y",
    "https://foo.com/{x}}/{y}",
    "https://foo.com/{}/{y}",
    "https://foo.com/{0}/{y}",
    "https://foo.com/{x:>5}/{y}",
    "https://foo.com/{x!r}/{y}",
])
def test_malformed_templates(format_str):
    with pytest.raises(TemplateError):
        UrlTemplate(format_str).render(Tile(1, 2, 3))


def test_template_without_subdomain_keeps_counter():
    template = UrlTemplate("https://foo.com/{z}/{x}/{y}.png")

    template.render(Tile(0, 0, 1))
    template.render(Tile(0, 0, 1))

    assert template.next_subdomain() == "a"


def test_counter_is_shared_across_threads():
    template = UrlTemplate("https://{s}.foo.com/{z}/{x}/{y}.png")
    tile = Tile(5, 6, 7)

    with ThreadPoolExecutor(max_workers=8) as executor:
        urls = list(executor.map(lambda _: template.render(tile), range(300)))

    counts = Counter(u[len("https://"):].split('.')[0] for u in urls)
    assert counts == {"a": 100, "b": 100, "c": 100}


def test_equality_uses_format_string():
    assert UrlTemplate("https://{s}.x/{z}") == UrlTemplate("https://{s}.x/{z}")
    assert UrlTemplate("https://{s}.x/{z}") != UrlTemplate("https://{s}.y/{z}")
