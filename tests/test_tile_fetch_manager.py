import json

import pytest

from osm_tile_fetcher.core.tile_fetch_manager import TileFetchManager
from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import ConfigurationError
from osm_tile_fetcher.models.tile import BoundingBox
from osm_tile_fetcher.services.tile_enumerator import TileEnumerator
from osm_tile_fetcher.tile_fetcher import main
from osm_tile_fetcher.utils.file_utils import FileUtils

AACHEN_ARGS = ["-n", "50.811", "-s", "50.7492", "-e", "6.1649", "-w", "6.031"]


class RecordingService:
    """Stands in for TileDownloadService and records the configs it receives"""

    def __init__(self, errors=None):
        self.configs = []
        self.errors = errors or []
        self.show_progress = True

    def run(self, config):
        self.configs.append(config)
        total = len(TileEnumerator(config.bounding_box, config.min_zoom, config.max_zoom))
        return {
            "total": total,
            "saved": total - len(self.errors),
            "skipped": 0,
            "failed": len(self.errors),
            "errors": list(self.errors),
        }


def test_dry_run_reports_count_on_stderr(capsys, aachen_bbox):
    service = RecordingService()
    manager = TileFetchManager(download_service=service)

    code = manager.run_from_command_line(AACHEN_ARGS + ["-z", "14", "--dry-run"])

    count = len(TileEnumerator(aachen_bbox, 14, 14))
    err = capsys.readouterr().err
    assert code == 0
    assert service.configs == []
    assert f"would download {count} tiles" in err
    assert FileUtils.format_size(count * 10_000) in err


def test_cli_builds_fetch_config(tmp_path, capsys, aachen_bbox):
    service = RecordingService()
    manager = TileFetchManager(download_service=service)

    code = manager.run_from_command_line(AACHEN_ARGS + [
        "--min-zoom", "10", "--max-zoom", "12", "-r", "8", "--retries", "0", "-t", "0",
        "-o", str(tmp_path / "out"), "-u", "https://{s}.tile.example.org/{z}/{x}/{y}.png",
        "--fetch-existing", "--no-progress",
    ])

    assert code == 0
    [config] = service.configs
    assert config.bounding_box == aachen_bbox
    assert (config.min_zoom, config.max_zoom) == (10, 12)
    assert config.concurrency == 8
    assert config.retries == 0
    assert config.request_timeout is None
    assert config.fetch_existing is True
    assert config.output_dir == tmp_path / "out"
    assert service.show_progress is False
    assert "Done:" in capsys.readouterr().out


def test_failures_printed_after_run(capsys):
    service = RecordingService(errors=["10/529/343: HTTP 500"])
    manager = TileFetchManager(download_service=service)

    code = manager.run_from_command_line(AACHEN_ARGS + ["-z", "10", "-u", "https://x/{z}/{x}/{y}.png"])

    captured = capsys.readouterr()
    assert code == 0
    assert "Failed fetching tile 10/529/343: HTTP 500" in captured.err
    assert "1 failed" in captured.out


def test_region_and_config_file(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "url": "https://tile.example.org/{z}/{x}/{y}.png",
        "retries": 5,
        "regions": {"bonn": {"bbox": [7.0, 50.6, 7.2, 50.8], "min_zoom": 11, "max_zoom": 13}},
    }), encoding="utf-8")
    service = RecordingService()
    manager = TileFetchManager(download_service=service)

    manager.run_from_command_line(["--config", str(config_path), "--region", "bonn"])

    [config] = service.configs
    assert (config.min_zoom, config.max_zoom) == (11, 13)
    assert config.retries == 5
    assert config.bounding_box == BoundingBox.from_lonlat_bbox([7.0, 50.6, 7.2, 50.8])


def test_explicit_zoom_beats_region_zoom():
    service = RecordingService()
    manager = TileFetchManager(download_service=service)

    manager.run_from_command_line(["-f", "aachen", "-z", "9", "-u", "https://x/{z}/{x}/{y}.png"])

    [config] = service.configs
    assert (config.min_zoom, config.max_zoom) == (9, 9)


def test_geojson_bounding_box(tmp_path):
    geojson = tmp_path / "area.geojson"
    geojson.write_text(json.dumps({
        "type": "Feature",
        "properties": {},
        "geometry": {"type": "LineString", "coordinates": [[6.031, 50.7492], [6.1649, 50.811]]},
    }), encoding="utf-8")
    service = RecordingService()
    manager = TileFetchManager(download_service=service)

    manager.run_from_command_line(["--geojson", str(geojson), "-z", "12", "-u", "https://x/{z}/{x}/{y}.png"])

    [config] = service.configs
    assert config.bounding_box == BoundingBox.from_degrees(north=50.811, south=50.7492, east=6.1649, west=6.031)


def test_partial_coordinates_rejected():
    manager = TileFetchManager(download_service=RecordingService())

    with pytest.raises(ConfigurationError):
        manager.run_from_command_line(["-n", "50.0", "-s", "49.0", "-u", "https://x/{z}/{x}/{y}.png"])


@pytest.mark.parametrize("argv", [
    AACHEN_ARGS[:1] + ["181"] + AACHEN_ARGS[2:],
    AACHEN_ARGS + ["-z", "0"],
    AACHEN_ARGS + ["-r", "0"],
    AACHEN_ARGS + ["-r", "256"],
    AACHEN_ARGS + ["--retries", "-1"],
])
def test_argument_validation(argv):
    manager = TileFetchManager(download_service=RecordingService())

    with pytest.raises(SystemExit) as exc:
        manager.run_from_command_line(argv)
    assert exc.value.code == 2


def test_main_reports_configuration_errors(capsys):
    code = main(AACHEN_ARGS + ["--min-zoom", "5", "--max-zoom", "4", "-u", "https://x/{z}/{x}/{y}.png"])

    assert code == 1
    assert "Error:" in capsys.readouterr().err


def test_main_rejects_unknown_log_level(capsys):
    code = main(AACHEN_ARGS + ["-z", "10", "--dry-run", "--log-level", "chatty"])

    assert code == 1
    assert "Unknown log level" in capsys.readouterr().err


def test_main_rejects_file_output_dir(tmp_path, capsys):
    occupied = tmp_path / "occupied"
    occupied.write_text("file")

    code = main(AACHEN_ARGS + ["-z", "10", "-o", str(occupied), "-u", "https://x/{z}/{x}/{y}.png"])

    assert code == 1
    assert "not a directory" in capsys.readouterr().err


def test_list_regions(capsys):
    manager = TileFetchManager(download_service=RecordingService())

    assert manager.run_from_command_line(["--list-regions"]) == 0
    out = capsys.readouterr().out
    assert "usa" in out
    assert "aachen" in out


@pytest.mark.parametrize("num_bytes,expected", [
    (0, "0 B"),
    (999, "999 B"),
    (10_000, "10.00 kB"),
    (2_500_000, "2.50 MB"),
    (7_000_000_000_000_000, "7000.00 TB"),
])
def test_format_size(num_bytes, expected):
    assert FileUtils.format_size(num_bytes) == expected
