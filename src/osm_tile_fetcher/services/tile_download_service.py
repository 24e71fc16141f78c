import logging
import os
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm
from urllib3.exceptions import InvalidHeader
from urllib3.util.retry import Retry

from osm_tile_fetcher import USER_AGENT
from osm_tile_fetcher.exceptions.tile_fetcher_exceptions import (
    DownloadError, SessionError, TemplateError,
)
from osm_tile_fetcher.interfaces.tile_fetcher import ITileDownloader
from osm_tile_fetcher.models.fetch_config import FetchConfig
from osm_tile_fetcher.models.tile import Tile
from osm_tile_fetcher.models.url_template import UrlTemplate
from osm_tile_fetcher.services.tile_enumerator import TileEnumerator
from osm_tile_fetcher.utils.file_utils import FileUtils

logger = logging.getLogger(__name__)

BACKOFF_DELAY = 10.0  # seconds
CHUNK_SIZE = 64 * 1024

# Errors that count as a failed attempt
ATTEMPT_ERRORS = (requests.RequestException, TemplateError, OSError)


class TileStatus(Enum):
    SAVED = 'saved'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass(frozen=True)
class TileResult:
    tile: Tile
    status: TileStatus
    attempts: int = 0
    error: Optional[DownloadError] = None


class TileDownloadService(ITileDownloader):
    """Service for downloading map tiles.

    A run drains a TileEnumerator through a thread pool sized to the
    configured concurrency. Each tile is retried on failure after a fixed
    backoff; HTTP 429 responses pause for ``Retry-After`` seconds and resend
    the same request without spending the retry budget.
    """

    def __init__(self, retry_delay: float = BACKOFF_DELAY,
                 rate_limit_delay: float = BACKOFF_DELAY,
                 show_progress: bool = True,
                 sleep: Callable[[float], None] = time.sleep):
        self.retry_delay = retry_delay
        self.rate_limit_delay = rate_limit_delay
        self.show_progress = show_progress
        self.sleep = sleep

    def create_session(self, config: FetchConfig) -> requests.Session:
        """Create the session shared by every worker of a run"""
        session = requests.Session()

        # Retries are handled per tile, never inside urllib3
        adapter = HTTPAdapter(
            max_retries=Retry(total=0, raise_on_status=False),
            pool_connections=config.concurrency,
            pool_maxsize=config.concurrency
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers['User-Agent'] = USER_AGENT

        return session

    def retry_after(self, response) -> float:
        """Seconds to wait after a 429 response"""
        header = response.headers.get('Retry-After')
        if header is None:
            return self.rate_limit_delay
        try:
            return Retry().parse_retry_after(header)
        except InvalidHeader:
            logger.debug(f"Ignoring unparsable Retry-After header {header!r}")
            return self.rate_limit_delay

    def _write_stream(self, response, tile_path: Path) -> None:
        FileUtils.ensure_directory_exists(tile_path.parent)
        partial_path = tile_path.with_name(tile_path.name + '.part')
        try:
            with open(partial_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
            os.replace(partial_path, tile_path)
        except BaseException:
            if partial_path.exists():
                partial_path.unlink()
            raise

    def _attempt(self, tile: Tile, tile_path: Path, url_template: UrlTemplate,
                 session: requests.Session, config: FetchConfig) -> None:
        """One attempt at a tile; raises one of ATTEMPT_ERRORS on failure"""
        url = url_template.render(tile)

        while True:
            logger.debug(f"Requesting tile {tile} from {url}")
            response = session.get(url, timeout=config.request_timeout, stream=True)

            if response.status_code == 429:
                delay = self.retry_after(response)
                response.close()
                logger.warning(f"Rate limited fetching tile {tile}, waiting {delay:.0f}s")
                self.sleep(delay)
                continue

            try:
                response.raise_for_status()
                self._write_stream(response, tile_path)
            finally:
                response.close()
            return

    def download_tile(self, tile: Tile, output_dir: Path, url_template: UrlTemplate,
                      session: requests.Session, config: FetchConfig) -> TileResult:
        """Download a single tile to ``output_dir/z/x/y.png``"""
        tile_path = FileUtils.get_tile_path(output_dir, tile.z, tile.x, tile.y)

        if not config.fetch_existing and FileUtils.file_exists(tile_path):
            logger.debug(f"Skipping existing tile {tile}")
            return TileResult(tile, TileStatus.SKIPPED)

        attempts = config.retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                self._attempt(tile, tile_path, url_template, session, config)
                return TileResult(tile, TileStatus.SAVED, attempts=attempt)
            except ATTEMPT_ERRORS as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        f"Attempt {attempt}/{attempts} for tile {tile} failed: {e}"
                    )
                    self.sleep(self.retry_delay)

        error = DownloadError(tile, last_error)
        logger.error(str(error))
        return TileResult(tile, TileStatus.FAILED, attempts=attempts, error=error)

    def _record(self, done: Set[Future], pending: Dict[Future, Tile],
                results: Dict[str, Any], progress: tqdm) -> None:
        for future in done:
            tile = pending.pop(future)
            try:
                result: TileResult = future.result()
            except Exception as e:
                logger.exception(f"Unexpected error fetching tile {tile}")
                result = TileResult(tile, TileStatus.FAILED, error=DownloadError(tile, e))
            if result.status is TileStatus.SAVED:
                results['saved'] += 1
            elif result.status is TileStatus.SKIPPED:
                results['skipped'] += 1
            else:
                results['failed'] += 1
                results['errors'].append(f"{result.tile}: {result.error.cause}")
            progress.update(1)

    def run(self, config: FetchConfig) -> Dict[str, Any]:
        """Fetch every tile of ``config`` and save it under the output directory.

        Only setup problems raise; per-tile failures are collected in the
        returned ``errors`` list.
        """
        output_dir = FileUtils.prepare_output_dir(config.output_dir)
        tiles = TileEnumerator(config.bounding_box, config.min_zoom, config.max_zoom)
        url_template = UrlTemplate(config.url_template)

        try:
            session = self.create_session(config)
        except Exception as e:
            raise SessionError(f"Failed creating HTTP session: {e}") from e

        results = {
            'total': len(tiles),
            'saved': 0,
            'skipped': 0,
            'failed': 0,
            'errors': []
        }
        logger.info(
            f"Fetching {results['total']} tiles, zoom {config.min_zoom}-{config.max_zoom}, "
            f"into {output_dir}"
        )

        # Bounded submission window keeps memory flat for huge boxes
        window = config.concurrency * 2

        try:
            with ThreadPoolExecutor(max_workers=config.concurrency) as executor, \
                    logging_redirect_tqdm(), \
                    tqdm(total=results['total'], unit='tile', disable=not self.show_progress) as progress:
                pending: Dict[Future, Tile] = {}
                for tile in tiles:
                    if len(pending) >= window:
                        done, _ = wait(pending, return_when=FIRST_COMPLETED)
                        self._record(done, pending, results, progress)
                    future = executor.submit(
                        self.download_tile, tile, output_dir, url_template, session, config
                    )
                    pending[future] = tile

                done, _ = wait(pending)
                self._record(done, pending, results, progress)
        finally:
            session.close()

        logger.info(
            f"Finished: {results['saved']} saved, {results['skipped']} skipped, "
            f"{results['failed']} failed"
        )
        return results
