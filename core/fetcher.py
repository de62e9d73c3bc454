"""
CSV source loading.

Dashboard CSVs are served over HTTP in production and read from disk in
development. Both paths raise CsvLoadError so callers have a single failure
type to convert into a "not loaded" advisory.
"""
import logging
import time
from pathlib import Path

import requests

from config import FETCH_TIMEOUT_SECONDS
from utils.metrics import metrics

log = logging.getLogger("RatedCapacity")


class CsvLoadError(Exception):
    """Raised when a CSV source cannot be read."""


def is_remote(location: str) -> bool:
    return location.lower().startswith(("http://", "https://"))


def fetch_csv_text(url: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> str:
    """
    GET ``url`` with a cache-busting ``v`` parameter and return the body.

    The body is decoded as UTF-8 with any leading BOM removed, whatever
    charset the server declares.

    Raises:
        CsvLoadError: On connection errors, timeouts, a non-2xx status or a
            body that is not valid UTF-8
    """
    try:
        response = requests.get(
            url,
            params={"v": int(time.time() * 1000)},
            timeout=timeout,
        )
    except requests.Timeout as e:
        raise CsvLoadError(f"Timed out fetching {url}") from e
    except requests.RequestException as e:
        raise CsvLoadError(f"Failed to fetch {url}: {e}") from e

    if not response.ok:
        raise CsvLoadError(f"HTTP {response.status_code} for {url}")
    try:
        return response.content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvLoadError(f"Failed to decode {url}: {e}") from e


def read_csv_file(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise CsvLoadError(f"Failed to read {path}: {e}") from e


def load_csv_text(location: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> str:
    """
    Load CSV text from an http(s) URL or a local path.

    Examples:
        >>> text = load_csv_text("data/Capacity.csv")
        >>> text.splitlines()[0]
        'Coal,Oil & Gas,Nuclear,Hydro,Solar,Wind,Small-Hydro,Bio Power'
    """
    start = time.time()
    try:
        text = fetch_csv_text(location, timeout) if is_remote(location) else read_csv_file(location)
    except CsvLoadError as e:
        metrics.log_csv_load(ok=False)
        log.error(f"❌ CSV load failed: {e}")
        raise

    metrics.log_csv_load(ok=True)
    log.info(f"✅ Loaded {location} ({len(text)} chars) in {time.time() - start:.2f}s")
    return text
