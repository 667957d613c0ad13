from __future__ import annotations
import io, logging, os
from typing import Dict, Mapping, Optional
import pandas as pd
import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series"
)
FILE_PATTERN = "time_series_covid19_{name}_global.csv"

# key -> dataset name used in the file pattern
DATASETS: Dict[str, str] = {
    "Confirmed": "confirmed",
    "Deaths": "deaths",
    "Recovered": "recovered",
}


class FetchError(Exception):
    """Raised when a source table cannot be retrieved or parsed."""

    def __init__(self, url: str, detail: str = "") -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Could not load {url}: {detail}")


def build_urls(base_url: str = DEFAULT_BASE_URL,
               datasets: Mapping[str, str] = DATASETS) -> Dict[str, str]:
    base = base_url.rstrip("/")
    return {key: f"{base}/{FILE_PATTERN.format(name=name)}" for key, name in datasets.items()}


def _parse_csv(text: str, source: str) -> pd.DataFrame:
    if not text or not text.strip():
        raise FetchError(source, "empty body")
    try:
        df = pd.read_csv(io.StringIO(text))
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise FetchError(source, f"unparsable CSV ({e})") from e
    if df.shape[1] < 2:
        raise FetchError(source, f"expected a delimited table, got columns {list(df.columns)}")
    return df


def fetch_table(url: str, *, session: Optional[requests.Session] = None,
                timeout: float = 60) -> pd.DataFrame:
    """GET one CSV and return it as a wide DataFrame. Any failure is fatal."""
    getter = session if session is not None else requests
    try:
        r = getter.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        raise FetchError(url, f"{type(e).__name__}: {e}") from e
    df = _parse_csv(r.text, url)
    logger.info("Fetched %s (%d rows x %d columns)", url, df.shape[0], df.shape[1])
    return df


def fetch_series(
    base_url: str = DEFAULT_BASE_URL,
    *,
    datasets: Mapping[str, str] = DATASETS,
    session: Optional[requests.Session] = None,
    timeout: float = 60,
) -> Dict[str, pd.DataFrame]:
    """
    Download the three global time-series tables.
    Returns {"Confirmed": df, "Deaths": df, "Recovered": df}; no retries,
    the first failing source aborts the whole load.
    """
    urls = build_urls(base_url, datasets)
    return {key: fetch_table(url, session=session, timeout=timeout) for key, url in urls.items()}


def load_local_series(directory: str,
                      datasets: Mapping[str, str] = DATASETS) -> Dict[str, pd.DataFrame]:
    """Same as fetch_series but reads previously downloaded files from disk."""
    out = {}
    for key, name in datasets.items():
        path = os.path.join(directory, FILE_PATTERN.format(name=name))
        try:
            with open(path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise FetchError(path, str(e)) from e
        out[key] = _parse_csv(text, path)
        logger.info("Loaded %s (%d rows)", path, len(out[key]))
    return out
