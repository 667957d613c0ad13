from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping, Optional
import pandas as pd

logger = logging.getLogger(__name__)

# a column is an id column when its name starts with one of these
ID_COLUMNS = ("Province", "Country", "Lat", "Long")
OBS_COLUMNS = ["country", "province", "date", "count"]

# tried in order; time of day is discarded after parsing
DATE_FORMATS = ("%m/%d/%y %H:%M", "%m/%d/%y")

_WITH_TIME_RX = r"^(\d{1,2})[./-](\d{1,2})[./-](\d{2})[ ./-](\d{1,2})[.:](\d{2})$"
_DATE_ONLY_RX = r"^(\d{1,2})[./-](\d{1,2})[./-](\d{2})$"


def _find_column(columns: Iterable, prefix: str) -> Optional[str]:
    prefix = prefix.lower()
    for c in columns:
        if str(c).strip().lower().startswith(prefix):
            return c
    return None


def _is_id_column(name) -> bool:
    n = str(name).strip().lower()
    return any(n.startswith(p.lower()) for p in ID_COLUMNS)


def parse_date_labels(labels: Iterable) -> pd.Series:
    """
    Parse date column labels into calendar dates.

    Accepts month/day/2-digit-year, optionally followed by hour:minute, with
    '/', '.' or '-' separators (so both "1/22/20" and the mangled "X1.22.20"
    work). One leading non-digit marker is stripped first. Anything else
    becomes NaT.
    """
    s = pd.Series(list(labels), dtype="object").astype(str).str.strip()
    s = s.str.replace(r"^\D", "", regex=True)
    s = s.str.replace(_WITH_TIME_RX, r"\1/\2/\3 \4:\5", regex=True)
    s = s.str.replace(_DATE_ONLY_RX, r"\1/\2/\3", regex=True)

    parsed = pd.Series(pd.NaT, index=s.index, dtype="datetime64[ns]")
    for fmt in DATE_FORMATS:
        missing = parsed.isna()
        if not missing.any():
            break
        parsed[missing] = pd.to_datetime(s[missing], format=fmt, errors="coerce")
    return parsed.dt.normalize()


def normalize_series(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Wide -> long: one row per (original row, date column).
    Returns columns: country, province, date, count
    """
    country_col = _find_column(raw.columns, "Country")
    if country_col is None:
        raise ValueError(f"Table is missing a Country column. Found: {list(raw.columns)}")
    province_col = _find_column(raw.columns, "Province")

    value_cols = date_columns(raw)
    id_cols = [c for c in raw.columns if c not in value_cols]

    long = raw.melt(id_vars=id_cols, value_vars=value_cols,
                    var_name="label", value_name="count")
    long = long.rename(columns={country_col: "country"})
    if province_col is not None:
        long = long.rename(columns={province_col: "province"})
    else:
        long["province"] = None
    long["province"] = long["province"].astype("string")

    long["date"] = parse_date_labels(long["label"]).to_numpy()
    long["count"] = pd.to_numeric(long["count"], errors="coerce").round().astype("Int64")

    # coordinates and the raw label are not carried forward
    return long[OBS_COLUMNS].reset_index(drop=True)


def normalize_all(tables: Mapping[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
    out = {}
    for key, raw in tables.items():
        obs = normalize_series(raw)
        bad = int(obs["date"].isna().sum())
        if bad:
            logger.info("%s: %d observations with unparsable dates excluded from date groupings",
                        key, bad)
        logger.debug("%s: %d rows -> %d observations", key, len(raw), len(obs))
        out[key] = obs
    return out


def date_columns(raw: pd.DataFrame) -> List[str]:
    """Value (date) columns of a raw wide table, in file order."""
    return [c for c in raw.columns if not _is_id_column(c)]
