import logging
from typing import Iterable, Optional
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

METRICS = ["confirmed", "deaths", "recovered"]


def _dated(obs: pd.DataFrame) -> pd.DataFrame:
    # NaT dates never take part in date groupings
    out = obs.dropna(subset=["date"]).copy()
    out["count"] = out["count"].fillna(0)
    return out


def total_by_date(obs: pd.DataFrame) -> pd.DataFrame:
    # sum of cumulative per-region counts, so the result is cumulative too
    ts = _dated(obs).groupby("date", as_index=False)["count"].sum()
    ts = ts.rename(columns={"count": "total"})
    ts["total"] = ts["total"].astype("int64")
    return ts.sort_values("date").reset_index(drop=True)


def totals_by_country_date(obs: pd.DataFrame, countries: Optional[Iterable[str]] = None) -> pd.DataFrame:
    df = _dated(obs)
    if countries is not None:
        df = df[df["country"].isin(list(countries))]
    ts = df.groupby(["country", "date"], as_index=False)["count"].sum()
    ts = ts.rename(columns={"count": "total"})
    ts["total"] = ts["total"].astype("int64")
    return ts.sort_values(["country", "date"]).reset_index(drop=True)


def latest_by_metric(obs: pd.DataFrame, name: str, sum_provinces: bool = False) -> pd.DataFrame:
    # cumulative series are non-decreasing along the date axis, so max == latest
    dated = obs.dropna(subset=["date"])
    if sum_provinces:
        per_day = dated.groupby(["country", "date"])["count"].sum(min_count=1)
        latest = per_day.groupby(level="country").max()
    else:
        latest = dated.groupby("country")["count"].max()
    return latest.rename(name).reset_index()


def recovery_rate(confirmed: pd.Series, recovered: pd.Series) -> pd.Series:
    """recovered / confirmed * 100; x/0 stays inf and 0/0 stays NaN."""
    c = confirmed.astype("float64")
    r = recovered.astype("float64")
    with np.errstate(divide="ignore", invalid="ignore"):
        return r / c * 100


def latest_by_country(
    confirmed: pd.DataFrame,
    deaths: pd.DataFrame,
    recovered: pd.DataFrame,
    *,
    sum_provinces: bool = False,
) -> pd.DataFrame:
    """
    One row per country with the latest confirmed/deaths/recovered counts,
    outer-joined on country name (a country missing from a source gets NA
    for that metric), plus recovery_rate and rate_flag.
    """
    parts = [
        latest_by_metric(obs, name, sum_provinces=sum_provinces)
        for obs, name in zip((confirmed, deaths, recovered), METRICS)
    ]
    summary = parts[0]
    for p in parts[1:]:
        summary = summary.merge(p, on="country", how="outer")

    summary["recovery_rate"] = recovery_rate(summary["confirmed"], summary["recovered"])
    rate = summary["recovery_rate"]
    summary["rate_flag"] = np.isfinite(rate) & ((rate < 0) | (rate > 100))
    return summary


def flag_rate_anomalies(summary: pd.DataFrame) -> pd.DataFrame:
    flagged = summary.loc[summary["rate_flag"]].copy()
    if not flagged.empty:
        logger.warning("%d countries report a recovery rate outside [0, 100]: %s",
                       len(flagged), ", ".join(map(str, flagged["country"].head(10))))
    return flagged


def top_countries(summary: pd.DataFrame, n: int = 10, by: str = "confirmed") -> pd.DataFrame:
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    if by not in summary.columns:
        raise ValueError(f"summary has no column {by!r}. Found: {list(summary.columns)}")
    # stable sort: ties keep the join order
    return (summary.sort_values(by, ascending=False, kind="stable", na_position="last")
                   .head(n)
                   .reset_index(drop=True))
