from __future__ import annotations
import logging
from dataclasses import dataclass
import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression

logger = logging.getLogger(__name__)

FORECAST_DAYS = 30


@dataclass(frozen=True)
class LinearTrend:
    slope: float        # cases per day
    intercept: float    # cases at day 0
    start: pd.Timestamp # date of day 0
    last_day: int       # last observed day index

    def predict(self, days) -> np.ndarray:
        return self.intercept + self.slope * np.asarray(days, dtype=float)


def days_since_start(dates: pd.Series) -> pd.Series:
    dates = pd.to_datetime(dates)
    return (dates - dates.min()).dt.days


def fit_linear_trend(totals: pd.DataFrame, value_col: str = "total") -> LinearTrend:
    """
    Ordinary least squares of value_col ~ days since first observation.
    No regularization, no intervals, no holdout: it only draws a trend line.
    """
    need = {"date", value_col}
    miss = need - set(totals.columns)
    if miss:
        raise ValueError(f"totals is missing columns: {miss}")
    df = totals.dropna(subset=["date", value_col])
    if df["date"].nunique() < 2:
        raise ValueError("Need at least two dated observations to fit a trend.")

    days = days_since_start(df["date"])
    X = days.to_numpy(dtype=float).reshape(-1, 1)
    y = df[value_col].to_numpy(dtype=float)
    model = LinearRegression().fit(X, y)

    trend = LinearTrend(
        slope=float(model.coef_[0]),
        intercept=float(model.intercept_),
        start=pd.Timestamp(df["date"].min()),
        last_day=int(days.max()),
    )
    logger.info("Linear trend: %.1f cases/day over %d days", trend.slope, trend.last_day + 1)
    return trend


def extrapolate(trend: LinearTrend, horizon: int = FORECAST_DAYS) -> pd.DataFrame:
    """Evaluate the fitted line at days last, last+1, ..., last+horizon."""
    if horizon < 0:
        raise ValueError(f"horizon must be >= 0, got {horizon}")
    days = np.arange(trend.last_day, trend.last_day + horizon + 1)
    return pd.DataFrame({
        "day": days,
        "date": trend.start + pd.to_timedelta(days, unit="D"),
        "predicted": trend.predict(days),
    })


def forecast_totals(totals: pd.DataFrame, horizon: int = FORECAST_DAYS):
    trend = fit_linear_trend(totals)
    return trend, extrapolate(trend, horizon)
