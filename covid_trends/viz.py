from __future__ import annotations
import logging, os
from typing import Optional, Tuple
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
from matplotlib.ticker import FuncFormatter
import plotly.graph_objects as go

from covid_trends.metrics import top_countries

logger = logging.getLogger(__name__)

METRIC_COLORS = {"confirmed": "#1d4ed8", "deaths": "#ef4444", "recovered": "#16a34a"}
_thousands = FuncFormatter(lambda x, _: f"{x:,.0f}")


def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)


def _require(df: pd.DataFrame, cols, name: str) -> None:
    missing = set(cols) - set(df.columns)
    if missing:
        raise ValueError(f"{name} is missing columns: {missing}")


def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    fig.tight_layout()
    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = out_path
        logger.info("Saved %s", out_path)
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved


def plot_global_trend(
    totals: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Global cumulative confirmed cases over time.
    totals: output of metrics.total_by_date (date, total)
    """
    _require(totals, {"date", "total"}, "totals")
    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.plot(totals["date"], totals["total"], color=METRIC_COLORS["confirmed"], linewidth=2)
    ax.fill_between(totals["date"], totals["total"], color=METRIC_COLORS["confirmed"], alpha=0.12)
    ax.set_title("Global confirmed cases (cumulative)")
    ax.set_xlabel("Date")
    ax.set_ylabel("Confirmed cases")
    ax.yaxis.set_major_formatter(_thousands)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %Y"))
    ax.grid(alpha=0.3)
    return fig, ax, _finish(fig, out_path, show)


def plot_top_countries(
    summary: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    top_n: int = 10,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Grouped horizontal bars of confirmed/deaths/recovered for the top_n
    countries by confirmed cases. Missing metrics draw as empty bars.
    """
    _require(summary, {"country", "confirmed", "deaths", "recovered"}, "summary")
    top = top_countries(summary, n=top_n).iloc[::-1]  # largest on top

    y = np.arange(len(top))
    h = 0.27
    fig, ax = plt.subplots(figsize=(10, 0.55 * max(len(top), 4) + 1.5))
    for i, m in enumerate(("confirmed", "deaths", "recovered")):
        vals = top[m].astype("float64").fillna(0).to_numpy()
        ax.barh(y + (1 - i) * h, vals, height=h, color=METRIC_COLORS[m], label=m.title())
    ax.set_yticks(y)
    ax.set_yticklabels(top["country"].astype(str))
    ax.xaxis.set_major_formatter(_thousands)
    ax.set_xlabel("Cases (latest cumulative)")
    ax.set_title(f"Top {len(top)} countries by confirmed cases")
    ax.legend(loc="lower right")
    ax.grid(axis="x", alpha=0.3)
    return fig, ax, _finish(fig, out_path, show)


def plot_country_trajectories(
    country_ts: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    log_scale: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """One cumulative line per country (country, date, total)."""
    _require(country_ts, {"country", "date", "total"}, "country_ts")
    fig, ax = plt.subplots(figsize=(10, 5))
    # legend ordered by latest total
    order = (country_ts.sort_values("date").groupby("country")["total"].last()
                       .sort_values(ascending=False).index)
    for c in order:
        sub = country_ts[country_ts["country"] == c].sort_values("date")
        ax.plot(sub["date"], sub["total"], linewidth=1.6, label=str(c))
    if log_scale:
        ax.set_yscale("log")
    else:
        ax.yaxis.set_major_formatter(_thousands)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %Y"))
    ax.set_title("Confirmed cases by country")
    ax.set_xlabel("Date")
    ax.set_ylabel("Confirmed cases")
    if len(order):
        ax.legend(ncols=2, fontsize=8)
    ax.grid(alpha=0.3)
    return fig, ax, _finish(fig, out_path, show)


def plot_forecast(
    totals: pd.DataFrame,
    forecast: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Observed global totals with the fitted line and its extrapolation."""
    _require(totals, {"date", "total"}, "totals")
    _require(forecast, {"date", "predicted"}, "forecast")
    fig, ax = plt.subplots(figsize=(10, 4.5))
    ax.scatter(totals["date"], totals["total"], s=8, color=METRIC_COLORS["confirmed"],
               alpha=0.6, label="Observed")
    ax.plot(forecast["date"], forecast["predicted"], color="#ef4444", linestyle="--",
            linewidth=2, label=f"Linear trend (+{len(forecast) - 1} days)")
    ax.set_title("Global confirmed cases: linear trend")
    ax.set_xlabel("Date")
    ax.set_ylabel("Confirmed cases")
    ax.yaxis.set_major_formatter(_thousands)
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %Y"))
    ax.legend()
    ax.grid(alpha=0.3)
    return fig, ax, _finish(fig, out_path, show)


def plot_recovery_bubbles(
    summary: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    max_bubble: float = 60.0,
) -> Tuple[go.Figure, Optional[str]]:
    """
    Interactive bubble chart: x = confirmed, y = recovery rate (%),
    bubble area ~ confirmed. Countries with a non-finite rate
    (no confirmed cases, or a metric missing) are left out.
    """
    _require(summary, {"country", "confirmed", "deaths", "recovered", "recovery_rate"}, "summary")
    df = summary.copy()
    df["recovery_rate"] = df["recovery_rate"].astype("float64")
    df = df[np.isfinite(df["recovery_rate"])]
    skipped = len(summary) - len(df)
    if skipped:
        logger.debug("Bubble chart: %d countries without a finite recovery rate", skipped)

    confirmed = df["confirmed"].astype("float64")
    sizeref = 2.0 * confirmed.max() / (max_bubble ** 2) if len(df) and confirmed.max() > 0 else 1.0
    flag = df["rate_flag"] if "rate_flag" in df.columns else pd.Series(False, index=df.index)

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=confirmed,
        y=df["recovery_rate"],
        mode="markers",
        text=df["country"].astype(str),
        customdata=np.column_stack([
            df["deaths"].astype("float64").fillna(0),
            df["recovered"].astype("float64").fillna(0),
        ]) if len(df) else None,
        marker=dict(
            size=confirmed,
            sizemode="area",
            sizeref=sizeref,
            sizemin=3,
            color=np.where(flag.to_numpy(dtype=bool), "#f59e0b", "#1d4ed8"),
            opacity=0.6,
            line=dict(width=1, color="white"),
        ),
        hovertemplate=(
            "<b>%{text}</b><br>Confirmed: %{x:,.0f}<br>Deaths: %{customdata[0]:,.0f}"
            "<br>Recovered: %{customdata[1]:,.0f}<br>Recovery rate: %{y:.1f}%<extra></extra>"
        ),
        name="Countries",
    ))
    fig.update_layout(
        title="Recovery rate vs confirmed cases",
        xaxis_title="Confirmed cases",
        yaxis_title="Recovery rate (%)",
        xaxis=dict(type="log"),
        plot_bgcolor="white",
        paper_bgcolor="white",
        height=520,
        margin=dict(t=60, b=50, l=60, r=20),
    )

    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.write_html(out_path, include_plotlyjs="cdn")
        saved = out_path
        logger.info("Saved %s", out_path)
    if show:
        fig.show()
    return fig, saved
