"""Run the whole pipeline: fetch -> normalize -> aggregate -> charts."""
from __future__ import annotations
import argparse, logging, os, sys
from typing import Dict, List, Optional

from covid_trends import data_prep, fetch, forecast, metrics, viz

logger = logging.getLogger(__name__)

BASE_URL_ENV = "COVID_TRENDS_BASE_URL"


def run_pipeline(
    out_dir: str = "figures",
    *,
    base_url: Optional[str] = None,
    data_dir: Optional[str] = None,
    top_n: int = 10,
    horizon: int = forecast.FORECAST_DAYS,
    sum_provinces: bool = False,
    show: bool = False,
) -> Dict[str, Optional[str]]:
    """Returns {artifact name: saved path}."""
    if data_dir:
        raw = fetch.load_local_series(data_dir)
    else:
        raw = fetch.fetch_series(base_url or fetch.DEFAULT_BASE_URL)

    obs = data_prep.normalize_all(raw)
    confirmed, deaths, recovered = obs["Confirmed"], obs["Deaths"], obs["Recovered"]

    totals = metrics.total_by_date(confirmed)
    summary = metrics.latest_by_country(confirmed, deaths, recovered, sum_provinces=sum_provinces)
    metrics.flag_rate_anomalies(summary)
    top = metrics.top_countries(summary, n=top_n)
    country_ts = metrics.totals_by_country_date(confirmed, top["country"])
    _, fc = forecast.forecast_totals(totals, horizon=horizon)

    def path(name: str) -> str:
        return os.path.join(out_dir, name)

    saved = {}
    saved["global_trend"] = viz.plot_global_trend(totals, path("global_trend.png"), show)[2]
    saved["top_countries"] = viz.plot_top_countries(summary, path("top_countries.png"), show, top_n=top_n)[2]
    saved["country_trajectories"] = viz.plot_country_trajectories(
        country_ts, path("country_trajectories.png"), show)[2]
    saved["recovery_bubbles"] = viz.plot_recovery_bubbles(summary, path("recovery_rate.html"), show)[1]
    saved["forecast"] = viz.plot_forecast(totals, fc, path("forecast.png"), show)[2]

    last = fc.iloc[-1]
    logger.info("Trend projection for %s: %s cases", last["date"].date(), f"{last['predicted']:,.0f}")
    return saved


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="covid-trends",
        description="Download the CSSE COVID-19 global time series and render trend charts.",
    )
    p.add_argument("--out-dir", default="figures", help="Directory for charts (default: figures)")
    p.add_argument("--base-url", default=os.getenv(BASE_URL_ENV, fetch.DEFAULT_BASE_URL),
                   help=f"Location of the time-series CSVs (env: {BASE_URL_ENV})")
    p.add_argument("--data-dir", default=None,
                   help="Read the three CSVs from this directory instead of downloading")
    p.add_argument("--top-n", type=_positive_int, default=10, help="Countries in the top-N charts")
    p.add_argument("--horizon", type=_positive_int, default=forecast.FORECAST_DAYS,
                   help="Days to extrapolate the linear trend")
    p.add_argument("--sum-provinces", action="store_true",
                   help="Sum province rows before taking each country's latest value")
    p.add_argument("--show", action="store_true", help="Open charts interactively")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        saved = run_pipeline(
            args.out_dir,
            base_url=args.base_url,
            data_dir=args.data_dir,
            top_n=args.top_n,
            horizon=args.horizon,
            sum_provinces=args.sum_provinces,
            show=args.show,
        )
    except fetch.FetchError as e:
        logger.error("%s", e)
        return 1
    for name, p in saved.items():
        print(f"{name}: {p}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
