"""COVID-19 time-series trends: fetch, reshape, aggregate, chart."""
__version__ = "0.1.0"
