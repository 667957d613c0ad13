from unittest.mock import MagicMock

import pytest
import requests

from covid_trends.fetch import (
    DATASETS,
    FetchError,
    build_urls,
    fetch_series,
    fetch_table,
    load_local_series,
)


def _response(text="", status=200):
    r = MagicMock()
    r.text = text
    r.status_code = status
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return r


def _session(by_name):
    s = MagicMock()

    def get(url, timeout=None):
        for name, resp in by_name.items():
            if f"covid19_{name}_global" in url:
                return resp
        raise AssertionError(f"unexpected url {url}")

    s.get.side_effect = get
    return s


def test_build_urls():
    urls = build_urls("https://example.org/series/")
    assert list(urls) == ["Confirmed", "Deaths", "Recovered"]
    assert urls["Deaths"] == "https://example.org/series/time_series_covid19_deaths_global.csv"


def test_fetch_series_returns_three_tables(csv_texts):
    session = _session({k: _response(v) for k, v in csv_texts.items()})
    tables = fetch_series("https://example.org", session=session, timeout=5)
    assert set(tables) == set(DATASETS)
    assert tables["Confirmed"].shape == (4, 7)
    assert tables["Recovered"].shape == (3, 7)
    assert session.get.call_count == 3
    assert all(call.kwargs["timeout"] == 5 for call in session.get.call_args_list)


def test_http_error_aborts_the_run(csv_texts):
    session = _session({
        "confirmed": _response(csv_texts["confirmed"]),
        "deaths": _response(status=404),
        "recovered": _response(csv_texts["recovered"]),
    })
    with pytest.raises(FetchError) as exc:
        fetch_series("https://example.org", session=session)
    assert "deaths" in exc.value.url


def test_transport_error_is_wrapped():
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("boom")
    with pytest.raises(FetchError, match="ConnectionError"):
        fetch_table("https://example.org/x.csv", session=session)


@pytest.mark.parametrize("body", ["", "   \n", "<html><body>Not Found</body></html>", "a,b\n1,2\n3,4,5,6\n"])
def test_unparsable_body_raises(body):
    session = MagicMock()
    session.get.return_value = _response(body)
    with pytest.raises(FetchError):
        fetch_table("https://example.org/x.csv", session=session)


def test_load_local_series(data_dir):
    tables = load_local_series(str(data_dir))
    assert tables["Deaths"].columns[:4].tolist() == ["Province/State", "Country/Region", "Lat", "Long"]


def test_load_local_series_missing_file(tmp_path):
    with pytest.raises(FetchError):
        load_local_series(str(tmp_path))
