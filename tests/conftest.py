import matplotlib
matplotlib.use("Agg")

import pandas as pd
import pytest

CONFIRMED_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20
,Afghanistan,33.9,67.7,0,2,5
Hubei,China,30.9,112.2,10,20,40
Beijing,China,40.1,116.4,1,3,4
,Italy,41.8,12.5,0,0,3
"""
DEATHS_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20
,Afghanistan,33.9,67.7,0,0,1
Hubei,China,30.9,112.2,1,2,3
Beijing,China,40.1,116.4,0,0,0
,Italy,41.8,12.5,0,0,0
"""
RECOVERED_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20
,Afghanistan,33.9,67.7,0,0,0
Hubei,China,30.9,112.2,0,5,12
Beijing,China,40.1,116.4,0,1,2
"""


@pytest.fixture
def csv_texts():
    return {"confirmed": CONFIRMED_CSV, "deaths": DEATHS_CSV, "recovered": RECOVERED_CSV}


@pytest.fixture
def data_dir(tmp_path, csv_texts):
    for name, text in csv_texts.items():
        (tmp_path / f"time_series_covid19_{name}_global.csv").write_text(text, encoding="utf-8")
    return tmp_path


@pytest.fixture
def scenario_table():
    # R-style mangled header, no province column
    return pd.DataFrame({
        "Country.Region": ["A", "B"],
        "Lat": [1.0, 2.0],
        "Long": [3.0, 4.0],
        "1.22.20": [0, 2],
        "1.23.20": [5, 2],
    })
