import os

import pytest

from covid_trends import cli


def test_run_pipeline_from_local_files(tmp_path, data_dir):
    out_dir = tmp_path / "figures"
    saved = cli.run_pipeline(str(out_dir), data_dir=str(data_dir), top_n=3, horizon=7)
    assert set(saved) == {"global_trend", "top_countries", "country_trajectories",
                          "recovery_bubbles", "forecast"}
    for path in saved.values():
        assert path and os.path.exists(path)
    assert saved["recovery_bubbles"].endswith(".html")


def test_main_success(tmp_path, data_dir, capsys):
    code = cli.main(["--data-dir", str(data_dir), "--out-dir", str(tmp_path / "o"), "--sum-provinces"])
    assert code == 0
    assert "forecast:" in capsys.readouterr().out


def test_main_reports_fetch_failure(tmp_path):
    assert cli.main(["--data-dir", str(tmp_path / "nowhere"), "--out-dir", str(tmp_path)]) == 1


def test_base_url_defaults_from_env(monkeypatch):
    monkeypatch.setenv(cli.BASE_URL_ENV, "https://mirror.example.org/ts")
    args = cli.build_parser().parse_args([])
    assert args.base_url == "https://mirror.example.org/ts"


@pytest.mark.parametrize("flag, value", [
    ("--horizon", "-1"),
    ("--horizon", "0"),
    ("--top-n", "-1"),
    ("--top-n", "0"),
    ("--top-n", "ten"),
])
def test_non_positive_counts_are_rejected(tmp_path, data_dir, capsys, flag, value):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--data-dir", str(data_dir), "--out-dir", str(tmp_path / "o"), flag, value])
    assert exc.value.code == 2
    assert flag in capsys.readouterr().err
    assert not (tmp_path / "o").exists()
