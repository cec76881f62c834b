"""
Offline tests for fetch.py

Network helpers are monkey-patched so nothing leaves the machine.
"""
import pandas as pd
import pytest
from loguru import logger

import clean
import fetch


def test_fetch_csv_to_default_path(tmp_path, monkeypatch):
    src = tmp_path / "export.csv"
    pd.DataFrame({"a": [1, 2], "b": ["x", "y"]}).to_csv(src, index=False)
    monkeypatch.chdir(tmp_path)

    assert fetch.main(["--source", "csv", "--location", str(src)]) == 0

    out = pd.read_csv(tmp_path / "data" / "raw_data.csv")
    assert out.to_dict("records") == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]


def test_fetch_csv_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        fetch.main(["--source", "csv", "--location", "nope.csv"])


def test_fetch_api(tmp_path, monkeypatch):
    seen = {}

    def fake_fetch_api_source(url, record_path=None):
        seen.update(url=url, record_path=record_path)
        return pd.DataFrame({"id": [7]})

    monkeypatch.setattr(fetch, "fetch_api_source", fake_fetch_api_source)
    out = tmp_path / "raw.csv"

    fetch.main(
        [
            "--source", "api",
            "--location", "https://api.example.com/v1/items",
            "--record-path", "data",
            "--out", str(out),
        ]
    )

    assert seen == {"url": "https://api.example.com/v1/items", "record_path": "data"}
    assert pd.read_csv(out)["id"].tolist() == [7]


def test_fetch_sql_and_html_dispatch(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(
        fetch, "read_sql_source", lambda q, url=None: calls.append(("sql", q, url)) or pd.DataFrame({"n": [1]})
    )
    monkeypatch.setattr(
        fetch, "fetch_html_table", lambda u, table_id=None: calls.append(("html", u, table_id)) or pd.DataFrame({"n": [2]})
    )
    out = str(tmp_path / "raw.csv")

    fetch.main(["--source", "sql", "--location", "orders", "--dsn", "sqlite://", "--out", out])
    fetch.main(["--source", "html", "--location", "https://x.test", "--table-id", "t", "--out", out])

    assert calls == [("sql", "orders", "sqlite://"), ("html", "https://x.test", "t")]
    assert pd.read_csv(out)["n"].tolist() == [2]


def test_fetch_empty_result_then_clean(tmp_path, monkeypatch):
    warnings = []
    sink = logger.add(warnings.append, level="WARNING")
    monkeypatch.setattr(fetch, "fetch_api_source", lambda url, record_path=None: pd.DataFrame())
    monkeypatch.chdir(tmp_path)
    try:
        assert fetch.main(["--source", "api", "--location", "https://api.example.com/empty"]) == 0
    finally:
        logger.remove(sink)

    assert (tmp_path / "data" / "raw_data.csv").exists()
    assert any("returned no rows" in str(m) for m in warnings)

    assert clean.main([]) == 0
    assert (tmp_path / "data" / "cleaned_data.csv").exists()
