"""HTML table acquisition.

Pulls a ``<table>`` out of a web page with BeautifulSoup. Pages are
downloaded through :func:`acquire.api_source.http_get` so they get the
same headers, retries and 429 back-off as API calls.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd
from bs4 import BeautifulSoup
from loguru import logger

from acquire.api_source import http_get


def _cells(row) -> list[str]:
    return [c.get_text(strip=True) for c in row.find_all(["th", "td"])]


def parse_html_table(html: str, table_id: Optional[str] = None) -> pd.DataFrame:
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table", id=table_id) if table_id else soup.find("table")
    if table is None:
        what = f"table#{table_id}" if table_id else "<table>"
        raise ValueError(f"no {what} found in page")

    rows = table.find_all("tr")
    thead = table.find("thead")
    if thead is not None and thead.find("tr") is not None:
        header_row = thead.find_all("tr")[-1]
    elif rows:
        header_row = rows[0]
    else:
        return pd.DataFrame()
    header = _cells(header_row)

    body = []
    for tr in rows:
        if tr is header_row or (thead is not None and tr.find_parent("thead") is thead):
            continue
        values: list[Optional[str]] = list(_cells(tr))
        if not values:
            continue
        values = values[: len(header)]
        values += [None] * (len(header) - len(values))
        body.append(values)
    return pd.DataFrame(body, columns=header)


def fetch_html_table(url: str, table_id: Optional[str] = None) -> pd.DataFrame:
    """Download ``url`` and parse one table from it."""
    resp = http_get(url)
    df = parse_html_table(resp.text, table_id)
    logger.info("Parsed {} rows x {} columns from {}", len(df), len(df.columns), url)
    return df
