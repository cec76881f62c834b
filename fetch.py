"""Raw Data Fetcher
=================

Pulls a dataset from a local file, an HTTP API, a database or an HTML
page and saves it as ``data/raw_data.csv`` for ``clean.py``.

Setup:
    pip install -e .
    echo "API_KEY=..." >> .env          # optional, for --source api
    echo "DATABASE_URL=..." >> .env     # for --source sql

Example usage:
    python fetch.py --source csv --location exports/orders.csv
    python fetch.py --source api --location https://api.example.com/v1/items --record-path data
    python fetch.py --source sql --location "SELECT * FROM orders WHERE year = 2024"
    python fetch.py --source html --location https://example.com/stats --table-id totals
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv
from loguru import logger

from acquire.api_source import fetch_api_source
from acquire.csv_source import read_csv_source
from acquire.html_source import fetch_html_table
from acquire.sql_source import read_sql_source

RAW_PATH = Path("data/raw_data.csv")


def acquire(opts: argparse.Namespace) -> pd.DataFrame:
    if opts.source == "csv":
        return read_csv_source(opts.location)
    if opts.source == "api":
        return fetch_api_source(opts.location, record_path=opts.record_path)
    if opts.source == "sql":
        return read_sql_source(opts.location, url=opts.dsn)
    return fetch_html_table(opts.location, table_id=opts.table_id)


def main(args=None) -> int:
    parser = argparse.ArgumentParser(description="Fetch a raw dataset to CSV")
    parser.add_argument("--source", required=True, choices=["csv", "api", "sql", "html"])
    parser.add_argument(
        "--location", required=True, help="File path, URL, table name or SQL query"
    )
    parser.add_argument("--out", dest="output", default=str(RAW_PATH), help="Output CSV")
    parser.add_argument("--record-path", help="Dotted key holding the records in a JSON response")
    parser.add_argument("--table-id", help="id attribute of the HTML table to read")
    parser.add_argument("--dsn", help="SQLAlchemy URL (defaults to DATABASE_URL)")
    opts = parser.parse_args(args)

    load_dotenv()

    df = acquire(opts)
    if df.empty:
        logger.warning("{} source returned no rows", opts.source)

    out = Path(opts.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    logger.info("Wrote {} rows to {}", len(df), out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
