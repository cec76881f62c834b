"""HTTP API acquisition.

Fetches JSON from an API endpoint and flattens it into a DataFrame.
Set ``API_KEY`` in the environment (or ``.env``) to send a bearer token.
"""

from __future__ import annotations

import os
import time
from typing import Any, Optional

import pandas as pd
import requests
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

REQUEST_TIMEOUT = 30  # seconds
MAX_RATE_LIMIT_RETRIES = 5

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/125.0.0.0 Safari/537.36 DataFetch/1.0"
    )
}


@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    stop=stop_after_attempt(3),
    wait=wait_fixed(1),
    reraise=True,
)
def _send(url: str, params: Optional[dict], headers: dict) -> requests.Response:
    return requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT)


def http_get(url: str, params: Optional[dict] = None, *, api_key: Optional[str] = None) -> requests.Response:
    """GET ``url``, backing off on 429 and raising on other HTTP errors."""

    headers = dict(HEADERS)
    key = api_key or os.getenv("API_KEY")
    if key:
        headers["Authorization"] = f"Bearer {key}"

    delay = 1
    for attempt in range(MAX_RATE_LIMIT_RETRIES + 1):
        resp = _send(url, params, headers)
        if resp.status_code != 429:
            resp.raise_for_status()
            return resp
        if attempt == MAX_RATE_LIMIT_RETRIES:
            break
        logger.warning("429 from {} - pause {}s", url, delay)
        time.sleep(delay)
        delay *= 2
    raise RuntimeError("429")


def fetch_json(url: str, params: Optional[dict] = None, *, api_key: Optional[str] = None) -> Any:
    resp = http_get(url, params, api_key=api_key)
    return resp.json()


def _dig(payload: dict, record_path: str) -> Any:
    node: Any = payload
    for part in record_path.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"record path {record_path!r} not found in response")
        node = node[part]
    return node


def records_to_frame(payload: Any, record_path: Optional[str] = None) -> pd.DataFrame:
    """Turn a decoded JSON payload into one row per record.

    ``record_path`` is a dotted key path (``data.items``) pointing at the
    list of records inside a wrapper object. Without it, a dict payload is
    treated as a single record.
    """

    if record_path:
        if not isinstance(payload, dict):
            raise KeyError(f"record path {record_path!r} not found in response")
        payload = _dig(payload, record_path)
        if not isinstance(payload, (dict, list)):
            raise ValueError(f"record path {record_path!r} holds {type(payload).__name__}, not records")
    if isinstance(payload, dict):
        payload = [payload]
    if not payload:
        return pd.DataFrame()
    return pd.json_normalize(payload, sep=".")


def fetch_api_source(
    url: str,
    params: Optional[dict] = None,
    *,
    record_path: Optional[str] = None,
    api_key: Optional[str] = None,
) -> pd.DataFrame:
    """Download ``url`` and return its records as a DataFrame."""

    df = records_to_frame(fetch_json(url, params, api_key=api_key), record_path)
    logger.info("Fetched {} rows x {} columns from {}", len(df), len(df.columns), url)
    return df
