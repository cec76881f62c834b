"""Data cleaning for raw tabular datasets.

Reads ``data/raw_data.csv`` (written by ``fetch.py``), applies a fixed
sequence of cleaning steps and writes ``data/cleaned_data.csv``:

    normalize column names -> strip strings -> coerce types
    -> drop rows missing critical columns -> drop duplicates
    -> fill missing values -> remove outliers

Each step is also usable on its own as a function of a DataFrame.

Example usage:
    python clean.py --require id --dedupe-on id --fill auto --numeric price --outliers price
"""

from __future__ import annotations

import argparse
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd
from loguru import logger

RAW_PATH = Path("data/raw_data.csv")
CLEAN_PATH = Path("data/cleaned_data.csv")

FILL_STRATEGIES = ("auto", "mean", "median", "mode", "constant")

NON_WORD_RE = re.compile(r"[\W_]+")


def _normalize_name(name) -> str:
    return NON_WORD_RE.sub("_", str(name).strip().lower()).strip("_") or "column"


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Return ``df`` with snake_case column names.

    ``"  Order ID "`` becomes ``order_id``. If two columns collapse to the
    same name, later ones get ``_2``, ``_3`` and so on.
    """
    seen: set[str] = set()
    names = []
    for col in df.columns:
        base = _normalize_name(col)
        name, n = base, 1
        while name in seen:
            n += 1
            name = f"{base}_{n}"
        seen.add(name)
        names.append(name)
    out = df.copy()
    out.columns = names
    return out


def _text_columns(df: pd.DataFrame) -> list:
    return list(df.select_dtypes(include=["object", "string"]).columns)


def strip_strings(df: pd.DataFrame) -> pd.DataFrame:
    """Trim whitespace in text columns; blank cells become missing."""
    out = df.copy()
    for col in _text_columns(out):
        s = out[col].map(lambda v: v.strip() if isinstance(v, str) else v)
        out[col] = s.mask(s == "")
    return out


def drop_duplicates(
    df: pd.DataFrame, subset: Optional[Iterable[str]] = None, *, case_insensitive: bool = False
) -> pd.DataFrame:
    """Drop repeated rows, keeping the first.

    With ``case_insensitive`` text is compared lower-cased, but the kept row
    is returned unchanged.
    """
    if df.empty:
        return df
    key = df if subset is None else df[list(subset)]
    if case_insensitive:
        key = key.copy()
        for col in _text_columns(key):
            key[col] = key[col].map(lambda v: v.lower() if isinstance(v, str) else v)
    return df[~key.duplicated(keep="first")]


def drop_missing(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Drop rows missing a value in any of the critical ``columns``."""
    columns = list(columns)
    unknown = [c for c in columns if c not in df.columns]
    if unknown:
        raise KeyError(f"unknown columns: {', '.join(unknown)}")
    if not columns:
        return df
    return df.dropna(subset=columns)


def _is_numeric(s: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(s) and not pd.api.types.is_bool_dtype(s)


def fill_missing(
    df: pd.DataFrame,
    strategy: str = "auto",
    value=None,
    columns: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Fill missing cells.

    ``mean`` and ``median`` only touch numeric columns. ``auto`` uses the
    median for numeric columns and the mode for everything else. Columns
    with no observed value are left alone.
    """
    if strategy not in FILL_STRATEGIES:
        raise ValueError(f"unknown fill strategy {strategy!r}; choose from {', '.join(FILL_STRATEGIES)}")
    if strategy == "constant" and value is None:
        raise ValueError("constant fill needs a value")

    out = df.copy()
    for col in list(columns) if columns is not None else list(out.columns):
        s = out[col]
        if not s.isna().any():
            continue
        if strategy == "constant":
            fill = value
        elif strategy in ("mean", "median") or (strategy == "auto" and _is_numeric(s)):
            if not _is_numeric(s):
                continue
            fill = s.median() if strategy in ("median", "auto") else s.mean()
        else:
            modes = s.mode(dropna=True)
            if modes.empty:
                continue
            fill = modes.iloc[0]
        if pd.isna(fill):
            continue
        out[col] = s.fillna(fill)
    return out


def coerce_types(
    df: pd.DataFrame, numeric: Iterable[str] = (), dates: Iterable[str] = ()
) -> pd.DataFrame:
    """Convert columns to numbers / timestamps; bad values become missing."""
    out = df.copy()
    for col in numeric:
        out[col] = pd.to_numeric(out[col], errors="coerce")
    for col in dates:
        out[col] = pd.to_datetime(out[col], errors="coerce", format="mixed")
    return out


def remove_outliers(df: pd.DataFrame, columns: Iterable[str], k: float = 1.5) -> pd.DataFrame:
    """Drop rows outside ``[Q1 - k*IQR, Q3 + k*IQR]`` in any of ``columns``."""
    if k <= 0:
        raise ValueError("k must be positive")
    keep = pd.Series(True, index=df.index)
    for col in columns:
        s = df[col]
        if s.isna().all():
            continue
        if not _is_numeric(s):
            raise ValueError(f"column {col!r} is not numeric")
        q1, q3 = s.quantile(0.25), s.quantile(0.75)
        iqr = q3 - q1
        keep &= s.between(q1 - k * iqr, q3 + k * iqr) | s.isna()
    return df[keep]


@dataclass
class CleaningOptions:
    dedupe_on: Optional[list[str]] = None
    ignore_case: bool = False
    require: list[str] = field(default_factory=list)
    fill: Optional[str] = None
    fill_value: Optional[str] = None
    numeric: list[str] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)
    outliers: list[str] = field(default_factory=list)
    iqr_k: float = 1.5


@dataclass
class CleaningReport:
    rows_in: int = 0
    rows_out: int = 0
    missing_dropped: int = 0
    duplicates_dropped: int = 0
    outliers_dropped: int = 0
    cells_filled: int = 0


def clean_frame(df: pd.DataFrame, options: Optional[CleaningOptions] = None):
    """Run every cleaning step in order and return ``(frame, report)``."""
    options = options or CleaningOptions()
    report = CleaningReport(rows_in=len(df))

    df = normalize_columns(df)
    df = strip_strings(df)
    df = coerce_types(df, options.numeric, options.dates)

    before = len(df)
    df = drop_missing(df, options.require)
    report.missing_dropped = before - len(df)

    before = len(df)
    df = drop_duplicates(df, options.dedupe_on, case_insensitive=options.ignore_case)
    report.duplicates_dropped = before - len(df)

    if options.fill:
        before = int(df.isna().sum().sum())
        df = fill_missing(df, options.fill, options.fill_value)
        report.cells_filled = before - int(df.isna().sum().sum())

    if options.outliers:
        before = len(df)
        df = remove_outliers(df, options.outliers, options.iqr_k)
        report.outliers_dropped = before - len(df)

    df = df.reset_index(drop=True)
    report.rows_out = len(df)
    return df, report


def _columns(value: str) -> list[str]:
    return [_normalize_name(c) for c in value.split(",") if c.strip()]


def main(args=None) -> int:
    """Clean ``--in`` and write the result to ``--out``."""
    parser = argparse.ArgumentParser(description="Clean a raw CSV dataset")
    parser.add_argument("--in", dest="input", default=str(RAW_PATH), help="Raw CSV")
    parser.add_argument("--out", dest="output", default=str(CLEAN_PATH), help="Cleaned CSV")
    parser.add_argument("--dedupe-on", type=_columns, help="Comma-separated key columns for duplicates")
    parser.add_argument("--ignore-case", action="store_true", help="Compare text case-insensitively when deduplicating")
    parser.add_argument("--require", type=_columns, default=[], help="Drop rows missing any of these columns")
    parser.add_argument("--fill", choices=FILL_STRATEGIES, help="How to fill remaining missing values")
    parser.add_argument("--fill-value", help="Value for --fill constant")
    parser.add_argument("--numeric", type=_columns, default=[], help="Columns to coerce to numbers")
    parser.add_argument("--dates", type=_columns, default=[], help="Columns to coerce to datetimes")
    parser.add_argument("--outliers", type=_columns, default=[], help="Numeric columns to IQR-filter")
    parser.add_argument("--iqr-k", type=float, default=1.5, help="IQR multiplier for --outliers")
    opts = parser.parse_args(args)

    raw_path = Path(opts.input)
    if not raw_path.exists():
        raise FileNotFoundError(raw_path)
    try:
        df = pd.read_csv(raw_path)
    except pd.errors.EmptyDataError:
        logger.warning("{} has no columns; writing an empty dataset", raw_path)
        df = pd.DataFrame()

    options = CleaningOptions(
        dedupe_on=opts.dedupe_on,
        ignore_case=opts.ignore_case,
        require=opts.require,
        fill=opts.fill,
        fill_value=opts.fill_value,
        numeric=opts.numeric,
        dates=opts.dates,
        outliers=opts.outliers,
        iqr_k=opts.iqr_k,
    )
    df, report = clean_frame(df, options)
    logger.info("Cleaning summary: {}", asdict(report))

    out = Path(opts.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    logger.info("Wrote {} rows to {}", len(df), out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
