from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

import pandas as pd

from ..core.indicators import as_price_series

# Column names accepted as the price column, in order of preference.
PRICE_COLUMNS = ("close", "price", "usd", "value")


def sniff_csv_separator(path: str | Path, sample_bytes: int = 65_536) -> tuple[str, bool]:
    """Best effort detection of the separator and header row.

    Returns ``(separator, has_header)`` where ``separator`` is `','` or `';'`.
    """

    path = Path(path)
    try:
        with open(path, "r", newline="") as f:
            sample = f.read(sample_bytes)
    except OSError:
        return ",", True

    sep = ","
    try:
        sep = csv.Sniffer().sniff(sample, delimiters=[",", ";"]).delimiter
    except csv.Error:
        # single-column files have no delimiter to detect
        pass

    lines = sample.splitlines()
    first_field = lines[0].split(sep)[-1].strip() if lines else ""
    return sep, not _is_number(first_field)


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _price_column(df: pd.DataFrame) -> str:
    lc = {str(c).strip().lower(): c for c in df.columns}
    for name in PRICE_COLUMNS:
        if name in lc:
            return lc[name]
    numeric = [c for c in df.columns if pd.api.types.is_numeric_dtype(df[c])]
    if not numeric:
        available = ", ".join(map(str, df.columns))
        raise ValueError(f"no price column found (available: {available})")
    return numeric[-1]


def read_prices(path: str | Path) -> pd.Series:
    """Load a chronological price series from CSV or JSON.

    CSV files may carry a header with one of :data:`PRICE_COLUMNS` (otherwise
    the last numeric column is used) or be a bare column of numbers. JSON files
    hold either a list of numbers or an object with a ``prices`` list.
    """

    p = Path(path)
    if p.suffix.lower() == ".json":
        data = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("prices", [])
        return as_price_series(data)

    sep, has_header = sniff_csv_separator(p)
    df = pd.read_csv(p, sep=sep, header=0 if has_header else None)
    col = _price_column(df)
    prices = pd.to_numeric(df[col], errors="coerce").dropna()
    return as_price_series(prices)


def read_news(path: str | Path) -> list[Any]:
    """Load raw news items from a JSON file.

    Accepts a list of items or an aggregator-style object with the items
    under ``results`` or ``news``.
    """

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("results", data.get("news", []))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of news items")
    return data


__all__ = ["PRICE_COLUMNS", "read_news", "read_prices", "sniff_csv_separator"]
