"""
Tabular views of the historical ledger.

Handles:
- Ledger -> DataFrame with per-month totals and month-over-month change
- Start/end comparison table per energy source
- JSON-friendly row export and plain-text previews for logs
"""
import logging
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from context import ENERGY_SOURCES, MONTH_COLUMN
from core.ledger import Comparison, HistoricalEntry

log = logging.getLogger("RatedCapacity")


def round2_series(values: pd.Series) -> pd.Series:
    """Vectorized half-up rounding to two decimals (NaN stays NaN, values too large to scale stay as-is)."""
    values = values.astype(float)
    with np.errstate(over="ignore", invalid="ignore"):
        scaled = values * 100 + 0.5
        rounded = np.floor(scaled) / 100
    return rounded.where(np.isfinite(scaled), values)


def ledger_to_frame(entries: List[HistoricalEntry]) -> pd.DataFrame:
    """
    One row per ledger entry with source columns, ``Total`` and ``Change``.

    ``Change`` is the total minus the previous row's total (NaN on the
    first row).

    Examples:
        >>> df = ledger_to_frame(entries)
        >>> df[["Month", "Total", "Change"]]
             Month  Total  Change
        0  12/2022  100.0     NaN
        1  01/2023  104.5     4.5
    """
    columns = [MONTH_COLUMN, *ENERGY_SOURCES, "Total", "Change"]
    if not entries:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        [{MONTH_COLUMN: e.month, **{s: e.values[s] for s in ENERGY_SOURCES}} for e in entries]
    )
    df["Total"] = round2_series(df[list(ENERGY_SOURCES)].sum(axis=1))
    df["Change"] = round2_series(df["Total"].diff())
    return df[columns]


def comparison_to_frame(comparison: Comparison) -> pd.DataFrame:
    """
    Per-source start/end values and delta, plus a ``Total`` row.

    Returns an empty frame when either month has no data.
    """
    columns = ["Source", comparison.start_month, comparison.end_month, "Delta"]
    if not comparison.has_data:
        return pd.DataFrame(columns=columns)

    start, end = comparison.start.values, comparison.end.values
    rows = [
        {
            "Source": s,
            comparison.start_month: start[s],
            comparison.end_month: end[s],
            "Delta": comparison.delta.per_source[s],
        }
        for s in ENERGY_SOURCES
    ]
    rows.append({
        "Source": "Total",
        comparison.start_month: comparison.start.total,
        comparison.end_month: comparison.end.total,
        "Delta": comparison.delta.total,
    })
    df = pd.DataFrame(rows, columns=columns)
    for col in columns[1:]:
        df[col] = round2_series(df[col])
    return df


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as dicts with NaN replaced by None (JSON-safe)."""
    if df.empty:
        return []
    clean = df.astype(object).where(df.notna(), None)
    return clean.to_dict(orient="records")


def rows_to_preview(df: pd.DataFrame, max_rows: int = 24) -> str:
    """
    Plain-text preview of a ledger frame for logging.

    Examples:
        >>> print(rows_to_preview(ledger_to_frame([])))
        No rows.
    """
    if df.empty:
        return "No rows."
    return df.head(max_rows).to_string(index=False)
