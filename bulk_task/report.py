from __future__ import annotations
from typing import Any, Dict, List

import numpy as np
import pandas as pd

COLUMNS = ["run_id", "command", "page", "offset", "count", "elapsed_ms"]


def to_float_series(s, default=0.0):
    if s is None:
        return pd.Series(dtype=float)
    return pd.to_numeric(s, errors="coerce").fillna(default)


def pages_frame(docs: List[Dict[str, Any]]) -> pd.DataFrame:
    """Batch-log documents -> DataFrame with the known columns present and numeric."""
    df = pd.DataFrame(docs)
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = np.nan
    for col in ("page", "offset", "count", "elapsed_ms"):
        df[col] = to_float_series(df[col])
    return df[COLUMNS]


def summarize_runs(df: pd.DataFrame) -> pd.DataFrame:
    """Per run: non-empty pages, records, elapsed time and throughput (records/s)."""
    if df.empty:
        return pd.DataFrame(columns=["run_id", "command", "pages", "records", "elapsed_ms", "records_per_s"])
    df = df.assign(non_empty=(df["count"] > 0).astype(int))
    agg = df.groupby(["run_id", "command"], as_index=False).agg(
        pages=("non_empty", "sum"),
        records=("count", "sum"),
        elapsed_ms=("elapsed_ms", "sum"),
    )
    agg["records_per_s"] = agg["records"] / np.maximum(1e-3, agg["elapsed_ms"] / 1000.0)
    return agg
