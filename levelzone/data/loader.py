"""Bar loading — CSV / Parquet files into ``Bar`` sequences.

The engines never fetch data themselves; this is the seam a market-data
supplier feeds.  Rows keep their order unless ``sort=True``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from levelzone.strategy.models import Bar

logger = logging.getLogger("levelzone.data")

PRICE_COLUMNS = ["open", "high", "low", "close"]


def bars_from_frame(df: pd.DataFrame, sort: bool = False) -> list[Bar]:
    """Convert a candle DataFrame to bars.

    Column names are matched case-insensitively.  ``time`` is optional;
    datetimes are rendered as ISO-8601 strings.

    Raises ``ValueError`` when a price column is missing or not numeric.
    """
    df = df.rename(columns={c: str(c).strip().lower() for c in df.columns})

    missing = [c for c in PRICE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing price column(s): {', '.join(missing)}")

    non_numeric = [c for c in PRICE_COLUMNS if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError(f"Non-numeric price column(s): {', '.join(non_numeric)}")

    has_time = "time" in df.columns
    if has_time and sort:
        df = df.sort_values("time", kind="stable").reset_index(drop=True)

    prices = df[PRICE_COLUMNS].to_numpy(dtype=np.float64)
    bad_rows = np.flatnonzero(~np.isfinite(prices).all(axis=1))
    if bad_rows.size:
        # Left for engine validation to report with the exact bar index
        logger.warning("%d row(s) with non-finite prices, first at %d", bad_rows.size, bad_rows[0])

    times = _time_values(df["time"]) if has_time else [None] * len(df)
    return [
        Bar(open=row[0], high=row[1], low=row[2], close=row[3], time=t)
        for row, t in zip(prices.tolist(), times)
    ]


def load_bars(path: str | Path, sort: bool = False) -> list[Bar]:
    """Load bars from a ``.csv`` or ``.parquet`` file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix in (".parquet", ".pq"):
        df = pd.read_parquet(path, engine="pyarrow")
    else:
        raise ValueError(f"Unsupported bar file type '{suffix}' (use .csv or .parquet)")

    bars = bars_from_frame(df, sort=sort)
    logger.info("Loaded %d bars from %s", len(bars), path)
    return bars


def _time_values(series: pd.Series) -> list:
    if pd.api.types.is_datetime64_any_dtype(series):
        return [None if pd.isna(t) else t.isoformat() for t in series]
    return [None if pd.isna(t) else t for t in series.tolist()]
