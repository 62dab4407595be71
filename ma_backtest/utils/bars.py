"""Bar series helpers: list[Bar] <-> DataFrame, CSV loading."""

from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd

from ma_backtest.core.types import Bar

logger = logging.getLogger("ma_backtest.utils.bars")

BAR_COLUMNS = ["date", "open", "high", "low", "close", "volume"]

BarsLike = Union[pd.DataFrame, Sequence[Bar]]


def to_frame(bars: BarsLike) -> pd.DataFrame:
    """
    Normalize a bar series to a DataFrame with columns date, open, high, low, close, volume
    and a 0..n-1 RangeIndex. Rows are kept ascending by date.
    """
    if isinstance(bars, pd.DataFrame):
        df = bars.copy()
        df.columns = [str(c).lower() for c in df.columns]
        if "date" not in df.columns and "time" in df.columns:
            df = df.rename(columns={"time": "date"})
        if "volume" not in df.columns:
            df["volume"] = 0.0
        missing = [c for c in BAR_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Bar frame missing columns: {missing}")
        df = df[BAR_COLUMNS]
    else:
        df = pd.DataFrame(
            [(b.date, b.open, b.high, b.low, b.close, b.volume) for b in bars],
            columns=BAR_COLUMNS,
        )
    if len(df) > 1 and not df["date"].is_monotonic_increasing:
        logger.warning("Bars not ascending by date; sorting %d rows", len(df))
        df = df.sort_values("date", kind="mergesort")
    return df.reset_index(drop=True)


def to_bars(df: pd.DataFrame) -> List[Bar]:
    """DataFrame rows -> list of Bar."""
    frame = to_frame(df)
    return [
        Bar(
            date=row.date,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in frame.itertuples(index=False)
    ]


def load_bars_csv(path: Union[str, Path], date_column: str = "date") -> pd.DataFrame:
    """
    Load daily OHLCV from CSV (columns: date, open, high, low, close[, volume]).
    Dates are parsed to `datetime.date`.
    """
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    date_column = date_column.lower()
    if date_column != "date":
        df = df.rename(columns={date_column: "date"})
    df["date"] = pd.to_datetime(df["date"]).dt.date
    frame = to_frame(df)
    logger.info("Loaded %d bars from %s", len(frame), path)
    return frame


def tail_days(df: pd.DataFrame, days: int) -> pd.DataFrame:
    """Last `days` bars (all bars if days <= 0)."""
    if days and days > 0:
        return df.iloc[-days:].reset_index(drop=True)
    return df
