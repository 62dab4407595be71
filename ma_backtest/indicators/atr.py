from __future__ import annotations

import numpy as np
import pandas as pd

from ma_backtest.indicators.moving_average import ema


def true_range(df: pd.DataFrame) -> pd.Series:
    """True range per bar; NaN on the first bar (no previous close)."""
    high = df["high"].astype(float)
    low = df["low"].astype(float)
    close_prev = df["close"].astype(float).shift(1)

    tr1 = high - low
    tr2 = (high - close_prev).abs()
    tr3 = (low - close_prev).abs()
    tr = pd.concat([tr1, tr2, tr3], axis=1).max(axis=1)
    tr.iloc[:1] = np.nan
    return tr


def atr(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    ATR(period) as the SMA-seeded EMA of true range.
    The first defined value sits at bar index `period` (true range starts at bar 1).
    """
    tr = true_range(df)
    out = pd.Series(np.nan, index=df.index, dtype=float)
    if len(df) < 2:
        return out
    out.iloc[1:] = ema(tr.iloc[1:], period).to_numpy()
    return out
