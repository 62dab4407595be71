"""
Simple and exponential moving averages. Undefined (NaN) before the first full window.
"""

from __future__ import annotations
from typing import Union

import numpy as np
import pandas as pd

from ma_backtest.core.errors import InvalidConfigurationError
from ma_backtest.core.types import MaType


def sma(series: pd.Series, period: int) -> pd.Series:
    """Trailing arithmetic mean over `period` values."""
    return series.astype(float).rolling(window=int(period), min_periods=int(period)).mean()


def ema(series: pd.Series, period: int) -> pd.Series:
    """
    EMA seeded with the SMA of the first `period` values at index period-1.

    Notes
    -----
    - Same recurrence as pandas `ewm(span=period, adjust=False)` from the seed on,
      written as ema[i] = ema[i-1] + alpha * (x[i] - ema[i-1]), alpha = 2 / (period + 1).
      This form keeps a constant input exactly constant, so flat series never
      produce spurious crossings.
    """
    period = int(period)
    values = series.astype(float).to_numpy()
    out = np.full(len(values), np.nan)
    if period < 1 or len(values) < period:
        return pd.Series(out, index=series.index)
    alpha = 2.0 / (period + 1)
    prev = float(values[:period].mean())
    out[period - 1] = prev
    for i in range(period, len(values)):
        prev = prev + alpha * (values[i] - prev)
        out[i] = prev
    return pd.Series(out, index=series.index)


def moving_average(series: pd.Series, period: int, ma_type: Union[MaType, str] = MaType.EMA) -> pd.Series:
    """EMA or SMA depending on `ma_type`."""
    try:
        kind = MaType(str(getattr(ma_type, "value", ma_type)).lower())
    except ValueError:
        raise InvalidConfigurationError(f'ma_type must be "ema" or "sma", got {ma_type!r}') from None
    if kind is MaType.SMA:
        return sma(series, period)
    return ema(series, period)
