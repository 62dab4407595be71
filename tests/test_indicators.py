"""Unit tests for indicators."""

import math

import numpy as np
import pandas as pd
import pytest

from ma_backtest.core.errors import InvalidConfigurationError
from ma_backtest.indicators import atr, ema, moving_average, sma, true_range


def test_sma_values():
    out = sma(pd.Series([1.0, 2.0, 3.0, 4.0]), 2)
    assert math.isnan(out.iloc[0])
    assert out.iloc[1:].tolist() == [1.5, 2.5, 3.5]


def test_ema_seeded_with_sma():
    out = ema(pd.Series([1.0, 2.0, 3.0, 4.0, 5.0]), 3)
    assert out.iloc[:2].isna().all()
    # seed = mean(1, 2, 3); alpha = 0.5
    assert out.iloc[2] == pytest.approx(2.0)
    assert out.iloc[3] == pytest.approx(3.0)
    assert out.iloc[4] == pytest.approx(4.0)


def test_ema_shorter_than_period_is_undefined():
    assert ema(pd.Series([1.0, 2.0]), 5).isna().all()


@pytest.mark.parametrize("period", [1, 3, 10])
def test_constant_series_ma_equals_constant(period):
    s = pd.Series([42.5] * 30)
    for fn in (sma, ema):
        out = fn(s, period)
        assert out.iloc[: period - 1].isna().all()
        assert (out.iloc[period - 1:] == 42.5).all()


def test_moving_average_dispatch_and_invalid_type():
    s = pd.Series(np.arange(10, dtype=float))
    assert moving_average(s, 3, "sma").equals(sma(s, 3))
    assert moving_average(s, 3, "EMA").equals(ema(s, 3))
    with pytest.raises(InvalidConfigurationError):
        moving_average(s, 3, "wma")


def test_true_range_uses_previous_close():
    df = pd.DataFrame({
        "high": [10.5, 15.0],
        "low": [9.5, 14.0],
        "close": [10.0, 14.5],
    })
    tr = true_range(df)
    assert math.isnan(tr.iloc[0])
    assert tr.iloc[1] == pytest.approx(5.0)  # gap: high - prev close


def test_atr_alignment():
    df = pd.DataFrame({
        "high": [10.5, 11.5, 12.5, 12.0],
        "low": [9.5, 10.0, 11.0, 10.5],
        "close": [10.0, 11.0, 12.0, 11.0],
    })
    out = atr(df, 2)
    assert out.iloc[:2].isna().all()
    assert out.iloc[2] == pytest.approx(1.5)
    assert out.iloc[3] == pytest.approx(1.5)


def test_atr_non_negative(wave_frame):
    out = atr(wave_frame, 14).dropna()
    assert len(out) == len(wave_frame) - 14
    assert (out >= 0).all()
