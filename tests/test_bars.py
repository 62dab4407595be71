"""Tests for bar series helpers."""

from datetime import date

import pandas as pd
import pytest

from ma_backtest.core.types import to_serializable
from ma_backtest.utils.bars import load_bars_csv, tail_days, to_bars, to_frame


def test_to_frame_from_bars(make_bars):
    df = to_frame(make_bars([1.0, 2.0, 3.0]))
    assert list(df.columns) == ["date", "open", "high", "low", "close", "volume"]
    assert df["close"].tolist() == [1.0, 2.0, 3.0]


def test_to_frame_normalizes_columns_and_order():
    raw = pd.DataFrame({
        "Time": [date(2024, 1, 3), date(2024, 1, 1), date(2024, 1, 2)],
        "Open": [3.0, 1.0, 2.0],
        "High": [3.0, 1.0, 2.0],
        "Low": [3.0, 1.0, 2.0],
        "Close": [3.0, 1.0, 2.0],
    })
    df = to_frame(raw)
    assert df["close"].tolist() == [1.0, 2.0, 3.0]
    assert df["volume"].tolist() == [0.0, 0.0, 0.0]
    assert list(df.index) == [0, 1, 2]


def test_to_frame_missing_columns():
    with pytest.raises(ValueError):
        to_frame(pd.DataFrame({"date": [date(2024, 1, 1)], "close": [1.0]}))


def test_round_trip_and_tail(make_bars):
    bars = make_bars([1.0, 2.0, 3.0, 4.0])
    assert to_bars(to_frame(bars)) == bars
    assert tail_days(to_frame(bars), 2)["close"].tolist() == [3.0, 4.0]
    assert len(tail_days(to_frame(bars), 0)) == 4


def test_load_bars_csv(tmp_path):
    path = tmp_path / "bars.csv"
    path.write_text(
        "Date,Open,High,Low,Close,Volume\n"
        "2024-01-02,10,11,9,10.5,1000\n"
        "2024-01-03,10.5,12,10,11.5,1200\n",
        encoding="utf-8",
    )
    df = load_bars_csv(path)
    assert df["date"].tolist() == [date(2024, 1, 2), date(2024, 1, 3)]
    assert df["close"].tolist() == [10.5, 11.5]


def test_to_serializable_drops_non_finite_floats():
    payload = to_serializable({"pf": float("inf"), "loss": float("-inf"), "nan": float("nan"),
                               "day": date(2024, 1, 2), "ok": [1.5, 2]})
    assert payload == {"pf": None, "loss": None, "nan": None, "day": "2024-01-02", "ok": [1.5, 2]}
