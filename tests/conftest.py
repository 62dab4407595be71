"""Shared bar builders."""

import math
from datetime import date, timedelta

import pandas as pd
import pytest

from ma_backtest.core.types import Bar

START = date(2023, 1, 2)


def build_bars(closes, opens=None, spread=0.0, start=START):
    """Daily bars, one calendar day apart. open defaults to close; high/low pad by spread."""
    bars = []
    for i, close in enumerate(closes):
        o = opens[i] if opens is not None else close
        bars.append(Bar(
            date=start + timedelta(days=i),
            open=float(o),
            high=max(o, close) + spread,
            low=min(o, close) - spread,
            close=float(close),
            volume=1000.0,
        ))
    return bars


def build_wave_frame(n=300, period=40, amplitude=15.0, base=100.0, start=START):
    """Deterministic oscillating series that crosses its moving averages every cycle."""
    closes = [
        base + amplitude * math.sin(2 * math.pi * i / period) + 0.8 * math.sin(i * 1.7)
        for i in range(n)
    ]
    opens = [closes[0]] + closes[:-1]
    return pd.DataFrame({
        "date": [start + timedelta(days=i) for i in range(n)],
        "open": opens,
        "high": [max(o, c) + 0.5 for o, c in zip(opens, closes)],
        "low": [min(o, c) - 0.5 for o, c in zip(opens, closes)],
        "close": closes,
        "volume": [1000.0] * n,
    })


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def wave_frame():
    return build_wave_frame()


@pytest.fixture
def make_wave():
    return build_wave_frame
