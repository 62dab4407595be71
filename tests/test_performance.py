"""Tests for symbol performance analysis."""

from datetime import date, timedelta

import pandas as pd
import pytest

from ma_backtest.analytics.performance import (
    RECENT_SIGNAL_DAYS,
    analyze_symbol_performance,
    assess_activity,
)
from ma_backtest.backtesting.engine import AnalysisResult, BacktestEngine
from ma_backtest.core.config import EngineConfig
from ma_backtest.core.errors import (
    InsufficientActivityError,
    InsufficientDataError,
    NoSignalsGeneratedError,
)
from ma_backtest.core.types import PositionSide, Trade

CONFIG = EngineConfig(fast_period=5, slow_period=15, atr_period=5)


def _result(n_trades):
    trades = [
        Trade(entry_date=date(2024, 1, 1) + timedelta(days=i), entry_price=10.0, shares=1,
              position_side=PositionSide.LONG)
        for i in range(n_trades)
    ]
    return AnalysisResult(symbol="X", start_date=date(2024, 1, 1), end_date=date(2024, 2, 1),
                          total_days=30, trades=trades)


def test_assess_activity():
    with pytest.raises(NoSignalsGeneratedError):
        assess_activity(_result(0))
    with pytest.raises(InsufficientActivityError):
        assess_activity(_result(2))
    assess_activity(_result(3))


def test_flat_history_has_no_signals(make_bars):
    result = BacktestEngine().run_analysis(make_bars([100.0] * 60), "FLAT")
    with pytest.raises(NoSignalsGeneratedError):
        assess_activity(result)


def test_needs_minimum_history(make_bars):
    with pytest.raises(InsufficientDataError):
        analyze_symbol_performance(make_bars([100.0] * 29), CONFIG, "X")


def test_needs_enough_bars_after_slicing(make_wave):
    with pytest.raises(InsufficientDataError):
        analyze_symbol_performance(make_wave(n=300), CONFIG, "X", days=59)


def test_analyze_symbol_performance(make_wave):
    df = make_wave(n=300)
    perf = analyze_symbol_performance(df, CONFIG, "WAVE", days=200)
    full = BacktestEngine(CONFIG).run_analysis(df.iloc[-200:], "WAVE")
    assert perf.total_trades == full.performance_metrics.total_trades >= 3
    assert perf.total_return_percent == pytest.approx(full.performance_metrics.total_return_percent)

    cutoff = pd.Timestamp(df["date"].iloc[-1]) - timedelta(days=RECENT_SIGNAL_DAYS)
    assert all(pd.Timestamp(s.date) >= cutoff for s in perf.recent_signals)
    expected = [s for s in full.signals if pd.Timestamp(s.date) >= cutoff]
    assert [s.date for s in perf.recent_signals] == [s.date for s in expected]
    assert perf.to_dict()["symbol"] == "WAVE"
