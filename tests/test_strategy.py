"""Tests for the MA crossover signal automaton."""

import numpy as np
import pytest

from ma_backtest.core.types import PositionSide, SignalKind
from ma_backtest.strategies.ma_crossover import (
    PRIMARY_CONFIDENCE_CAP,
    REENTRY_CONFIDENCE_CAP,
    DirectionalSignalGenerator,
    MaCrossoverStrategy,
    confidence,
)
from ma_backtest.utils.bars import to_frame

# flat at 100, primary cross at bar 8, fast-MA exit at bar 12, trend re-entry at bar 13
REENTRY_CLOSES = [100.0] * 8 + [102, 104, 106, 108, 105, 108, 110, 112]


def _signals(strategy, bars):
    df = strategy.compute_indicators(to_frame(bars))
    return df, strategy.generate_signals(df)


def test_flat_series_generates_nothing(make_bars):
    strategy = MaCrossoverStrategy(strategy_mode="both")
    _, signals = _signals(strategy, make_bars([100.0] * 60))
    assert signals == []


def test_primary_entry_at_slow_cross(make_bars):
    closes = [100.0] * 60 + [100.0 + i for i in range(1, 41)]
    bars = make_bars(closes)
    signals = _signals(MaCrossoverStrategy(), bars)[1]
    assert len(signals) == 1
    sig = signals[0]
    assert sig.kind is SignalKind.ENTRY_LONG
    assert sig.date == bars[60].date
    assert not sig.is_reentry
    assert sig.reasoning.startswith("Primary entry: Price 101.00 closed above 50 EMA")
    assert sig.trailing_stop == pytest.approx(sig.price - 2.0 * sig.atr)


def test_exit_and_trend_reentry(make_bars):
    bars = make_bars(REENTRY_CLOSES)
    strategy = MaCrossoverStrategy(fast_period=3, slow_period=5, atr_period=2, atr_multiplier_long=100)
    signals = _signals(strategy, bars)[1]

    assert [s.kind for s in signals] == [SignalKind.ENTRY_LONG, SignalKind.EXIT_LONG, SignalKind.ENTRY_LONG]
    assert [s.date for s in signals] == [bars[8].date, bars[12].date, bars[13].date]
    assert signals[1].reasoning.startswith("Price 105.00 closed below 3 EMA")
    reentry = signals[2]
    assert reentry.is_reentry
    assert reentry.reasoning.startswith("Re-entry #1: Price 108.00 closed above 3 EMA")
    assert "(trend confirmed: 3 MA > 5 MA)" in reentry.reasoning
    assert reentry.confidence <= REENTRY_CONFIDENCE_CAP


def test_trailing_stop_exit(make_bars):
    bars = make_bars([100.0] * 8 + [102, 104, 103])
    strategy = MaCrossoverStrategy(fast_period=3, slow_period=5, atr_period=2, atr_multiplier_long=0.5)
    signals = _signals(strategy, bars)[1]
    assert [s.kind for s in signals] == [SignalKind.ENTRY_LONG, SignalKind.EXIT_LONG]
    exit_sig = signals[1]
    assert exit_sig.date == bars[10].date
    assert "hit trailing stop" in exit_sig.reasoning
    # stop ratcheted from 104 - 0.5 * ATR(bar 9)
    assert exit_sig.trailing_stop == pytest.approx(104 - 0.5 * (4.0 / 3 + (2 - 4.0 / 3) * 2 / 3))


def test_trailing_stop_never_loosens():
    gen = DirectionalSignalGenerator(PositionSide.LONG, 1, 2, 1, 1.0)
    dates = list(range(5))
    close = np.array([9.0, 9.0, 11.0, 12.0, 9.8])
    fast = np.array([9.0, 9.0, 10.5, 11.5, 9.5])
    slow = np.array([10.0] * 5)
    atr = np.array([1.0, 1.0, 1.0, 5.0, 1.0])
    signals = gen.scan(dates, close, fast, slow, atr)
    assert [s.kind for s in signals] == [SignalKind.ENTRY_LONG, SignalKind.EXIT_LONG]
    assert signals[0].trailing_stop == pytest.approx(10.0)
    # new high at bar 3 with a wide ATR would have put the stop at 7; it stays at 10
    assert signals[1].trailing_stop == pytest.approx(10.0)
    assert "hit trailing stop 10.00" in signals[1].reasoning


def test_slow_ma_exit_is_trend_break():
    gen = DirectionalSignalGenerator(PositionSide.LONG, 1, 2, 1, 10.0)
    close = np.array([9.0, 9.0, 11.0, 9.5])
    fast = np.array([9.0, 9.0, 10.5, 9.0])
    slow = np.array([10.0] * 4)
    atr = np.array([1.0] * 4)
    signals = gen.scan(list(range(4)), close, fast, slow, atr)
    assert signals[-1].kind is SignalKind.EXIT_LONG
    assert signals[-1].reasoning.startswith("Major trend break: Price 9.50 closed below 2 EMA")


def test_short_side_mirrors_long(make_bars):
    strategy = MaCrossoverStrategy(fast_period=3, slow_period=5, atr_period=2, atr_multiplier_long=100,
                                   atr_multiplier_short=100)
    df = strategy.compute_indicators(to_frame(make_bars(REENTRY_CLOSES)))
    dates = df["date"].tolist()
    close, fast, slow, atr = (df[c].to_numpy(dtype=float) for c in ("close", "fast_ma", "slow_ma", "atr"))

    long_signals = strategy.generator(PositionSide.LONG).scan(dates, close, fast, slow, atr)
    short_signals = strategy.generator(PositionSide.SHORT).scan(dates, 200 - close, 200 - fast, 200 - slow, atr)

    mirror = {SignalKind.ENTRY_LONG: SignalKind.ENTRY_SHORT, SignalKind.EXIT_LONG: SignalKind.EXIT_SHORT}
    assert [mirror[s.kind] for s in long_signals] == [s.kind for s in short_signals]
    assert [s.date for s in long_signals] == [s.date for s in short_signals]
    assert [s.is_reentry for s in long_signals] == [s.is_reentry for s in short_signals]
    for lg, sh in zip(long_signals, short_signals):
        assert sh.position_side is PositionSide.SHORT
        assert sh.trailing_stop == pytest.approx(200 - lg.trailing_stop)
    assert short_signals[0].reasoning.startswith("Primary short entry:")
    assert short_signals[2].reasoning.startswith("Short re-entry #1:")
    assert "downtrend confirmed: 3 MA < 5 MA" in short_signals[2].reasoning


def test_both_mode_is_date_ordered(wave_frame):
    strategy = MaCrossoverStrategy(fast_period=5, slow_period=15, atr_period=5, strategy_mode="both")
    df = strategy.compute_indicators(to_frame(wave_frame))
    signals = strategy.generate_signals(df)
    sides = {s.position_side for s in signals}
    assert sides == {PositionSide.LONG, PositionSide.SHORT}
    dates = [s.date for s in signals]
    assert dates == sorted(dates)


def test_signals_alternate_per_side(wave_frame):
    strategy = MaCrossoverStrategy(fast_period=5, slow_period=15, atr_period=5, strategy_mode="both")
    df = strategy.compute_indicators(to_frame(wave_frame))
    for side in (PositionSide.LONG, PositionSide.SHORT):
        kinds = [s.kind.is_entry for s in strategy.generate_signals(df) if s.position_side is side]
        assert kinds
        # entry, exit, entry, exit, ...
        assert all(k == (i % 2 == 0) for i, k in enumerate(kinds))


def test_confidence_is_capped():
    assert confidence(200.0, 100.0, PRIMARY_CONFIDENCE_CAP) == PRIMARY_CONFIDENCE_CAP
    assert confidence(101.0, 100.0, PRIMARY_CONFIDENCE_CAP) == pytest.approx(0.1)
    assert confidence(1.0, 0.0, PRIMARY_CONFIDENCE_CAP) == 0.0


def test_both_mode_puts_exits_before_entries_on_a_shared_date(wave_frame):
    strategy = MaCrossoverStrategy(fast_period=5, slow_period=15, atr_period=5, strategy_mode="both")
    signals = strategy.generate_signals(strategy.compute_indicators(to_frame(wave_frame)))
    keys = [(s.date, s.kind.is_entry) for s in signals]
    assert keys == sorted(keys)
