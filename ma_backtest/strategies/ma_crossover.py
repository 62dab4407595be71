"""
MA crossover with ATR trailing stop and trend re-entry.
One directional automaton serves both sides: every comparison is multiplied by
the side's sign (+1 long, -1 short), so the short side is the exact mirror.
Scan state lives in a per-call record, never on the instance.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import pandas as pd

from ma_backtest.core.types import MaType, PositionSide, Signal, SignalKind, StrategyMode
from ma_backtest.indicators.atr import atr as atr_series
from ma_backtest.indicators.moving_average import moving_average
from ma_backtest.strategies.base import BaseStrategy

logger = logging.getLogger("ma_backtest.strategy")

PRIMARY_CONFIDENCE_CAP = 0.9
REENTRY_CONFIDENCE_CAP = 0.8


def confidence(price: float, reference_ma: float, cap: float) -> float:
    """Bounded distance-from-MA proxy for signal strength."""
    if reference_ma == 0:
        return 0.0
    return min(cap, abs(price - reference_ma) / reference_ma * 10)


@dataclass
class _ScanState:
    in_position: bool = False
    trailing_stop: Optional[float] = None
    extreme_price: Optional[float] = None
    has_exited: bool = False
    reentry_count: int = 0


class DirectionalSignalGenerator:
    """
    Flat/InPosition state machine for one side.

    Long: primary entry when close crosses above the slow MA; re-entry after an exit
    when close crosses above the fast MA while fast > slow. Exit on the first of:
    close crosses below fast MA, close below trailing stop, close below slow MA.
    Short mirrors all of it.
    """

    def __init__(
        self,
        side: PositionSide,
        fast_period: int,
        slow_period: int,
        atr_period: int,
        atr_multiplier: float,
        ma_label: str = "EMA",
    ):
        self.side = side
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.atr_period = atr_period
        self.atr_multiplier = atr_multiplier
        self.ma_label = ma_label

    @property
    def start_index(self) -> int:
        return max(self.slow_period, self.atr_period)

    def scan(
        self,
        dates: Sequence,
        close: Sequence[float],
        fast_ma: Sequence[float],
        slow_ma: Sequence[float],
        atr: Sequence[float],
    ) -> List[Signal]:
        """Return this side's signals in chronological order."""
        s = self.side.sign
        long_side = self.side is PositionSide.LONG
        with_trend, against_trend = ("above", "below") if long_side else ("below", "above")
        entry_kind = SignalKind.entry_for(self.side)
        exit_kind = SignalKind.exit_for(self.side)
        fast_n, slow_n, label = self.fast_period, self.slow_period, self.ma_label

        state = _ScanState()
        signals: List[Signal] = []

        for i in range(max(self.start_index, 1), len(close)):
            c, f, sl, a = close[i], fast_ma[i], slow_ma[i], atr[i]
            if math.isnan(f) or math.isnan(sl) or math.isnan(a):
                continue
            pc, pf, ps = close[i - 1], fast_ma[i - 1], slow_ma[i - 1]
            day = dates[i]

            if not state.in_position:
                primary = s * c > s * sl and s * pc <= s * ps
                reentry = (
                    state.has_exited
                    and s * c > s * f
                    and s * f > s * sl
                    and s * pc <= s * pf
                )
                if primary or reentry:
                    state.in_position = True
                    state.trailing_stop = c - s * a * self.atr_multiplier
                    state.extreme_price = c
                    if primary:
                        state.reentry_count = 0
                        prefix = "Primary entry" if long_side else "Primary short entry"
                        reasoning = (
                            f"{prefix}: Price {c:.2f} closed {with_trend} {slow_n} {label} {sl:.2f}"
                        )
                        conf = confidence(c, sl, PRIMARY_CONFIDENCE_CAP)
                    else:
                        state.reentry_count += 1
                        prefix = "Re-entry" if long_side else "Short re-entry"
                        relation = ">" if long_side else "<"
                        trend = "trend" if long_side else "downtrend"
                        reasoning = (
                            f"{prefix} #{state.reentry_count}: Price {c:.2f} closed {with_trend} "
                            f"{fast_n} {label} {f:.2f} ({trend} confirmed: {fast_n} MA {relation} {slow_n} MA)"
                        )
                        conf = confidence(c, f, REENTRY_CONFIDENCE_CAP)
                    signals.append(Signal(
                        date=day,
                        kind=entry_kind,
                        price=c,
                        fast_ma=f,
                        slow_ma=sl,
                        reasoning=reasoning,
                        confidence=conf,
                        atr=a,
                        trailing_stop=state.trailing_stop,
                        position_side=self.side,
                        is_reentry=not primary,
                    ))

            if not state.in_position:
                continue

            # Ratchet stop with the new extreme; it only ever moves in the trade's favour
            if s * c > s * state.extreme_price:
                state.extreme_price = c
                candidate = c - s * a * self.atr_multiplier
                if s * candidate > s * state.trailing_stop:
                    state.trailing_stop = candidate

            reason = None
            if s * c < s * f and s * pc >= s * pf:
                reason = f"Price {c:.2f} closed {against_trend} {fast_n} {label} {f:.2f}"
            elif s * c < s * state.trailing_stop:
                reason = f"Price {c:.2f} hit trailing stop {state.trailing_stop:.2f}"
            elif s * c < s * sl:
                prefix = "Major trend break" if long_side else "Major trend reversal"
                reason = f"{prefix}: Price {c:.2f} closed {against_trend} {slow_n} {label} {sl:.2f}"

            if reason is not None:
                signals.append(Signal(
                    date=day,
                    kind=exit_kind,
                    price=c,
                    fast_ma=f,
                    slow_ma=sl,
                    reasoning=reason,
                    confidence=confidence(c, f, PRIMARY_CONFIDENCE_CAP),
                    atr=a,
                    trailing_stop=state.trailing_stop,
                    position_side=self.side,
                ))
                state.in_position = False
                state.has_exited = True
                state.trailing_stop = None
                state.extreme_price = None

        return signals


def merge_signals(signals: List[Signal]) -> List[Signal]:
    """
    Chronological merge of both sides. On a shared date exits sort ahead of entries,
    so a same-bar reversal closes one side before the other opens.
    """
    return sorted(signals, key=lambda sig: (sig.date, sig.kind.is_entry))


class MaCrossoverStrategy(BaseStrategy):
    """
    Fast/slow MA crossover (EMA or SMA) with ATR trailing stops.
    strategy_mode picks long, short, or both automata; "both" merges by date.
    """

    def __init__(
        self,
        fast_period: int = 21,
        slow_period: int = 50,
        atr_period: int = 14,
        atr_multiplier_long: float = 2.0,
        atr_multiplier_short: float = 1.5,
        ma_type: Union[MaType, str] = MaType.EMA,
        strategy_mode: Union[StrategyMode, str] = StrategyMode.LONG,
    ):
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.atr_period = atr_period
        self.atr_multiplier_long = atr_multiplier_long
        self.atr_multiplier_short = atr_multiplier_short
        self.ma_type = MaType(getattr(ma_type, "value", ma_type))
        self.strategy_mode = StrategyMode(getattr(strategy_mode, "value", strategy_mode))

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        df["fast_ma"] = moving_average(df["close"], self.fast_period, self.ma_type)
        df["slow_ma"] = moving_average(df["close"], self.slow_period, self.ma_type)
        df["atr"] = atr_series(df, self.atr_period)
        return df

    def generator(self, side: PositionSide) -> DirectionalSignalGenerator:
        multiplier = self.atr_multiplier_long if side is PositionSide.LONG else self.atr_multiplier_short
        return DirectionalSignalGenerator(
            side=side,
            fast_period=self.fast_period,
            slow_period=self.slow_period,
            atr_period=self.atr_period,
            atr_multiplier=multiplier,
            ma_label=self.ma_type.value.upper(),
        )

    def generate_signals(self, df: pd.DataFrame) -> List[Signal]:
        dates = df["date"].tolist()
        close = df["close"].astype(float).to_numpy()
        fast = df["fast_ma"].to_numpy(dtype=float)
        slow = df["slow_ma"].to_numpy(dtype=float)
        atr = df["atr"].to_numpy(dtype=float)

        signals: List[Signal] = []
        for side in self.strategy_mode.sides:
            side_signals = self.generator(side).scan(dates, close, fast, slow, atr)
            logger.debug("%s scan produced %d signals", side.value, len(side_signals))
            signals.extend(side_signals)
        if len(self.strategy_mode.sides) > 1:
            signals = merge_signals(signals)
        return signals
