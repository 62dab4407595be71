"""
Trade executor: fills every signal at the next bar's open (no lookahead),
sizes positions from available capital, and force-closes at the last close.
"""

from __future__ import annotations
import logging
import math
from typing import Any, Dict, List, Optional

import pandas as pd

from ma_backtest.core.types import PositionSide, Signal, SignalKind, Trade

logger = logging.getLogger("ma_backtest.executor")

END_OF_PERIOD_REASON = "End of Period"
END_OF_PERIOD_SIGNAL = "End of period - position closed"


def days_between(start: Any, end: Any) -> int:
    """Whole calendar days from start to end."""
    return int((pd.Timestamp(end) - pd.Timestamp(start)).days)


def classify_exit_reason(reasoning: str, side: PositionSide) -> str:
    text = reasoning.lower()
    if "trailing stop" in text:
        return "Trailing Stop"
    if "major trend" in text:
        return "Trend Break" if side is PositionSide.LONG else "Trend Reversal"
    return "MA Signal"


def apply_running_metrics(trades: List[Trade], initial_capital: float) -> None:
    """
    One sequential pass: running P&L, running capital and drawdown from the
    running peak of capital (peak starts at initial capital).
    """
    running_pnl = 0.0
    running_capital = float(initial_capital)
    peak_capital = float(initial_capital)
    for trade in trades:
        if trade.pnl is None:
            continue
        running_pnl += trade.pnl
        running_capital += trade.pnl
        if running_capital > peak_capital:
            peak_capital = running_capital
        drawdown = (running_capital - peak_capital) / peak_capital * 100 if peak_capital else 0.0
        trade.running_pnl = round(running_pnl, 2)
        trade.running_capital = round(running_capital, 2)
        trade.drawdown_percent = round(drawdown, 2)


class TradeExecutor:
    """
    Converts a chronological signal list into non-overlapping trades.
    Long opening spends capital, short opening receives proceeds; re-entries are sized at half.
    """

    def __init__(
        self,
        initial_capital: float = 100000.0,
        sizing_percent_long: float = 5.0,
        sizing_percent_short: float = 3.0,
        reentry_size_factor: float = 0.5,
    ):
        self.initial_capital = initial_capital
        self.sizing_percent_long = sizing_percent_long
        self.sizing_percent_short = sizing_percent_short
        self.reentry_size_factor = reentry_size_factor

    def _sizing_percent(self, side: PositionSide) -> float:
        return self.sizing_percent_long if side is PositionSide.LONG else self.sizing_percent_short

    def execute(self, df: pd.DataFrame, signals: List[Signal]) -> List[Trade]:
        """Run signals against bars (columns: date, open, close). Returns trades in entry order."""
        trades: List[Trade] = []
        if len(df) == 0:
            return trades
        dates = df["date"].tolist()
        opens = df["open"].astype(float).to_numpy()
        closes = df["close"].astype(float).to_numpy()
        date_to_index: Dict[Any, int] = {d: i for i, d in enumerate(dates)}

        available_capital = float(self.initial_capital)
        position: Optional[Trade] = None
        reentry_count = 0

        for signal in signals:
            idx = date_to_index.get(signal.date)
            if idx is None or idx + 1 >= len(dates):
                # nothing to fill against
                continue
            fill_date = dates[idx + 1]
            fill_price = float(opens[idx + 1])
            side = signal.position_side

            if signal.kind.is_entry:
                if position is not None:
                    continue
                reentry_count = reentry_count + 1 if signal.is_reentry else 0
                capital = available_capital * (self._sizing_percent(side) / 100.0)
                if signal.is_reentry:
                    capital *= self.reentry_size_factor
                shares = math.floor(capital / fill_price) if fill_price > 0 else 0
                if shares <= 0:
                    logger.debug("Dropped %s signal on %s: zero shares", signal.kind.value, signal.date)
                    continue
                position = Trade(
                    entry_date=fill_date,
                    entry_price=fill_price,
                    shares=shares,
                    position_side=side,
                    entry_signal=signal.reasoning,
                    is_reentry=signal.is_reentry,
                    reentry_count=reentry_count,
                )
                available_capital -= side.sign * shares * fill_price
                continue

            if position is None or signal.kind is not SignalKind.exit_for(position.position_side):
                continue
            self._close(position, fill_date, fill_price, signal.reasoning)
            position.exit_reason = classify_exit_reason(signal.reasoning, position.position_side)
            available_capital += position.position_side.sign * position.shares * fill_price
            trades.append(position)
            position = None

        if position is not None:
            self._close(position, dates[-1], float(closes[-1]), END_OF_PERIOD_SIGNAL)
            position.exit_reason = END_OF_PERIOD_REASON
            trades.append(position)

        apply_running_metrics(trades, self.initial_capital)
        return trades

    @staticmethod
    def _close(trade: Trade, exit_date: Any, exit_price: float, exit_signal: str) -> None:
        s = trade.position_side.sign
        trade.exit_date = exit_date
        trade.exit_price = exit_price
        trade.exit_signal = exit_signal
        trade.pnl = trade.shares * (exit_price - trade.entry_price) * s
        trade.pnl_percent = (exit_price - trade.entry_price) / trade.entry_price * 100 * s
        trade.duration_days = days_between(trade.entry_date, exit_date)
