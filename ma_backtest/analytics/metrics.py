"""
Performance metrics: win rate, returns, Sharpe, drawdown, profit factor, equity curve.

Two Sharpe and two drawdown flavours exist on purpose:
- engine level: trade_sharpe_ratio (no risk-free rate, rounded) and pnl_max_drawdown
  (peak-to-trough of cumulative realized P&L, currency units);
- optimizer level: risk_adjusted_sharpe_ratio (daily risk-free rate subtracted) and
  equity_max_drawdown_pct (peak-to-trough of the equity curve, percent).
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np

from ma_backtest.core.types import EquityPoint, Trade

ANNUAL_RISK_FREE_PCT = 2.0
TRADING_DAYS = 252


@dataclass
class PerformanceMetrics:
    """Aggregate engine-level metrics for one run."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    total_return_percent: float = 0.0
    avg_trade_duration: float = 0.0
    max_drawdown: float = 0.0
    sharpe_ratio: float = 0.0


def _closed_pnls(trades: Iterable[Trade]) -> List[float]:
    return [t.pnl for t in trades if t.pnl is not None]


def win_rate(pnls: Sequence[float]) -> float:
    """Percent of trades with positive PnL (0-100)."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit / gross loss. inf if no losses but some profit, 0 if neither."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return float("inf") if wins > 0 else 0.0
    return wins / losses


def trade_returns_pct(trades: Iterable[Trade]) -> List[float]:
    """Per-trade return on committed capital, percent."""
    return [
        t.pnl / (t.entry_price * t.shares) * 100
        for t in trades
        if t.pnl is not None and t.entry_price > 0 and t.shares > 0
    ]


def trade_sharpe_ratio(trades: Sequence[Trade]) -> float:
    """Mean / sample stdev of per-trade % returns, rounded to 2 dp. 0 for < 2 trades."""
    if len(trades) < 2:
        return 0.0
    returns = trade_returns_pct(trades)
    if len(returns) < 2:
        return 0.0
    arr = np.array(returns, dtype=float)
    std = arr.std(ddof=1)
    if std <= 1e-12:
        return 0.0
    return round(float(arr.mean() / std), 2)


def risk_adjusted_sharpe_ratio(
    returns_pct: Sequence[float],
    annual_risk_free_pct: float = ANNUAL_RISK_FREE_PCT,
    periods_per_year: float = TRADING_DAYS,
) -> float:
    """(mean - daily risk-free) / sample stdev of % returns. 0 for < 2 returns."""
    if len(returns_pct) < 2:
        return 0.0
    arr = np.array(returns_pct, dtype=float)
    std = arr.std(ddof=1)
    if std <= 1e-12:
        return 0.0
    return float((arr.mean() - annual_risk_free_pct / periods_per_year) / std)


def pnl_max_drawdown(pnls: Sequence[float]) -> float:
    """Largest decline of cumulative P&L from its running peak (peak starts at 0). >= 0."""
    if not pnls:
        return 0.0
    cum = np.cumsum(np.array(pnls, dtype=float))
    peak = np.maximum.accumulate(np.concatenate(([0.0], cum)))[1:]
    return float(max(0.0, np.max(peak - cum)))


def equity_max_drawdown_pct(equity: Sequence[float]) -> float:
    """Max drawdown of an equity series in percent (15.0 = 15%). >= 0."""
    if len(equity) < 2:
        return 0.0
    arr = np.array(equity, dtype=float)
    peak = np.maximum.accumulate(arr)
    dd = (peak - arr) / np.where(peak != 0, peak, 1)
    return float(np.max(dd)) * 100.0


def equity_curve(dates: Sequence[Any], trades: Iterable[Trade], initial_capital: float) -> List[EquityPoint]:
    """One point per bar; equity moves only by the P&L of trades exiting on that date."""
    pnl_by_date: Dict[Any, float] = defaultdict(float)
    for t in trades:
        if t.exit_date is not None and t.pnl is not None:
            pnl_by_date[t.exit_date] += t.pnl
    equity = float(initial_capital)
    curve: List[EquityPoint] = []
    for d in dates:
        equity += pnl_by_date.get(d, 0.0)
        curve.append(EquityPoint(d, equity))
    return curve


def compute_metrics(trades: Sequence[Trade], initial_capital: float) -> PerformanceMetrics:
    """Engine-level metrics from the trade list (any order; drawdown uses chronological order)."""
    total_trades = len(trades)
    if total_trades == 0:
        return PerformanceMetrics()
    ordered = sorted(trades, key=lambda t: t.entry_date)
    pnls = _closed_pnls(ordered)
    total_pnl = sum(pnls)
    durations = [t.duration_days or 0 for t in ordered]
    return PerformanceMetrics(
        total_trades=total_trades,
        winning_trades=sum(1 for p in pnls if p > 0),
        losing_trades=sum(1 for p in pnls if p < 0),
        win_rate=sum(1 for p in pnls if p > 0) / total_trades * 100.0,
        total_pnl=total_pnl,
        total_return_percent=total_pnl / initial_capital * 100.0,
        avg_trade_duration=sum(durations) / total_trades,
        max_drawdown=pnl_max_drawdown(pnls),
        sharpe_ratio=trade_sharpe_ratio(ordered),
    )
