"""
Symbol performance analysis: run the engine over a (optionally sliced) history
and reject runs without enough trading activity to judge.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from ma_backtest.backtesting.engine import AnalysisResult, BacktestEngine
from ma_backtest.core.config import EngineConfig
from ma_backtest.core.errors import (
    InsufficientActivityError,
    InsufficientDataError,
    NoSignalsGeneratedError,
)
from ma_backtest.core.types import MeanReversionAlert, Signal, to_serializable
from ma_backtest.utils.bars import BarsLike, tail_days, to_frame

logger = logging.getLogger("ma_backtest.performance")

MIN_HISTORY_BARS = 30
MIN_SLICED_BARS = 60
MIN_TRADES = 3
RECENT_SIGNAL_DAYS = 14


@dataclass
class SymbolPerformance:
    """Headline numbers for one symbol plus its most recent signals."""
    symbol: str
    total_return_percent: float
    total_pnl: float
    win_rate: float
    total_trades: int
    sharpe_ratio: float
    recent_signals: List[Signal] = field(default_factory=list)
    recent_alerts: List[MeanReversionAlert] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


def assess_activity(result: AnalysisResult, min_trades: int = MIN_TRADES) -> None:
    """Raise if the run produced no trades, or fewer than min_trades."""
    total = len(result.trades)
    if total == 0:
        raise NoSignalsGeneratedError(
            f"No trades generated for {result.symbol} (flat/low volatility - no MA crossover signals)"
        )
    if total < min_trades:
        raise InsufficientActivityError(
            f"Only {total} trade(s) generated for {result.symbol} (insufficient activity for meaningful analysis)"
        )


def analyze_symbol_performance(
    bars: BarsLike,
    config: Optional[EngineConfig] = None,
    symbol: str = "",
    days: int = 0,
    min_trades: int = MIN_TRADES,
) -> SymbolPerformance:
    """
    Run the engine on the last `days` bars (all if days <= 0) and summarise it.
    Needs MIN_HISTORY_BARS bars, and MIN_SLICED_BARS after slicing.
    """
    df = to_frame(bars)
    if len(df) < MIN_HISTORY_BARS:
        raise InsufficientDataError(f"Insufficient data: {len(df)} days (need at least {MIN_HISTORY_BARS})")
    if days and days > 0:
        df = tail_days(df, days)
        if len(df) < MIN_SLICED_BARS:
            raise InsufficientDataError(
                f"Insufficient data after slicing: {len(df)} days (need at least {MIN_SLICED_BARS})"
            )
        logger.info("%s: using last %d days of data (%d available)", symbol, days, len(df))

    result = BacktestEngine(config).run_analysis(df, symbol)
    assess_activity(result, min_trades)

    cutoff = pd.Timestamp(df["date"].iloc[-1]) - timedelta(days=RECENT_SIGNAL_DAYS)
    m = result.performance_metrics
    perf = SymbolPerformance(
        symbol=symbol,
        total_return_percent=m.total_return_percent,
        total_pnl=m.total_pnl,
        win_rate=m.win_rate,
        total_trades=m.total_trades,
        sharpe_ratio=m.sharpe_ratio,
        recent_signals=[s for s in result.signals if pd.Timestamp(s.date) >= cutoff],
        recent_alerts=[a for a in result.mean_reversion_alerts if pd.Timestamp(a.date) >= cutoff],
    )
    logger.info("%s: %.2f%% return, %d trades", symbol, perf.total_return_percent, perf.total_trades)
    return perf
