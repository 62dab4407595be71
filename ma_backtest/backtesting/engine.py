"""
Backtest engine: indicators -> signals -> next-bar fills -> alerts, metrics, equity curve.
Pure computation; all per-run state is local to run_analysis.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ma_backtest.analytics.alerts import detect_mean_reversion_alerts
from ma_backtest.analytics.metrics import PerformanceMetrics, compute_metrics, equity_curve
from ma_backtest.backtesting.executor import TradeExecutor
from ma_backtest.core.config import EngineConfig
from ma_backtest.core.errors import InsufficientDataError
from ma_backtest.core.types import (
    DateLike,
    EquityPoint,
    MeanReversionAlert,
    Signal,
    Trade,
    to_serializable,
)
from ma_backtest.strategies.ma_crossover import MaCrossoverStrategy
from ma_backtest.utils.bars import BarsLike, to_frame

logger = logging.getLogger("ma_backtest.engine")


@dataclass
class AnalysisResult:
    """Backtest output. Trades, signals and alerts are newest first."""
    symbol: str
    start_date: DateLike
    end_date: DateLike
    total_days: int
    trades: List[Trade] = field(default_factory=list)
    signals: List[Signal] = field(default_factory=list)
    mean_reversion_alerts: List[MeanReversionAlert] = field(default_factory=list)
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    equity_curve: List[EquityPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


class BacktestEngine:
    """
    Runs the MA crossover strategy over a date-ascending bar series.
    One configured engine can serve repeated or concurrent calls.
    """

    def __init__(self, config: Optional[EngineConfig] = None, **overrides: Any):
        if config is None:
            config = EngineConfig(**overrides)
        elif overrides:
            config = replace(config, **overrides)
        self.config = config
        self.strategy = MaCrossoverStrategy(
            fast_period=config.fast_period,
            slow_period=config.slow_period,
            atr_period=config.atr_period,
            atr_multiplier_long=config.atr_multiplier_long,
            atr_multiplier_short=config.atr_multiplier_short,
            ma_type=config.ma_type,
            strategy_mode=config.strategy_mode,
        )
        self.executor = TradeExecutor(
            initial_capital=config.initial_capital,
            sizing_percent_long=config.sizing_percent_long,
            sizing_percent_short=config.sizing_percent_short,
        )

    def run_analysis(self, bars: BarsLike, symbol: str) -> AnalysisResult:
        """
        Run the full pipeline on bars (list[Bar] or DataFrame: date, open, high, low, close, volume).
        Raises InsufficientDataError if there are fewer bars than the slow MA period.
        """
        cfg = self.config
        label = cfg.ma_type.value.upper()
        df = to_frame(bars)
        if len(df) < cfg.slow_period:
            raise InsufficientDataError(
                f"Not enough data for {label} analysis. Need at least {cfg.slow_period} days, got {len(df)}"
            )
        logger.debug(
            "Starting %s analysis for %s (%d bars, %d/%d, mode=%s)",
            label, symbol, len(df), cfg.fast_period, cfg.slow_period, cfg.strategy_mode.value,
        )

        df = self.strategy.compute_indicators(df)
        signals = self.strategy.generate_signals(df)
        trades = self.executor.execute(df, signals)
        alerts = detect_mean_reversion_alerts(
            df, trades, cfg.mean_reversion_threshold, fast_label=f"{cfg.fast_period}-MA"
        )
        metrics = compute_metrics(trades, cfg.initial_capital)
        curve = equity_curve(df["date"].tolist(), trades, cfg.initial_capital)

        # presentation order: newest first
        trades.sort(key=lambda t: t.entry_date, reverse=True)
        signals.sort(key=lambda s: s.date, reverse=True)
        alerts.sort(key=lambda a: a.date, reverse=True)

        logger.debug(
            "%s %d/%d: %d signals, %d trades, return %.2f%%",
            symbol, cfg.fast_period, cfg.slow_period, len(signals), len(trades), metrics.total_return_percent,
        )
        return AnalysisResult(
            symbol=symbol,
            start_date=df["date"].iloc[0],
            end_date=df["date"].iloc[-1],
            total_days=len(df),
            trades=trades,
            signals=signals,
            mean_reversion_alerts=alerts,
            performance_metrics=metrics,
            equity_curve=curve,
        )
