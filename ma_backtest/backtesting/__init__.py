"""Backtesting: next-bar trade execution and the analysis engine."""

from ma_backtest.backtesting.engine import BacktestEngine, AnalysisResult
from ma_backtest.backtesting.executor import TradeExecutor, apply_running_metrics

__all__ = ["BacktestEngine", "AnalysisResult", "TradeExecutor", "apply_running_metrics"]
