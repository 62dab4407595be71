"""Analytics: performance metrics, mean-reversion alerts, activity checks."""

from ma_backtest.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    equity_curve,
    win_rate,
    profit_factor,
    trade_sharpe_ratio,
    risk_adjusted_sharpe_ratio,
    pnl_max_drawdown,
    equity_max_drawdown_pct,
)
from ma_backtest.analytics.alerts import detect_mean_reversion_alerts

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "equity_curve",
    "win_rate",
    "profit_factor",
    "trade_sharpe_ratio",
    "risk_adjusted_sharpe_ratio",
    "pnl_max_drawdown",
    "equity_max_drawdown_pct",
    "detect_mean_reversion_alerts",
]
