"""Indicators: moving averages and ATR."""

from ma_backtest.indicators.moving_average import sma, ema, moving_average
from ma_backtest.indicators.atr import true_range, atr

__all__ = ["sma", "ema", "moving_average", "true_range", "atr"]
