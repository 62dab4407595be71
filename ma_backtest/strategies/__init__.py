"""Strategies: base interface and the MA crossover implementation."""

from ma_backtest.strategies.base import BaseStrategy
from ma_backtest.strategies.ma_crossover import DirectionalSignalGenerator, MaCrossoverStrategy, merge_signals

__all__ = ["BaseStrategy", "DirectionalSignalGenerator", "MaCrossoverStrategy", "merge_signals"]
