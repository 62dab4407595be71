"""Core: config, types, errors, logging."""

from ma_backtest.core.config import load_config, Config, EngineConfig
from ma_backtest.core.errors import (
    BacktestError,
    InsufficientDataError,
    NoSignalsGeneratedError,
    InsufficientActivityError,
    InvalidConfigurationError,
    OptimizationError,
)
from ma_backtest.core.types import (
    Bar,
    Signal,
    SignalKind,
    PositionSide,
    MaType,
    StrategyMode,
    Trade,
    MeanReversionAlert,
    EquityPoint,
)
from ma_backtest.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "EngineConfig",
    "BacktestError",
    "InsufficientDataError",
    "NoSignalsGeneratedError",
    "InsufficientActivityError",
    "InvalidConfigurationError",
    "OptimizationError",
    "Bar",
    "Signal",
    "SignalKind",
    "PositionSide",
    "MaType",
    "StrategyMode",
    "Trade",
    "MeanReversionAlert",
    "EquityPoint",
    "setup_logging",
]
