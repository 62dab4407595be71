"""Error kinds reported by the engine, the optimizer and the performance checks."""


class BacktestError(Exception):
    """Base class for all engine errors."""


class InsufficientDataError(BacktestError):
    """Not enough bars for the requested computation."""


class NoSignalsGeneratedError(BacktestError):
    """The run produced zero trades (flat or low-volatility instrument)."""


class InsufficientActivityError(BacktestError):
    """The run produced too few trades to draw conclusions."""


class InvalidConfigurationError(BacktestError, ValueError):
    """Malformed ranges, pairs, MA type, strategy mode or metric."""


class OptimizationError(BacktestError):
    """Every candidate pair in a sweep failed."""
