"""
Load configuration from config.yaml and .env. Env values override YAML.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from ma_backtest.core.errors import InvalidConfigurationError
from ma_backtest.core.types import MaType, StrategyMode


@dataclass(frozen=True)
class EngineConfig:
    """Immutable per-run engine configuration."""
    initial_capital: float = 100000.0
    atr_period: int = 14
    atr_multiplier_long: float = 2.0
    atr_multiplier_short: float = 1.5
    ma_type: MaType = MaType.EMA
    fast_period: int = 21
    slow_period: int = 50
    mean_reversion_threshold: float = 10.0
    sizing_percent_long: float = 5.0
    sizing_percent_short: float = 3.0
    strategy_mode: StrategyMode = StrategyMode.LONG

    def __post_init__(self) -> None:
        # Accept plain strings from YAML / env / callers.
        try:
            object.__setattr__(self, "ma_type", MaType(str(getattr(self.ma_type, "value", self.ma_type)).lower()))
        except ValueError:
            raise InvalidConfigurationError(f'ma_type must be "ema" or "sma", got {self.ma_type!r}') from None
        try:
            mode = str(getattr(self.strategy_mode, "value", self.strategy_mode)).lower()
            object.__setattr__(self, "strategy_mode", StrategyMode(mode))
        except ValueError:
            raise InvalidConfigurationError(
                f'strategy_mode must be "long", "short" or "both", got {self.strategy_mode!r}'
            ) from None
        if self.fast_period < 1 or self.slow_period < 1 or self.atr_period < 1:
            raise InvalidConfigurationError("MA and ATR periods must be positive")
        if self.fast_period >= self.slow_period:
            raise InvalidConfigurationError(
                f"fast_period ({self.fast_period}) must be less than slow_period ({self.slow_period})"
            )
        if self.initial_capital <= 0:
            raise InvalidConfigurationError("initial_capital must be positive")
        if self.sizing_percent_long <= 0 or self.sizing_percent_short <= 0:
            raise InvalidConfigurationError("position sizing percentages must be positive")

    def with_periods(self, fast_period: int, slow_period: int) -> "EngineConfig":
        """Copy with a different MA pair (used by the optimizer)."""
        return replace(self, fast_period=fast_period, slow_period=slow_period)


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def parse_int_pair(text: str, name: str = "range") -> tuple[int, int]:
    """Parse "5,30" into (5, 30)."""
    parts = [p.strip() for p in str(text).split(",")]
    if len(parts) != 2:
        raise InvalidConfigurationError(f'Invalid {name} "{text}". Use "min,max"')
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidConfigurationError(f'Invalid {name} "{text}". Use integers "min,max"') from None


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, str(default)).strip()

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_range(key: str, default: Any) -> tuple[int, int]:
        raw = os.getenv(key)
        if raw:
            return parse_int_pair(raw, key.lower())
        if isinstance(default, str):
            return parse_int_pair(default, key.lower())
        return int(default[0]), int(default[1])

    engine = data.get("engine", {})
    optimizer = data.get("optimizer", {})
    source = data.get("data", {})
    logging_cfg = data.get("logging", {})

    return Config(
        # Engine
        initial_capital=env_float("INITIAL_CAPITAL", engine.get("initial_capital", 100000.0)),
        atr_period=env_int("ATR_PERIOD", engine.get("atr_period", 14)),
        atr_multiplier_long=env_float("ATR_MULTIPLIER_LONG", engine.get("atr_multiplier_long", 2.0)),
        atr_multiplier_short=env_float("ATR_MULTIPLIER_SHORT", engine.get("atr_multiplier_short", 1.5)),
        ma_type=env("MA_TYPE", engine.get("ma_type", "ema")).lower(),
        fast_period=env_int("FAST_PERIOD", engine.get("fast_period", 21)),
        slow_period=env_int("SLOW_PERIOD", engine.get("slow_period", 50)),
        mean_reversion_threshold=env_float(
            "MEAN_REVERSION_THRESHOLD", engine.get("mean_reversion_threshold", 10.0)
        ),
        sizing_percent_long=env_float("SIZING_PERCENT_LONG", engine.get("sizing_percent_long", 5.0)),
        sizing_percent_short=env_float("SIZING_PERCENT_SHORT", engine.get("sizing_percent_short", 3.0)),
        strategy_mode=env("STRATEGY_MODE", engine.get("strategy_mode", "long")).lower(),
        # Optimizer
        fast_range=env_range("FAST_RANGE", optimizer.get("fast_range", (5, 30))),
        slow_range=env_range("SLOW_RANGE", optimizer.get("slow_range", (20, 100))),
        min_distance=env_int("MIN_DISTANCE", optimizer.get("min_distance", 10)),
        max_workers=env_int("MAX_WORKERS", optimizer.get("max_workers", 1)),
        # Data
        data_path=env("DATA_PATH", source.get("path", "")) or None,
        symbol=env("SYMBOL", source.get("symbol", "SPY")).upper(),
        days=env_int("DAYS", source.get("days", 0)),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "ma_backtest.log"),
    )


class Config:
    """Runtime config (engine, optimizer, data source, logging)."""

    def __init__(
        self,
        initial_capital: float = 100000.0,
        atr_period: int = 14,
        atr_multiplier_long: float = 2.0,
        atr_multiplier_short: float = 1.5,
        ma_type: str = "ema",
        fast_period: int = 21,
        slow_period: int = 50,
        mean_reversion_threshold: float = 10.0,
        sizing_percent_long: float = 5.0,
        sizing_percent_short: float = 3.0,
        strategy_mode: str = "long",
        fast_range: tuple[int, int] = (5, 30),
        slow_range: tuple[int, int] = (20, 100),
        min_distance: int = 10,
        max_workers: int = 1,
        data_path: Optional[str] = None,
        symbol: str = "SPY",
        days: int = 0,
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "ma_backtest.log",
    ):
        self.initial_capital = initial_capital
        self.atr_period = atr_period
        self.atr_multiplier_long = atr_multiplier_long
        self.atr_multiplier_short = atr_multiplier_short
        self.ma_type = ma_type
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.mean_reversion_threshold = mean_reversion_threshold
        self.sizing_percent_long = sizing_percent_long
        self.sizing_percent_short = sizing_percent_short
        self.strategy_mode = strategy_mode
        self.fast_range = tuple(fast_range)
        self.slow_range = tuple(slow_range)
        self.min_distance = min_distance
        self.max_workers = max_workers
        self.data_path = data_path
        self.symbol = symbol
        self.days = days
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def engine_config(self) -> EngineConfig:
        """Build the frozen engine config from the engine fields."""
        names = {f.name for f in fields(EngineConfig)}
        return EngineConfig(**{name: getattr(self, name) for name in names})
