"""
Core data types for bars, signals, trades, alerts and equity points.
"""

from __future__ import annotations
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, NamedTuple, Optional, Union

DateLike = Union[date, datetime]


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> int:
        """+1 for long, -1 for short. Used to mirror every comparison."""
        return 1 if self is PositionSide.LONG else -1


class SignalKind(str, Enum):
    ENTRY_LONG = "BUY"
    EXIT_LONG = "SELL"
    ENTRY_SHORT = "SELL_SHORT"
    EXIT_SHORT = "BUY_TO_COVER"

    @classmethod
    def entry_for(cls, side: PositionSide) -> "SignalKind":
        return cls.ENTRY_LONG if side is PositionSide.LONG else cls.ENTRY_SHORT

    @classmethod
    def exit_for(cls, side: PositionSide) -> "SignalKind":
        return cls.EXIT_LONG if side is PositionSide.LONG else cls.EXIT_SHORT

    @property
    def is_entry(self) -> bool:
        return self in (SignalKind.ENTRY_LONG, SignalKind.ENTRY_SHORT)


class MaType(str, Enum):
    EMA = "ema"
    SMA = "sma"


class StrategyMode(str, Enum):
    LONG = "long"
    SHORT = "short"
    BOTH = "both"

    @property
    def sides(self) -> tuple[PositionSide, ...]:
        if self is StrategyMode.LONG:
            return (PositionSide.LONG,)
        if self is StrategyMode.SHORT:
            return (PositionSide.SHORT,)
        return (PositionSide.LONG, PositionSide.SHORT)


@dataclass(frozen=True)
class Bar:
    """Daily OHLCV bar."""
    date: DateLike
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass
class Signal:
    """Entry or exit signal observed at a bar's close."""
    date: DateLike
    kind: SignalKind
    price: float
    fast_ma: float
    slow_ma: float
    reasoning: str
    confidence: float
    atr: Optional[float] = None
    trailing_stop: Optional[float] = None
    position_side: PositionSide = PositionSide.LONG
    is_reentry: bool = False


@dataclass
class Trade:
    """Simulated trade; exit fields are filled when the position closes."""
    entry_date: DateLike
    entry_price: float
    shares: int
    position_side: PositionSide
    entry_signal: str = ""
    exit_date: Optional[DateLike] = None
    exit_price: Optional[float] = None
    exit_signal: str = ""
    pnl: Optional[float] = None
    pnl_percent: Optional[float] = None
    duration_days: Optional[int] = None
    exit_reason: Optional[str] = None
    is_reentry: bool = False
    reentry_count: int = 0
    running_pnl: Optional[float] = None
    running_capital: Optional[float] = None
    drawdown_percent: Optional[float] = None

    @property
    def is_closed(self) -> bool:
        return self.exit_date is not None and self.pnl is not None


@dataclass
class MeanReversionAlert:
    """Overextension above the fast MA while a trade is open."""
    date: DateLike
    price: float
    fast_ma: float
    distance_percent: float
    reasoning: str


class EquityPoint(NamedTuple):
    date: DateLike
    equity: float


def to_serializable(obj: Any) -> Any:
    """Convert dataclasses, enums and dates into JSON-ready values. Non-finite floats become None."""
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if hasattr(obj, "__dataclass_fields__"):
        return {k: to_serializable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, tuple) and hasattr(obj, "_asdict"):
        return {k: to_serializable(v) for k, v in obj._asdict().items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    return obj
