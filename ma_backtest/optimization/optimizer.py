"""
MA pair optimizer: run one independent backtest per (fast, slow) pair and rank by return.
Pairs that fail or trade zero times are skipped; the sweep only fails if every pair raised.
Optional process-parallel sweep (max_workers > 1) gives the same ranking as the sequential one.
"""

from __future__ import annotations
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ma_backtest.analytics.metrics import (
    equity_max_drawdown_pct,
    profit_factor,
    risk_adjusted_sharpe_ratio,
)
from ma_backtest.backtesting.engine import BacktestEngine
from ma_backtest.core.config import EngineConfig, parse_int_pair
from ma_backtest.core.errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    OptimizationError,
)
from ma_backtest.core.types import to_serializable
from ma_backtest.utils.bars import BarsLike, to_frame

logger = logging.getLogger("ma_backtest.optimizer")

MIN_OPTIMIZATION_BARS = 100
TOP_N = 5

Pair = Tuple[int, int]

HEATMAP_METRICS = {
    "return": "total_return_percent",
    "sharpe": "sharpe_ratio",
    "win_rate": "win_rate",
    "profit_factor": "profit_factor",
}


@dataclass
class OptimizationResult:
    """Outcome of one (fast, slow) backtest."""
    fast_period: int
    slow_period: int
    distance: int
    total_return_percent: float
    sharpe_ratio: float
    max_drawdown_percent: float
    win_rate: float
    profit_factor: float
    total_trades: int
    avg_trade_duration: float
    symbol: str = ""
    date_range: str = ""


@dataclass
class OptimizationSummary:
    """Ranked sweep output (all_results sorted by total_return_percent, descending)."""
    symbol: str
    best_pair: Optional[OptimizationResult]
    top_pairs: List[OptimizationResult]
    all_results: List[OptimizationResult]
    optimization_date: datetime
    parameters_used: Dict[str, Any]
    pairs_tested: int = 0
    summary_stats: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


@dataclass
class HeatmapCell:
    fast_period: int
    slow_period: int
    value: float
    total_trades: int


@dataclass
class Heatmap:
    """One metric value per (fast, slow) cell."""
    symbol: str
    metric: str
    fast_range: Pair
    slow_range: Pair
    cells: List[HeatmapCell] = field(default_factory=list)
    best_value: float = 0.0
    worst_value: float = 0.0

    def to_frame(self) -> pd.DataFrame:
        """Grid with fast periods as rows and slow periods as columns (NaN = skipped pair)."""
        if not self.cells:
            return pd.DataFrame()
        df = pd.DataFrame([(c.fast_period, c.slow_period, c.value) for c in self.cells],
                          columns=["fast_period", "slow_period", "value"])
        return df.pivot(index="fast_period", columns="slow_period", values="value")

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


def validate_range(rng: Sequence[int], name: str) -> Pair:
    """(min, max) with min < max."""
    if len(rng) != 2:
        raise InvalidConfigurationError(f"Invalid {name}: expected (min, max), got {rng!r}")
    lo, hi = int(rng[0]), int(rng[1])
    if lo >= hi:
        raise InvalidConfigurationError(f"Invalid {name}: min must be less than max")
    return lo, hi


def parse_range(text: str, name: str = "range") -> Pair:
    """Parse "5,30" -> (5, 30); min must be less than max."""
    return validate_range(parse_int_pair(text, name), name)


def parse_pairs(text: str) -> List[Pair]:
    """Parse "10,20|21,50" -> [(10, 20), (21, 50)]; each fast must be below its slow."""
    pairs: List[Pair] = []
    for chunk in str(text).split("|"):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = [p.strip() for p in chunk.split(",")]
        try:
            fast, slow = (int(p) for p in parts)
        except ValueError:
            raise InvalidConfigurationError(f'Invalid pair format: {chunk}. Use "fast,slow"') from None
        if fast >= slow:
            raise InvalidConfigurationError(f"Invalid pair {chunk}: fast MA must be less than slow MA")
        pairs.append((fast, slow))
    if not pairs:
        raise InvalidConfigurationError("No valid MA pairs provided")
    return pairs


def generate_pairs(fast_range: Sequence[int], slow_range: Sequence[int], min_distance: int) -> List[Pair]:
    """All integer (fast, slow) within the inclusive ranges with slow - fast >= min_distance."""
    pairs: List[Pair] = []
    for fast in range(int(fast_range[0]), int(fast_range[1]) + 1):
        for slow in range(int(slow_range[0]), int(slow_range[1]) + 1):
            if slow - fast >= min_distance:
                pairs.append((fast, slow))
    return pairs


def evaluate_pair(
    df: pd.DataFrame,
    config: EngineConfig,
    fast: int,
    slow: int,
    symbol: str = "",
) -> Optional[OptimizationResult]:
    """
    Backtest one pair with a fresh engine (top-level so it pickles for worker processes).
    Returns None when the pair produced no trades; errors propagate to the caller.
    """
    engine = BacktestEngine(config.with_periods(fast, slow))
    result = engine.run_analysis(df, symbol)
    trades = result.trades
    if not trades:
        return None
    ordered = sorted(trades, key=lambda t: t.entry_date)
    pnls = [t.pnl for t in ordered if t.pnl is not None]
    returns_pct = [t.pnl_percent for t in ordered if t.pnl_percent is not None]
    m = result.performance_metrics
    first, last = pd.Timestamp(result.start_date), pd.Timestamp(result.end_date)
    return OptimizationResult(
        fast_period=fast,
        slow_period=slow,
        distance=slow - fast,
        total_return_percent=m.total_return_percent,
        sharpe_ratio=risk_adjusted_sharpe_ratio(returns_pct),
        max_drawdown_percent=equity_max_drawdown_pct([p.equity for p in result.equity_curve]),
        win_rate=m.win_rate,
        profit_factor=profit_factor(pnls),
        total_trades=m.total_trades,
        avg_trade_duration=sum(t.duration_days or 0 for t in trades) / len(trades),
        symbol=symbol,
        date_range=f"{first:%Y-%m-%d} to {last:%Y-%m-%d}",
    )


def summary_stats(results: Sequence[OptimizationResult]) -> Dict[str, float]:
    """Averages and extremes across all ranked results."""
    if not results:
        return {"avg_return": 0.0, "max_return": 0.0, "min_return": 0.0, "avg_sharpe": 0.0, "avg_trades": 0.0}
    n = len(results)
    returns = [r.total_return_percent for r in results]
    return {
        "avg_return": sum(returns) / n,
        "max_return": max(returns),
        "min_return": min(returns),
        "avg_sharpe": sum(r.sharpe_ratio for r in results) / n,
        "avg_trades": sum(r.total_trades for r in results) / n,
    }


class ParameterOptimizer:
    """
    Sweeps MA pairs over one bar series. Every pair gets its own engine instance,
    so nothing is shared between cells.
    """

    def __init__(self, config: Optional[EngineConfig] = None, max_workers: int = 1):
        self.config = config or EngineConfig()
        self.max_workers = max(1, int(max_workers or 1))

    def _sweep(self, df: pd.DataFrame, pairs: Sequence[Pair], symbol: str) -> List[OptimizationResult]:
        """Evaluate pairs; skip failures and zero-trade pairs; rank by return (stable ties)."""
        outcomes: Dict[int, Optional[OptimizationResult]] = {}
        failures = 0

        if self.max_workers > 1 and len(pairs) > 1:
            with ProcessPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {
                    pool.submit(evaluate_pair, df, self.config, fast, slow, symbol): (i, (fast, slow))
                    for i, (fast, slow) in enumerate(pairs)
                }
                for future in as_completed(futures):
                    i, (fast, slow) = futures[future]
                    try:
                        outcomes[i] = future.result()
                    except Exception as e:
                        failures += 1
                        logger.warning("Failed to test pair (%d, %d): %s", fast, slow, e)
        else:
            for i, (fast, slow) in enumerate(pairs):
                try:
                    outcomes[i] = evaluate_pair(df, self.config, fast, slow, symbol)
                except Exception as e:
                    failures += 1
                    logger.warning("Failed to test pair (%d, %d): %s", fast, slow, e)

        if pairs and failures == len(pairs):
            raise OptimizationError(f"All {len(pairs)} MA pairs failed for {symbol or 'series'}")

        results = [outcomes[i] for i in sorted(outcomes) if outcomes[i] is not None]
        skipped = len(pairs) - failures - len(results)
        if skipped:
            logger.info("%d pair(s) produced no trades and were skipped", skipped)
        results.sort(key=lambda r: r.total_return_percent, reverse=True)
        return results

    def optimize_ma_pairs(
        self,
        bars: BarsLike,
        fast_range: Sequence[int] = (5, 30),
        slow_range: Sequence[int] = (20, 100),
        min_distance: int = 10,
        symbol: str = "",
    ) -> OptimizationSummary:
        """Full-grid sweep. Needs at least MIN_OPTIMIZATION_BARS bars."""
        fast_range = validate_range(fast_range, "fast_range")
        slow_range = validate_range(slow_range, "slow_range")
        df = to_frame(bars)
        if len(df) < MIN_OPTIMIZATION_BARS:
            raise InsufficientDataError(
                f"Insufficient data for {symbol or 'optimization'}: {len(df)} bars (need {MIN_OPTIMIZATION_BARS})"
            )

        pairs = generate_pairs(fast_range, slow_range, min_distance)
        logger.info("Testing %d MA pairs for %s", len(pairs), symbol)
        results = self._sweep(df, pairs, symbol)

        best = results[0] if results else None
        if best is not None:
            logger.info(
                "Optimization complete for %s. Best pair: %d,%d (%.2f%%)",
                symbol, best.fast_period, best.slow_period, best.total_return_percent,
            )
        else:
            logger.warning("Optimization for %s produced no tradable pairs", symbol)
        return OptimizationSummary(
            symbol=symbol,
            best_pair=best,
            top_pairs=results[:TOP_N],
            all_results=results,
            optimization_date=datetime.now(timezone.utc),
            parameters_used={
                "fast_range": list(fast_range),
                "slow_range": list(slow_range),
                "min_distance": min_distance,
                "atr_period": self.config.atr_period,
                "atr_multiplier": self.config.atr_multiplier_long,
                "ma_type": self.config.ma_type.value,
                "strategy_mode": self.config.strategy_mode.value,
            },
            pairs_tested=len(results),
            summary_stats=summary_stats(results),
        )

    def compare_pairs(self, bars: BarsLike, pairs: Sequence[Pair], symbol: str = "") -> List[OptimizationResult]:
        """Same evaluation as the grid sweep, restricted to an explicit pair list."""
        if isinstance(pairs, str):
            pairs = parse_pairs(pairs)
        checked: List[Pair] = []
        for fast, slow in pairs:
            if int(fast) >= int(slow):
                raise InvalidConfigurationError(f"Invalid pair {fast},{slow}: fast MA must be less than slow MA")
            checked.append((int(fast), int(slow)))
        if not checked:
            raise InvalidConfigurationError("No valid MA pairs provided")
        logger.info("Comparing %d MA pairs for %s", len(checked), symbol)
        return self._sweep(to_frame(bars), checked, symbol)

    def heatmap(
        self,
        bars: BarsLike,
        fast_range: Sequence[int] = (5, 30),
        slow_range: Sequence[int] = (20, 100),
        min_distance: int = 10,
        metric: str = "return",
        symbol: str = "",
    ) -> Heatmap:
        """Map one metric (return, sharpe, win_rate, profit_factor) onto the fast x slow grid."""
        if metric not in HEATMAP_METRICS:
            raise InvalidConfigurationError(f"Invalid metric. Must be one of: {', '.join(HEATMAP_METRICS)}")
        summary = self.optimize_ma_pairs(bars, fast_range, slow_range, min_distance, symbol)
        attr = HEATMAP_METRICS[metric]
        cells = [
            HeatmapCell(r.fast_period, r.slow_period, getattr(r, attr), r.total_trades)
            for r in summary.all_results
        ]
        values = [c.value for c in cells]
        return Heatmap(
            symbol=symbol,
            metric=metric,
            fast_range=tuple(summary.parameters_used["fast_range"]),
            slow_range=tuple(summary.parameters_used["slow_range"]),
            cells=cells,
            best_value=max(values) if values else 0.0,
            worst_value=min(values) if values else 0.0,
        )
