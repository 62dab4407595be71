#!/usr/bin/env python3
"""
MA Backtest CLI: analyze | optimize | compare | heatmap
Usage:
  python main.py analyze --data bars.csv [--symbol SPY] [--config config.yaml]
  python main.py optimize --data bars.csv [--fast-range 5,30] [--slow-range 20,100] [--min-distance 10]
  python main.py compare --data bars.csv --pairs "10,20|21,50|30,60"
  python main.py heatmap --data bars.csv [--metric return|sharpe|win_rate|profit_factor]
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ma_backtest.backtesting.engine import BacktestEngine
from ma_backtest.core.config import Config, load_config
from ma_backtest.core.errors import BacktestError
from ma_backtest.core.logger import setup_logging
from ma_backtest.core.types import to_serializable
from ma_backtest.optimization.optimizer import ParameterOptimizer, parse_pairs, parse_range
from ma_backtest.utils.bars import load_bars_csv, tail_days

logger = logging.getLogger("ma_backtest")


def _load_bars(config: Config, data: Path | None):
    path = data or (Path(config.data_path) if config.data_path else None)
    if path is None:
        raise BacktestError("No bar data given. Pass --data bars.csv or set data.path in config.yaml")
    return tail_days(load_bars_csv(path), config.days)


def _emit(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, default=str, allow_nan=False))


def _print_result_row(r) -> None:
    print(
        f"  {r.fast_period:>3}/{r.slow_period:<3}  return {r.total_return_percent:8.2f}%  "
        f"sharpe {r.sharpe_ratio:6.2f}  maxDD {r.max_drawdown_percent:6.2f}%  "
        f"win {r.win_rate:5.1f}%  PF {r.profit_factor:6.2f}  trades {r.total_trades}"
    )


def run_analyze(config: Config, args: argparse.Namespace) -> int:
    df = _load_bars(config, args.data)
    engine = BacktestEngine(config.engine_config())
    result = engine.run_analysis(df, config.symbol)
    if args.json:
        _emit(result.to_dict(), True)
        return 0
    m = result.performance_metrics
    print(f"\n--- {config.symbol} {result.start_date} -> {result.end_date} ({result.total_days} bars) ---")
    print(f"Total trades: {m.total_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
    print(f"Total P&L: {m.total_pnl:.2f}")
    print(f"Total return: {m.total_return_percent:.2f}%")
    print(f"Win rate: {m.win_rate:.1f}%")
    print(f"Avg trade duration: {m.avg_trade_duration:.1f} days")
    print(f"Max drawdown (P&L): {m.max_drawdown:.2f}")
    print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
    print(f"Mean reversion alerts: {len(result.mean_reversion_alerts)}")
    for s in result.signals[:5]:
        print(f"  {s.date} {s.kind.value:<12} {s.price:10.2f}  {s.reasoning}")
    return 0


def run_optimize(config: Config, args: argparse.Namespace) -> int:
    df = _load_bars(config, args.data)
    fast_range = parse_range(args.fast_range, "fast_range") if args.fast_range else config.fast_range
    slow_range = parse_range(args.slow_range, "slow_range") if args.slow_range else config.slow_range
    min_distance = args.min_distance if args.min_distance is not None else config.min_distance
    optimizer = ParameterOptimizer(config.engine_config(), max_workers=config.max_workers)
    summary = optimizer.optimize_ma_pairs(df, fast_range, slow_range, min_distance, config.symbol)
    if args.json:
        _emit(summary.to_dict(), True)
        return 0
    print(f"\n--- {config.symbol}: {summary.pairs_tested} pairs ranked ---")
    for r in summary.top_pairs:
        _print_result_row(r)
    stats = summary.summary_stats
    print(
        f"Avg return {stats['avg_return']:.2f}% | max {stats['max_return']:.2f}% | "
        f"min {stats['min_return']:.2f}% | avg sharpe {stats['avg_sharpe']:.2f}"
    )
    return 0


def run_compare(config: Config, args: argparse.Namespace) -> int:
    df = _load_bars(config, args.data)
    pairs = parse_pairs(args.pairs)
    optimizer = ParameterOptimizer(config.engine_config(), max_workers=config.max_workers)
    results = optimizer.compare_pairs(df, pairs, config.symbol)
    if args.json:
        _emit({"symbol": config.symbol, "pairs_compared": len(results),
               "results": to_serializable(results)}, True)
        return 0
    print(f"\n--- {config.symbol}: {len(results)} of {len(pairs)} pairs traded ---")
    for r in results:
        _print_result_row(r)
    return 0


def run_heatmap(config: Config, args: argparse.Namespace) -> int:
    df = _load_bars(config, args.data)
    fast_range = parse_range(args.fast_range, "fast_range") if args.fast_range else config.fast_range
    slow_range = parse_range(args.slow_range, "slow_range") if args.slow_range else config.slow_range
    min_distance = args.min_distance if args.min_distance is not None else config.min_distance
    optimizer = ParameterOptimizer(config.engine_config(), max_workers=config.max_workers)
    heatmap = optimizer.heatmap(df, fast_range, slow_range, min_distance, args.metric, config.symbol)
    if args.json:
        _emit(heatmap.to_dict(), True)
        return 0
    print(f"\n--- {config.symbol} {args.metric} heatmap (rows: fast, cols: slow) ---")
    print(heatmap.to_frame().round(2).to_string())
    print(f"Best: {heatmap.best_value:.2f} | Worst: {heatmap.worst_value:.2f}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="MA crossover backtest CLI")
    parser.add_argument("mode", choices=["analyze", "optimize", "compare", "heatmap"], help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--data", type=Path, default=None, help="CSV with date,open,high,low,close,volume")
    parser.add_argument("--symbol", default=None, help="Symbol label for output")
    parser.add_argument("--fast-range", default=None, help='Fast MA range "min,max"')
    parser.add_argument("--slow-range", default=None, help='Slow MA range "min,max"')
    parser.add_argument("--min-distance", type=int, default=None, help="Minimum slow - fast distance")
    parser.add_argument("--pairs", default="10,20|21,50|30,60", help='Pairs for compare: "fast,slow|fast,slow"')
    parser.add_argument("--metric", default="return", help="Heatmap metric")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a summary")
    args = parser.parse_args()

    config = load_config(args.config, ROOT)
    if args.symbol:
        config.symbol = args.symbol.upper()
    setup_logging(config.log_level, config.log_dir, config.log_file)

    handlers = {
        "analyze": run_analyze,
        "optimize": run_optimize,
        "compare": run_compare,
        "heatmap": run_heatmap,
    }
    try:
        return handlers[args.mode](config, args)
    except BacktestError as e:
        logger.error("%s failed: %s", args.mode, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
