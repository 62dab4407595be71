"""Optimization: MA pair grid sweeps, explicit comparisons, heatmaps."""

from ma_backtest.optimization.optimizer import (
    ParameterOptimizer,
    OptimizationResult,
    OptimizationSummary,
    Heatmap,
    HeatmapCell,
    generate_pairs,
    parse_range,
    parse_pairs,
)

__all__ = [
    "ParameterOptimizer",
    "OptimizationResult",
    "OptimizationSummary",
    "Heatmap",
    "HeatmapCell",
    "generate_pairs",
    "parse_range",
    "parse_pairs",
]
