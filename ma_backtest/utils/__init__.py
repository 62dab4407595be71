"""Utils: bar series conversion and CSV loading."""

from ma_backtest.utils.bars import to_frame, to_bars, load_bars_csv, tail_days

__all__ = ["to_frame", "to_bars", "load_bars_csv", "tail_days"]
