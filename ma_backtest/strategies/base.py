"""Abstract strategy: indicators + signal generation."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

import pandas as pd

from ma_backtest.core.types import Signal


class BaseStrategy(ABC):
    """Strategy computes indicator columns, then scans them into a chronological signal list."""

    @abstractmethod
    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add indicator columns to OHLCV DataFrame. No lookahead."""
        pass

    @abstractmethod
    def generate_signals(self, df: pd.DataFrame) -> List[Signal]:
        """
        Return signals in chronological order for a DataFrame that already
        carries the columns added by compute_indicators.
        """
        pass
