"""
Mean-reversion alerts: price stretched above the fast MA while a trade is open.
One alert per excursion; re-armed once distance falls below half of the peak.
"""

from __future__ import annotations
import math
from typing import List, Sequence

import pandas as pd

from ma_backtest.core.types import MeanReversionAlert, Trade

REARM_FRACTION = 0.5


def _in_any_trade(day: pd.Timestamp, spans: Sequence[tuple]) -> bool:
    return any(start <= day <= end for start, end in spans)


def detect_mean_reversion_alerts(
    df: pd.DataFrame,
    trades: List[Trade],
    threshold_percent: float = 10.0,
    fast_label: str = "fast MA",
) -> List[MeanReversionAlert]:
    """
    Scan bars (columns: date, close, fast_ma) in order. Active only on dates inside some
    trade's [entry_date, exit_date]; leaving a trade span resets the hysteresis state.
    """
    spans = [
        (pd.Timestamp(t.entry_date), pd.Timestamp(t.exit_date))
        for t in trades
        if t.entry_date is not None and t.exit_date is not None
    ]
    alerts: List[MeanReversionAlert] = []
    triggered = False
    peak_distance = 0.0

    for day, close, fast in zip(df["date"], df["close"].astype(float), df["fast_ma"].astype(float)):
        if math.isnan(fast) or fast == 0:
            continue
        if not _in_any_trade(pd.Timestamp(day), spans):
            triggered = False
            peak_distance = 0.0
            continue

        distance = abs(close - fast) / fast * 100
        if close > fast and distance >= threshold_percent:
            if not triggered:
                alerts.append(MeanReversionAlert(
                    date=day,
                    price=close,
                    fast_ma=fast,
                    distance_percent=distance,
                    reasoning=(
                        f"Price {distance:.1f}% above {fast_label} during trade - "
                        "potential mean reversion (overbought)"
                    ),
                ))
                triggered = True
                peak_distance = distance
            elif distance > peak_distance:
                peak_distance = distance
        elif triggered and distance < peak_distance * REARM_FRACTION:
            triggered = False
            peak_distance = 0.0

    return alerts
