"""
Logging for the backtester. Records go to stderr so stdout carries only the
CLI report or its --json payload; an optional file handler keeps a run log.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the "ma_backtest" logger and return it. Handlers are replaced on each
    call, so repeated CLI runs or tests never stack duplicates. Engine, optimizer and
    executor loggers (ma_backtest.<area>) propagate here; per-pair sweep failures
    arrive as WARNING, DEBUG shows signal and trade counts for every run.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("ma_backtest")
    root.setLevel(log_level)
    root.handlers.clear()

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_fmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt, datefmt=date_fmt)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / log_file
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)

    return root
