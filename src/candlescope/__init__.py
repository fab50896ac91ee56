"""
Candlescope: Multi-Timeframe Technical Analysis Engine

Computes candlestick patterns, wick/body structure, ADX trend strength and
RSI momentum per timeframe, and folds them into a cross-timeframe momentum
alignment verdict whose records are always structurally complete.
"""

__version__ = "0.1.0"
__author__ = "Candlescope Team"
__description__ = "Multi-Timeframe Technical Analysis Engine"

# Package-level imports for convenience
from .config import Config
from .logger import get_logger

__all__ = ["Config", "get_logger", "__version__"]
