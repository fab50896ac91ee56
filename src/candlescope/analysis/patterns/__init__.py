"""
Candlestick Pattern Recognition Module

Priority-ordered rule table for single-bar, two-bar and three-bar patterns.
"""

from .base import PatternRule, PatternWindow, PriorTrend
from .recognizer import PATTERN_RULES, CandlestickPatternDetector

__all__ = [
    "PATTERN_RULES",
    "CandlestickPatternDetector",
    "PatternRule",
    "PatternWindow",
    "PriorTrend",
]
