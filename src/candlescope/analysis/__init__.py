"""
Candlescope Analysis Package

Includes:
- Candlestick pattern recognition (priority-ordered rule table)
- Wick/body decomposition and exhaustion signals
- ADX trend strength and RSI momentum
- Volume against its recent average
- Validation of per-timeframe records
- Cross-timeframe momentum alignment and divergence
- Async multi-timeframe analyzer
"""

from .momentum import MomentumOscillator, stochastic_rsi
from .momentum_alignment import MomentumAlignmentAggregator, detect_momentum_divergence
from .patterns import PATTERN_RULES, CandlestickPatternDetector
from .thresholds import (
    AnalysisThresholds,
    get_thresholds,
    load_thresholds,
    reset_thresholds,
    save_thresholds,
    set_thresholds,
)
from .timeframe_analyzer import MultiTimeframeAnalyzer, TimeframeAnalysisBuilder
from .trend_strength import TrendStrengthCalculator
from .validation import (
    validate_momentum_reading,
    validate_pattern_result,
    validate_timeframe_analysis,
    validate_trend_strength,
    validate_volume_reading,
    validate_wick_analysis,
)
from .volume import VolumeAnalyzer
from .wick_analyzer import WickBodyAnalyzer

__all__ = [
    "PATTERN_RULES",
    "AnalysisThresholds",
    "CandlestickPatternDetector",
    "MomentumAlignmentAggregator",
    "MomentumOscillator",
    "MultiTimeframeAnalyzer",
    "TimeframeAnalysisBuilder",
    "TrendStrengthCalculator",
    "VolumeAnalyzer",
    "WickBodyAnalyzer",
    "detect_momentum_divergence",
    "get_thresholds",
    "load_thresholds",
    "reset_thresholds",
    "save_thresholds",
    "set_thresholds",
    "stochastic_rsi",
    "validate_momentum_reading",
    "validate_pattern_result",
    "validate_timeframe_analysis",
    "validate_trend_strength",
    "validate_volume_reading",
    "validate_wick_analysis",
]
