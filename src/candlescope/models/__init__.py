"""
Candlescope Data Models

Pydantic models for market data input and technical-analysis output.
"""

from .market_data import (
    Bar,
    Timeframe,
    DEFAULT_TIMEFRAMES,
    validate_bar_sequence,
)
from .analysis import (
    ADX_MODERATE_THRESHOLD,
    ADX_STRONG_THRESHOLD,
    ADX_VERY_STRONG_THRESHOLD,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_NEUTRAL,
    PATTERN_POLARITY,
    AlignmentState,
    BiasConfidence,
    BodyStrength,
    DivergenceDirection,
    DominantWick,
    ExhaustionSignal,
    ExhaustionSignals,
    ExhaustionType,
    MomentumAlignment,
    MomentumBias,
    MomentumDirection,
    MomentumDivergence,
    MomentumReading,
    MomentumScore,
    PatternName,
    PatternPolarity,
    PatternResult,
    StochRSI,
    StrengthCategory,
    SymbolAnalysis,
    TimeframeAnalysis,
    TimeframeMomentum,
    TrendStrength,
    VolumeReading,
    VolumeTrend,
    WickAnalysis,
    WickDominance,
)

__all__ = [
    # Market data
    "Bar",
    "Timeframe",
    "DEFAULT_TIMEFRAMES",
    "validate_bar_sequence",

    # Thresholds
    "ADX_MODERATE_THRESHOLD",
    "ADX_STRONG_THRESHOLD",
    "ADX_VERY_STRONG_THRESHOLD",
    "RSI_OVERBOUGHT",
    "RSI_OVERSOLD",
    "RSI_NEUTRAL",
    "PATTERN_POLARITY",

    # Enumerations
    "AlignmentState",
    "BiasConfidence",
    "DivergenceDirection",
    "DominantWick",
    "ExhaustionSignal",
    "ExhaustionType",
    "MomentumDirection",
    "PatternName",
    "PatternPolarity",
    "StrengthCategory",
    "VolumeTrend",

    # Per-timeframe results
    "PatternResult",
    "WickAnalysis",
    "WickDominance",
    "BodyStrength",
    "ExhaustionSignals",
    "TrendStrength",
    "MomentumReading",
    "VolumeReading",
    "TimeframeAnalysis",

    # Cross-timeframe results
    "StochRSI",
    "TimeframeMomentum",
    "MomentumScore",
    "MomentumBias",
    "MomentumAlignment",
    "MomentumDivergence",
    "SymbolAnalysis",
]
