"""
Technical Analysis Result Models

This module contains the Pydantic models produced by the analysis engine:
- PatternResult: Candlestick pattern classification for the latest bars
- WickAnalysis: Wick/body decomposition and exhaustion signal
- TrendStrength: ADX trend-strength score
- MomentumReading: RSI value with retained history
- VolumeReading: Current volume against its recent average
- TimeframeAnalysis: Per-timeframe record combining the four above
- MomentumAlignment: Cross-timeframe momentum verdict for one symbol
- SymbolAnalysis: Root record for one symbol and analysis cycle

Every model is immutable and exposes ``default()``, the canonical neutral
state used whenever data is missing. Field aliases carry the camelCase names
of the exported record, so ``model_dump(by_alias=True)`` yields the record
downstream consumers read. Flags that mirror a numeric value (``strong``,
``overbought``, ``bullish``...) are computed fields and cannot drift.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, computed_field, field_validator, model_validator, ConfigDict


ADX_MODERATE_THRESHOLD = 20.0
ADX_STRONG_THRESHOLD = 25.0
ADX_VERY_STRONG_THRESHOLD = 40.0

RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
RSI_NEUTRAL = 50.0


class PatternName(str, Enum):
    """Recognized candlestick patterns."""
    NONE = "NONE"
    # Three-bar
    MORNING_STAR = "MORNING_STAR"
    EVENING_STAR = "EVENING_STAR"
    THREE_WHITE_SOLDIERS = "THREE_WHITE_SOLDIERS"
    THREE_BLACK_CROWS = "THREE_BLACK_CROWS"
    # Two-bar
    ENGULFING_BULL = "ENGULFING_BULL"
    ENGULFING_BEAR = "ENGULFING_BEAR"
    PIERCING_PATTERN = "PIERCING_PATTERN"
    DARK_CLOUD_COVER = "DARK_CLOUD_COVER"
    HARAMI_BULL = "HARAMI_BULL"
    HARAMI_BEAR = "HARAMI_BEAR"
    # Single-bar
    MARUBOZU_BULL = "MARUBOZU_BULL"
    MARUBOZU_BEAR = "MARUBOZU_BEAR"
    HAMMER = "HAMMER"
    HANGING_MAN = "HANGING_MAN"
    INVERTED_HAMMER = "INVERTED_HAMMER"
    SHOOTING_STAR = "SHOOTING_STAR"
    DOJI = "DOJI"
    SPINNING_TOP = "SPINNING_TOP"


class PatternPolarity(str, Enum):
    """Directional class of a pattern."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


PATTERN_POLARITY: Dict[PatternName, PatternPolarity] = {
    PatternName.NONE: PatternPolarity.NEUTRAL,
    PatternName.MORNING_STAR: PatternPolarity.BULLISH,
    PatternName.EVENING_STAR: PatternPolarity.BEARISH,
    PatternName.THREE_WHITE_SOLDIERS: PatternPolarity.BULLISH,
    PatternName.THREE_BLACK_CROWS: PatternPolarity.BEARISH,
    PatternName.ENGULFING_BULL: PatternPolarity.BULLISH,
    PatternName.ENGULFING_BEAR: PatternPolarity.BEARISH,
    PatternName.PIERCING_PATTERN: PatternPolarity.BULLISH,
    PatternName.DARK_CLOUD_COVER: PatternPolarity.BEARISH,
    PatternName.HARAMI_BULL: PatternPolarity.BULLISH,
    PatternName.HARAMI_BEAR: PatternPolarity.BEARISH,
    PatternName.MARUBOZU_BULL: PatternPolarity.BULLISH,
    PatternName.MARUBOZU_BEAR: PatternPolarity.BEARISH,
    PatternName.HAMMER: PatternPolarity.BULLISH,
    PatternName.HANGING_MAN: PatternPolarity.BEARISH,
    PatternName.INVERTED_HAMMER: PatternPolarity.BULLISH,
    PatternName.SHOOTING_STAR: PatternPolarity.BEARISH,
    PatternName.DOJI: PatternPolarity.NEUTRAL,
    PatternName.SPINNING_TOP: PatternPolarity.NEUTRAL,
}


class StrengthCategory(str, Enum):
    """Four-level strength bucket shared by body strength and trend strength."""
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    VERY_STRONG = "VERY_STRONG"


class DominantWick(str, Enum):
    """Which wick dominates the latest bar."""
    UPPER = "UPPER"
    LOWER = "LOWER"
    BOTH = "BOTH"
    NONE = "NONE"


class ExhaustionSignal(str, Enum):
    """Reversal hint inferred from wick geometry."""
    LOWER_WICK_REJECTION = "LOWER_WICK_REJECTION"
    UPPER_WICK_REJECTION = "UPPER_WICK_REJECTION"
    DOUBLE_WICK_INDECISION = "DOUBLE_WICK_INDECISION"
    NONE = "NONE"


class ExhaustionType(str, Enum):
    """Implied reversal polarity of an exhaustion signal."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class MomentumDirection(str, Enum):
    """Per-timeframe momentum classification."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class AlignmentState(str, Enum):
    """Cross-timeframe momentum alignment verdict."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    BULLISH_WEAK = "BULLISH_WEAK"
    BEARISH_WEAK = "BEARISH_WEAK"
    NEUTRAL = "NEUTRAL"
    UNKNOWN = "UNKNOWN"


class BiasConfidence(str, Enum):
    """Confidence attached to a momentum bias."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class DivergenceDirection(str, Enum):
    """Price/momentum divergence direction."""
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NONE = "NONE"


class VolumeTrend(str, Enum):
    """Recent volume against the volume just before it."""
    UP = "UP"
    DOWN = "DOWN"
    NEUTRAL = "NEUTRAL"


class AnalysisModel(BaseModel):
    """Base for all result models: immutable, populated by name or alias."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """Export with camelCase field names and JSON-compatible values."""
        return self.model_dump(by_alias=True, mode="json")


class PatternResult(AnalysisModel):
    """
    Candlestick pattern classification of the latest 1-3 bars.

    ``current`` is the highest-priority matching pattern, ``patterns`` every
    match in evaluation order. Polarity flags are derived from ``current``.
    """

    current: PatternName = Field(
        default=PatternName.NONE,
        description="Winning pattern or NONE"
    )
    confidence: float = Field(
        default=0.0,
        description="Confidence of the winning pattern (0-1)",
        ge=0.0,
        le=1.0
    )
    patterns: List[PatternName] = Field(
        default_factory=list,
        description="Every matched pattern in evaluation order"
    )

    @computed_field
    @property
    def bullish(self) -> bool:
        """True when the winning pattern has bullish polarity."""
        return PATTERN_POLARITY[self.current] == PatternPolarity.BULLISH

    @computed_field
    @property
    def bearish(self) -> bool:
        """True when the winning pattern has bearish polarity."""
        return PATTERN_POLARITY[self.current] == PatternPolarity.BEARISH

    @property
    def polarity(self) -> PatternPolarity:
        return PATTERN_POLARITY[self.current]

    @classmethod
    def default(cls) -> 'PatternResult':
        return cls()


class WickDominance(AnalysisModel):
    """Dominant wick and the ratio between the larger and smaller wick."""

    dominant_wick: DominantWick = Field(
        default=DominantWick.NONE,
        alias="dominantWick"
    )
    wick_ratio: float = Field(
        default=1.0,
        alias="wickRatio",
        description="max(upper, lower) / max(min(upper, lower), eps)",
        ge=1.0
    )

    @classmethod
    def default(cls) -> 'WickDominance':
        return cls()


class BodyStrength(AnalysisModel):
    """Body share of the bar range and its bucket."""

    body_strength: float = Field(
        default=0.0,
        alias="bodyStrength",
        description="Body as percentage of range (0-100)",
        ge=0.0,
        le=100.0
    )
    body_strength_category: StrengthCategory = Field(
        default=StrengthCategory.WEAK,
        alias="bodyStrengthCategory"
    )

    @classmethod
    def default(cls) -> 'BodyStrength':
        return cls()


class ExhaustionSignals(AnalysisModel):
    """Exhaustion signal with implied reversal polarity and confidence."""

    exhaustion_signal: ExhaustionSignal = Field(
        default=ExhaustionSignal.NONE,
        alias="exhaustionSignal"
    )
    exhaustion_type: ExhaustionType = Field(
        default=ExhaustionType.NEUTRAL,
        alias="exhaustionType"
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0
    )

    @classmethod
    def default(cls) -> 'ExhaustionSignals':
        return cls()


class WickAnalysis(AnalysisModel):
    """
    Wick/body decomposition of the most recent bar.

    Percentages are shares of the high-low range and sum to 100, or are all
    zero for a zero-range bar.
    """

    upper_wick_pct: float = Field(
        default=0.0,
        alias="upperWickDominance",
        ge=0.0,
        le=100.0
    )
    lower_wick_pct: float = Field(
        default=0.0,
        alias="lowerWickDominance",
        ge=0.0,
        le=100.0
    )
    body_pct: float = Field(
        default=0.0,
        alias="bodyDominance",
        ge=0.0,
        le=100.0
    )
    upper_wick_size: float = Field(default=0.0, alias="upperWickSize", ge=0.0)
    lower_wick_size: float = Field(default=0.0, alias="lowerWickSize", ge=0.0)
    body_size: float = Field(default=0.0, alias="bodySize", ge=0.0)
    price_range: float = Field(default=0.0, alias="range", ge=0.0)
    wick_dominance: WickDominance = Field(
        default_factory=WickDominance.default,
        alias="wickDominance"
    )
    body_strength: BodyStrength = Field(
        default_factory=BodyStrength.default,
        alias="bodyStrength"
    )
    exhaustion_signals: ExhaustionSignals = Field(
        default_factory=ExhaustionSignals.default,
        alias="exhaustionSignals"
    )

    @computed_field(alias="exhaustionSignal")
    @property
    def exhaustion_signal(self) -> ExhaustionSignal:
        """Top-level mirror of ``exhaustion_signals.exhaustion_signal``."""
        return self.exhaustion_signals.exhaustion_signal

    @property
    def dominant_wick(self) -> DominantWick:
        return self.wick_dominance.dominant_wick

    @classmethod
    def default(cls) -> 'WickAnalysis':
        return cls()


class TrendStrength(AnalysisModel):
    """ADX trend strength; every flag is derived from ``adx``."""

    adx: float = Field(
        default=0.0,
        description="Average Directional Index",
        ge=0.0
    )

    @computed_field
    @property
    def strong(self) -> bool:
        return self.adx >= ADX_STRONG_THRESHOLD

    @computed_field
    @property
    def weak(self) -> bool:
        return self.adx < ADX_STRONG_THRESHOLD

    @computed_field(alias="veryStrong")
    @property
    def very_strong(self) -> bool:
        return self.adx >= ADX_VERY_STRONG_THRESHOLD

    @computed_field
    @property
    def category(self) -> StrengthCategory:
        """<20 WEAK (choppy), 20-25 MODERATE, 25-40 STRONG, >=40 VERY_STRONG."""
        if self.adx < ADX_MODERATE_THRESHOLD:
            return StrengthCategory.WEAK
        elif self.adx < ADX_STRONG_THRESHOLD:
            return StrengthCategory.MODERATE
        elif self.adx < ADX_VERY_STRONG_THRESHOLD:
            return StrengthCategory.STRONG
        else:
            return StrengthCategory.VERY_STRONG

    @classmethod
    def default(cls) -> 'TrendStrength':
        return cls()


class MomentumReading(AnalysisModel):
    """
    RSI reading with bounded history (most recent last).

    Overbought and oversold use exclusive thresholds: a value of exactly
    70 or 30 flags neither.
    """

    value: float = Field(
        default=RSI_NEUTRAL,
        description="Oscillator value (0-100)",
        ge=0.0,
        le=100.0
    )
    history: List[float] = Field(
        default_factory=list,
        description="Recent oscillator values in chronological order"
    )
    last_timestamp: Optional[datetime] = Field(
        default=None,
        alias="lastTimestamp",
        description="Open time of the newest bar covered by ``history``"
    )

    @field_validator('last_timestamp')
    @classmethod
    def normalize_last_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @computed_field
    @property
    def overbought(self) -> bool:
        return self.value > RSI_OVERBOUGHT

    @computed_field
    @property
    def oversold(self) -> bool:
        return self.value < RSI_OVERSOLD

    @classmethod
    def default(cls) -> 'MomentumReading':
        return cls()


class VolumeReading(AnalysisModel):
    """
    Latest bar volume against the average of the recent window.

    ``average`` is None until the window holds enough bars to be meaningful.
    """

    current: float = Field(
        default=0.0,
        alias="currentVolume",
        ge=0.0
    )
    average: Optional[float] = Field(
        default=None,
        alias="averageVolume",
        ge=0.0
    )
    trend: VolumeTrend = Field(default=VolumeTrend.NEUTRAL)

    @computed_field
    @property
    def ratio(self) -> Optional[float]:
        """Current volume as a multiple of the average."""
        if not self.average:
            return None
        return self.current / self.average

    @classmethod
    def default(cls) -> 'VolumeReading':
        return cls()


class TimeframeAnalysis(AnalysisModel):
    """
    Complete per-timeframe analysis record.

    All four sections are always present once the validation layer has run.
    """

    patterns: PatternResult = Field(
        default_factory=PatternResult.default,
        alias="candlestickPatterns"
    )
    wick: WickAnalysis = Field(
        default_factory=WickAnalysis.default,
        alias="wickAnalysis"
    )
    trend: TrendStrength = Field(
        default_factory=TrendStrength.default,
        alias="trendStrength"
    )
    momentum: MomentumReading = Field(
        default_factory=MomentumReading.default,
        alias="rsi"
    )

    @classmethod
    def default(cls) -> 'TimeframeAnalysis':
        return cls()


class StochRSI(AnalysisModel):
    """Stochastic RSI snapshot."""

    k: float = Field(default=RSI_NEUTRAL, ge=0.0, le=100.0)
    d: float = Field(default=RSI_NEUTRAL, ge=0.0, le=100.0)

    @classmethod
    def default(cls) -> 'StochRSI':
        return cls()


class TimeframeMomentum(AnalysisModel):
    """Momentum classification and oscillator snapshot for one timeframe."""

    momentum: MomentumDirection = Field(default=MomentumDirection.NEUTRAL)
    momentum_strength: float = Field(
        default=0.0,
        alias="momentumStrength",
        description="Distance from the neutral midpoint (0-100)",
        ge=0.0,
        le=100.0
    )
    stoch_rsi: StochRSI = Field(
        default_factory=StochRSI.default,
        alias="stochRSI"
    )
    rsi: float = Field(default=RSI_NEUTRAL, ge=0.0, le=100.0)


class MomentumScore(AnalysisModel):
    """Confluence-ready momentum score."""

    score: float = Field(default=0.0, ge=0.0, le=100.0)
    alignment: AlignmentState = Field(default=AlignmentState.UNKNOWN)
    consensus_ratio: float = Field(
        default=0.0,
        alias="consensusRatio",
        ge=0.0,
        le=1.0
    )


class MomentumBias(AnalysisModel):
    """Directional bias derived from the alignment verdict."""

    bias: MomentumDirection = Field(default=MomentumDirection.NEUTRAL)
    strength: float = Field(default=0.0, ge=0.0, le=100.0)
    confidence: BiasConfidence = Field(default=BiasConfidence.MEDIUM)


class MomentumAlignment(AnalysisModel):
    """
    Cross-timeframe momentum alignment for one symbol.

    ``timeframes`` preserves the configured timeframe order. UNKNOWN is
    reserved for the case where no timeframe was analyzed at all.
    """

    alignment: AlignmentState = Field(default=AlignmentState.UNKNOWN)
    alignment_score: float = Field(
        default=0.0,
        alias="alignmentScore",
        ge=0.0,
        le=100.0
    )
    bullish_count: int = Field(default=0, alias="bullishCount", ge=0)
    bearish_count: int = Field(default=0, alias="bearishCount", ge=0)
    neutral_count: int = Field(default=0, alias="neutralCount", ge=0)
    total_timeframes: int = Field(default=0, alias="totalTimeframes", ge=0)
    timeframes: Dict[str, TimeframeMomentum] = Field(default_factory=dict)
    score: MomentumScore = Field(default_factory=MomentumScore)
    bias: MomentumBias = Field(default_factory=MomentumBias)

    @model_validator(mode='after')
    def validate_counts(self):
        """Counts must partition the analyzed timeframes."""
        tallied = self.bullish_count + self.bearish_count + self.neutral_count
        if tallied != self.total_timeframes:
            raise ValueError(
                f"bullish+bearish+neutral ({tallied}) must equal totalTimeframes ({self.total_timeframes})"
            )
        if self.total_timeframes == 0 and self.alignment != AlignmentState.UNKNOWN:
            raise ValueError("alignment must be UNKNOWN when no timeframes were analyzed")
        return self

    @property
    def consensus_ratio(self) -> float:
        return self.score.consensus_ratio

    @classmethod
    def default(cls) -> 'MomentumAlignment':
        return cls()


class MomentumDivergence(AnalysisModel):
    """Price versus momentum divergence on a single timeframe."""

    divergence: DivergenceDirection = Field(default=DivergenceDirection.NONE)
    type: Optional[str] = Field(
        default=None,
        description="BULLISH_DIVERGENCE or BEARISH_DIVERGENCE"
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def default(cls) -> 'MomentumDivergence':
        return cls()


class SymbolAnalysis(AnalysisModel):
    """Root record of one analysis cycle for one symbol."""

    symbol: str = Field(..., description="Trading symbol analyzed")
    analysis_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="analysisTimestamp"
    )
    timeframes: Dict[str, TimeframeAnalysis] = Field(default_factory=dict)
    momentum: MomentumAlignment = Field(default_factory=MomentumAlignment.default)
    divergence: MomentumDivergence = Field(default_factory=MomentumDivergence.default)
    volume: Dict[str, VolumeReading] = Field(
        default_factory=dict,
        description="Volume reading per configured timeframe"
    )
    analysis_duration_ms: int = Field(
        default=0,
        alias="analysisDurationMs",
        ge=0
    )

    def timeframe(self, timeframe: str) -> TimeframeAnalysis:
        """Analysis for ``timeframe``, or the neutral default if it was not configured."""
        key = getattr(timeframe, 'value', timeframe)
        return self.timeframes.get(key, TimeframeAnalysis.default())

    def volume_for(self, timeframe: str) -> VolumeReading:
        key = getattr(timeframe, 'value', timeframe)
        return self.volume.get(key, VolumeReading.default())
