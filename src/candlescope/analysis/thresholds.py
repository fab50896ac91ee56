"""
Analysis Threshold Configuration

This module defines every tunable policy constant used by the analysis engine:
pattern geometry, wick-dominance margins, indicator periods, alignment
consensus cut points and volume trend ratios. All thresholds are centralized
here so they can be inspected, overridden in code, or loaded from a JSON file.

Pattern and wick thresholds are Decimals because they are compared against
Decimal bar prices; oscillator, alignment and volume thresholds are floats.
"""

from decimal import Decimal
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Dict, Any, Optional
import json
import logging
from pathlib import Path


logger = logging.getLogger(__name__)


@dataclass
class PatternContextConfig:
    """Prior-trend context and confidence scaling shared by all pattern rules."""
    trend_lookback: int = 5                       # bars before the pattern used for trend context
    min_trend_change_pct: Decimal = Decimal('0')  # move (% of price) that counts as a trend
    excess_weight: Decimal = Decimal('0.5')       # share of (1 - base) reachable through excess


@dataclass
class DojiConfig:
    """Configuration for Doji detection."""
    max_body_ratio: Decimal = Decimal('0.1')      # body < 10% of range
    base_confidence: Decimal = Decimal('0.6')


@dataclass
class ShadowPatternConfig:
    """Configuration for Hammer, Hanging Man, Inverted Hammer and Shooting Star."""
    min_long_wick_to_body: Decimal = Decimal('2')     # long wick > 2x body
    max_short_wick_to_body: Decimal = Decimal('0.3')  # opposite wick < 0.3x body
    max_body_ratio: Decimal = Decimal('0.35')         # small real body
    hammer_confidence: Decimal = Decimal('0.75')
    hanging_man_confidence: Decimal = Decimal('0.75')
    shooting_star_confidence: Decimal = Decimal('0.7')
    inverted_hammer_confidence: Decimal = Decimal('0.65')


@dataclass
class SpinningTopConfig:
    """Configuration for Spinning Top detection."""
    max_body_ratio: Decimal = Decimal('0.3')
    min_wick_ratio: Decimal = Decimal('0.3')      # each wick > 30% of range
    base_confidence: Decimal = Decimal('0.5')


@dataclass
class MarubozuConfig:
    """Configuration for Marubozu detection."""
    max_wick_ratio: Decimal = Decimal('0.05')     # each wick < 5% of range
    base_confidence: Decimal = Decimal('0.8')


@dataclass
class EngulfingConfig:
    """Configuration for Engulfing detection."""
    base_confidence: Decimal = Decimal('0.85')
    full_score_body_ratio: Decimal = Decimal('2')  # current body 2x previous earns full excess


@dataclass
class PenetrationConfig:
    """Configuration for Piercing Pattern and Dark Cloud Cover."""
    base_confidence: Decimal = Decimal('0.75')


@dataclass
class HaramiConfig:
    """Configuration for Harami detection."""
    base_confidence: Decimal = Decimal('0.65')


@dataclass
class StarConfig:
    """Configuration for Morning Star and Evening Star."""
    max_middle_body_ratio: Decimal = Decimal('0.3')
    base_confidence: Decimal = Decimal('0.9')


@dataclass
class ThreeLineConfig:
    """Configuration for Three White Soldiers and Three Black Crows."""
    max_open_gap: Decimal = Decimal('0.01')       # open within 1% of prior close
    base_confidence: Decimal = Decimal('0.85')


@dataclass
class PatternDetectionConfig:
    """Complete candlestick pattern detection configuration."""
    context: PatternContextConfig = field(default_factory=PatternContextConfig)
    doji: DojiConfig = field(default_factory=DojiConfig)
    shadow: ShadowPatternConfig = field(default_factory=ShadowPatternConfig)
    spinning_top: SpinningTopConfig = field(default_factory=SpinningTopConfig)
    marubozu: MarubozuConfig = field(default_factory=MarubozuConfig)
    engulfing: EngulfingConfig = field(default_factory=EngulfingConfig)
    penetration: PenetrationConfig = field(default_factory=PenetrationConfig)
    harami: HaramiConfig = field(default_factory=HaramiConfig)
    star: StarConfig = field(default_factory=StarConfig)
    three_line: ThreeLineConfig = field(default_factory=ThreeLineConfig)


@dataclass
class WickConfig:
    """Configuration for wick/body decomposition and exhaustion signals."""
    dominance_margin: Decimal = Decimal('1.5')            # larger wick must exceed smaller by 1.5x
    min_significant_wick_pct: Decimal = Decimal('10')     # a wick under 10% of range never dominates
    double_wick_min_pct: Decimal = Decimal('30')          # both wicks > 30% of range
    double_wick_max_body_pct: Decimal = Decimal('30')
    rejection_min_wick_pct: Decimal = Decimal('60')       # rejecting wick > 60% of range
    rejection_min_wick_to_body: Decimal = Decimal('2')
    context_lookback: int = 5
    body_weak_below: Decimal = Decimal('20')
    body_moderate_below: Decimal = Decimal('40')
    body_strong_below: Decimal = Decimal('60')
    epsilon: Decimal = Decimal('0.00000001')


@dataclass
class TrendConfig:
    """Configuration for the ADX trend-strength calculator."""
    period: int = 14


@dataclass
class MomentumConfig:
    """Configuration for the RSI oscillator and Stochastic RSI snapshot."""
    period: int = 14
    history_length: int = 50
    stoch_period: int = 14
    stoch_k_smoothing: int = 3
    stoch_d_smoothing: int = 3


@dataclass
class VolumeConfig:
    """Configuration for volume analysis."""
    average_period: int = 20           # bars averaged for the reference volume
    min_average_bars: int = 5          # fewer bars leave the average unset
    trend_window: int = 5              # last N bars compared with the N before
    trend_up_ratio: float = 1.2
    trend_down_ratio: float = 0.8


@dataclass
class AlignmentConfig:
    """Configuration for cross-timeframe momentum alignment."""
    high_consensus: float = 0.6        # ratio at or above -> BULLISH/BEARISH
    low_consensus: float = 0.4         # ratio at or above (with a majority) -> *_WEAK
    neutral_band: float = 2.0          # |value - 50| within band -> NEUTRAL
    signal_period: int = 3             # history values averaged for the slope reference
    strength_weight: float = 0.3       # share of alignment score taken from average strength
    weak_score_factor: float = 0.7
    neutral_score: float = 50.0
    strong_consensus_bonus_ratio: float = 0.8
    strong_consensus_bonus: float = 1.2
    moderate_consensus_bonus: float = 1.1
    max_conflict_penalty: float = 0.3
    high_confidence_strength: float = 50.0
    divergence_lookback: int = 10
    divergence_oversold: float = 40.0
    divergence_overbought: float = 60.0
    divergence_confidence: float = 0.7


@dataclass
class AnalysisThresholds:
    """Root configuration for every analysis component."""
    patterns: PatternDetectionConfig = field(default_factory=PatternDetectionConfig)
    wick: WickConfig = field(default_factory=WickConfig)
    trend: TrendConfig = field(default_factory=TrendConfig)
    momentum: MomentumConfig = field(default_factory=MomentumConfig)
    volume: VolumeConfig = field(default_factory=VolumeConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisThresholds':
        """Create configuration from dictionary; missing keys keep their defaults."""
        return _from_dict(cls, data)

    def save_to_file(self, filepath: Path):
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load_from_file(cls, filepath: Path) -> 'AnalysisThresholds':
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)


def _to_dict(config) -> Dict[str, Any]:
    result = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if is_dataclass(value):
            result[f.name] = _to_dict(value)
        elif isinstance(value, Decimal):
            result[f.name] = str(value)
        else:
            result[f.name] = value
    return result


def _from_dict(cls, data: Dict[str, Any]):
    kwargs = {}
    defaults = cls()
    for f in fields(cls):
        if f.name not in data:
            continue
        raw = data[f.name]
        default_value = getattr(defaults, f.name)
        if is_dataclass(default_value):
            kwargs[f.name] = _from_dict(type(default_value), raw or {})
        elif isinstance(default_value, Decimal):
            kwargs[f.name] = Decimal(str(raw))
        elif isinstance(default_value, int):
            kwargs[f.name] = int(raw)
        elif isinstance(default_value, float):
            kwargs[f.name] = float(raw)
        else:
            kwargs[f.name] = raw

    unknown = set(data) - {f.name for f in fields(cls)}
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")

    return cls(**kwargs)


# Global configuration instance
_thresholds: Optional[AnalysisThresholds] = None


def get_thresholds() -> AnalysisThresholds:
    """Get the active analysis thresholds."""
    global _thresholds
    if _thresholds is None:
        _thresholds = AnalysisThresholds()
    return _thresholds


def set_thresholds(thresholds: AnalysisThresholds):
    """Set the active analysis thresholds."""
    global _thresholds
    _thresholds = thresholds


def load_thresholds(filepath: Path) -> AnalysisThresholds:
    """Load thresholds from file and make them active."""
    thresholds = AnalysisThresholds.load_from_file(filepath)
    set_thresholds(thresholds)
    logger.info(f"Loaded analysis thresholds from {filepath}")
    return thresholds


def save_thresholds(filepath: Path):
    """Save the active thresholds to file."""
    get_thresholds().save_to_file(filepath)


def reset_thresholds():
    """Reset to default thresholds."""
    global _thresholds
    _thresholds = AnalysisThresholds()
