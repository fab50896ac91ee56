"""
Wick/Body Analysis

Decomposes the range of the most recent bar into upper wick, body and lower
wick, identifies the dominant wick, buckets the body strength and derives an
exhaustion signal:

- LOWER_WICK_REJECTION: dominant lower wick after a down-move (sellers exhausted)
- UPPER_WICK_REJECTION: dominant upper wick after an up-move (buyers exhausted)
- DOUBLE_WICK_INDECISION: significant wicks on both sides of a small body

When the window holds a single bar there is no prior move to check and the
wick geometry alone decides.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from ..exceptions import NumericDegeneracyError
from ..models.market_data import Bar
from ..models.analysis import (
    BodyStrength,
    DominantWick,
    ExhaustionSignal,
    ExhaustionSignals,
    ExhaustionType,
    StrengthCategory,
    WickAnalysis,
    WickDominance,
)
from .patterns.base import ONE, PatternWindow, PriorTrend, clamp
from .thresholds import WickConfig, get_thresholds


logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')


@dataclass(frozen=True)
class _Decomposition:
    upper: Decimal
    lower: Decimal
    body: Decimal
    price_range: Decimal

    @property
    def upper_pct(self) -> Decimal:
        return self.upper / self.price_range * HUNDRED

    @property
    def lower_pct(self) -> Decimal:
        return self.lower / self.price_range * HUNDRED

    @property
    def body_pct(self) -> Decimal:
        return self.body / self.price_range * HUNDRED


def body_strength_category(body_pct: Decimal, config: WickConfig) -> StrengthCategory:
    """Bucket a body percentage against the configured cut points."""
    if body_pct < config.body_weak_below:
        return StrengthCategory.WEAK
    elif body_pct < config.body_moderate_below:
        return StrengthCategory.MODERATE
    elif body_pct < config.body_strong_below:
        return StrengthCategory.STRONG
    else:
        return StrengthCategory.VERY_STRONG


def classify_wick_dominance(upper: Decimal,
                            lower: Decimal,
                            upper_pct: Decimal,
                            lower_pct: Decimal,
                            config: WickConfig) -> WickDominance:
    """
    Dominant wick of a bar from its wick sizes and their shares of range.

    A wick dominates when it is significant and larger than the other by
    more than ``dominance_margin``; two significant wicks with no dominant
    side are BOTH.
    """
    larger = max(upper, lower)
    smaller = min(upper, lower)
    ratio = max(ONE, larger / max(smaller, config.epsilon))

    upper_significant = upper_pct >= config.min_significant_wick_pct
    lower_significant = lower_pct >= config.min_significant_wick_pct

    if upper_significant and upper > lower * config.dominance_margin:
        dominant = DominantWick.UPPER
    elif lower_significant and lower > upper * config.dominance_margin:
        dominant = DominantWick.LOWER
    elif upper_significant and lower_significant:
        dominant = DominantWick.BOTH
    else:
        dominant = DominantWick.NONE

    return WickDominance(dominant_wick=dominant, wick_ratio=float(ratio))


class WickBodyAnalyzer:
    """Wick/body decomposition of the latest bar of a window."""

    def __init__(self, config: Optional[WickConfig] = None):
        self.config = config or get_thresholds().wick

    def analyze(self, bars: Sequence[Bar]) -> WickAnalysis:
        """
        Analyze the most recent bar of ``bars``.

        Returns:
            WickAnalysis; the all-zero default for an empty window or a
            zero-range bar
        """
        if not bars:
            return WickAnalysis.default()

        try:
            parts = self._decompose(bars[-1])
        except NumericDegeneracyError as e:
            logger.debug(f"Wick analysis skipped: {e}")
            return WickAnalysis.default()

        dominance = classify_wick_dominance(parts.upper, parts.lower, parts.upper_pct, parts.lower_pct, self.config)
        prior = PatternWindow(bars=list(bars), lookback=self.config.context_lookback).prior_trend(1)
        exhaustion = self._exhaustion(parts, dominance, prior)
        body_pct = parts.body_pct

        return WickAnalysis(
            upper_wick_pct=float(parts.upper_pct),
            lower_wick_pct=float(parts.lower_pct),
            body_pct=float(body_pct),
            upper_wick_size=float(parts.upper),
            lower_wick_size=float(parts.lower),
            body_size=float(parts.body),
            price_range=float(parts.price_range),
            wick_dominance=dominance,
            body_strength=BodyStrength(
                body_strength=float(body_pct),
                body_strength_category=body_strength_category(body_pct, self.config),
            ),
            exhaustion_signals=exhaustion,
        )

    def _decompose(self, bar: Bar) -> _Decomposition:
        price_range = bar.total_range
        if price_range <= 0:
            raise NumericDegeneracyError(f"zero-range bar at {bar.timestamp.isoformat()}")
        return _Decomposition(
            upper=bar.upper_shadow,
            lower=bar.lower_shadow,
            body=bar.body_size,
            price_range=price_range,
        )

    def _exhaustion(self,
                    parts: _Decomposition,
                    dominance: WickDominance,
                    prior: PriorTrend) -> ExhaustionSignals:
        cfg = self.config
        wick_ratio = Decimal(str(dominance.wick_ratio))
        ratio_factor = min(ONE, wick_ratio / (cfg.dominance_margin * 2))

        if (dominance.dominant_wick == DominantWick.LOWER
                and prior in (PriorTrend.DOWN, PriorTrend.UNKNOWN)
                and self._is_rejection(parts.lower, parts.lower_pct, parts.body)):
            return ExhaustionSignals(
                exhaustion_signal=ExhaustionSignal.LOWER_WICK_REJECTION,
                exhaustion_type=ExhaustionType.BULLISH,
                confidence=float(clamp(parts.lower_pct / HUNDRED * ratio_factor)),
            )

        if (dominance.dominant_wick == DominantWick.UPPER
                and prior in (PriorTrend.UP, PriorTrend.UNKNOWN)
                and self._is_rejection(parts.upper, parts.upper_pct, parts.body)):
            return ExhaustionSignals(
                exhaustion_signal=ExhaustionSignal.UPPER_WICK_REJECTION,
                exhaustion_type=ExhaustionType.BEARISH,
                confidence=float(clamp(parts.upper_pct / HUNDRED * ratio_factor)),
            )

        if (parts.upper_pct > cfg.double_wick_min_pct
                and parts.lower_pct > cfg.double_wick_min_pct
                and parts.body_pct < cfg.double_wick_max_body_pct):
            # Balanced wicks around a tiny body give the strongest indecision
            balance = min(parts.upper_pct, parts.lower_pct) / Decimal('50')
            return ExhaustionSignals(
                exhaustion_signal=ExhaustionSignal.DOUBLE_WICK_INDECISION,
                exhaustion_type=ExhaustionType.NEUTRAL,
                confidence=float(clamp(balance * (ONE - parts.body_pct / HUNDRED))),
            )

        return ExhaustionSignals.default()

    def _is_rejection(self, wick: Decimal, wick_pct: Decimal, body: Decimal) -> bool:
        cfg = self.config
        return wick_pct > cfg.rejection_min_wick_pct and wick > body * cfg.rejection_min_wick_to_body
