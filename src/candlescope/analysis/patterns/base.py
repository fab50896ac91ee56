"""
Shared helpers for candlestick pattern rules.

A rule predicate receives a ``PatternWindow`` and the active
``PatternDetectionConfig`` and returns ``None`` when the geometry does not
match, or an excess score in [0, 1] describing how far the bars clear the
rule's minimum thresholds.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Sequence

from ...models.market_data import Bar
from ...models.analysis import PatternName
from ..thresholds import PatternDetectionConfig


ZERO = Decimal('0')
ONE = Decimal('1')


class PriorTrend(str, Enum):
    """Direction of the bars preceding a pattern."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PatternWindow:
    """The last bars of a window plus the trend that preceded a pattern."""

    bars: Sequence[Bar]
    lookback: int = 5
    min_trend_change_pct: Decimal = ZERO

    @property
    def latest(self) -> Bar:
        return self.bars[-1]

    @property
    def previous(self) -> Bar:
        return self.bars[-2]

    @property
    def before_previous(self) -> Bar:
        return self.bars[-3]

    def prior_trend(self, pattern_size: int) -> PriorTrend:
        """Trend of the bars before the last ``pattern_size`` bars."""
        context = self.bars[:-pattern_size] if pattern_size else self.bars
        if len(context) < 2:
            return PriorTrend.UNKNOWN

        context = context[-(self.lookback + 1):]
        start = context[0].close
        end = context[-1].close
        if start == 0:
            return PriorTrend.UNKNOWN

        change_pct = (end - start) / start * 100
        if change_pct > self.min_trend_change_pct:
            return PriorTrend.UP
        elif change_pct < -self.min_trend_change_pct:
            return PriorTrend.DOWN
        return PriorTrend.FLAT


Predicate = Callable[[PatternWindow, PatternDetectionConfig], Optional[Decimal]]
ConfidenceSource = Callable[[PatternDetectionConfig], Decimal]


@dataclass(frozen=True)
class PatternRule:
    """One row of the priority-ordered pattern table."""

    name: PatternName
    min_bars: int
    predicate: Predicate
    base_confidence: ConfidenceSource

    def evaluate(self, window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
        """Run the predicate; returns the confidence on a match, else None."""
        if len(window.bars) < self.min_bars:
            return None

        excess = self.predicate(window, config)
        if excess is None:
            return None

        base = self.base_confidence(config)
        confidence = base + (ONE - base) * clamp(excess) * config.context.excess_weight
        return clamp(confidence)


def clamp(value: Decimal, low: Decimal = ZERO, high: Decimal = ONE) -> Decimal:
    """Clamp ``value`` to [low, high]."""
    return max(low, min(high, value))


def body_to_range_ratio(bar: Bar) -> Decimal:
    """Ratio of body size to total range."""
    if bar.total_range == 0:
        return ZERO
    return bar.body_size / bar.total_range


def upper_shadow_ratio(bar: Bar) -> Decimal:
    """Upper shadow as ratio of total range."""
    if bar.total_range == 0:
        return ZERO
    return bar.upper_shadow / bar.total_range


def lower_shadow_ratio(bar: Bar) -> Decimal:
    """Lower shadow as ratio of total range."""
    if bar.total_range == 0:
        return ZERO
    return bar.lower_shadow / bar.total_range
