"""
Single Candlestick Pattern Rules

Predicates for patterns formed by the latest bar alone: Marubozu, Hammer,
Hanging Man, Inverted Hammer, Shooting Star, Doji and Spinning Top.

Hammer/Hanging Man and Inverted Hammer/Shooting Star share a shape; the
trend preceding the bar decides which name applies. With no prior bars
the shape keeps its primary reading (Hammer, Shooting Star).
"""

from decimal import Decimal
from typing import Optional

from ..thresholds import PatternDetectionConfig
from .base import (
    ONE,
    ZERO,
    PatternWindow,
    PriorTrend,
    body_to_range_ratio,
    clamp,
    lower_shadow_ratio,
    upper_shadow_ratio,
)


def _marubozu_excess(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    bar = window.latest
    max_wick = config.marubozu.max_wick_ratio
    if bar.total_range == 0 or bar.body_size == 0:
        return None

    largest_wick = max(upper_shadow_ratio(bar), lower_shadow_ratio(bar))
    if largest_wick >= max_wick:
        return None
    return ONE - largest_wick / max_wick


def is_marubozu_bull(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Full-range bullish body with (almost) no wicks."""
    if not window.latest.is_bullish:
        return None
    return _marubozu_excess(window, config)


def is_marubozu_bear(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Full-range bearish body with (almost) no wicks."""
    if not window.latest.is_bearish:
        return None
    return _marubozu_excess(window, config)


def _long_lower_shadow(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Hammer shape: long lower wick, small body at the top, tiny upper wick."""
    bar = window.latest
    cfg = config.shadow
    body = bar.body_size
    if bar.total_range == 0 or body == 0:
        return None
    if bar.lower_shadow <= body * cfg.min_long_wick_to_body:
        return None
    if bar.upper_shadow >= body * cfg.max_short_wick_to_body:
        return None

    body_ratio = body_to_range_ratio(bar)
    if body_ratio > cfg.max_body_ratio:
        return None

    wick_excess = clamp((bar.lower_shadow / body - cfg.min_long_wick_to_body) / cfg.min_long_wick_to_body)
    body_excess = (cfg.max_body_ratio - body_ratio) / cfg.max_body_ratio
    return (wick_excess + body_excess) / 2


def _long_upper_shadow(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Shooting-star shape: long upper wick, small body at the bottom, tiny lower wick."""
    bar = window.latest
    cfg = config.shadow
    body = bar.body_size
    if bar.total_range == 0 or body == 0:
        return None
    if bar.upper_shadow <= body * cfg.min_long_wick_to_body:
        return None
    if bar.lower_shadow >= body * cfg.max_short_wick_to_body:
        return None

    body_ratio = body_to_range_ratio(bar)
    if body_ratio > cfg.max_body_ratio:
        return None

    wick_excess = clamp((bar.upper_shadow / body - cfg.min_long_wick_to_body) / cfg.min_long_wick_to_body)
    body_excess = (cfg.max_body_ratio - body_ratio) / cfg.max_body_ratio
    return (wick_excess + body_excess) / 2


def is_hammer(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Hammer shape anywhere except at the top of an up-move."""
    if window.prior_trend(1) == PriorTrend.UP:
        return None
    return _long_lower_shadow(window, config)


def is_hanging_man(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Hammer shape after an up-move."""
    if window.prior_trend(1) != PriorTrend.UP:
        return None
    return _long_lower_shadow(window, config)


def is_inverted_hammer(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Shooting-star shape after a down-move."""
    if window.prior_trend(1) != PriorTrend.DOWN:
        return None
    return _long_upper_shadow(window, config)


def is_shooting_star(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Shooting-star shape anywhere except at the bottom of a down-move."""
    if window.prior_trend(1) == PriorTrend.DOWN:
        return None
    return _long_upper_shadow(window, config)


def is_doji(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Body under ``max_body_ratio`` of the range."""
    bar = window.latest
    max_body = config.doji.max_body_ratio
    if bar.total_range == 0:
        return None

    body_ratio = body_to_range_ratio(bar)
    if body_ratio >= max_body:
        return None
    return (max_body - body_ratio) / max_body


def is_spinning_top(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Small body with significant wicks on both sides."""
    bar = window.latest
    cfg = config.spinning_top
    if bar.total_range == 0:
        return None

    if body_to_range_ratio(bar) >= cfg.max_body_ratio:
        return None

    shorter_wick = min(upper_shadow_ratio(bar), lower_shadow_ratio(bar))
    if shorter_wick <= cfg.min_wick_ratio:
        return None

    # Balanced wicks peak at half the range each
    headroom = Decimal('0.5') - cfg.min_wick_ratio
    if headroom <= ZERO:
        return ONE
    return clamp((shorter_wick - cfg.min_wick_ratio) / headroom)
