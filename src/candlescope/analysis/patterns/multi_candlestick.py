"""
Multi-Candlestick Pattern Rules

Predicates for two-bar patterns (Engulfing, Piercing Pattern, Dark Cloud
Cover, Harami) and three-bar patterns (Morning/Evening Star, Three White
Soldiers, Three Black Crows). The latest bar is always the last bar of the
pattern.
"""

from decimal import Decimal
from typing import Optional

from ..thresholds import PatternDetectionConfig
from .base import ONE, ZERO, PatternWindow, body_to_range_ratio, clamp


# ---------------------------------------------------------------- two bars

def is_engulfing_bull(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bullish body that opens below and closes above the prior bearish body."""
    current, previous = window.latest, window.previous
    if not (current.is_bullish and previous.is_bearish):
        return None
    if not (current.open < previous.close and current.close > previous.open):
        return None
    return _engulfing_excess(current.body_size, previous.body_size, config)


def is_engulfing_bear(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bearish body that opens above and closes below the prior bullish body."""
    current, previous = window.latest, window.previous
    if not (current.is_bearish and previous.is_bullish):
        return None
    if not (current.open > previous.close and current.close < previous.open):
        return None
    return _engulfing_excess(current.body_size, previous.body_size, config)


def _engulfing_excess(current_body: Decimal, previous_body: Decimal, config: PatternDetectionConfig) -> Decimal:
    if previous_body == 0:
        return ONE
    full_score = config.engulfing.full_score_body_ratio - ONE
    if full_score <= ZERO:
        return ONE
    return clamp((current_body / previous_body - ONE) / full_score)


def is_piercing_pattern(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bullish bar opening below the prior low and closing inside the upper half of the prior bearish body."""
    current, previous = window.latest, window.previous
    if not (current.is_bullish and previous.is_bearish):
        return None

    midpoint = previous.body_midpoint
    if not (current.open < previous.low and midpoint < current.close < previous.open):
        return None
    return (current.close - midpoint) / (previous.open - midpoint)


def is_dark_cloud_cover(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bearish bar opening above the prior high and closing inside the lower half of the prior bullish body."""
    current, previous = window.latest, window.previous
    if not (current.is_bearish and previous.is_bullish):
        return None

    midpoint = previous.body_midpoint
    if not (current.open > previous.high and previous.open < current.close < midpoint):
        return None
    return (midpoint - current.close) / (midpoint - previous.open)


def is_harami_bull(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Small bullish bar contained inside the prior bearish bar."""
    current, previous = window.latest, window.previous
    if not (current.is_bullish and previous.is_bearish):
        return None
    if not (current.high < previous.high and current.low > previous.low):
        return None
    if not (current.open > previous.close and current.close < previous.open):
        return None
    return ONE - current.body_size / previous.body_size


def is_harami_bear(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Small bearish bar contained inside the prior bullish bar."""
    current, previous = window.latest, window.previous
    if not (current.is_bearish and previous.is_bullish):
        return None
    if not (current.high < previous.high and current.low > previous.low):
        return None
    if not (current.open < previous.close and current.close > previous.open):
        return None
    return ONE - current.body_size / previous.body_size


# -------------------------------------------------------------- three bars

def is_morning_star(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bearish bar, small-bodied low star, bullish recovery bar."""
    current, middle, first = window.latest, window.previous, window.before_previous
    if not (current.is_bullish and first.is_bearish):
        return None
    if middle.total_range == 0 or body_to_range_ratio(middle) >= config.star.max_middle_body_ratio:
        return None
    if not (current.close > first.close and middle.low < first.low and middle.low < current.low):
        return None
    # Depth of the recovery into the first bar's body
    return clamp((current.close - first.close) / first.body_size)


def is_evening_star(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Bullish bar, small-bodied high star, bearish reversal bar."""
    current, middle, first = window.latest, window.previous, window.before_previous
    if not (current.is_bearish and first.is_bullish):
        return None
    if middle.total_range == 0 or body_to_range_ratio(middle) >= config.star.max_middle_body_ratio:
        return None
    if not (current.close < first.close and middle.high > first.high and middle.high > current.high):
        return None
    return clamp((first.close - current.close) / first.body_size)


def is_three_white_soldiers(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Three rising bullish bars, each opening near the prior close."""
    third, second, first = window.latest, window.previous, window.before_previous
    if not (first.is_bullish and second.is_bullish and third.is_bullish):
        return None
    if not (third.close > second.close > first.close):
        return None

    gap = ONE + config.three_line.max_open_gap
    if not (third.open <= second.close * gap and second.open <= first.close * gap):
        return None
    return min(body_to_range_ratio(bar) for bar in (first, second, third))


def is_three_black_crows(window: PatternWindow, config: PatternDetectionConfig) -> Optional[Decimal]:
    """Three falling bearish bars, each opening near the prior close."""
    third, second, first = window.latest, window.previous, window.before_previous
    if not (first.is_bearish and second.is_bearish and third.is_bearish):
        return None
    if not (third.close < second.close < first.close):
        return None

    gap = ONE - config.three_line.max_open_gap
    if not (third.open >= second.close * gap and second.open >= first.close * gap):
        return None
    return min(body_to_range_ratio(bar) for bar in (first, second, third))
