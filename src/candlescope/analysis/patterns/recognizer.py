"""
Candlestick Pattern Recognition

``PATTERN_RULES`` is the priority-ordered rule table: three-bar rules, then
two-bar rules, then single-bar rules, and within each tier the more specific
rule first. The first rule that matches becomes ``current``; every matching
rule is listed in ``patterns`` in table order.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ...models.market_data import Bar
from ...models.analysis import PatternName, PatternResult
from ..thresholds import PatternDetectionConfig, get_thresholds
from .base import PatternRule, PatternWindow
from . import multi_candlestick as multi
from . import single_candlestick as single


logger = logging.getLogger(__name__)


PATTERN_RULES: Tuple[PatternRule, ...] = (
    # Three-bar
    PatternRule(PatternName.MORNING_STAR, 3, multi.is_morning_star,
                lambda c: c.star.base_confidence),
    PatternRule(PatternName.EVENING_STAR, 3, multi.is_evening_star,
                lambda c: c.star.base_confidence),
    PatternRule(PatternName.THREE_WHITE_SOLDIERS, 3, multi.is_three_white_soldiers,
                lambda c: c.three_line.base_confidence),
    PatternRule(PatternName.THREE_BLACK_CROWS, 3, multi.is_three_black_crows,
                lambda c: c.three_line.base_confidence),
    # Two-bar
    PatternRule(PatternName.ENGULFING_BULL, 2, multi.is_engulfing_bull,
                lambda c: c.engulfing.base_confidence),
    PatternRule(PatternName.ENGULFING_BEAR, 2, multi.is_engulfing_bear,
                lambda c: c.engulfing.base_confidence),
    PatternRule(PatternName.PIERCING_PATTERN, 2, multi.is_piercing_pattern,
                lambda c: c.penetration.base_confidence),
    PatternRule(PatternName.DARK_CLOUD_COVER, 2, multi.is_dark_cloud_cover,
                lambda c: c.penetration.base_confidence),
    PatternRule(PatternName.HARAMI_BULL, 2, multi.is_harami_bull,
                lambda c: c.harami.base_confidence),
    PatternRule(PatternName.HARAMI_BEAR, 2, multi.is_harami_bear,
                lambda c: c.harami.base_confidence),
    # Single-bar
    PatternRule(PatternName.MARUBOZU_BULL, 1, single.is_marubozu_bull,
                lambda c: c.marubozu.base_confidence),
    PatternRule(PatternName.MARUBOZU_BEAR, 1, single.is_marubozu_bear,
                lambda c: c.marubozu.base_confidence),
    PatternRule(PatternName.HAMMER, 1, single.is_hammer,
                lambda c: c.shadow.hammer_confidence),
    PatternRule(PatternName.HANGING_MAN, 1, single.is_hanging_man,
                lambda c: c.shadow.hanging_man_confidence),
    PatternRule(PatternName.INVERTED_HAMMER, 1, single.is_inverted_hammer,
                lambda c: c.shadow.inverted_hammer_confidence),
    PatternRule(PatternName.SHOOTING_STAR, 1, single.is_shooting_star,
                lambda c: c.shadow.shooting_star_confidence),
    PatternRule(PatternName.DOJI, 1, single.is_doji,
                lambda c: c.doji.base_confidence),
    PatternRule(PatternName.SPINNING_TOP, 1, single.is_spinning_top,
                lambda c: c.spinning_top.base_confidence),
)


class CandlestickPatternDetector:
    """
    Classifies the most recent 1-3 bars of a window.

    Older bars in the window only provide trend context. The detector never
    raises on data problems: an empty window, or a window where no rule
    matches, yields the NONE result.
    """

    def __init__(self,
                 config: Optional[PatternDetectionConfig] = None,
                 rules: Sequence[PatternRule] = PATTERN_RULES):
        """
        Initialize the detector.

        Args:
            config: Pattern thresholds, defaults to the active thresholds
            rules: Priority-ordered rule table
        """
        self.config = config or get_thresholds().patterns
        self.rules = tuple(rules)

    def match_all(self, bars: Sequence[Bar]) -> List[Tuple[PatternName, Decimal]]:
        """
        Evaluate every rule against the window.

        Returns:
            (pattern, confidence) for every matching rule in table order
        """
        if not bars:
            return []

        window = PatternWindow(
            bars=list(bars),
            lookback=self.config.context.trend_lookback,
            min_trend_change_pct=self.config.context.min_trend_change_pct,
        )

        matches = []
        for rule in self.rules:
            try:
                confidence = rule.evaluate(window, self.config)
            except Exception as e:
                # A broken rule must not take the other rules down with it
                logger.warning(f"Pattern rule {rule.name.value} failed: {e}")
                continue
            if confidence is not None:
                matches.append((rule.name, confidence))

        return matches

    def detect(self, bars: Sequence[Bar]) -> PatternResult:
        """
        Classify the latest bars of ``bars``.

        Args:
            bars: Bar window ordered ascending by time

        Returns:
            PatternResult with the winning pattern and all matches
        """
        matches = self.match_all(bars)
        if not matches:
            return PatternResult.default()

        winner, confidence = matches[0]
        return PatternResult(
            current=winner,
            confidence=float(confidence),
            patterns=[name for name, _ in matches],
        )
