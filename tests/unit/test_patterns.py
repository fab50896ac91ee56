"""
Unit tests for candlestick pattern recognition.

Tests the priority-ordered rule table, single/two/three-bar pattern
geometry, trend-context disambiguation and confidence scoring.
"""

from decimal import Decimal

import pytest

from candlescope.analysis.patterns import (
    PATTERN_RULES,
    CandlestickPatternDetector,
    PatternRule,
    PatternWindow,
    PriorTrend,
)
from candlescope.models.analysis import PatternName, PatternResult

from factories import create_bar_series, create_test_bar


class TestRuleTable:
    """Test the structure of the rule table."""

    def test_multi_bar_rules_come_first(self):
        sizes = [rule.min_bars for rule in PATTERN_RULES]

        assert sizes == sorted(sizes, reverse=True)

    def test_every_pattern_has_one_rule(self):
        names = [rule.name for rule in PATTERN_RULES]

        assert len(names) == len(set(names))
        assert set(names) == set(PatternName) - {PatternName.NONE}

    def test_specific_rules_precede_generic_ones(self):
        names = [rule.name for rule in PATTERN_RULES]

        assert names.index(PatternName.ENGULFING_BULL) < names.index(PatternName.HARAMI_BULL)
        assert names.index(PatternName.MARUBOZU_BULL) < names.index(PatternName.DOJI)
        assert names.index(PatternName.DOJI) < names.index(PatternName.SPINNING_TOP)


class TestPatternWindow:
    """Test prior-trend context."""

    def test_downtrend_before_last_bar(self, downtrend_hammer_bars):
        window = PatternWindow(bars=downtrend_hammer_bars)

        assert window.prior_trend(1) == PriorTrend.DOWN

    def test_uptrend_before_last_bar(self, uptrend_hammer_shape_bars):
        window = PatternWindow(bars=uptrend_hammer_shape_bars)

        assert window.prior_trend(1) == PriorTrend.UP

    def test_single_bar_has_unknown_context(self):
        window = PatternWindow(bars=[create_test_bar(100, 101, 99, 100.5)])

        assert window.prior_trend(1) == PriorTrend.UNKNOWN


class TestSingleBarPatterns:
    """Test single-bar pattern detection."""

    def setup_method(self):
        self.detector = CandlestickPatternDetector()

    def test_hammer_after_downtrend(self, downtrend_hammer_bars):
        result = self.detector.detect(downtrend_hammer_bars)

        assert result.current == PatternName.HAMMER
        assert result.patterns == [PatternName.HAMMER]
        assert result.bullish is True
        assert result.bearish is False
        assert 0.75 < result.confidence <= 1.0

    def test_hanging_man_after_uptrend(self, uptrend_hammer_shape_bars):
        result = self.detector.detect(uptrend_hammer_shape_bars)

        assert result.current == PatternName.HANGING_MAN
        assert PatternName.HAMMER not in result.patterns
        assert result.bearish is True

    def test_shooting_star_without_context(self):
        bars = [create_test_bar(100, 106, 99.9, 101)]

        result = self.detector.detect(bars)

        assert result.current == PatternName.SHOOTING_STAR
        assert result.bearish is True

    def test_inverted_hammer_after_downtrend(self):
        bars = create_bar_series([
            (111, 111.5, 109.5, 110),
            (110, 110.5, 107.5, 108),
            (108, 108.5, 105.5, 106),
            (101, 107, 100.9, 102),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.INVERTED_HAMMER
        assert result.bullish is True

    def test_marubozu_bull(self):
        result = self.detector.detect([create_test_bar(100, 110, 100, 110)])

        assert result.current == PatternName.MARUBOZU_BULL
        assert result.confidence == pytest.approx(0.9)

    def test_marubozu_bear(self):
        result = self.detector.detect([create_test_bar(110, 110, 100, 100)])

        assert result.current == PatternName.MARUBOZU_BEAR
        assert result.bearish is True

    def test_doji_also_matches_spinning_top(self):
        result = self.detector.detect([create_test_bar(100, 102, 98, 100.1)])

        assert result.current == PatternName.DOJI
        assert result.patterns == [PatternName.DOJI, PatternName.SPINNING_TOP]
        assert not result.bullish and not result.bearish

    def test_spinning_top(self):
        result = self.detector.detect([create_test_bar(100, 103, 97, 101)])

        assert result.current == PatternName.SPINNING_TOP
        assert result.confidence >= 0.5


class TestMultiBarPatterns:
    """Test two-bar and three-bar pattern detection."""

    def setup_method(self):
        self.detector = CandlestickPatternDetector()

    def test_bullish_engulfing(self):
        bars = create_bar_series([
            (105, 105.5, 99.5, 100),
            (99, 107, 98.5, 106),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.ENGULFING_BULL
        assert result.confidence == pytest.approx(0.88)

    def test_bearish_engulfing(self):
        bars = create_bar_series([
            (100, 105.5, 99.5, 105),
            (106, 107, 98.5, 99),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.ENGULFING_BEAR
        assert result.bearish is True

    def test_piercing_pattern(self):
        bars = create_bar_series([
            (110, 110.5, 99.5, 100),
            (98, 108.5, 97.5, 108),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.PIERCING_PATTERN

    def test_dark_cloud_cover(self):
        bars = create_bar_series([
            (100, 110.5, 99.5, 110),
            (112, 112.5, 101.5, 102),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.DARK_CLOUD_COVER

    def test_bullish_harami(self):
        bars = create_bar_series([
            (110, 111, 99, 100),
            (103, 106, 102, 105),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.HARAMI_BULL

    def test_morning_star(self):
        bars = create_bar_series([
            (110, 110.5, 99.5, 100),
            (99, 99.5, 96, 98.5),
            (99, 108.5, 98.5, 108),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.MORNING_STAR
        assert result.confidence == pytest.approx(0.94)

    def test_bearish_harami(self):
        bars = create_bar_series([
            (100, 111, 99, 110),
            (107, 108, 104, 105),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.HARAMI_BEAR
        assert result.bearish is True
        assert result.bullish is False

    def test_evening_star(self):
        bars = create_bar_series([
            (100, 110.5, 99.5, 110),
            (111, 114, 110.5, 111.5),
            (111, 111.5, 101.5, 102),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.EVENING_STAR
        assert result.bearish is True
        assert result.confidence == pytest.approx(0.94)

    def test_three_white_soldiers(self):
        bars = create_bar_series([
            (100, 103.2, 99.9, 103),
            (103, 106.2, 102.9, 106),
            (106, 109.2, 105.9, 109),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.THREE_WHITE_SOLDIERS
        assert result.bullish is True

    def test_three_black_crows(self):
        bars = create_bar_series([
            (109, 109.1, 105.8, 106),
            (106, 106.1, 102.8, 103),
            (103, 103.1, 99.8, 100),
        ])

        result = self.detector.detect(bars)

        assert result.current == PatternName.THREE_BLACK_CROWS

    def test_three_bar_rules_need_three_bars(self):
        bars = create_bar_series([
            (99, 99.5, 96, 98.5),
            (99, 108.5, 98.5, 108),
        ])

        result = self.detector.detect(bars)

        assert PatternName.MORNING_STAR not in result.patterns


class TestDetectorBehaviour:
    """Test detector degradation and confidence bounds."""

    def test_empty_window_returns_default(self):
        result = CandlestickPatternDetector().detect([])

        assert result == PatternResult.default()
        assert result.current == PatternName.NONE
        assert result.confidence == 0.0
        assert result.patterns == []

    def test_no_match_returns_default(self):
        # Plain bullish bar: body 60% of range, wicks on both sides
        result = CandlestickPatternDetector().detect([create_test_bar(100, 108, 98, 106)])

        assert result.current == PatternName.NONE
        assert not result.bullish and not result.bearish

    def test_zero_range_bar_matches_nothing(self):
        result = CandlestickPatternDetector().detect([create_test_bar(100, 100, 100, 100)])

        assert result.current == PatternName.NONE

    def test_failing_rule_is_skipped(self, caplog):
        def broken(window, config):
            raise RuntimeError("broken rule")

        rules = (PatternRule(PatternName.DOJI, 1, broken, lambda c: Decimal('0.5')),) + PATTERN_RULES
        detector = CandlestickPatternDetector(rules=rules)

        result = detector.detect([create_test_bar(100, 110, 100, 110)])

        assert result.current == PatternName.MARUBOZU_BULL
        assert "broken rule" in caplog.text

    def test_confidence_always_in_unit_interval(self, downtrend_hammer_bars, uptrend_hammer_shape_bars):
        detector = CandlestickPatternDetector()

        for bars in (downtrend_hammer_bars, uptrend_hammer_shape_bars):
            for end in range(1, len(bars) + 1):
                for _, confidence in detector.match_all(bars[:end]):
                    assert Decimal('0') <= confidence <= Decimal('1')
