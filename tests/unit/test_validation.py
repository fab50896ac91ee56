"""
Unit tests for the timeframe analysis validation layer.

Every validator must return a complete record for any input and log a
warning for each repair.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from candlescope.analysis import validation
from candlescope.analysis.validation import (
    validate_momentum_reading,
    validate_pattern_result,
    validate_timeframe_analysis,
    validate_trend_strength,
    validate_volume_reading,
    validate_wick_analysis,
)
from candlescope.models.analysis import (
    DominantWick,
    ExhaustionSignal,
    ExhaustionType,
    MomentumReading,
    PatternName,
    PatternResult,
    StrengthCategory,
    TimeframeAnalysis,
    TrendStrength,
    VolumeReading,
    VolumeTrend,
    WickAnalysis,
)


class TestValidateTimeframeAnalysis:
    """Test whole-record repair."""

    def test_none_becomes_default(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = validate_timeframe_analysis(None)

        assert result == TimeframeAnalysis.default()
        assert "Missing timeframe analysis" in caplog.text

    def test_valid_model_passes_through(self):
        analysis = TimeframeAnalysis(trend=TrendStrength(adx=30.0))

        assert validate_timeframe_analysis(analysis) is analysis

    def test_unexpected_type_becomes_default(self):
        assert validate_timeframe_analysis(42) == TimeframeAnalysis.default()

    def test_partial_record_is_completed(self, caplog):
        raw = {'trendStrength': {'adx': 32.5}}

        with caplog.at_level(logging.WARNING):
            result = validate_timeframe_analysis(raw)

        assert result.trend.adx == 32.5
        assert result.trend.strong is True
        assert result.patterns == PatternResult.default()
        assert result.wick == WickAnalysis.default()
        assert result.momentum == MomentumReading.default()
        assert "missing patterns section" in caplog.text

    def test_snake_case_sections(self):
        raw = {
            'patterns': PatternResult(current=PatternName.DOJI, confidence=0.6),
            'momentum': {'value': 72.0, 'history': [65.0, 72.0]},
        }

        result = validate_timeframe_analysis(raw)

        assert result.patterns.current == PatternName.DOJI
        assert result.momentum.overbought is True

    def test_repaired_record_has_full_shape(self):
        record = validate_timeframe_analysis({'rsi': {'value': 'n/a'}}).to_record()

        assert set(record) == {'candlestickPatterns', 'wickAnalysis', 'trendStrength', 'rsi'}
        assert record['rsi']['value'] == 50.0

    @pytest.mark.parametrize("raw", [
        {'candlestickPatterns': {'current': 'HAMMER', 'patterns': 5}},
        {'candlestickPatterns': {'current': 'HAMMER', 'patterns': {'HAMMER': 1}}},
        {'candlestickPatterns': {'current': 'HAMMER', 'patterns': [['HAMMER'], {'x': 1}, None]}},
        {'candlestickPatterns': {'current': ['HAMMER'], 'confidence': [0.5]}},
        {'candlestickPatterns': 3},
        {'wickAnalysis': {'upperWickDominance': 50, 'lowerWickDominance': 20, 'bodyDominance': 30,
                          'exhaustionSignals': 'UPPER_WICK_REJECTION'}},
        {'wickAnalysis': {'upperWickDominance': 50, 'lowerWickDominance': 20, 'bodyDominance': 30,
                          'exhaustionSignals': [1, 2], 'exhaustionSignal': {'a': 1}}},
        {'wickAnalysis': {'upperWickDominance': [1], 'lowerWickDominance': object(), 'bodyDominance': 'x'}},
        {'wickAnalysis': ['UPPER']},
        {'trendStrength': {'adx': {'value': 30}}},
        {'trendStrength': 'strong'},
        {'rsi': {'value': 60, 'history': {'a': 1}}},
        {'rsi': {'value': 60, 'history': 7}},
        {'rsi': {'value': [1], 'history': [None, float('inf')]}},
        {'rsi': {'value': 60, 'lastTimestamp': 'yesterday'}},
        {'rsi': []},
    ])
    def test_malformed_sections_never_raise(self, raw):
        result = validate_timeframe_analysis(raw)

        assert isinstance(result, TimeframeAnalysis)
        assert set(result.to_record()) == {'candlestickPatterns', 'wickAnalysis', 'trendStrength', 'rsi'}
        assert 0.0 <= result.momentum.value <= 100.0
        assert all(0.0 <= value <= 100.0 for value in result.momentum.history)

    def test_non_iterable_pattern_list_is_emptied(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = validate_timeframe_analysis({'candlestickPatterns': {'current': 'HAMMER', 'patterns': 5}})

        assert result.patterns.current == PatternName.HAMMER
        assert result.patterns.patterns == []
        assert "malformed pattern list" in caplog.text

    def test_failing_section_validator_keeps_other_sections(self, caplog, monkeypatch):
        monkeypatch.setattr(validation, 'validate_trend_strength', Mock(side_effect=RuntimeError("boom")))
        raw = {'trendStrength': {'adx': 30}, 'rsi': {'value': 65.0}}

        with caplog.at_level(logging.WARNING):
            result = validate_timeframe_analysis(raw)

        assert result.trend == TrendStrength.default()
        assert result.momentum.value == 65.0
        assert "Unrepairable trend section" in caplog.text


class TestValidatePatternResult:
    """Test pattern section repair."""

    def test_polarity_recomputed_from_name(self, caplog):
        raw = {'current': 'SHOOTING_STAR', 'confidence': 0.7, 'bullish': True, 'bearish': True}

        with caplog.at_level(logging.WARNING):
            result = validate_pattern_result(raw)

        assert result.bearish is True
        assert result.bullish is False
        assert "Correcting bullish" in caplog.text

    def test_unknown_names_dropped(self):
        result = validate_pattern_result({
            'current': 'FLYING_PIG',
            'confidence': 0.9,
            'patterns': ['HAMMER', 'FLYING_PIG'],
        })

        assert result.current == PatternName.NONE
        assert result.patterns == [PatternName.HAMMER]

    def test_confidence_clamped(self):
        assert validate_pattern_result({'current': 'HAMMER', 'confidence': 3}).confidence == 1.0
        assert validate_pattern_result({'current': 'HAMMER', 'confidence': -1}).confidence == 0.0

    def test_non_numeric_confidence(self):
        assert validate_pattern_result({'current': 'HAMMER', 'confidence': 'high'}).confidence == 0.0


class TestValidateWickAnalysis:
    """Test wick section repair."""

    def test_percentages_renormalized(self, caplog):
        raw = {'upperWickDominance': 20, 'lowerWickDominance': 60, 'bodyDominance': 40}

        with caplog.at_level(logging.WARNING):
            result = validate_wick_analysis(raw)

        assert result.upper_wick_pct == pytest.approx(16.6667, abs=1e-3)
        assert result.lower_wick_pct == pytest.approx(50.0)
        assert result.body_pct == pytest.approx(33.3333, abs=1e-3)
        assert "Re-normalizing" in caplog.text

    def test_categories_recomputed(self):
        raw = {
            'upper_wick_pct': 5,
            'lower_wick_pct': 80,
            'body_pct': 15,
            'bodyStrength': {'bodyStrength': 90, 'bodyStrengthCategory': 'VERY_STRONG'},
        }

        result = validate_wick_analysis(raw)

        assert result.body_strength.body_strength_category == StrengthCategory.WEAK
        assert result.body_strength.body_strength == pytest.approx(15.0)
        assert result.dominant_wick == DominantWick.LOWER

    def test_exhaustion_type_follows_signal(self):
        raw = {
            'upperWickDominance': 70, 'lowerWickDominance': 5, 'bodyDominance': 25,
            'exhaustionSignals': {
                'exhaustionSignal': 'UPPER_WICK_REJECTION',
                'exhaustionType': 'BULLISH',
                'confidence': 0.8,
            },
        }

        result = validate_wick_analysis(raw)

        assert result.exhaustion_signal == ExhaustionSignal.UPPER_WICK_REJECTION
        assert result.exhaustion_signals.exhaustion_type == ExhaustionType.BEARISH
        assert result.exhaustion_signals.confidence == 0.8

    def test_top_level_signal_accepted(self):
        raw = {
            'upperWickDominance': 40, 'lowerWickDominance': 40, 'bodyDominance': 20,
            'exhaustionSignal': 'DOUBLE_WICK_INDECISION',
        }

        result = validate_wick_analysis(raw)

        assert result.exhaustion_signal == ExhaustionSignal.DOUBLE_WICK_INDECISION

    def test_all_zero_record_is_default(self, caplog):
        raw = {'upperWickDominance': 0, 'lowerWickDominance': 0, 'bodyDominance': 0}

        with caplog.at_level(logging.WARNING):
            result = validate_wick_analysis(raw)

        assert result == WickAnalysis.default()
        assert caplog.text == ""

    def test_garbage_becomes_default(self):
        assert validate_wick_analysis("wick") == WickAnalysis.default()
        assert validate_wick_analysis({'upperWickDominance': 'x'}) == WickAnalysis.default()


class TestValidateTrendStrength:
    """Test trend section repair."""

    def test_negative_adx_clamped(self):
        assert validate_trend_strength({'adx': -5}).adx == 0.0

    def test_flags_follow_adx(self):
        result = validate_trend_strength({'adx': 45, 'strong': False, 'veryStrong': False})

        assert result.very_strong is True
        assert result.strong is True

    def test_missing_adx_is_default(self):
        assert validate_trend_strength({'strong': True}) == TrendStrength.default()

    def test_non_finite_adx(self):
        assert validate_trend_strength({'adx': float('nan')}).adx == 0.0


class TestValidateMomentumReading:
    """Test momentum section repair."""

    def test_value_and_history_clamped(self):
        result = validate_momentum_reading({'value': 130, 'history': [-10, 55, 'x', 120]})

        assert result.value == 100.0
        assert result.history == [0.0, 55.0, 100.0]

    def test_history_bounded(self):
        result = validate_momentum_reading({'value': 50, 'history': list(range(100))}, history_length=10)

        assert result.history == [float(v) for v in range(90, 100)]

    def test_model_history_bounded(self):
        reading = MomentumReading(value=60.0, history=[50.0] * 80)

        assert len(validate_momentum_reading(reading, history_length=50).history) == 50

    def test_malformed_history(self):
        assert validate_momentum_reading({'value': 40, 'history': 'rising'}).history == []

    def test_missing_value_is_neutral(self):
        assert validate_momentum_reading({}).value == 50.0

    def test_mapping_history_rejected(self):
        assert validate_momentum_reading({'value': 40, 'history': {'a': 40.0}}).history == []

    def test_last_timestamp_kept(self):
        moment = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

        result = validate_momentum_reading({'value': 55, 'history': [55], 'lastTimestamp': moment.isoformat()})

        assert result.last_timestamp == moment

    def test_model_trim_keeps_last_timestamp(self):
        moment = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        reading = MomentumReading(value=60.0, history=[50.0] * 80, last_timestamp=moment)

        result = validate_momentum_reading(reading, history_length=50)

        assert len(result.history) == 50
        assert result.last_timestamp == moment

    def test_invalid_last_timestamp_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = validate_momentum_reading({'value': 55, 'history': [55], 'lastTimestamp': 'soon'})

        assert result.last_timestamp is None
        assert result.history == [55.0]
        assert "invalid momentum timestamp" in caplog.text


class TestValidateVolumeReading:
    """Test volume section repair."""

    def test_model_passes_through(self):
        reading = VolumeReading(current=10.0, average=8.0, trend=VolumeTrend.UP)

        assert validate_volume_reading(reading) is reading

    def test_none_is_default(self):
        assert validate_volume_reading(None) == VolumeReading.default()

    def test_lower_case_trend_accepted(self):
        result = validate_volume_reading({'currentVolume': 120, 'averageVolume': 100, 'trend': 'up'})

        assert result.trend == VolumeTrend.UP
        assert result.ratio == pytest.approx(1.2)

    def test_negative_volumes_repaired(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = validate_volume_reading({'current': -5, 'average': -1, 'trend': 'SIDEWAYS'})

        assert result.current == 0.0
        assert result.average is None
        assert result.trend == VolumeTrend.NEUTRAL
        assert "Unknown volume trend" in caplog.text

    def test_garbage_becomes_default(self):
        assert validate_volume_reading("loud") == VolumeReading.default()
        assert validate_volume_reading({'current': 'lots', 'trend': ['UP']}) == VolumeReading.default()
