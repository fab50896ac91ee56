"""
Unit tests for the market data and analysis result models.

Covers bar validation and normalization, derived flags on the result
models, and the camelCase field names of exported records.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from candlescope.models import (
    AlignmentState,
    Bar,
    MomentumAlignment,
    MomentumReading,
    PatternName,
    PatternResult,
    StrengthCategory,
    SymbolAnalysis,
    Timeframe,
    TimeframeAnalysis,
    TrendStrength,
    VolumeReading,
    VolumeTrend,
    validate_bar_sequence,
)

from factories import create_bar_series, create_test_bar


class TestBar:
    """Test Bar validation and derived properties."""

    def test_valid_bar(self):
        bar = create_test_bar(100, 105, 95, 102)

        assert bar.symbol == "BTC"
        assert bar.open == Decimal('100')
        assert bar.body_size == Decimal('2')
        assert bar.upper_shadow == Decimal('3')
        assert bar.lower_shadow == Decimal('5')
        assert bar.total_range == Decimal('10')
        assert bar.is_bullish
        assert not bar.is_bearish

    def test_high_below_close_rejected(self):
        with pytest.raises(ValidationError):
            create_test_bar(100, 101, 95, 102)

    def test_low_above_open_rejected(self):
        with pytest.raises(ValidationError):
            create_test_bar(100, 105, 101, 102)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            create_test_bar(-1, 1, -2, 0)

    def test_timestamp_from_epoch_milliseconds(self):
        bar = Bar(timestamp=1704067200000, open=1, high=2, low=0.5, close=1.5)

        assert bar.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_timestamp_from_iso_string(self):
        bar = Bar(timestamp="2024-01-01T00:00:00Z", open=1, high=2, low=0.5, close=1.5)

        assert bar.timestamp.tzinfo == timezone.utc

    def test_prices_quantized(self):
        bar = Bar(timestamp=0, open="1.123456789", high=2, low=1, close=1.5)

        assert bar.open == Decimal('1.12345679')

    def test_from_ohlcv_compact_keys(self):
        bar = Bar.from_ohlcv(
            {'t': 1704067200000, 'o': '10', 'h': '12', 'l': '9', 'c': '11', 'v': '3', 's': 'eth'},
            Timeframe.ONE_HOUR
        )

        assert bar.symbol == "ETH"
        assert bar.timeframe == Timeframe.ONE_HOUR
        assert bar.close == Decimal('11')
        assert bar.volume == Decimal('3')

    def test_from_ohlcv_long_keys(self):
        bar = Bar.from_ohlcv({
            'timestamp': "2024-01-01T00:00:00+00:00",
            'open': 10, 'high': 12, 'low': 9, 'close': 9.5,
        })

        assert bar.is_bearish
        assert bar.volume == Decimal('0')

    def test_bar_is_immutable(self):
        bar = create_test_bar(100, 105, 95, 102)

        with pytest.raises(ValidationError):
            bar.close = Decimal('103')

    def test_json_dump_uses_strings(self):
        bar = create_test_bar(100, 105, 95, 102)

        data = bar.model_dump(mode='json')

        assert data['timestamp'] == '2024-01-01T00:00:00+00:00'
        assert data['open'] == '100.00000000'
        assert data['volume'] == '100.00000000'

    def test_python_dump_keeps_types(self):
        data = create_test_bar(100, 105, 95, 102).model_dump()

        assert isinstance(data['timestamp'], datetime)
        assert data['close'] == Decimal('102')


class TestBarSequence:
    """Test timestamp ordering checks."""

    def test_increasing_sequence_accepted(self):
        validate_bar_sequence(create_bar_series([(1, 2, 0.5, 1.5), (1.5, 2, 1, 1.8)]))

    def test_repeated_timestamp_rejected(self):
        bar = create_test_bar(1, 2, 0.5, 1.5)

        with pytest.raises(ValueError, match="strictly increasing"):
            validate_bar_sequence([bar, bar])

    def test_timeframe_durations(self):
        assert Timeframe.ONE_MINUTE.seconds == 60
        assert Timeframe.FOUR_HOURS.milliseconds == 14_400_000


class TestResultModels:
    """Test derived flags on the result models."""

    def test_pattern_polarity_flags(self):
        bullish = PatternResult(current=PatternName.HAMMER, confidence=0.8, patterns=[PatternName.HAMMER])
        bearish = PatternResult(current=PatternName.SHOOTING_STAR, confidence=0.7)
        neutral = PatternResult(current=PatternName.DOJI, confidence=0.6)

        assert bullish.bullish and not bullish.bearish
        assert bearish.bearish and not bearish.bullish
        assert not neutral.bullish and not neutral.bearish

    def test_pattern_confidence_bounds(self):
        with pytest.raises(ValidationError):
            PatternResult(current=PatternName.DOJI, confidence=1.5)

    @pytest.mark.parametrize("adx,category,strong,very_strong", [
        (10.0, StrengthCategory.WEAK, False, False),
        (20.0, StrengthCategory.MODERATE, False, False),
        (25.0, StrengthCategory.STRONG, True, False),
        (40.0, StrengthCategory.VERY_STRONG, True, True),
    ])
    def test_trend_strength_flags(self, adx, category, strong, very_strong):
        trend = TrendStrength(adx=adx)

        assert trend.category == category
        assert trend.strong == strong
        assert trend.weak == (not strong)
        assert trend.very_strong == very_strong

    def test_momentum_thresholds_are_exclusive(self):
        assert not MomentumReading(value=70.0).overbought
        assert not MomentumReading(value=30.0).oversold
        assert MomentumReading(value=70.01).overbought
        assert MomentumReading(value=29.99).oversold

    def test_alignment_counts_must_partition_total(self):
        with pytest.raises(ValidationError):
            MomentumAlignment(
                alignment=AlignmentState.BULLISH,
                bullish_count=3,
                total_timeframes=5,
            )

    def test_empty_alignment_must_be_unknown(self):
        with pytest.raises(ValidationError):
            MomentumAlignment(alignment=AlignmentState.NEUTRAL)

    def test_symbol_analysis_missing_timeframe_is_default(self):
        analysis = SymbolAnalysis(symbol="BTC")

        assert analysis.timeframe(Timeframe.ONE_HOUR) == TimeframeAnalysis.default()

    def test_momentum_naive_timestamp_is_utc(self):
        reading = MomentumReading(value=50.0, last_timestamp=datetime(2024, 1, 1, 12))

        assert reading.last_timestamp == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_volume_ratio(self):
        assert VolumeReading(current=150.0, average=100.0).ratio == pytest.approx(1.5)
        assert VolumeReading(current=150.0).ratio is None
        assert VolumeReading.default().trend == VolumeTrend.NEUTRAL

    def test_symbol_analysis_missing_volume_is_default(self):
        assert SymbolAnalysis(symbol="BTC").volume_for('1m') == VolumeReading.default()


class TestRecords:
    """Test exported record field names."""

    def test_timeframe_analysis_record(self):
        record = TimeframeAnalysis.default().to_record()

        assert set(record) == {'candlestickPatterns', 'wickAnalysis', 'trendStrength', 'rsi'}
        assert set(record['candlestickPatterns']) == {'current', 'confidence', 'patterns', 'bullish', 'bearish'}
        assert record['candlestickPatterns']['current'] == "NONE"
        assert set(record['trendStrength']) == {'adx', 'strong', 'weak', 'veryStrong', 'category'}
        assert set(record['rsi']) == {'value', 'history', 'lastTimestamp', 'overbought', 'oversold'}
        assert record['rsi']['lastTimestamp'] is None
        assert record['rsi']['value'] == 50.0

    def test_wick_analysis_record(self):
        wick = TimeframeAnalysis.default().to_record()['wickAnalysis']

        for key in ('upperWickDominance', 'lowerWickDominance', 'bodyDominance',
                    'upperWickSize', 'lowerWickSize', 'bodySize', 'range',
                    'exhaustionSignal'):
            assert key in wick
        assert wick['wickDominance'] == {'dominantWick': 'NONE', 'wickRatio': 1.0}
        assert wick['bodyStrength'] == {'bodyStrength': 0.0, 'bodyStrengthCategory': 'WEAK'}
        assert wick['exhaustionSignals'] == {
            'exhaustionSignal': 'NONE',
            'exhaustionType': 'NEUTRAL',
            'confidence': 0.0,
        }

    def test_symbol_analysis_record(self):
        record = SymbolAnalysis(symbol="BTC").to_record()

        assert set(record) == {
            'symbol', 'analysisTimestamp', 'timeframes', 'momentum', 'divergence', 'volume', 'analysisDurationMs'
        }
        assert record['volume'] == {}
        assert record['momentum']['alignment'] == "UNKNOWN"
        assert set(record['momentum']['score']) == {'score', 'alignment', 'consensusRatio'}
        assert record['divergence'] == {'divergence': 'NONE', 'type': None, 'confidence': 0.0}

    def test_populate_by_alias(self):
        analysis = TimeframeAnalysis(rsi=MomentumReading(value=65.0))

        assert analysis.momentum.value == 65.0
