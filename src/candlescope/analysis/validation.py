"""
Timeframe Analysis Validation

Repairs per-timeframe analysis records so downstream consumers always see
the full shape. Input may be a ``TimeframeAnalysis``, a partial mapping with
snake_case or camelCase keys, or ``None``. Every function here is total:
missing or malformed data is replaced by the canonical neutral value, a
warning is logged, and nothing is raised.
"""

import logging
import math
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from ..exceptions import StructuralGapError
from ..models.analysis import (
    PATTERN_POLARITY,
    RSI_NEUTRAL,
    BodyStrength,
    ExhaustionSignal,
    ExhaustionSignals,
    ExhaustionType,
    MomentumReading,
    PatternName,
    PatternPolarity,
    PatternResult,
    TimeframeAnalysis,
    TrendStrength,
    VolumeReading,
    VolumeTrend,
    WickAnalysis,
)
from .thresholds import WickConfig, get_thresholds
from .wick_analyzer import body_strength_category, classify_wick_dominance


logger = logging.getLogger(__name__)

SECTION_KEYS = {
    'patterns': ('patterns', 'candlestickPatterns', 'candlestick_patterns'),
    'wick': ('wick', 'wickAnalysis', 'wick_analysis'),
    'trend': ('trend', 'trendStrength', 'trend_strength'),
    'momentum': ('momentum', 'rsi'),
}

PERCENT_KEYS = (
    ('upperWickDominance', 'upper_wick_pct'),
    ('lowerWickDominance', 'lower_wick_pct'),
    ('bodyDominance', 'body_pct'),
)

EXHAUSTION_TYPES = {
    ExhaustionSignal.LOWER_WICK_REJECTION: ExhaustionType.BULLISH,
    ExhaustionSignal.UPPER_WICK_REJECTION: ExhaustionType.BEARISH,
    ExhaustionSignal.DOUBLE_WICK_INDECISION: ExhaustionType.NEUTRAL,
    ExhaustionSignal.NONE: ExhaustionType.NEUTRAL,
}


def _lookup(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _require(raw: Mapping[str, Any], section: str) -> Any:
    value = _lookup(raw, *SECTION_KEYS[section])
    if value is None:
        raise StructuralGapError(f"missing {section} section")
    return value


def _as_float(value: Any) -> Optional[float]:
    """Finite float from ``value``, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _bounded(value: Any, low: float, high: float, default: float, field_name: str) -> float:
    parsed = _as_float(value)
    if parsed is None:
        if value is not None:
            logger.warning(f"Replacing invalid {field_name} {value!r} with {default}")
        return default
    if parsed < low or parsed > high:
        clamped = max(low, min(high, parsed))
        logger.warning(f"Clamping {field_name} {parsed} to {clamped}")
        return clamped
    return parsed


def _parse_enum(enum_cls, value: Any, default, field_name: str):
    if value is None:
        return default
    try:
        return enum_cls(getattr(value, 'value', value))
    except (TypeError, ValueError):
        logger.warning(f"Unknown {field_name} {value!r}, using {default.value}")
        return default


def validate_pattern_result(raw: Any) -> PatternResult:
    """
    Repair a pattern section.

    Unknown pattern names are dropped, confidence is clamped to [0, 1] and
    the bullish/bearish flags are re-derived from the pattern name so they
    are mutually exclusive.
    """
    if isinstance(raw, PatternResult):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning(f"Pattern section of type {type(raw).__name__} replaced with default")
        return PatternResult.default()

    current = _parse_enum(PatternName, raw.get('current'), PatternName.NONE, "pattern")
    confidence = _bounded(raw.get('confidence'), 0.0, 1.0, 0.0, "pattern confidence")

    names = raw.get('patterns') or []
    if isinstance(names, (str, bytes, Mapping)) or not isinstance(names, Iterable):
        logger.warning(f"Replacing malformed pattern list {names!r}")
        names = []

    patterns = []
    for name in names:
        try:
            patterns.append(PatternName(getattr(name, 'value', name)))
        except (TypeError, ValueError):
            logger.warning(f"Dropping unknown pattern {name!r}")

    polarity = PATTERN_POLARITY[current]
    for flag, expected in (('bullish', polarity == PatternPolarity.BULLISH),
                           ('bearish', polarity == PatternPolarity.BEARISH)):
        if flag in raw and bool(raw[flag]) != expected:
            logger.warning(f"Correcting {flag}={raw[flag]} for pattern {current.value}")

    return PatternResult(current=current, confidence=confidence, patterns=patterns)


def _validate_exhaustion(raw: Any, top_level_signal: Any) -> ExhaustionSignals:
    if isinstance(raw, ExhaustionSignals):
        return raw

    nested = raw if isinstance(raw, Mapping) else {}
    signal = _parse_enum(
        ExhaustionSignal,
        _lookup(nested, 'exhaustionSignal', 'exhaustion_signal') or top_level_signal,
        ExhaustionSignal.NONE,
        "exhaustion signal",
    )
    expected_type = EXHAUSTION_TYPES[signal]
    given_type = _lookup(nested, 'exhaustionType', 'exhaustion_type')
    if given_type is not None and getattr(given_type, 'value', given_type) != expected_type.value:
        logger.warning(f"Correcting exhaustion type {given_type!r} for {signal.value}")

    confidence = 0.0
    if signal != ExhaustionSignal.NONE:
        confidence = _bounded(nested.get('confidence'), 0.0, 1.0, 0.0, "exhaustion confidence")

    return ExhaustionSignals(
        exhaustion_signal=signal,
        exhaustion_type=expected_type,
        confidence=confidence,
    )


def validate_wick_analysis(raw: Any, config: Optional[WickConfig] = None) -> WickAnalysis:
    """
    Repair a wick section.

    Percentages are re-normalized to sum to 100 (or all zero), and the
    dominant wick and body category are recomputed from them.
    """
    if isinstance(raw, WickAnalysis):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning(f"Wick section of type {type(raw).__name__} replaced with default")
        return WickAnalysis.default()

    config = config or get_thresholds().wick

    shares = []
    for keys in PERCENT_KEYS:
        value = _as_float(_lookup(raw, *keys))
        shares.append(max(0.0, value) if value is not None else 0.0)

    total = sum(shares)
    if total <= 0:
        # An all-zero record is the zero-range default, anything else is a gap
        if any(_as_float(_lookup(raw, *keys)) != 0.0 for keys in PERCENT_KEYS):
            logger.warning("Wick section without usable percentages replaced with default")
        return WickAnalysis.default()
    if abs(total - 100.0) > 0.01:
        logger.warning(f"Re-normalizing wick percentages summing to {total:.4f}")
    upper_pct, lower_pct, body_pct = (share / total * 100.0 for share in shares)

    sizes = {}
    for name, keys in (('upper_wick_size', ('upperWickSize', 'upper_wick_size')),
                       ('lower_wick_size', ('lowerWickSize', 'lower_wick_size')),
                       ('body_size', ('bodySize', 'body_size')),
                       ('price_range', ('range', 'price_range'))):
        value = _as_float(_lookup(raw, *keys))
        sizes[name] = max(0.0, value) if value is not None else 0.0

    upper_dec = Decimal(str(upper_pct))
    lower_dec = Decimal(str(lower_pct))
    body_dec = Decimal(str(body_pct))

    exhaustion = _validate_exhaustion(
        _lookup(raw, 'exhaustionSignals', 'exhaustion_signals'),
        _lookup(raw, 'exhaustionSignal', 'exhaustion_signal'),
    )

    try:
        return WickAnalysis(
            upper_wick_pct=min(100.0, upper_pct),
            lower_wick_pct=min(100.0, lower_pct),
            body_pct=min(100.0, body_pct),
            wick_dominance=classify_wick_dominance(upper_dec, lower_dec, upper_dec, lower_dec, config),
            body_strength=BodyStrength(
                body_strength=min(100.0, body_pct),
                body_strength_category=body_strength_category(body_dec, config),
            ),
            exhaustion_signals=exhaustion,
            **sizes,
        )
    except ValidationError as e:
        logger.warning(f"Wick section could not be repaired: {e}")
        return WickAnalysis.default()


def validate_trend_strength(raw: Any) -> TrendStrength:
    """Repair a trend section; flags are always re-derived from ``adx``."""
    if isinstance(raw, TrendStrength):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning(f"Trend section of type {type(raw).__name__} replaced with default")
        return TrendStrength.default()

    if raw.get('adx') is None:
        logger.warning("Trend section without adx replaced with default")
        return TrendStrength.default()

    return TrendStrength(adx=_bounded(raw.get('adx'), 0.0, 100.0, 0.0, "adx"))


def _clean_history(values: Iterable[Any], history_length: int) -> list:
    history = []
    for value in values:
        parsed = _as_float(value)
        if parsed is None:
            logger.warning(f"Dropping invalid momentum history value {value!r}")
            continue
        history.append(max(0.0, min(100.0, parsed)))
    if len(history) > history_length:
        history = history[-history_length:]
    return history


def validate_momentum_reading(raw: Any, history_length: Optional[int] = None) -> MomentumReading:
    """Repair a momentum section: value and history in [0, 100], history bounded."""
    if history_length is None:
        history_length = get_thresholds().momentum.history_length

    if isinstance(raw, MomentumReading):
        if len(raw.history) <= history_length:
            return raw
        return raw.model_copy(update={'history': raw.history[-history_length:]})
    if not isinstance(raw, Mapping):
        logger.warning(f"Momentum section of type {type(raw).__name__} replaced with default")
        return MomentumReading.default()

    value = _bounded(raw.get('value'), 0.0, 100.0, RSI_NEUTRAL, "momentum value")
    history = raw.get('history') or []
    if isinstance(history, (str, bytes, Mapping)) or not isinstance(history, Iterable):
        logger.warning(f"Replacing malformed momentum history {history!r}")
        history = []

    last_timestamp = _lookup(raw, 'lastTimestamp', 'last_timestamp')
    try:
        return MomentumReading(
            value=value,
            history=_clean_history(history, history_length),
            last_timestamp=last_timestamp,
        )
    except ValidationError:
        logger.warning(f"Dropping invalid momentum timestamp {last_timestamp!r}")
        return MomentumReading(value=value, history=_clean_history(history, history_length))


def validate_volume_reading(raw: Any) -> VolumeReading:
    """Repair a volume section: non-negative volumes, known trend."""
    if isinstance(raw, VolumeReading):
        return raw
    if raw is None:
        return VolumeReading.default()
    if not isinstance(raw, Mapping):
        logger.warning(f"Volume section of type {type(raw).__name__} replaced with default")
        return VolumeReading.default()

    current = _as_float(_lookup(raw, 'currentVolume', 'current'))
    if current is None or current < 0:
        if current is not None:
            logger.warning(f"Replacing invalid current volume {current!r} with 0")
        current = 0.0

    average = _as_float(_lookup(raw, 'averageVolume', 'average'))
    if average is not None and average < 0:
        logger.warning(f"Dropping invalid average volume {average!r}")
        average = None

    trend = raw.get('trend')
    if isinstance(trend, str):
        trend = trend.upper()
    trend = _parse_enum(VolumeTrend, trend, VolumeTrend.NEUTRAL, "volume trend")

    return VolumeReading(current=current, average=average, trend=trend)


def validate_timeframe_analysis(raw: Any, history_length: Optional[int] = None) -> TimeframeAnalysis:
    """
    Return a fully populated ``TimeframeAnalysis`` for any input.

    Each section is validated independently, so one broken section never
    discards the others.
    """
    if isinstance(raw, TimeframeAnalysis):
        return raw
    if raw is None:
        logger.warning("Missing timeframe analysis replaced with default")
        return TimeframeAnalysis.default()
    if not isinstance(raw, Mapping):
        logger.warning(f"Timeframe analysis of type {type(raw).__name__} replaced with default")
        return TimeframeAnalysis.default()

    validators = {
        'patterns': validate_pattern_result,
        'wick': validate_wick_analysis,
        'trend': validate_trend_strength,
        'momentum': lambda section: validate_momentum_reading(section, history_length),
    }

    sections = {}
    for section, validator in validators.items():
        try:
            sections[section] = validator(_require(raw, section))
        except StructuralGapError as e:
            logger.warning(f"Timeframe analysis repaired: {e}")
        except Exception as e:
            # Left out, the section takes its neutral default
            logger.warning(f"Unrepairable {section} section replaced with default: {e!r}")

    return TimeframeAnalysis(**sections)
