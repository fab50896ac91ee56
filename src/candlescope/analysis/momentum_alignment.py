"""
Momentum Alignment

Folds per-timeframe momentum readings into one cross-timeframe verdict:

- Each timeframe is classified BULLISH, BEARISH or NEUTRAL from its RSI
  value and the short-term average of its history.
- Counts are tallied over the configured timeframe order and the consensus
  ratio (majority side / total) picks the alignment state.
- A confluence score and a directional bias are derived from the verdict.

The module also detects price/momentum divergence on a single timeframe.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models.market_data import DEFAULT_TIMEFRAMES, Bar
from ..models.analysis import (
    RSI_NEUTRAL,
    AlignmentState,
    BiasConfidence,
    DivergenceDirection,
    MomentumAlignment,
    MomentumBias,
    MomentumDirection,
    MomentumDivergence,
    MomentumReading,
    MomentumScore,
    TimeframeMomentum,
)
from .momentum import stochastic_rsi
from .thresholds import AlignmentConfig, MomentumConfig, get_thresholds
from .validation import validate_timeframe_analysis


logger = logging.getLogger(__name__)

BULLISH_STATES = (AlignmentState.BULLISH, AlignmentState.BULLISH_WEAK)
BEARISH_STATES = (AlignmentState.BEARISH, AlignmentState.BEARISH_WEAK)


def _key(timeframe: Any) -> str:
    return getattr(timeframe, 'value', timeframe)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class MomentumAlignmentAggregator:
    """
    Cross-timeframe momentum aggregator.

    Missing timeframes are not skipped: they pass through the validation
    layer like any other record and count as NEUTRAL readings.
    """

    def __init__(self,
                 config: Optional[AlignmentConfig] = None,
                 momentum_config: Optional[MomentumConfig] = None):
        thresholds = get_thresholds()
        self.config = config or thresholds.alignment
        self.momentum_config = momentum_config or thresholds.momentum

    def classify(self, reading: MomentumReading) -> Tuple[MomentumDirection, float]:
        """
        Classify one reading.

        Returns:
            (direction, strength) with strength = distance from 50 scaled to 0-100
        """
        cfg = self.config
        k = reading.value
        recent = reading.history[-cfg.signal_period:] if cfg.signal_period > 0 else []
        d = _mean(recent) if recent else k

        if k > RSI_NEUTRAL + cfg.neutral_band and k >= d:
            direction = MomentumDirection.BULLISH
        elif k < RSI_NEUTRAL - cfg.neutral_band and k <= d:
            direction = MomentumDirection.BEARISH
        else:
            direction = MomentumDirection.NEUTRAL

        strength = min(abs(k - RSI_NEUTRAL) / RSI_NEUTRAL, 1.0) * 100.0
        return direction, round(strength, 2)

    def timeframe_momentum(self, reading: MomentumReading) -> TimeframeMomentum:
        """Classification plus oscillator snapshot for one timeframe."""
        direction, strength = self.classify(reading)
        mcfg = self.momentum_config
        return TimeframeMomentum(
            momentum=direction,
            momentum_strength=strength,
            stoch_rsi=stochastic_rsi(
                reading.history,
                period=mcfg.stoch_period,
                k_smoothing=mcfg.stoch_k_smoothing,
                d_smoothing=mcfg.stoch_d_smoothing,
            ),
            rsi=reading.value,
        )

    def aggregate(self,
                  analyses: Optional[Mapping[Any, Any]],
                  timeframes: Optional[Iterable[Any]] = None) -> MomentumAlignment:
        """
        Aggregate per-timeframe analyses into a momentum alignment verdict.

        Args:
            analyses: Timeframe -> TimeframeAnalysis (or raw record), keyed by
                timeframe value or ``Timeframe``
            timeframes: Ordered timeframes to fold over (defaults to 1m..4h)

        Returns:
            MomentumAlignment; UNKNOWN when there is nothing to aggregate
        """
        if analyses is None:
            return MomentumAlignment.default()

        order = [_key(tf) for tf in (timeframes if timeframes is not None else DEFAULT_TIMEFRAMES)]
        by_key = {_key(tf): analysis for tf, analysis in analyses.items()}

        snapshots = {}
        for tf in order:
            analysis = validate_timeframe_analysis(by_key.get(tf), self.momentum_config.history_length)
            snapshots[tf] = self.timeframe_momentum(analysis.momentum)

        return self._verdict(snapshots)

    def _verdict(self, snapshots: Mapping[str, TimeframeMomentum]) -> MomentumAlignment:
        cfg = self.config
        bullish = [s for s in snapshots.values() if s.momentum == MomentumDirection.BULLISH]
        bearish = [s for s in snapshots.values() if s.momentum == MomentumDirection.BEARISH]
        total = len(snapshots)
        neutral_count = total - len(bullish) - len(bearish)

        if total == 0:
            return MomentumAlignment.default()

        majority = bullish if len(bullish) >= len(bearish) else bearish
        ratio = len(majority) / total
        avg_strength = _mean([s.momentum_strength for s in majority])

        if ratio >= cfg.high_consensus:
            alignment = AlignmentState.BULLISH if majority is bullish else AlignmentState.BEARISH
            base_score = ratio * 100.0
        elif ratio >= cfg.low_consensus and len(bullish) != len(bearish):
            alignment = AlignmentState.BULLISH_WEAK if majority is bullish else AlignmentState.BEARISH_WEAK
            base_score = ratio * 100.0 * cfg.weak_score_factor
        else:
            alignment = AlignmentState.NEUTRAL
            base_score = None

        if base_score is None:
            alignment_score = cfg.neutral_score
        else:
            weight = cfg.strength_weight
            alignment_score = (1 - weight) * base_score + weight * avg_strength
        alignment_score = round(max(0.0, min(100.0, alignment_score)), 2)

        logger.debug(
            f"Momentum alignment {alignment.value}: bullish={len(bullish)} "
            f"bearish={len(bearish)} neutral={neutral_count} ratio={ratio:.2f}"
        )

        return MomentumAlignment(
            alignment=alignment,
            alignment_score=alignment_score,
            bullish_count=len(bullish),
            bearish_count=len(bearish),
            neutral_count=neutral_count,
            total_timeframes=total,
            timeframes=dict(snapshots),
            score=self._score(alignment, alignment_score, len(bullish), len(bearish), total),
            bias=self._bias(alignment, alignment_score, ratio, avg_strength),
        )

    def _score(self,
               alignment: AlignmentState,
               alignment_score: float,
               bullish_count: int,
               bearish_count: int,
               total: int) -> MomentumScore:
        """Confluence score: consensus bonus, then a penalty for conflicting sides."""
        cfg = self.config
        consensus_ratio = max(bullish_count, bearish_count) / total
        score = alignment_score

        if consensus_ratio >= cfg.strong_consensus_bonus_ratio:
            score = min(score * cfg.strong_consensus_bonus, 100.0)
        elif consensus_ratio >= cfg.high_consensus:
            score = min(score * cfg.moderate_consensus_bonus, 100.0)

        if bullish_count > 0 and bearish_count > 0:
            conflict_ratio = min(bullish_count, bearish_count) / total
            score = score * (1 - conflict_ratio * cfg.max_conflict_penalty)

        return MomentumScore(
            score=round(max(0.0, min(100.0, score)), 2),
            alignment=alignment,
            consensus_ratio=round(consensus_ratio, 2),
        )

    def _bias(self,
              alignment: AlignmentState,
              alignment_score: float,
              ratio: float,
              avg_strength: float) -> MomentumBias:
        if alignment in BULLISH_STATES:
            bias = MomentumDirection.BULLISH
        elif alignment in BEARISH_STATES:
            bias = MomentumDirection.BEARISH
        else:
            bias = MomentumDirection.NEUTRAL

        high = (bias != MomentumDirection.NEUTRAL
                and ratio >= self.config.high_consensus
                and avg_strength >= self.config.high_confidence_strength)

        return MomentumBias(
            bias=bias,
            strength=alignment_score,
            confidence=BiasConfidence.HIGH if high else BiasConfidence.MEDIUM,
        )


def detect_momentum_divergence(bars: Sequence[Bar],
                               reading: MomentumReading,
                               config: Optional[AlignmentConfig] = None) -> MomentumDivergence:
    """
    Detect price/momentum divergence on one timeframe.

    Price falling while RSI rises from a depressed level is a bullish
    divergence; price rising while RSI falls from an elevated level is a
    bearish one. Both trends are measured over the last
    ``divergence_lookback`` bars and history values.
    """
    cfg = config or get_thresholds().alignment
    lookback = cfg.divergence_lookback
    if lookback < 2 or len(bars) < lookback or len(reading.history) < lookback:
        return MomentumDivergence.default()

    closes: List[float] = [float(bar.close) for bar in bars[-lookback:]]
    history = reading.history[-lookback:]
    price_change = closes[-1] - closes[0]
    momentum_change = history[-1] - history[0]

    if price_change < 0 and momentum_change > 0 and reading.value < cfg.divergence_oversold:
        return MomentumDivergence(
            divergence=DivergenceDirection.BULLISH,
            type="BULLISH_DIVERGENCE",
            confidence=cfg.divergence_confidence,
        )
    if price_change > 0 and momentum_change < 0 and reading.value > cfg.divergence_overbought:
        return MomentumDivergence(
            divergence=DivergenceDirection.BEARISH,
            type="BEARISH_DIVERGENCE",
            confidence=cfg.divergence_confidence,
        )
    return MomentumDivergence.default()
