"""
Trend Strength (ADX)

Wilder's Directional Movement System through ``ta.trend.ADXIndicator``:
true range and +DM/-DM are Wilder-smoothed into +DI and -DI, whose
normalized spread (DX) is smoothed again into the ADX.

Short windows still produce a value: with fewer than ``2 * period`` bars
the calculator shrinks its period to ``max(1, (len(bars) - 1) // 2)``.
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np
from ta.trend import ADXIndicator

from ..exceptions import InsufficientDataError, NumericDegeneracyError
from ..models.market_data import Bar
from ..models.analysis import TrendStrength
from .indicators import bars_to_frame
from .thresholds import get_thresholds


logger = logging.getLogger(__name__)


class TrendStrengthCalculator:
    """Average Directional Index over a bar window."""

    def __init__(self, period: Optional[int] = None):
        self.period = period if period is not None else get_thresholds().trend.period
        if self.period < 1:
            raise ValueError(f"ADX period must be positive, got {self.period}")

    def effective_period(self, bar_count: int) -> int:
        if bar_count >= 2 * self.period:
            return self.period
        return max(1, (bar_count - 1) // 2)

    def calculate(self, bars: Sequence[Bar]) -> TrendStrength:
        """
        Compute the ADX of ``bars``.

        Returns:
            TrendStrength; ``adx = 0`` when fewer than two bars are available
            or the window never moved
        """
        try:
            adx = self._adx(bars)
        except (InsufficientDataError, NumericDegeneracyError) as e:
            logger.debug(f"ADX unavailable: {e}")
            return TrendStrength.default()

        return TrendStrength(adx=adx)

    def _adx(self, bars: Sequence[Bar]) -> float:
        if len(bars) < 2:
            raise InsufficientDataError("ADX", 2, len(bars))

        period = self.effective_period(len(bars))
        df = bars_to_frame(bars)

        # Flat windows divide 0 by 0 inside the indicator
        with np.errstate(divide='ignore', invalid='ignore'):
            adx = float(ADXIndicator(df["high"], df["low"], df["close"], window=period).adx().iloc[-1])

        if not math.isfinite(adx):
            raise NumericDegeneracyError(f"non-finite ADX over {len(bars)} bars")
        return max(0.0, min(100.0, adx))
