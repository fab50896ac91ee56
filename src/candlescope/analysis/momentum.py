"""
Momentum Oscillator (RSI)

Wilder's Relative Strength Index over bar closes, computed with
``ta.momentum.RSIIndicator``, with a bounded history of recent values and a
Stochastic RSI snapshot computed from that history.

History is keyed by bar time: a reading remembers the timestamp of the
newest bar it covered, and the next cycle only appends values for bars
after it. Re-analyzing an overlapping window never repeats a value.
"""

import logging
from typing import Optional, Sequence, Union

import pandas as pd
from ta.momentum import RSIIndicator

from ..exceptions import InsufficientDataError
from ..models.market_data import Bar
from ..models.analysis import RSI_NEUTRAL, MomentumReading, StochRSI
from .indicators import bars_to_frame
from .thresholds import get_thresholds


logger = logging.getLogger(__name__)


def rsi_series(closes: Union[Sequence[float], pd.Series], period: int) -> pd.Series:
    """
    RSI for every close from position ``period`` on, keeping the input index.

    Closes that have not moved yet read as neutral 50 rather than the
    indicator's 100.

    Raises:
        InsufficientDataError: fewer than ``period + 1`` closes
    """
    close = closes if isinstance(closes, pd.Series) else pd.Series(list(closes), dtype=float)
    if len(close) < period + 1:
        raise InsufficientDataError("RSI", period + 1, len(close))

    rsi = RSIIndicator(close, window=period, fillna=False).rsi()
    moved = close.diff().fillna(0.0).ne(0.0).cumsum().gt(0)
    rsi = rsi.where(moved, RSI_NEUTRAL)
    return rsi.iloc[period:].clip(0.0, 100.0)


def stochastic_rsi(history: Sequence[float],
                   period: int = 14,
                   k_smoothing: int = 3,
                   d_smoothing: int = 3) -> StochRSI:
    """
    Stochastic RSI of an RSI history (most recent last).

    ``%K`` is the SMA of the raw stochastic over ``k_smoothing`` values and
    ``%D`` the SMA of ``%K`` over ``d_smoothing`` values. A history too short
    for both smoothings yields the neutral 50/50 snapshot, and a flat
    lookback window contributes a neutral raw value.
    """
    if len(history) < period + k_smoothing + d_smoothing - 2:
        return StochRSI.default()

    values = pd.Series(list(history), dtype=float)
    lowest = values.rolling(period).min()
    spread = values.rolling(period).max() - lowest
    raw = ((values - lowest) / spread * 100.0).where(spread > 0, RSI_NEUTRAL).iloc[period - 1:]

    k_series = raw.rolling(k_smoothing).mean()
    d_series = k_series.rolling(d_smoothing).mean()
    return StochRSI(
        k=max(0.0, min(100.0, float(k_series.iloc[-1]))),
        d=max(0.0, min(100.0, float(d_series.iloc[-1]))),
    )


class MomentumOscillator:
    """Wilder RSI with a bounded reading history."""

    def __init__(self, period: Optional[int] = None, history_length: Optional[int] = None):
        config = get_thresholds().momentum
        self.period = period if period is not None else config.period
        self.history_length = history_length if history_length is not None else config.history_length
        if self.period < 1:
            raise ValueError(f"RSI period must be positive, got {self.period}")
        if self.history_length < 1:
            raise ValueError(f"history_length must be positive, got {self.history_length}")

    def calculate(self, bars: Sequence[Bar], previous: Optional[MomentumReading] = None) -> MomentumReading:
        """
        Compute the RSI of ``bars``.

        Args:
            bars: Bar window ordered ascending by time
            previous: Reading of a prior cycle. Its history is extended with the
                values of bars newer than ``previous.last_timestamp``; without
                that timestamp the window's own series replaces it.

        Returns:
            MomentumReading with the latest value and history (most recent last)
        """
        carried = list(previous.history) if previous is not None else []
        last_timestamp = previous.last_timestamp if previous is not None else None

        try:
            period = self.period if len(bars) >= self.period + 1 else len(bars) - 1
            if period < 1:
                raise InsufficientDataError("RSI", 2, len(bars))
            series = rsi_series(bars_to_frame(bars)["close"], period)
        except InsufficientDataError as e:
            logger.debug(f"RSI unavailable: {e}")
            return MomentumReading(
                value=RSI_NEUTRAL,
                history=carried[-self.history_length:],
                last_timestamp=last_timestamp,
            )

        if last_timestamp is None:
            history = series.tolist()
        else:
            history = carried + series[series.index > last_timestamp].tolist()

        newest = bars[-1].timestamp
        if last_timestamp is not None and last_timestamp > newest:
            newest = last_timestamp

        return MomentumReading(
            value=float(series.iloc[-1]),
            history=history[-self.history_length:],
            last_timestamp=newest,
        )
