"""
Volume Analysis

Latest bar volume against the average of the recent window, and whether
volume over the last few bars is rising or falling against the bars just
before them. Bars without volume (zero) are left out of both averages.
"""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..models.market_data import Bar
from ..models.analysis import VolumeReading, VolumeTrend
from .indicators import bars_to_frame
from .thresholds import VolumeConfig, get_thresholds


logger = logging.getLogger(__name__)


class VolumeAnalyzer:
    """Current volume, recent average and short-term volume trend."""

    def __init__(self, config: Optional[VolumeConfig] = None):
        self.config = config or get_thresholds().volume

    def analyze(self, bars: Sequence[Bar]) -> VolumeReading:
        """
        Read the volume of a bar window.

        Returns:
            VolumeReading; the neutral default when the latest bar carries no volume
        """
        if not bars:
            return VolumeReading.default()

        volume = bars_to_frame(bars)["volume"]
        current = float(volume.iloc[-1])
        if current <= 0:
            logger.debug("Latest bar carries no volume")
            return VolumeReading.default()

        window = volume.iloc[-self.config.average_period:]
        average = None
        if len(window) >= self.config.min_average_bars:
            average = float(window[window > 0].mean())

        return VolumeReading(current=current, average=average, trend=self.trend(volume))

    def trend(self, volume: pd.Series) -> VolumeTrend:
        """Compare the mean of the last ``trend_window`` volumes with the window before it."""
        size = self.config.trend_window
        if size < 1 or len(volume) < 2 * size:
            return VolumeTrend.NEUTRAL

        recent = volume.iloc[-size:]
        prior = volume.iloc[-2 * size:-size]
        recent = recent[recent > 0]
        prior = prior[prior > 0]
        if recent.empty or prior.empty:
            return VolumeTrend.NEUTRAL

        recent_avg = recent.mean()
        prior_avg = prior.mean()
        if recent_avg > prior_avg * self.config.trend_up_ratio:
            return VolumeTrend.UP
        elif recent_avg < prior_avg * self.config.trend_down_ratio:
            return VolumeTrend.DOWN
        return VolumeTrend.NEUTRAL
