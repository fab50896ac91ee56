"""
Multi-Timeframe Analysis

Builds the per-timeframe ``TimeframeAnalysis`` records for a symbol and folds
them into the cross-timeframe momentum verdict:

- TimeframeAnalysisBuilder: runs the four calculators over one bar window
- MultiTimeframeAnalyzer: one asyncio task per configured timeframe, the
  calculators and the volume reading on a shared thread pool, aggregation
  once every task joined

A failing or empty timeframe never affects its siblings: it degrades to the
neutral record through the validation layer.
"""

import asyncio
import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import AnalysisConfig
from ..logger import get_symbol_adapter
from ..models.market_data import Bar, Timeframe, validate_bar_sequence
from ..models.analysis import MomentumReading, SymbolAnalysis, TimeframeAnalysis, VolumeReading
from .momentum import MomentumOscillator
from .momentum_alignment import MomentumAlignmentAggregator, detect_momentum_divergence
from .patterns import CandlestickPatternDetector
from .thresholds import AnalysisThresholds, get_thresholds
from .trend_strength import TrendStrengthCalculator
from .validation import validate_timeframe_analysis, validate_volume_reading
from .volume import VolumeAnalyzer
from .wick_analyzer import WickBodyAnalyzer


logger = logging.getLogger(__name__)


def _key(timeframe: Any) -> str:
    return getattr(timeframe, 'value', timeframe)


class TimeframeAnalysisBuilder:
    """
    Runs pattern detection, wick analysis, ADX and RSI over one bar window.

    The calculators are independent of each other. A calculator that raises
    is logged and its section left out, and the validation layer fills it
    with the neutral default.
    """

    def __init__(self,
                 pattern_detector: Optional[CandlestickPatternDetector] = None,
                 wick_analyzer: Optional[WickBodyAnalyzer] = None,
                 trend_calculator: Optional[TrendStrengthCalculator] = None,
                 momentum_oscillator: Optional[MomentumOscillator] = None):
        self.pattern_detector = pattern_detector or CandlestickPatternDetector()
        self.wick_analyzer = wick_analyzer or WickBodyAnalyzer()
        self.trend_calculator = trend_calculator or TrendStrengthCalculator()
        self.momentum_oscillator = momentum_oscillator or MomentumOscillator()

    @classmethod
    def from_config(cls,
                    config: AnalysisConfig,
                    thresholds: Optional[AnalysisThresholds] = None) -> 'TimeframeAnalysisBuilder':
        """Create a builder with periods from ``config`` and policy from ``thresholds``."""
        thresholds = thresholds or get_thresholds()
        return cls(
            pattern_detector=CandlestickPatternDetector(thresholds.patterns),
            wick_analyzer=WickBodyAnalyzer(thresholds.wick),
            trend_calculator=TrendStrengthCalculator(config.adx_period),
            momentum_oscillator=MomentumOscillator(config.rsi_period, config.history_length),
        )

    def _calculators(self,
                     bars: Sequence[Bar],
                     previous: Optional[MomentumReading]) -> List[Tuple[str, Callable[[], Any]]]:
        return [
            ('patterns', lambda: self.pattern_detector.detect(bars)),
            ('wick', lambda: self.wick_analyzer.analyze(bars)),
            ('trend', lambda: self.trend_calculator.calculate(bars)),
            ('momentum', lambda: self.momentum_oscillator.calculate(bars, previous)),
        ]

    def _finish(self, sections: Dict[str, Any]) -> TimeframeAnalysis:
        return validate_timeframe_analysis(sections, self.momentum_oscillator.history_length)

    def build(self, bars: Sequence[Bar], previous: Optional[MomentumReading] = None) -> TimeframeAnalysis:
        """
        Analyze one bar window synchronously.

        Args:
            bars: Bar window ordered ascending by time
            previous: Prior momentum reading whose history is carried forward

        Returns:
            Fully populated TimeframeAnalysis
        """
        sections = {}
        for name, calculate in self._calculators(bars, previous):
            try:
                sections[name] = calculate()
            except Exception as e:
                logger.warning(f"{name} calculation failed: {e}")
        return self._finish(sections)

    async def build_async(self,
                          bars: Sequence[Bar],
                          executor: Optional[Executor] = None,
                          previous: Optional[MomentumReading] = None) -> TimeframeAnalysis:
        """
        Analyze one bar window with the calculators running concurrently on ``executor``.

        Args:
            bars: Bar window ordered ascending by time
            executor: Pool to run the calculators on (the loop default if None)
            previous: Prior momentum reading whose history is carried forward

        Returns:
            Fully populated TimeframeAnalysis
        """
        loop = asyncio.get_running_loop()
        calculators = self._calculators(bars, previous)

        results = await asyncio.gather(
            *(loop.run_in_executor(executor, calculate) for _, calculate in calculators),
            return_exceptions=True
        )

        sections = {}
        for (name, _), result in zip(calculators, results):
            if isinstance(result, Exception):
                logger.warning(f"{name} calculation failed: {result}")
            else:
                sections[name] = result
        return self._finish(sections)


class MultiTimeframeAnalyzer:
    """
    Main class for multi-timeframe analysis of a symbol.

    Coordinates the per-timeframe calculators, the momentum alignment fold
    and divergence detection on the primary timeframe, and tracks analysis
    latency.
    """

    def __init__(self,
                 config: Optional[AnalysisConfig] = None,
                 thresholds: Optional[AnalysisThresholds] = None):
        """
        Initialize the analyzer.

        Args:
            config: Analysis configuration. If None, uses default configuration.
            thresholds: Policy thresholds. If None, loads ``config.thresholds_file``
                when set, else uses the active thresholds.
        """
        self.config = config or AnalysisConfig()
        if thresholds is None and self.config.thresholds_file:
            thresholds = AnalysisThresholds.load_from_file(self.config.thresholds_file)
            logger.info(f"Loaded analysis thresholds from {self.config.thresholds_file}")
        self.thresholds = thresholds or get_thresholds()

        self.builder = TimeframeAnalysisBuilder.from_config(self.config, self.thresholds)
        self.aggregator = MomentumAlignmentAggregator(self.thresholds.alignment, self.thresholds.momentum)
        self.volume_analyzer = VolumeAnalyzer(self.thresholds.volume)

        # Performance tracking
        self._analysis_count = 0
        self._total_analysis_time = 0
        self._max_analysis_time = 0

        # Thread pool shared by every timeframe and symbol
        self._thread_pool = ThreadPoolExecutor(max_workers=self.config.max_workers)

    async def analyze(self,
                      symbol: str,
                      timeframe_data: Mapping[Any, Sequence[Bar]],
                      previous: Optional[SymbolAnalysis] = None) -> SymbolAnalysis:
        """
        Perform multi-timeframe analysis for one symbol.

        Args:
            symbol: Trading symbol to analyze
            timeframe_data: Bars organized by timeframe (``Timeframe`` or value keys)
            previous: Result of the prior cycle, whose momentum history is carried forward

        Returns:
            SymbolAnalysis with one record per configured timeframe
        """
        start_time = time.time()
        bars_by_key = {_key(tf): bars for tf, bars in timeframe_data.items()}

        tasks = []
        for timeframe in self.config.timeframes:
            prior = previous.timeframe(timeframe).momentum if previous is not None else None
            task = asyncio.create_task(
                self._analyze_timeframe(symbol, timeframe, bars_by_key.get(timeframe.value) or [], prior)
            )
            tasks.append((timeframe.value, task))

        results = await asyncio.gather(*(task for _, task in tasks))
        analyses = {key: analysis for (key, _), (analysis, _) in zip(tasks, results)}
        volume = {key: reading for (key, _), (_, reading) in zip(tasks, results)}

        momentum = self.aggregator.aggregate(analyses, self.config.timeframes)

        # AnalysisConfig guarantees the primary timeframe is configured
        primary = self.config.primary_timeframe.value
        divergence = detect_momentum_divergence(
            bars_by_key.get(primary) or [],
            analyses[primary].momentum,
            self.thresholds.alignment,
        )

        analysis_duration = int((time.time() - start_time) * 1000)
        self._update_performance_metrics(analysis_duration)

        return SymbolAnalysis(
            symbol=symbol,
            analysis_timestamp=datetime.now(timezone.utc),
            timeframes=analyses,
            momentum=momentum,
            divergence=divergence,
            volume=volume,
            analysis_duration_ms=analysis_duration,
        )

    async def analyze_many(self,
                           symbols_data: Mapping[str, Mapping[Any, Sequence[Bar]]]) -> Dict[str, SymbolAnalysis]:
        """
        Analyze several symbols concurrently, at most ``max_concurrent_symbols`` at a time.

        Returns:
            Symbol -> SymbolAnalysis in input order
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrent_symbols)

        async def run(symbol: str, data: Mapping[Any, Sequence[Bar]]) -> SymbolAnalysis:
            async with semaphore:
                return await self.analyze(symbol, data)

        symbols = list(symbols_data)
        results = await asyncio.gather(*(run(symbol, symbols_data[symbol]) for symbol in symbols))
        return dict(zip(symbols, results))

    async def _analyze_timeframe(self,
                                 symbol: str,
                                 timeframe: Timeframe,
                                 bars: Sequence[Bar],
                                 previous: Optional[MomentumReading]) -> Tuple[TimeframeAnalysis, VolumeReading]:
        """Analyze one timeframe; invalid or empty windows degrade to the neutral records."""
        log = get_symbol_adapter(logger, symbol, timeframe.value)

        if not bars:
            log.debug("No bars available")
            return TimeframeAnalysis.default(), VolumeReading.default()

        try:
            validate_bar_sequence(bars)
        except ValueError as e:
            log.warning(f"Skipping unordered bar window: {e}")
            return TimeframeAnalysis.default(), VolumeReading.default()

        loop = asyncio.get_running_loop()
        analysis, volume = await asyncio.gather(
            self.builder.build_async(bars, self._thread_pool, previous),
            loop.run_in_executor(self._thread_pool, self.volume_analyzer.analyze, bars),
            return_exceptions=True
        )
        if isinstance(analysis, Exception):
            raise analysis
        if isinstance(volume, Exception):
            log.warning(f"volume calculation failed: {volume}")
            volume = None

        return analysis, validate_volume_reading(volume)

    def _update_performance_metrics(self, analysis_duration_ms: int):
        """Update internal performance tracking metrics."""
        self._analysis_count += 1
        self._total_analysis_time += analysis_duration_ms
        self._max_analysis_time = max(self._max_analysis_time, analysis_duration_ms)

    @property
    def performance_stats(self) -> Dict[str, Any]:
        """Get performance statistics for the analyzer."""
        if self._analysis_count == 0:
            return {
                "total_analyses": 0,
                "avg_analysis_time_ms": 0,
                "max_analysis_time_ms": 0,
            }

        return {
            "total_analyses": self._analysis_count,
            "avg_analysis_time_ms": int(self._total_analysis_time / self._analysis_count),
            "max_analysis_time_ms": self._max_analysis_time,
        }

    def close(self):
        """Shut the thread pool down."""
        self._thread_pool.shutdown(wait=True)

    async def __aenter__(self) -> 'MultiTimeframeAnalyzer':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        """Cleanup thread pool on destruction."""
        if hasattr(self, '_thread_pool'):
            self._thread_pool.shutdown(wait=False)
