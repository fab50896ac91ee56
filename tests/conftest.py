"""
Pytest configuration and fixtures for candlescope tests.
"""

import os
from typing import Generator, List

import pytest
from unittest.mock import patch

from candlescope.analysis.thresholds import reset_thresholds
from candlescope.models.market_data import Bar

from factories import create_bar_series


@pytest.fixture(autouse=True)
def default_thresholds() -> Generator[None, None, None]:
    """Every test starts and ends with the default thresholds active."""
    reset_thresholds()
    yield
    reset_thresholds()


@pytest.fixture
def downtrend_hammer_bars() -> List[Bar]:
    """Five falling bearish bars followed by a hammer."""
    return create_bar_series([
        (111, 111.5, 109.5, 110),
        (110, 110.5, 107.5, 108),
        (108, 108.5, 105.5, 106),
        (106, 106.5, 103.5, 104),
        (104, 104.5, 101.5, 102),
        (100, 101.2, 95, 101),
    ])


@pytest.fixture
def uptrend_hammer_shape_bars() -> List[Bar]:
    """Four rising bullish bars followed by a hammer-shaped bar."""
    return create_bar_series([
        (90, 92.5, 89.5, 92),
        (92, 94.5, 91.5, 94),
        (94, 96.5, 93.5, 96),
        (96, 98.5, 95.5, 98),
        (100, 101.2, 95, 101),
    ])


@pytest.fixture
def mock_env_vars() -> Generator[dict, None, None]:
    """Mock environment variables for testing."""
    test_env = {
        "CANDLESCOPE_TIMEFRAMES": "1m,15m,4h",
        "PRIMARY_TIMEFRAME": "15m",
        "RSI_PERIOD": "10",
        "ADX_PERIOD": "12",
        "MOMENTUM_HISTORY_LENGTH": "30",
        "ANALYSIS_MAX_WORKERS": "2",
        "MAX_CONCURRENT_SYMBOLS": "3",
        "LOG_LEVEL": "DEBUG",
        "LOG_BACKUP_COUNT": "2",
    }

    with patch.dict(os.environ, test_env, clear=False):
        yield test_env
