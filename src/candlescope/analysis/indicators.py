"""
Bar windows as pandas frames for the ``ta`` indicator classes.
"""

from typing import Sequence

import pandas as pd

from ..models.market_data import Bar


def bars_to_frame(bars: Sequence[Bar]) -> pd.DataFrame:
    """Float OHLCV frame indexed by bar timestamp."""
    data = {
        "timestamp": [b.timestamp for b in bars],
        "open": [float(b.open) for b in bars],
        "high": [float(b.high) for b in bars],
        "low": [float(b.low) for b in bars],
        "close": [float(b.close) for b in bars],
        "volume": [float(b.volume) for b in bars],
    }
    df = pd.DataFrame(data)
    df.set_index("timestamp", inplace=True)
    return df
