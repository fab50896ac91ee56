"""
Market Data Models

Price history consumed by the analysis engine:
- Timeframe: supported bar-aggregation intervals
- Bar: immutable OHLCV observation, validated on construction

Bars come from an external source as one ascending-by-time sequence per
(symbol, timeframe). Prices are Decimals quantized to 1e-8.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


PRICE_QUANTUM = Decimal('0.00000001')

SYMBOL_PATTERN = re.compile(r'^[A-Z0-9]+$')


class Timeframe(str, Enum):
    """Supported bar timeframes."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"

    @property
    def seconds(self) -> int:
        """Bar duration in seconds."""
        return _TIMEFRAME_SECONDS[self]

    @property
    def milliseconds(self) -> int:
        return self.seconds * 1000


_TIMEFRAME_SECONDS = {
    Timeframe.ONE_MINUTE: 60,
    Timeframe.FIVE_MINUTES: 5 * 60,
    Timeframe.FIFTEEN_MINUTES: 15 * 60,
    Timeframe.ONE_HOUR: 60 * 60,
    Timeframe.FOUR_HOURS: 4 * 60 * 60,
    Timeframe.ONE_DAY: 24 * 60 * 60,
}

# Analysis order, shortest first
DEFAULT_TIMEFRAMES = (
    Timeframe.ONE_MINUTE,
    Timeframe.FIVE_MINUTES,
    Timeframe.FIFTEEN_MINUTES,
    Timeframe.ONE_HOUR,
    Timeframe.FOUR_HOURS,
)


def _to_utc(value: Any) -> datetime:
    """UTC datetime from a datetime, an ISO-8601 string or epoch milliseconds."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        moment = datetime.fromisoformat(value.replace('Z', '+00:00'))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        raise ValueError(f"Unsupported timestamp {value!r}")

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _to_price(value: Any) -> Decimal:
    """Decimal quantized to ``PRICE_QUANTUM``; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, str):
        value = value.strip()
    try:
        price = Decimal(value) if isinstance(value, str) else Decimal(str(value))
    except ArithmeticError:
        raise ValueError(f"Invalid price {value!r}")
    if not price.is_finite():
        raise ValueError(f"Price must be finite: {value!r}")
    return price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


class Bar(BaseModel):
    """
    One OHLCV bar (candle).

    Construction enforces high >= max(open, close), min(open, close) >= low
    and non-negative prices and volume. Bars are frozen: every analysis cycle
    works on a fresh window.
    """

    symbol: Optional[str] = Field(
        None,
        description="Trading symbol such as 'BTC'",
        max_length=20
    )
    timeframe: Optional[Timeframe] = Field(
        None,
        description="Aggregation interval of the bar"
    )
    timestamp: datetime = Field(
        ...,
        description="Bar open time (UTC)"
    )
    open: Decimal = Field(..., ge=0)
    high: Decimal = Field(..., ge=0)
    low: Decimal = Field(..., ge=0)
    close: Decimal = Field(..., ge=0)
    volume: Decimal = Field(default=Decimal('0'), ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator('timestamp', mode='before')
    @classmethod
    def normalize_timestamp(cls, v) -> datetime:
        return _to_utc(v)

    @field_validator('symbol')
    @classmethod
    def normalize_symbol(cls, v) -> Optional[str]:
        """Upper-case the symbol; only letters and digits are allowed."""
        if v is None:
            return v
        v = v.strip().upper()
        if not SYMBOL_PATTERN.match(v):
            raise ValueError(f"Symbol may only contain letters and digits: {v}")
        return v

    @field_validator('open', 'high', 'low', 'close', 'volume', mode='before')
    @classmethod
    def quantize_prices(cls, v) -> Decimal:
        return _to_price(v)

    @field_serializer('timestamp', when_used='json')
    def serialize_timestamp(self, v: datetime) -> str:
        return v.isoformat()

    @field_serializer('open', 'high', 'low', 'close', 'volume', when_used='json')
    def serialize_price(self, v: Decimal) -> str:
        return str(v)

    @model_validator(mode='after')
    def check_price_envelope(self):
        """High and low must bound the body."""
        body_top = max(self.open, self.close)
        body_bottom = min(self.open, self.close)
        if self.high < body_top:
            raise ValueError(f"high {self.high} is below the body top {body_top}")
        if self.low > body_bottom:
            raise ValueError(f"low {self.low} is above the body bottom {body_bottom}")
        return self

    @classmethod
    def from_ohlcv(cls, data: Dict[str, Any], timeframe: Optional[Timeframe] = None) -> 'Bar':
        """
        Create a Bar from a plain OHLCV mapping.

        Accepts both long keys ({'open', 'high', ...}) and the compact
        exchange format ({'t', 'o', 'h', 'l', 'c', 'v'}).
        """
        if 'o' in data:
            return cls(
                symbol=data.get('s'),
                timeframe=timeframe,
                timestamp=data['t'],
                open=data['o'],
                high=data['h'],
                low=data['l'],
                close=data['c'],
                volume=data.get('v', 0),
            )
        return cls(
            symbol=data.get('symbol'),
            timeframe=timeframe or data.get('timeframe'),
            timestamp=data.get('timestamp', data.get('time')),
            open=data['open'],
            high=data['high'],
            low=data['low'],
            close=data['close'],
            volume=data.get('volume') or 0,
        )

    @property
    def body_size(self) -> Decimal:
        return abs(self.close - self.open)

    @property
    def upper_shadow(self) -> Decimal:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> Decimal:
        return min(self.open, self.close) - self.low

    @property
    def total_range(self) -> Decimal:
        """High-low range."""
        return self.high - self.low

    @property
    def body_midpoint(self) -> Decimal:
        return (self.open + self.close) / 2

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


def validate_bar_sequence(bars: Sequence[Bar]) -> None:
    """
    Check that bar timestamps are strictly increasing.

    Raises:
        ValueError: if any bar is not newer than its predecessor
    """
    for previous, current in zip(bars, bars[1:]):
        if current.timestamp <= previous.timestamp:
            raise ValueError(
                f"Bar timestamps must be strictly increasing: "
                f"{current.timestamp.isoformat()} follows {previous.timestamp.isoformat()}"
            )
