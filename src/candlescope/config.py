"""
Configuration management for the candlescope analysis engine.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from .models.market_data import DEFAULT_TIMEFRAMES, Timeframe


class AnalysisConfig(BaseModel):
    """Analysis engine configuration."""

    timeframes: List[Timeframe] = Field(default_factory=lambda: list(DEFAULT_TIMEFRAMES))
    primary_timeframe: Timeframe = Field(default=Timeframe.FOUR_HOURS)
    rsi_period: int = Field(default=14, ge=1, le=200)
    adx_period: int = Field(default=14, ge=1, le=200)
    history_length: int = Field(default=50, ge=1, le=1000)
    max_workers: int = Field(default=4, ge=1, le=64)
    max_concurrent_symbols: int = Field(default=8, ge=1, le=256)
    thresholds_file: Optional[str] = None

    @field_validator('timeframes')
    @classmethod
    def validate_timeframes(cls, v):
        if not v:
            raise ValueError("At least one timeframe must be configured")
        if len(set(v)) != len(v):
            raise ValueError("Timeframes must be unique")
        return v

    @model_validator(mode='after')
    def validate_primary_timeframe(self):
        """Divergence runs on the primary timeframe, so it must be analyzed."""
        if self.primary_timeframe not in self.timeframes:
            raise ValueError(
                f"primary_timeframe {self.primary_timeframe.value} is not one of the configured timeframes"
            )
        return self


class LoggingConfig(BaseModel):
    """Log level and rotating log file settings."""

    level: str = Field(default="INFO")
    file_path: str = Field(default="./logs/candlescope.log")
    max_size: str = Field(default="10MB")
    backup_count: int = Field(default=5)


class Config(BaseModel):
    """Root configuration: analysis engine and logging sections."""

    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_env(cls, env_file: Optional[str] = None) -> "Config":
        """
        Build the configuration from environment variables.

        ``env_file`` (or ``./.env`` when present) is loaded first; variables
        already set in the environment take precedence over the file.
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv(Path(".env"))

        timeframes = os.getenv("CANDLESCOPE_TIMEFRAMES", "1m,5m,15m,1h,4h")
        analysis = AnalysisConfig(
            timeframes=[t.strip() for t in timeframes.split(",") if t.strip()],
            primary_timeframe=os.getenv("PRIMARY_TIMEFRAME", "4h"),
            rsi_period=_env_int("RSI_PERIOD", 14),
            adx_period=_env_int("ADX_PERIOD", 14),
            history_length=_env_int("MOMENTUM_HISTORY_LENGTH", 50),
            max_workers=_env_int("ANALYSIS_MAX_WORKERS", 4),
            max_concurrent_symbols=_env_int("MAX_CONCURRENT_SYMBOLS", 8),
            thresholds_file=os.getenv("THRESHOLDS_FILE"),
        )

        logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            file_path=os.getenv("LOG_FILE_PATH", "./logs/candlescope.log"),
            max_size=os.getenv("LOG_MAX_SIZE", "10MB"),
            backup_count=_env_int("LOG_BACKUP_COUNT", 5),
        )

        return cls(analysis=analysis, logging=logging)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
