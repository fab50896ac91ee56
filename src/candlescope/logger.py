"""
Logging infrastructure for the candlescope analysis engine.

Console output is colored by level; file output rotates by size and carries
the ``[symbol] [timeframe]`` context attached through ``SymbolLoggerAdapter``.
Module loggers are plain ``logging.getLogger(__name__)`` children of the
``candlescope`` logger, which ``get_analysis_logger`` configures.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Optional


CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024

SIZE_UNITS = {
    '': 1,
    'B': 1,
    'KB': 1024,
    'MB': 1024 ** 2,
    'GB': 1024 ** 3,
}

_SIZE_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*([KMG]?B)?')


class ColoredFormatter(logging.Formatter):
    """Console formatter that wraps the level name in an ANSI color."""

    LEVEL_COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = self.LEVEL_COLORS.get(original)
        if color:
            record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = original


class StructuredFormatter(logging.Formatter):
    """File formatter that prefixes the symbol and timeframe of the record, when present."""

    def format(self, record: logging.LogRecord) -> str:
        context = [
            f"[{value}]"
            for value in (getattr(record, 'symbol', None), getattr(record, 'timeframe', None))
            if value
        ]
        message = super().format(record)
        return " ".join(context + [message])


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _rotating_file_handler(log_file: str, level: int, max_size: str, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=_parse_size(max_size),
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size: str = "10MB",
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure ``name`` with console and/or rotating file handlers.

    Handlers from an earlier call are closed and replaced, so calling this
    twice never duplicates output. The logger stops propagating to root.

    Args:
        name: Logger name
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file path, or None for console only
        max_size: Rotation size such as '10MB' or '512KB'
        backup_count: Rotated files kept next to ``log_file``
        console_output: Also log colored output to stdout

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    if console_output:
        logger.addHandler(_console_handler(numeric_level))
    if log_file:
        logger.addHandler(_rotating_file_handler(log_file, numeric_level, max_size, backup_count))

    logger.propagate = False
    return logger


def get_logger(name: str, level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Console logger for ``name``, optionally also writing to ``log_file``."""
    return setup_logger(name=name, level=level, log_file=log_file, console_output=True)


def get_analysis_logger(config=None) -> logging.Logger:
    """
    Configure the ``candlescope`` package logger from a ``LoggingConfig``.

    Every module logger (``candlescope.analysis...``) propagates to it.
    """
    if config is None:
        from .config import LoggingConfig
        config = LoggingConfig()

    return setup_logger(
        name="candlescope",
        level=config.level,
        log_file=config.file_path,
        max_size=config.max_size,
        backup_count=config.backup_count,
        console_output=True
    )


def _parse_size(size_str: str) -> int:
    """
    Bytes in a size such as '10MB', '1.5GB', '512KB' or '2048'.

    Unparseable sizes fall back to 10MB.
    """
    match = _SIZE_PATTERN.fullmatch(size_str.strip().upper())
    if not match:
        return DEFAULT_MAX_BYTES
    number, unit = match.groups()
    return int(float(number) * SIZE_UNITS[unit or ''])


class SymbolLoggerAdapter(logging.LoggerAdapter):
    """Adapter that attaches symbol/timeframe context to every record."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_symbol_adapter(
    logger: logging.Logger,
    symbol: Optional[str] = None,
    timeframe: Optional[str] = None
) -> SymbolLoggerAdapter:
    """Wrap ``logger`` so its records carry ``symbol`` and ``timeframe``."""
    context = {key: value for key, value in (('symbol', symbol), ('timeframe', timeframe)) if value}
    return SymbolLoggerAdapter(logger, context)
