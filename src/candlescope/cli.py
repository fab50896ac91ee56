"""
Command-line interface for the candlescope analysis engine.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .analysis.thresholds import AnalysisThresholds, get_thresholds
from .analysis.timeframe_analyzer import MultiTimeframeAnalyzer
from .config import Config
from .logger import get_logger
from .models.analysis import SymbolAnalysis
from .models.market_data import Bar, Timeframe


def load_bar_file(path: Path) -> Dict[Timeframe, List[Bar]]:
    """
    Load bars from a JSON file mapping timeframe values to OHLCV records.

    Records may use long keys ({'timestamp', 'open', ...}) or the compact
    exchange format ({'t', 'o', 'h', 'l', 'c', 'v'}).
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read bar file {path}: {e}")

    if not isinstance(data, dict):
        raise click.ClickException("Bar file must map timeframes to lists of bars")

    bars_by_timeframe = {}
    for key, records in data.items():
        try:
            timeframe = Timeframe(key)
        except ValueError:
            raise click.ClickException(f"Unknown timeframe in bar file: {key}")
        try:
            bars_by_timeframe[timeframe] = [Bar.from_ohlcv(record, timeframe) for record in records or []]
        except (KeyError, TypeError, ValidationError) as e:
            raise click.ClickException(f"Invalid bar in {key} series: {e}")
    return bars_by_timeframe


def render_analysis(console: Console, analysis: SymbolAnalysis) -> None:
    """Print a symbol analysis as a per-timeframe table and an alignment panel."""
    table = Table(title=f"{analysis.symbol} Timeframe Analysis", show_header=True, header_style="bold magenta")
    table.add_column("Timeframe", style="cyan")
    table.add_column("Pattern")
    table.add_column("Conf", justify="right")
    table.add_column("Wick")
    table.add_column("Exhaustion")
    table.add_column("ADX", justify="right")
    table.add_column("RSI", justify="right")
    table.add_column("Momentum")
    table.add_column("Volume")

    for timeframe, result in analysis.timeframes.items():
        momentum = analysis.momentum.timeframes.get(timeframe)
        table.add_row(
            timeframe,
            result.patterns.current.value,
            f"{result.patterns.confidence:.2f}",
            result.wick.dominant_wick.value,
            result.wick.exhaustion_signal.value,
            f"{result.trend.adx:.1f}",
            f"{result.momentum.value:.1f}",
            momentum.momentum.value if momentum else "-",
            analysis.volume_for(timeframe).trend.value,
        )
    console.print(table)

    alignment = analysis.momentum
    style = "green" if alignment.bias.bias.value == "BULLISH" else "red" if alignment.bias.bias.value == "BEARISH" else "yellow"
    console.print(Panel(
        f"Alignment: {alignment.alignment.value} ({alignment.alignment_score:.1f})\n"
        f"Bullish/Bearish/Neutral: {alignment.bullish_count}/{alignment.bearish_count}/{alignment.neutral_count}\n"
        f"Score: {alignment.score.score:.1f}  Bias: {alignment.bias.bias.value} ({alignment.bias.confidence.value})\n"
        f"Divergence: {analysis.divergence.divergence.value}\n"
        f"Duration: {analysis.analysis_duration_ms}ms",
        title="Momentum Alignment",
        style=style,
    ))


@click.group()
@click.version_option(version=__version__, prog_name="candlescope")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .env configuration file"
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], verbose: bool) -> None:
    """
    Candlescope: Multi-Timeframe Technical Analysis

    Candlestick patterns, wick structure, ADX and RSI per timeframe, folded
    into a cross-timeframe momentum verdict.
    """
    ctx.ensure_object(dict)

    try:
        if config:
            ctx.obj["config"] = Config.load_from_env(str(config))
        else:
            ctx.obj["config"] = Config.load_from_env()
    except (ValueError, ValidationError) as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if verbose:
        ctx.obj["config"].logging.level = "DEBUG"

    ctx.obj["logger"] = get_logger("candlescope.cli", ctx.obj["config"].logging.level)


@main.command()
@click.argument("bars_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--symbol",
    "-s",
    help="Symbol label for the analysis (defaults to the file name)"
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the analysis record as JSON"
)
@click.pass_context
def analyze(ctx: click.Context, bars_file: Path, symbol: Optional[str], as_json: bool) -> None:
    """Analyze the bars in BARS_FILE across the configured timeframes."""
    config: Config = ctx.obj["config"]
    logger = ctx.obj["logger"]

    timeframe_data = load_bar_file(bars_file)
    symbol = (symbol or bars_file.stem).upper()

    async def run() -> SymbolAnalysis:
        async with MultiTimeframeAnalyzer(config.analysis) as analyzer:
            return await analyzer.analyze(symbol, timeframe_data)

    analysis = asyncio.run(run())
    logger.debug(f"Analyzed {symbol} in {analysis.analysis_duration_ms}ms")

    if as_json:
        click.echo(json.dumps(analysis.to_record(), indent=2))
    else:
        render_analysis(Console(), analysis)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the thresholds to this JSON file instead of printing them"
)
@click.pass_context
def thresholds(ctx: click.Context, output: Optional[Path]) -> None:
    """Show the active analysis thresholds."""
    config: Config = ctx.obj["config"]

    if config.analysis.thresholds_file:
        active = AnalysisThresholds.load_from_file(Path(config.analysis.thresholds_file))
    else:
        active = get_thresholds()

    if output:
        active.save_to_file(output)
        click.echo(f"Thresholds written to {output}")
    else:
        click.echo(json.dumps(active.to_dict(), indent=2))


if __name__ == "__main__":
    main()
