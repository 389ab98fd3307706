"""
Signal Core CLI - run the signal pipeline over a candle CSV.

The CSV needs open/high/low/close/volume columns (oldest row first); an
optional timestamp column is kept for reference.
"""
import asyncio
import json
from pathlib import Path

import pandas as pd
import typer

from signal_core import __version__

app = typer.Typer(help="🎯 Signal Core - OHLCV signal decision pipeline")


def _load_candles(path: Path) -> pd.DataFrame:
    from signal_core.indicators.validation_utils import validate_ohlcv

    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    validate_ohlcv(df)
    return df.reset_index(drop=True)


@app.command()
def analyze(
    candles: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV file with OHLCV rows"),
    symbol: str = typer.Option("BTC/USDT", help="Instrument symbol"),
    timeframe: str = typer.Option("5m", help="Candle interval of the file"),
    exchange: str = typer.Option("binance", help="Venue name"),
    mode: str = typer.Option("standard", help="Pipeline mode (standard/sniper)"),
    relaxed: bool = typer.Option(False, "--relaxed", help="Use relaxed confluence (standard mode only)"),
    derive_volume: bool = typer.Option(True, help="Derive the tape snapshot from the candles"),
    as_json: bool = typer.Option(False, "--json", help="Print the signal as JSON"),
):
    """
    🎯 Run the pipeline on a candle file and print the decision.
    """
    from signal_core.engine.context import SignalRequest, SniperRequest
    from signal_core.engine.signal_generator import SignalGenerator
    from signal_core.engine.sniper_orchestrator import SniperOrchestrator
    from signal_core.indicators.validation_utils import DataValidationError
    from signal_core.indicators.volume import derive_volume_data
    from signal_core.shared.utils.logging_utils import format_signal_summary

    if mode not in ("standard", "sniper"):
        typer.echo(f"❌ Unknown mode '{mode}' (expected standard or sniper)")
        raise typer.Exit(code=2)

    try:
        df = _load_candles(candles)
    except (DataValidationError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        typer.echo(f"❌ Could not load candles: {e}")
        raise typer.Exit(code=1)

    typer.echo(f"🎯 Signal Core - {mode} analysis")
    typer.echo(f"Symbol: {symbol} | Timeframe: {timeframe} | Candles: {len(df)}")
    typer.echo()

    volume = derive_volume_data(df) if derive_volume else None
    common = dict(candles=df, symbol=symbol, exchange=exchange, timeframe=timeframe, volume=volume)

    if mode == "sniper":
        result = asyncio.run(SniperOrchestrator().run(SniperRequest(**common)))
    else:
        request = SignalRequest(confluence_mode="relaxed" if relaxed else "strict", **common)
        result = SignalGenerator().generate(request)

    if result.accepted:
        if as_json:
            typer.echo(json.dumps(result.signal.to_dict(), indent=2))
        else:
            typer.echo(format_signal_summary(result.signal))
        if result.skipped_checks:
            typer.echo(f"⚠️  Skipped checks (unavailable): {', '.join(result.skipped_checks)}")
        return

    typer.echo(f"🚫 No signal - rejected at {result.stage}")
    typer.echo(f"   Reason: {result.reason}")
    if result.indicators is not None:
        typer.echo(f"   Trend score: {result.indicators.trend_score} | Momentum: {result.indicators.momentum_score}")
    if result.confluence is not None:
        typer.echo(
            f"   Confluence: {result.confluence.score:g} "
            f"(matched: {', '.join(result.confluence.matched_factors) or '-'})"
        )
    if result.triggers is not None:
        typer.echo(f"   Triggers: {', '.join(result.triggers.kinds) or '-'} ({result.triggers.strength})")


@app.command()
def version():
    """Show version information."""
    typer.echo(f"🎯 Signal Core v{__version__}")
    typer.echo("OHLCV signal decision pipeline")


if __name__ == "__main__":
    app()
