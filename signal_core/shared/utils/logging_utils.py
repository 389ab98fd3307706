"""
Logging utilities for the signal pipeline.

Consistent, structured loguru helpers for tracking stage flow,
rejections and timing across the generator and the sniper orchestrator.
"""

import time
from typing import Any, Dict, Optional

from loguru import logger

from signal_core.shared.models.signal import Signal


def log_pipeline_stage(
    stage_name: str,
    symbol: str,
    status: str = "START",
    data: Optional[Dict[str, Any]] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log a pipeline stage with consistent formatting.

    Args:
        stage_name: Name of the stage (e.g. "INDICATORS", "CONFLUENCE")
        symbol: Instrument being processed
        status: "START", "COMPLETE" or "FAILED"
        data: Optional extra fields to log
        level: Log level name
    """
    log_func = getattr(logger, level.lower(), logger.debug)

    if status == "START":
        log_func(f"🔄 [{stage_name}] Starting for {symbol}")
    elif status == "COMPLETE":
        duration_msg = f" ({data.get('duration_ms', 0):.0f}ms)" if data and 'duration_ms' in data else ""
        log_func(f"✅ [{stage_name}] Completed for {symbol}{duration_msg}")
        if data:
            for key, value in data.items():
                if key != 'duration_ms':
                    log_func(f"   └─ {key}: {value}")
    elif status == "FAILED":
        log_func(f"❌ [{stage_name}] Failed for {symbol}")
        if data:
            log_func(f"   └─ Reason: {data.get('reason', 'Unknown')}")
            if 'error' in data:
                log_func(f"   └─ Error: {data['error']}")


def log_rejection(
    symbol: str,
    stage: str,
    reason: str,
    diagnostics: Optional[Dict[str, Any]] = None,
    level: str = "INFO"
) -> None:
    """
    Log a signal rejection with its diagnostic context.

    Args:
        symbol: Instrument symbol
        stage: Stage where the run stopped
        reason: Human-readable rejection reason
        diagnostics: Key figures at the point of rejection
        level: Log level name
    """
    log_func = getattr(logger, level.lower(), logger.info)

    log_func(f"🚫 REJECTED: {symbol} at {stage}")
    log_func(f"   └─ Reason: {reason}")

    if diagnostics:
        log_func("   └─ Diagnostics:")
        for key, value in diagnostics.items():
            if isinstance(value, float):
                log_func(f"      • {key}: {value:.4f}")
            else:
                log_func(f"      • {key}: {value}")


def log_timing(
    operation_name: str,
    duration_ms: float,
    symbol: Optional[str] = None,
    level: str = "DEBUG"
) -> None:
    """Log how long an operation took."""
    log_func = getattr(logger, level.lower(), logger.debug)

    symbol_str = f" [{symbol}]" if symbol else ""

    if duration_ms < 100:
        emoji = "⚡"
    elif duration_ms < 1000:
        emoji = "⏱️"
    else:
        emoji = "🐌"

    log_func(f"{emoji} {operation_name}{symbol_str}: {duration_ms:.0f}ms")


def format_signal_summary(signal: Signal) -> str:
    """
    Format an emitted signal as a multi-line summary.

    Args:
        signal: The emitted signal

    Returns:
        Formatted summary string
    """
    arrow = "🟢" if signal.direction == "LONG" else "🔴"
    tps = " / ".join(f"{tp:g}" for tp in signal.take_profit)
    lines = [
        "=" * 60,
        f"{arrow} {signal.direction} {signal.symbol} ({signal.timeframe}, {signal.mode})",
        "=" * 60,
        f"ID:          {signal.id}",
        f"Entry:       {signal.entry_price:g}",
        f"Stop:        {signal.stop_loss:g}",
        f"Targets:     {tps}",
        f"R:R:         {signal.risk_reward}",
        f"Confidence:  {signal.confidence:.2f} ({signal.confidence_level})",
        f"Leverage:    {signal.leverage}x",
        f"Triggers:    {', '.join(signal.triggers) or '-'}",
        f"Expires:     {signal.expiry.isoformat()}",
        "=" * 60,
    ]
    return "\n".join(lines)


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str, symbol: Optional[str] = None):
        self.operation_name = operation_name
        self.symbol = symbol
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        log_timing(self.operation_name, self.duration_ms, self.symbol)
        return False
