"""
Pipeline inputs and the sniper run context.

SignalRequest bundles everything one generator run consumes. SniperRequest
adds the async providers for the external checks. SniperContext is passed
through the fail-fast levels and accumulates what each level computes.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Literal, Optional, Sequence, Tuple, TypeVar, Union

import pandas as pd

from signal_core.shared.models.market import (
    Candle,
    DOMData,
    Direction,
    MacroTrend,
    MTFAlignment,
    SentimentData,
    VolumeData,
    candles_to_frame,
)
from signal_core.shared.models.signal import SignalResult

T = TypeVar("T")

# Async provider: receives the symbol, returns the reading or None when unavailable
Provider = Callable[[str], Awaitable[Optional[T]]]

CandleInput = Union[Sequence[Candle], pd.DataFrame]


def as_frame(data: CandleInput) -> pd.DataFrame:
    return data if isinstance(data, pd.DataFrame) else candles_to_frame(data)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SignalRequest:
    """
    Inputs for one standard pipeline run.

    Attributes:
        candles: Candle window, oldest first (or an OHLCV DataFrame)
        symbol: Instrument symbol
        exchange: Venue name (config default when None)
        timeframe: Candle interval (config default when None)
        volume: Tape snapshot; neutral VolumeData() when None
        dom: Order-book snapshot; balanced DOMData() when None
        patterns: Candlestick pattern names; detected from the candles when None
        confluence_mode: 'strict' or 'relaxed'
        leverage: Leverage to carry; the volatility recommendation when None
    """
    candles: CandleInput
    symbol: str
    exchange: Optional[str] = None
    timeframe: Optional[str] = None
    volume: Optional[VolumeData] = None
    dom: Optional[DOMData] = None
    patterns: Optional[Sequence[str]] = None
    confluence_mode: Literal["strict", "relaxed"] = "strict"
    leverage: Optional[int] = None


@dataclass
class SniperRequest(SignalRequest):
    """
    Inputs for a sniper run.

    Providers that are None, return None, raise, or time out are treated
    as unavailable and the corresponding level passes through.
    """
    macro_provider: Optional[Provider[MacroTrend]] = None
    mtf_provider: Optional[Provider[MTFAlignment]] = None
    sentiment_provider: Optional[Provider[SentimentData]] = None


@dataclass
class SniperContext:
    """
    Central context passed through the sniper levels.

    Level flow:
    1. Confluence populates direction
    2. Macro/MTF fetch populates macro and mtf
    3. Risk:reward populates entry, stop_loss, take_profits, risk_reward
    4. MTF alignment reads mtf
    5. Sentiment populates sentiment
    """
    request: SniperRequest
    result: SignalResult

    direction: Optional[Direction] = None
    volume: VolumeData = field(default_factory=VolumeData)
    dom: DOMData = field(default_factory=DOMData)

    macro: Optional[MacroTrend] = None
    mtf: Optional[MTFAlignment] = None
    sentiment: Optional[SentimentData] = None

    entry: float = 0.0
    stop_loss: float = 0.0
    take_profits: Tuple[float, ...] = ()
    risk_reward: float = 0.0

    notes: List[str] = field(default_factory=list)
