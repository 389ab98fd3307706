"""
Market data models consumed by the signal pipeline.

Candles arrive from the feed collaborator oldest-first. Volume and
order-book snapshots are optional side inputs; their defaults describe a
flat, featureless market so a caller without a tape feed still gets a
well-defined confluence check.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Literal, Optional, Sequence

import pandas as pd


Direction = Literal["LONG", "SHORT"]
TrendDirection = Literal["bullish", "bearish", "neutral"]

VolumePressure = Literal["strong_buying", "buying", "neutral", "selling", "strong_selling", "high_activity"]
DOMSignal = Literal[
    "strong_buy_pressure", "moderate_buy_pressure", "balanced", "moderate_sell_pressure", "strong_sell_pressure"
]


@dataclass(frozen=True)
class Candle:
    """
    One OHLCV bar.

    Attributes:
        open: Opening price
        high: Highest traded price
        low: Lowest traded price
        close: Closing price
        volume: Traded volume
        timestamp: Optional bar open time
    """
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.high < self.low:
            raise ValueError(f"High ({self.high}) cannot be less than Low ({self.low})")
        if self.high < max(self.open, self.close):
            raise ValueError(f"High ({self.high}) must be >= Open ({self.open}) and Close ({self.close})")
        if self.low > min(self.open, self.close):
            raise ValueError(f"Low ({self.low}) must be <= Open ({self.open}) and Close ({self.close})")
        if self.volume < 0:
            raise ValueError(f"Volume cannot be negative, got {self.volume}")

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert a candle sequence into an OHLCV DataFrame.

    The frame carries a RangeIndex so bar positions line up with the
    candle list; timestamps (when present) are kept as a column.
    """
    frame = pd.DataFrame(
        {
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        },
        dtype=float,
    )
    if candles and any(c.timestamp is not None for c in candles):
        frame["timestamp"] = [c.timestamp for c in candles]
    return frame


@dataclass(frozen=True)
class VolumeData:
    """Tape-derived volume snapshot for the latest bar."""
    volume_pressure: VolumePressure = "neutral"
    delta: float = 0.0
    buy_sell_ratio: float = 1.0
    volume_spike: bool = False
    cvd_direction: TrendDirection = "neutral"


@dataclass(frozen=True)
class DOMData:
    """Order-book (depth of market) snapshot."""
    dom_signal: DOMSignal = "balanced"
    pressure_score: float = 0.0
    imbalance: float = 0.0
    bid_walls: int = 0
    ask_walls: int = 0


@dataclass(frozen=True)
class SentimentData:
    """Retail positioning read from a derivatives sentiment feed."""
    long_short_ratio: float
    long_volume_usd: Optional[float] = None
    short_volume_usd: Optional[float] = None
    funding_rate: Optional[float] = None

    def __post_init__(self):
        if self.long_short_ratio < 0:
            raise ValueError(f"Long/short ratio cannot be negative, got {self.long_short_ratio}")


@dataclass(frozen=True)
class MacroTrend:
    """
    Higher-timeframe trend read used to veto counter-trend entries.

    Attributes:
        trend: 'bullish', 'bearish' or 'neutral'
        change_1h: Percent change of the last hourly bar
        change_4h: Percent change of the last four-hour bar
        ema21_position: 'above', 'below' or 'unknown' (hourly close vs EMA21)
        long_penalty: Confidence penalty to apply to LONG candidates
        short_penalty: Confidence penalty to apply to SHORT candidates
        reason: Short explanation of the classification
    """
    trend: TrendDirection = "neutral"
    change_1h: float = 0.0
    change_4h: float = 0.0
    ema21_position: str = "unknown"
    long_penalty: float = 0.0
    short_penalty: float = 0.0
    reason: str = ""

    def contradicts(self, direction: Direction) -> bool:
        if direction == "LONG":
            return self.trend == "bearish"
        return self.trend == "bullish"


@dataclass(frozen=True)
class MTFAlignment:
    """Agreement of trend direction across a fixed set of timeframes."""
    alignment: Literal["perfect", "strong", "partial", "conflict"]
    direction: TrendDirection = "neutral"
    timeframe_trends: Dict[str, TrendDirection] = field(default_factory=dict)

    @property
    def is_perfect(self) -> bool:
        return self.alignment == "perfect"


def direction_to_trend(direction: Optional[Direction]) -> TrendDirection:
    """Map LONG/SHORT onto the bullish/bearish vocabulary."""
    if direction == "LONG":
        return "bullish"
    if direction == "SHORT":
        return "bearish"
    return "neutral"
