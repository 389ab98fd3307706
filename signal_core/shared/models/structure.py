"""
Market structure (smart-money concepts) data models.
"""

from dataclasses import dataclass, field
from typing import List, Literal, Optional


StructureBias = Literal["strong_bearish", "bearish", "neutral", "bullish", "strong_bullish"]


@dataclass(frozen=True)
class SwingPoint:
    """A confirmed swing high or low at bar `index`."""
    index: int
    price: float


@dataclass(frozen=True)
class OrderBlock:
    """
    Candle preceding a strong opposite-direction move.

    Attributes:
        index: Bar index of the order-block candle
        direction: 'bullish' (demand) or 'bearish' (supply)
        high: Top of the zone
        low: Bottom of the zone
    """
    index: int
    direction: Literal["bullish", "bearish"]
    high: float
    low: float


@dataclass(frozen=True)
class FVG:
    """
    Fair value gap between bar N-2 and bar N.

    Attributes:
        index: Bar index N that completed the gap
        direction: 'bullish' (gap up) or 'bearish' (gap down)
        top: Upper boundary of the gap
        bottom: Lower boundary of the gap
    """
    index: int
    direction: Literal["bullish", "bearish"]
    top: float
    bottom: float

    @property
    def size(self) -> float:
        return self.top - self.bottom


@dataclass
class StructureSnapshot:
    """
    Market structure read for one candle window.

    Lists hold at most the five most recent items, oldest first.
    """
    trend: Literal["bullish", "bearish", "neutral"] = "neutral"
    bos: Optional[Literal["bullish", "bearish"]] = None
    choch: Optional[Literal["bullish", "bearish"]] = None
    order_blocks: List[OrderBlock] = field(default_factory=list)
    fvgs: List[FVG] = field(default_factory=list)
    swing_highs: List[SwingPoint] = field(default_factory=list)
    swing_lows: List[SwingPoint] = field(default_factory=list)
    bias: StructureBias = "neutral"
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
