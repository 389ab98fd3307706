"""
Candlestick pattern detection on the last bars of a window.

Detectors are plain functions over a pandas OHLCV frame; detect_patterns
runs all of them and returns what matched on the final bar.

Marubozu bars are named bullish_marubozu/bearish_marubozu here. Upstream
pattern feeds that report bull_marubozu/bear_marubozu are mapped onto
these names by canonical_pattern before the strong-pattern allow-list
is consulted.
"""

from dataclasses import dataclass
from typing import List, Literal

import pandas as pd


# Patterns that count as a "strong pattern" trigger
STRONG_PATTERNS = frozenset({
    "bullish_engulfing",
    "bearish_engulfing",
    "morning_star",
    "evening_star",
    "three_white_soldiers",
    "three_black_crows",
    "bullish_marubozu",
    "bearish_marubozu",
})

_ALIASES = {
    "bull_marubozu": "bullish_marubozu",
    "bear_marubozu": "bearish_marubozu",
}


def canonical_pattern(name: str) -> str:
    return _ALIASES.get(name, name)


@dataclass(frozen=True)
class PatternMatch:
    name: str
    direction: Literal["bullish", "bearish"]


def _body(bar) -> float:
    return abs(bar.close - bar.open)


def _range(bar) -> float:
    return bar.high - bar.low


def _shadows(bar):
    lower = min(bar.open, bar.close) - bar.low
    upper = bar.high - max(bar.open, bar.close)
    return lower, upper


def detect_engulfing(df: pd.DataFrame):
    """Return 'bullish_engulfing', 'bearish_engulfing' or None for the last two bars."""
    if len(df) < 2:
        return None
    prev, curr = df.iloc[-2], df.iloc[-1]
    prev_body, curr_body = _body(prev), _body(curr)

    if (prev.close < prev.open and curr.close > curr.open
            and curr.open <= prev.close and curr.close >= prev.open and curr_body > prev_body):
        return "bullish_engulfing"
    if (prev.close > prev.open and curr.close < curr.open
            and curr.open >= prev.close and curr.close <= prev.open and curr_body > prev_body):
        return "bearish_engulfing"
    return None


def is_hammer(bar) -> bool:
    """Long lower shadow (> 2x body), almost no upper shadow."""
    rng = _range(bar)
    lower, upper = _shadows(bar)
    return rng > 0 and lower > _body(bar) * 2 and upper < rng * 0.1


def is_inverted_hammer(bar) -> bool:
    """Long upper shadow (> 2x body), almost no lower shadow."""
    rng = _range(bar)
    lower, upper = _shadows(bar)
    return rng > 0 and upper > _body(bar) * 2 and lower < rng * 0.1


def detect_star(df: pd.DataFrame):
    """Morning/evening star over the last three bars."""
    if len(df) < 3:
        return None
    a, b, c = df.iloc[-3], df.iloc[-2], df.iloc[-1]
    b_small = _body(b) / (_range(b) or 0.001) < 0.3
    midpoint = (a.open + a.close) / 2
    if not b_small:
        return None
    if a.close < a.open and c.close > c.open and c.close > midpoint:
        return "morning_star"
    if a.close > a.open and c.close < c.open and c.close < midpoint:
        return "evening_star"
    return None


def detect_three_soldiers_or_crows(df: pd.DataFrame):
    """Three same-colour bars stepping in one direction."""
    if len(df) < 3:
        return None
    a, b, c = df.iloc[-3], df.iloc[-2], df.iloc[-1]
    if (a.close > a.open and b.close > b.open and c.close > c.open
            and b.high > a.high and c.high > b.high and b.open > a.open and c.open > b.open):
        return "three_white_soldiers"
    if (a.close < a.open and b.close < b.open and c.close < c.open
            and b.low < a.low and c.low < b.low and a.open > b.open and b.open > c.open):
        return "three_black_crows"
    return None


def detect_marubozu(bar):
    """Body over 90% of range with each shadow under 5% of range."""
    rng = _range(bar)
    if rng <= 0 or _body(bar) / rng <= 0.9:
        return None
    lower, upper = _shadows(bar)
    if lower >= rng * 0.05 or upper >= rng * 0.05:
        return None
    return "bullish_marubozu" if bar.close > bar.open else "bearish_marubozu"


_BULLISH = {
    "bullish_engulfing", "hammer", "inverted_hammer", "morning_star",
    "three_white_soldiers", "bullish_marubozu",
}


def detect_patterns(df: pd.DataFrame) -> List[PatternMatch]:
    """
    Detect candlestick patterns completed by the last bar.

    Hammer-shaped bars are named by context: after a mostly red run of
    three bars they are hammer / inverted_hammer, otherwise
    hanging_man / shooting_star.
    """
    if len(df) < 2:
        return []

    names: List[str] = []
    last = df.iloc[-1]

    engulfing = detect_engulfing(df)
    if engulfing:
        names.append(engulfing)

    prior = df.iloc[-4:-1]
    prior_down = int((prior['close'] < prior['open']).sum()) >= 2
    if is_hammer(last):
        names.append("hammer" if prior_down else "hanging_man")
    if is_inverted_hammer(last):
        names.append("inverted_hammer" if prior_down else "shooting_star")

    for detector in (detect_star, detect_three_soldiers_or_crows):
        name = detector(df)
        if name:
            names.append(name)

    marubozu = detect_marubozu(last)
    if marubozu:
        names.append(marubozu)

    return [PatternMatch(n, "bullish" if n in _BULLISH else "bearish") for n in names]
