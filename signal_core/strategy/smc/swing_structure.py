"""
Swing Structure Detection

Finds swing highs/lows with a symmetric bar window and reads the trend
from the most recent swings:
- bullish: at least one higher high AND one higher low
- bearish: at least one lower high AND one lower low
- neutral: anything else, or fewer than two swings of either kind
"""

from typing import List, Literal, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from signal_core.shared.models.structure import SwingPoint


TrendState = Literal['bullish', 'bearish', 'neutral']


def find_swings(df: pd.DataFrame, window: int = 5) -> Tuple[List[SwingPoint], List[SwingPoint]]:
    """
    Detect swing highs and lows.

    A bar is a swing high iff its high is strictly greater than every
    other high within +/- `window` bars (mirror rule for lows). Bars closer
    than `window` to either edge cannot qualify.

    Args:
        df: DataFrame with 'high' and 'low' columns
        window: Bars on each side (default 5)

    Returns:
        (swing_highs, swing_lows), each oldest first
    """
    highs = df['high'].to_numpy(dtype=float)
    lows = df['low'].to_numpy(dtype=float)
    n = len(df)

    swing_highs: List[SwingPoint] = []
    swing_lows: List[SwingPoint] = []

    for i in range(window, n - window):
        neighbours = np.r_[i - window:i, i + 1:i + window + 1]
        if np.all(highs[neighbours] < highs[i]):
            swing_highs.append(SwingPoint(index=i, price=float(highs[i])))
        if np.all(lows[neighbours] > lows[i]):
            swing_lows.append(SwingPoint(index=i, price=float(lows[i])))

    logger.debug(f"Swings: {len(swing_highs)} highs, {len(swing_lows)} lows (window={window})")
    return swing_highs, swing_lows


def _step_counts(points: List[SwingPoint]) -> Tuple[int, int]:
    higher = lower = 0
    for prev, curr in zip(points, points[1:]):
        if curr.price > prev.price:
            higher += 1
        elif curr.price < prev.price:
            lower += 1
    return higher, lower


def determine_trend(
    swing_highs: List[SwingPoint],
    swing_lows: List[SwingPoint],
    lookback: int = 3
) -> TrendState:
    """
    Classify trend from the last `lookback` swing highs and lows.

    Bullish wins a tie with bearish since it is checked first; a tie can
    only happen when highs and lows disagree with each other.
    """
    if len(swing_highs) < 2 or len(swing_lows) < 2:
        return 'neutral'

    hh, lh = _step_counts(swing_highs[-lookback:])
    hl, ll = _step_counts(swing_lows[-lookback:])

    if hh >= 1 and hl >= 1:
        return 'bullish'
    if lh >= 1 and ll >= 1:
        return 'bearish'
    return 'neutral'
