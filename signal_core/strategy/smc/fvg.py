"""
Fair Value Gap (FVG) Detection

A three-candle imbalance between bar N-2 and bar N:
- Bullish FVG: bar N's low is above bar N-2's high (gap up)
- Bearish FVG: bar N's high is below bar N-2's low (gap down)
"""

from typing import List

import pandas as pd

from signal_core.shared.models.structure import FVG


def find_fvgs(df: pd.DataFrame) -> List[FVG]:
    """
    Detect every fair value gap in the window.

    Returns:
        List of FVG, oldest first; size is top - bottom
    """
    gaps: List[FVG] = []
    if len(df) < 3:
        return gaps

    highs = df['high'].to_numpy(dtype=float)
    lows = df['low'].to_numpy(dtype=float)

    for i in range(2, len(df)):
        if lows[i] > highs[i - 2]:
            gaps.append(FVG(index=i, direction='bullish', top=float(lows[i]), bottom=float(highs[i - 2])))
        if highs[i] < lows[i - 2]:
            gaps.append(FVG(index=i, direction='bearish', top=float(lows[i - 2]), bottom=float(highs[i])))

    return gaps
