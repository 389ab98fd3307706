"""
Break of Structure (BOS) and Change of Character (CHoCH) detection.

BOS confirms continuation: one of the last few closes clears the most
recent swing high (bullish) or swing low (bearish).

CHoCH flags an early reversal: in a bullish trend the current close
falls below the second-most-recent swing low (bearish CHoCH), mirrored
for a bearish trend.
"""

from typing import List, Optional, Sequence

from loguru import logger

from signal_core.shared.models.structure import SwingPoint


def detect_bos(
    closes: Sequence[float],
    swing_highs: List[SwingPoint],
    swing_lows: List[SwingPoint],
    lookback: int = 3
) -> Optional[str]:
    """
    Detect a break of the most recent swing high/low.

    The last `lookback` closes are scanned oldest first and the first
    break found wins.

    Returns:
        'bullish', 'bearish' or None
    """
    if not swing_highs or not swing_lows:
        return None

    last_high = swing_highs[-1].price
    last_low = swing_lows[-1].price

    for close in list(closes)[-lookback:]:
        if close > last_high:
            logger.debug(f"Bullish BOS: close {close} > swing high {last_high}")
            return 'bullish'
        if close < last_low:
            logger.debug(f"Bearish BOS: close {close} < swing low {last_low}")
            return 'bearish'
    return None


def detect_choch(
    closes: Sequence[float],
    swing_highs: List[SwingPoint],
    swing_lows: List[SwingPoint],
    trend: str
) -> Optional[str]:
    """
    Detect a change of character against the prevailing trend.

    Returns:
        'bearish' when a bullish trend loses its prior swing low,
        'bullish' when a bearish trend reclaims its prior swing high,
        otherwise None
    """
    if not swing_highs or not swing_lows or not len(closes):
        return None

    current = closes[-1]

    if trend == 'bullish' and len(swing_lows) >= 2:
        if current < swing_lows[-2].price:
            return 'bearish'

    if trend == 'bearish' and len(swing_highs) >= 2:
        if current > swing_highs[-2].price:
            return 'bullish'

    return None
