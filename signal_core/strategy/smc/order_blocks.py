"""
Order Block Detection

An order block is the last opposite-coloured candle before a strong
move: a red candle followed by a green candle whose body is more than
`body_ratio` x the red body marks a bullish block (and the mirror for
bearish). The zone is the preceding candle's high/low.
"""

from typing import List

import pandas as pd
from loguru import logger

from signal_core.shared.models.structure import OrderBlock


def find_order_blocks(df: pd.DataFrame, body_ratio: float = 2.0) -> List[OrderBlock]:
    """
    Scan the window for order blocks.

    The first bars and the final bar are skipped so each block has room
    for context on both sides. Windows under 10 bars return nothing.

    Returns:
        List of OrderBlock, oldest first
    """
    blocks: List[OrderBlock] = []
    if len(df) < 10:
        return blocks

    opens = df['open'].to_numpy(dtype=float)
    closes = df['close'].to_numpy(dtype=float)
    highs = df['high'].to_numpy(dtype=float)
    lows = df['low'].to_numpy(dtype=float)

    for i in range(3, len(df) - 1):
        prev_body = abs(closes[i - 1] - opens[i - 1])
        curr_body = abs(closes[i] - opens[i])
        if curr_body <= prev_body * body_ratio:
            continue

        prev_red = closes[i - 1] < opens[i - 1]
        prev_green = closes[i - 1] > opens[i - 1]
        curr_green = closes[i] > opens[i]
        curr_red = closes[i] < opens[i]

        if prev_red and curr_green:
            blocks.append(OrderBlock(index=i - 1, direction='bullish', high=float(highs[i - 1]), low=float(lows[i - 1])))
        elif prev_green and curr_red:
            blocks.append(OrderBlock(index=i - 1, direction='bearish', high=float(highs[i - 1]), low=float(lows[i - 1])))

    logger.debug(f"Order blocks found: {len(blocks)}")
    return blocks
