"""
Trend Indicators Module

Implements trend-following indicators:
- EMA / SMA
- Supertrend (ATR band ratchet)
- ADX with +DI / -DI

All functions return pandas Series aligned with the input frame's index.
Wilder smoothing is expressed as an EWM with alpha = 1/period.
"""

from typing import Tuple
import pandas as pd
import numpy as np
import logging

from signal_core.indicators.validation_utils import validate_ohlcv
from signal_core.indicators.volatility import compute_atr, true_range

logger = logging.getLogger(__name__)


def compute_ema(df: pd.DataFrame, period: int) -> pd.Series:
    """
    Compute an Exponential Moving Average of close.

    Raises:
        ValueError: If df has fewer than `period` rows
    """
    if 'close' not in df.columns:
        raise ValueError("DataFrame must contain 'close' column")
    if len(df) < period:
        raise ValueError(f"DataFrame too short for EMA{period} (need {period} rows, got {len(df)})")
    return df['close'].ewm(span=period, adjust=False).mean()


def compute_sma(df: pd.DataFrame, period: int) -> pd.Series:
    """Compute a Simple Moving Average of close."""
    if 'close' not in df.columns:
        raise ValueError("DataFrame must contain 'close' column")
    if len(df) < period:
        raise ValueError(f"DataFrame too short for SMA{period} (need {period} rows, got {len(df)})")
    return df['close'].rolling(window=period).mean()


def compute_supertrend(
    df: pd.DataFrame,
    period: int = 10,
    multiplier: float = 3.0
) -> Tuple[pd.Series, pd.Series]:
    """
    Compute Supertrend.

    Basic bands are hl2 -/+ multiplier x ATR. The final lower band only
    ratchets up (and the upper band only down) while price stays on the
    trend side of it; a close through the active band flips direction.

    Args:
        df: DataFrame with 'high', 'low', 'close' columns
        period: ATR period (default 10)
        multiplier: Band width in ATRs (default 3.0)

    Returns:
        Tuple[pd.Series, pd.Series]: (supertrend_line, direction) where
        direction is +1 for bullish and -1 for bearish

    Raises:
        ValueError: If df is too short
    """
    if len(df) < period + 1:
        raise ValueError(f"DataFrame too short for Supertrend (need {period + 1} rows, got {len(df)})")

    atr = compute_atr(df, period=period, validate_input=False).to_numpy()
    high = df['high'].to_numpy(dtype=float)
    low = df['low'].to_numpy(dtype=float)
    close = df['close'].to_numpy(dtype=float)

    hl2 = (high + low) / 2
    basic_upper = hl2 + multiplier * atr
    basic_lower = hl2 - multiplier * atr

    n = len(df)
    final_upper = np.empty(n)
    final_lower = np.empty(n)
    line = np.empty(n)
    direction = np.empty(n)

    final_upper[0] = basic_upper[0]
    final_lower[0] = basic_lower[0]
    trend = 1
    line[0] = final_lower[0]
    direction[0] = trend

    for i in range(1, n):
        if basic_upper[i] < final_upper[i - 1] or close[i - 1] > final_upper[i - 1]:
            final_upper[i] = basic_upper[i]
        else:
            final_upper[i] = final_upper[i - 1]

        if basic_lower[i] > final_lower[i - 1] or close[i - 1] < final_lower[i - 1]:
            final_lower[i] = basic_lower[i]
        else:
            final_lower[i] = final_lower[i - 1]

        if trend == 1 and close[i] < final_lower[i]:
            trend = -1
        elif trend == -1 and close[i] > final_upper[i]:
            trend = 1

        line[i] = final_lower[i] if trend == 1 else final_upper[i]
        direction[i] = trend

    return (
        pd.Series(line, index=df.index, name='supertrend'),
        pd.Series(direction, index=df.index, name='supertrend_direction'),
    )


def compute_adx(
    df: pd.DataFrame,
    period: int = 14
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Compute ADX with directional indicators.

    Args:
        df: DataFrame with 'high', 'low', 'close' columns
        period: Smoothing period (default 14)

    Returns:
        Tuple[pd.Series, pd.Series, pd.Series]: (adx, plus_di, minus_di)

    Raises:
        ValueError: If df has fewer than 2 x period rows
    """
    min_len = period * 2
    if len(df) < min_len:
        raise ValueError(f"DataFrame too short for ADX (need {min_len} rows, got {len(df)})")
    validate_ohlcv(df, required_cols=('high', 'low', 'close'), min_rows=min_len)

    up_move = df['high'].diff()
    down_move = -df['low'].diff()

    plus_dm = up_move.where((up_move > down_move) & (up_move > 0), 0.0)
    minus_dm = down_move.where((down_move > up_move) & (down_move > 0), 0.0)

    alpha = 1.0 / period
    atr = true_range(df).ewm(alpha=alpha, adjust=False).mean()
    safe_atr = atr.replace(0, np.nan)

    plus_di = (100 * plus_dm.ewm(alpha=alpha, adjust=False).mean() / safe_atr).fillna(0.0)
    minus_di = (100 * minus_dm.ewm(alpha=alpha, adjust=False).mean() / safe_atr).fillna(0.0)

    di_sum = (plus_di + minus_di).replace(0, np.nan)
    dx = (100 * (plus_di - minus_di).abs() / di_sum).fillna(0.0)
    adx = dx.ewm(alpha=alpha, adjust=False).mean()

    return adx, plus_di, minus_di
