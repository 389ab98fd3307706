"""
Momentum Indicators Module

Implements technical momentum indicators:
- RSI (Relative Strength Index, Wilder)
- Stochastic RSI (%K / %D)
- MACD (Moving Average Convergence Divergence)
- CCI (Commodity Channel Index)
- Williams %R
- MFI (Money Flow Index)

All functions return pandas Series with proper index alignment.
"""

from typing import Tuple
import pandas as pd
import numpy as np
import logging

from signal_core.indicators.validation_utils import validate_ohlcv

logger = logging.getLogger(__name__)


def compute_rsi(df: pd.DataFrame, period: int = 14, validate_input: bool = True) -> pd.Series:
    """
    Compute Relative Strength Index (RSI).

    RSI measures the magnitude of recent price changes to evaluate
    overbought or oversold conditions.

    A window with no losses reads 100, a window with neither gains nor
    losses (flat price) reads 50.

    Args:
        df: DataFrame with 'close' column
        period: RSI period (default 14)
        validate_input: If True, validate input data (default True)

    Returns:
        pd.Series: RSI values (0-100)

    Raises:
        ValueError: If df is too short or missing required columns
        DataValidationError: If input data has NaN or invalid values
    """
    if 'close' not in df.columns:
        raise ValueError("DataFrame must contain 'close' column")
    if len(df) < period + 1:
        raise ValueError(f"DataFrame too short for RSI calculation (need {period + 1} rows, got {len(df)})")

    if validate_input:
        validate_ohlcv(df, required_cols=('close',), min_rows=period + 1)

    delta = df['close'].diff()
    gains = delta.where(delta > 0, 0.0)
    losses = -delta.where(delta < 0, 0.0)
    avg_gains = gains.ewm(alpha=1.0 / period, adjust=False).mean()
    avg_losses = losses.ewm(alpha=1.0 / period, adjust=False).mean()

    rs = avg_gains / avg_losses.replace(0, np.nan)
    rsi = 100 - (100 / (1 + rs))
    rsi = rsi.where(avg_losses > 0, 100.0)
    rsi = rsi.where((avg_gains > 0) | (avg_losses > 0), 50.0)

    return rsi


def compute_macd(
    df: pd.DataFrame,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Compute MACD (Moving Average Convergence Divergence).

    Returns MACD line, signal line, and histogram.

    Args:
        df: DataFrame with 'close' column
        fast: Fast EMA period (default 12)
        slow: Slow EMA period (default 26)
        signal: Signal EMA period (default 9)

    Returns:
        Tuple[pd.Series, pd.Series, pd.Series]: (macd_line, signal_line, histogram)

    Raises:
        ValueError: If df is too short or missing required columns
    """
    if 'close' not in df.columns:
        raise ValueError("DataFrame must contain 'close' column")
    min_len = max(fast, slow) + signal + 1
    if len(df) < min_len:
        raise ValueError(f"DataFrame too short for MACD (need {min_len} rows, got {len(df)})")

    ema_fast = df['close'].ewm(span=fast, adjust=False).mean()
    ema_slow = df['close'].ewm(span=slow, adjust=False).mean()
    macd_line = ema_fast - ema_slow
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


def compute_stoch_rsi(
    df: pd.DataFrame,
    rsi_period: int = 14,
    stoch_period: int = 14,
    k_smooth: int = 3,
    d_smooth: int = 3
) -> Tuple[pd.Series, pd.Series]:
    """
    Compute Stochastic RSI.

    Applies the stochastic formula to RSI values. A flat RSI window
    (max == min) reads as the midpoint 50.

    Returns:
        Tuple[pd.Series, pd.Series]: (%K, %D), both 0-100
    """
    min_len = rsi_period + stoch_period
    if len(df) < min_len:
        raise ValueError(f"DataFrame too short for Stoch RSI (need {min_len} rows, got {len(df)})")

    rsi = compute_rsi(df, period=rsi_period, validate_input=False)
    rsi_min = rsi.rolling(window=stoch_period).min()
    rsi_max = rsi.rolling(window=stoch_period).max()
    rsi_range = rsi_max - rsi_min

    stoch = 100 * (rsi - rsi_min) / rsi_range.replace(0, np.nan)
    stoch = stoch.where(rsi_range != 0, 50.0).where(rsi_range.notna())

    k = stoch.rolling(window=k_smooth).mean()
    d = k.rolling(window=d_smooth).mean()
    return k, d


def compute_cci(df: pd.DataFrame, period: int = 20) -> pd.Series:
    """
    Compute Commodity Channel Index.

    CCI = (TP - SMA(TP)) / (0.015 x mean absolute deviation of TP).
    Zero deviation reads 0.
    """
    if len(df) < period:
        raise ValueError(f"DataFrame too short for CCI (need {period} rows, got {len(df)})")

    tp = (df['high'] + df['low'] + df['close']) / 3
    sma = tp.rolling(window=period).mean()
    mad = tp.rolling(window=period).apply(lambda x: np.abs(x - x.mean()).mean(), raw=True)
    cci = (tp - sma) / (0.015 * mad.replace(0, np.nan))
    return cci.where(mad != 0, 0.0).where(mad.notna())


def compute_williams_r(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """Compute Williams %R (-100 to 0). A flat range reads -50."""
    if len(df) < period:
        raise ValueError(f"DataFrame too short for Williams %R (need {period} rows, got {len(df)})")

    highest = df['high'].rolling(window=period).max()
    lowest = df['low'].rolling(window=period).min()
    span = highest - lowest
    wr = -100 * (highest - df['close']) / span.replace(0, np.nan)
    return wr.where(span != 0, -50.0).where(span.notna())


def compute_mfi(df: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Compute Money Flow Index (MFI).

    Volume-weighted RSI: typical price x volume split into positive and
    negative flow by the direction of typical price.

    Args:
        df: DataFrame with 'high', 'low', 'close', 'volume' columns
        period: MFI period (default 14)

    Returns:
        pd.Series: MFI values (0-100)
    """
    if len(df) < period + 1:
        raise ValueError(f"DataFrame too short for MFI (need {period + 1} rows, got {len(df)})")
    validate_ohlcv(df, required_cols=('high', 'low', 'close', 'volume'), min_rows=period + 1)

    tp = (df['high'] + df['low'] + df['close']) / 3
    money_flow = tp * df['volume']
    tp_change = tp.diff()

    positive_flow = money_flow.where(tp_change > 0, 0.0).rolling(window=period).sum()
    negative_flow = money_flow.where(tp_change < 0, 0.0).rolling(window=period).sum()

    ratio = positive_flow / negative_flow.replace(0, np.nan)
    mfi = 100 - (100 / (1 + ratio))
    mfi = mfi.where(negative_flow > 0, 100.0)
    mfi = mfi.where((positive_flow > 0) | (negative_flow > 0), 50.0)
    return mfi.where(positive_flow.notna())
