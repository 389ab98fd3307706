"""
Volatility Indicators Module

Implements volatility measurement indicators:
- True Range / ATR (Wilder smoothing)
- Bollinger Bands with bandwidth and %B

All functions return pandas Series with proper index alignment.
"""

from typing import Tuple
import pandas as pd
import numpy as np
import logging

from signal_core.indicators.validation_utils import validate_ohlcv

logger = logging.getLogger(__name__)


def true_range(df: pd.DataFrame) -> pd.Series:
    """
    True Range: the greatest of high-low, |high-prev close|, |low-prev close|.

    The first bar has no previous close and falls back to high-low.
    """
    high_low = df['high'] - df['low']
    high_close = (df['high'] - df['close'].shift()).abs()
    low_close = (df['low'] - df['close'].shift()).abs()
    return pd.concat([high_low, high_close, low_close], axis=1).max(axis=1)


def compute_atr(df: pd.DataFrame, period: int = 14, validate_input: bool = True) -> pd.Series:
    """
    Compute Average True Range (ATR).

    Args:
        df: DataFrame with 'high', 'low', 'close' columns
        period: ATR period (default 14)
        validate_input: If True, validate input data (default True)

    Returns:
        pd.Series: ATR values

    Raises:
        ValueError: If df is too short or missing required columns
        DataValidationError: If input data has NaN or invalid values
    """
    required_cols = ['high', 'low', 'close']
    missing_cols = [col for col in required_cols if col not in df.columns]
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if len(df) < period + 1:
        raise ValueError(f"DataFrame too short for ATR calculation (need {period + 1} rows, got {len(df)})")

    if validate_input:
        validate_ohlcv(df, required_cols=required_cols, min_rows=period + 1)

    return true_range(df).ewm(alpha=1.0 / period, adjust=False).mean()


def compute_bollinger_bands(
    df: pd.DataFrame,
    period: int = 20,
    std_dev: float = 2.0
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Compute Bollinger Bands.

    Uses the population standard deviation of close over `period` bars.

    Returns:
        Tuple[pd.Series, pd.Series, pd.Series]: (upper, middle, lower)

    Raises:
        ValueError: If df is too short or missing 'close'
    """
    if 'close' not in df.columns:
        raise ValueError("DataFrame must contain 'close' column")
    if len(df) < period:
        raise ValueError(f"DataFrame too short for Bollinger Bands (need {period} rows, got {len(df)})")

    middle = df['close'].rolling(window=period).mean()
    std = df['close'].rolling(window=period).std(ddof=0)
    upper = middle + std_dev * std
    lower = middle - std_dev * std

    return upper, middle, lower


def bollinger_metrics(price: float, upper: float, middle: float, lower: float) -> Tuple[float, float]:
    """
    Return (bandwidth, percent_b) for a price against a band set.

    Bandwidth is (upper - lower) / middle; %B is where price sits between
    the bands (0 at lower, 1 at upper). Degenerate bands give 0 and 0.5.
    """
    bandwidth = (upper - lower) / middle if middle else 0.0
    span = upper - lower
    percent_b = (price - lower) / span if span > 0 else 0.5
    return float(bandwidth), float(np.clip(percent_b, -10.0, 10.0))
