"""
Volume Indicators Module

Implements volume-based indicators:
- Volume spike detection (with anomaly guard)
- OBV (On-Balance Volume)
- VWAP (Volume-Weighted Average Price over the window)
- derive_volume_data: a VolumeData snapshot from candles alone, for
  callers that have no tape feed
"""

import pandas as pd
import numpy as np
import logging

from signal_core.shared.models.market import VolumeData
from signal_core.indicators.validation_utils import validate_ohlcv

logger = logging.getLogger(__name__)

# Volume above this multiple of the average is treated as a data error
VOLUME_ANOMALY_THRESHOLD = 100.0


def detect_volume_spike(
    df: pd.DataFrame,
    threshold: float = 2.0,
    lookback: int = 20,
    anomaly_threshold: float = VOLUME_ANOMALY_THRESHOLD,
) -> pd.Series:
    """
    Detect volume spikes.

    A spike is volume above `threshold` x the average of the preceding
    `lookback` bars; bars above `anomaly_threshold` x that average are
    logged and excluded as likely data errors.

    Returns:
        pd.Series: Boolean series indicating volume spikes

    Raises:
        ValueError: If df is too short or missing 'volume'
    """
    if 'volume' not in df.columns:
        raise ValueError("DataFrame must contain 'volume' column")
    if len(df) < lookback:
        raise ValueError(f"DataFrame too short for volume spike detection (need {lookback} rows, got {len(df)})")

    avg_volume = df['volume'].rolling(window=lookback).mean().shift(1)
    relative_volume = df['volume'] / avg_volume.replace(0, np.nan)

    anomalies = relative_volume > anomaly_threshold
    if anomalies.any():
        logger.warning(
            f"Volume anomaly detected: {int(anomalies.sum())} bar(s) with volume >{anomaly_threshold}x average. "
            f"Max ratio: {relative_volume.max():.1f}x. These may be data errors."
        )

    return ((relative_volume > threshold) & (relative_volume <= anomaly_threshold)).fillna(False)


def compute_obv(df: pd.DataFrame) -> pd.Series:
    """
    Compute On-Balance Volume (OBV).

    Adds volume on up-closes and subtracts it on down-closes.

    Returns:
        pd.Series: Cumulative OBV values
    """
    validate_ohlcv(df, required_cols=('close', 'volume'), min_rows=2)
    direction = np.sign(df['close'].diff()).fillna(0.0)
    return (direction * df['volume']).cumsum()


def compute_vwap(df: pd.DataFrame) -> pd.Series:
    """
    Compute Volume-Weighted Average Price, cumulative over the window.

    Bars before any volume has traded read NaN.
    """
    validate_ohlcv(df, required_cols=('high', 'low', 'close', 'volume'), min_rows=1)
    typical_price = (df['high'] + df['low'] + df['close']) / 3
    cum_volume = df['volume'].cumsum()
    return (typical_price * df['volume']).cumsum() / cum_volume.replace(0, np.nan)


def derive_volume_data(
    df: pd.DataFrame,
    lookback: int = 10,
    spike_threshold: float = 2.0,
    spike_lookback: int = 20,
) -> VolumeData:
    """
    Build a VolumeData snapshot from OHLCV candles.

    Volume is attributed to buyers on green candles and sellers on red
    ones; doji volume is ignored.

    Args:
        df: OHLCV DataFrame (oldest first)
        lookback: Bars used for buy/sell ratio and CVD direction
        spike_threshold: Multiple of average volume that counts as a spike
        spike_lookback: Window for the spike average

    Returns:
        VolumeData for the last bar; a neutral default when the window is
        shorter than `spike_lookback`
    """
    if len(df) < spike_lookback:
        logger.debug("Window too short to derive volume data (%d < %d)", len(df), spike_lookback)
        return VolumeData()

    colour = np.sign(df['close'] - df['open'])
    signed_volume = colour * df['volume']
    recent = df.iloc[-lookback:]
    recent_signed = signed_volume.iloc[-lookback:]

    buy_volume = float(recent['volume'][recent_signed > 0].sum())
    sell_volume = float(recent['volume'][recent_signed < 0].sum())
    if sell_volume > 0:
        ratio = buy_volume / sell_volume
    else:
        ratio = 10.0 if buy_volume > 0 else 1.0

    if ratio >= 2.0:
        pressure = "strong_buying"
    elif ratio >= 1.25:
        pressure = "buying"
    elif ratio <= 0.5:
        pressure = "strong_selling"
    elif ratio <= 0.8:
        pressure = "selling"
    else:
        pressure = "neutral"

    cvd = float(recent_signed.sum())
    if cvd > 0:
        cvd_direction = "bullish"
    elif cvd < 0:
        cvd_direction = "bearish"
    else:
        cvd_direction = "neutral"

    spikes = detect_volume_spike(df, threshold=spike_threshold, lookback=spike_lookback)

    return VolumeData(
        volume_pressure=pressure,
        delta=float(signed_volume.iloc[-1]),
        buy_sell_ratio=round(ratio, 3),
        volume_spike=bool(spikes.iloc[-1]),
        cvd_direction=cvd_direction,
    )
