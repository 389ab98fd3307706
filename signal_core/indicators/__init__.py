"""
Technical Indicators Package

Provides:
- Trend indicators (EMA, SMA, Supertrend, ADX)
- Momentum indicators (RSI, MACD, StochRSI, CCI, Williams %R, MFI)
- Volatility indicators (ATR, Bollinger Bands)
- Volume indicators (Volume Spike, OBV, VWAP, derived VolumeData)
- Candlestick pattern detection
- Data validation utilities

All indicator functions follow consistent patterns:
- Accept pandas DataFrame with OHLCV columns
- Return pandas Series or tuple of Series
- Raise ValueError for insufficient data or missing columns
"""

from signal_core.indicators.trend import (
    compute_ema,
    compute_sma,
    compute_supertrend,
    compute_adx,
)

from signal_core.indicators.momentum import (
    compute_rsi,
    compute_macd,
    compute_stoch_rsi,
    compute_cci,
    compute_williams_r,
    compute_mfi,
)

from signal_core.indicators.volatility import (
    true_range,
    compute_atr,
    compute_bollinger_bands,
    bollinger_metrics,
)

from signal_core.indicators.volume import (
    detect_volume_spike,
    compute_obv,
    compute_vwap,
    derive_volume_data,
    VOLUME_ANOMALY_THRESHOLD,
)

from signal_core.indicators.patterns import (
    detect_patterns,
    PatternMatch,
    STRONG_PATTERNS,
)

from signal_core.indicators.validation_utils import (
    validate_ohlcv,
    DataValidationError,
    finite_or,
    last_value,
)

__all__ = [
    # Trend
    'compute_ema',
    'compute_sma',
    'compute_supertrend',
    'compute_adx',
    # Momentum
    'compute_rsi',
    'compute_macd',
    'compute_stoch_rsi',
    'compute_cci',
    'compute_williams_r',
    'compute_mfi',
    # Volatility
    'true_range',
    'compute_atr',
    'compute_bollinger_bands',
    'bollinger_metrics',
    # Volume
    'detect_volume_spike',
    'compute_obv',
    'compute_vwap',
    'derive_volume_data',
    'VOLUME_ANOMALY_THRESHOLD',
    # Patterns
    'detect_patterns',
    'PatternMatch',
    'STRONG_PATTERNS',
    # Validation
    'validate_ohlcv',
    'DataValidationError',
    'finite_or',
    'last_value',
]
