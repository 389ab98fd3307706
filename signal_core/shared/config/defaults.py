"""
Default configuration for the signal core.

Every stage takes its constants from one of these dataclasses. Callers
override by constructing a new instance and passing it in; there is no
module-level mutable state.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class IndicatorParams:
    """Fixed indicator periods and multipliers."""
    min_candles: int = 50
    ema_periods: Tuple[int, ...] = (9, 21, 50, 200)
    sma_periods: Tuple[int, ...] = (20, 50, 200)
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    stoch_rsi_period: int = 14
    stoch_period: int = 14
    stoch_k: int = 3
    stoch_d: int = 3
    cci_period: int = 20
    williams_period: int = 14
    mfi_period: int = 14
    bb_period: int = 20
    bb_std: float = 2.0
    atr_period: int = 14
    supertrend_period: int = 10
    supertrend_multiplier: float = 3.0
    adx_period: int = 14
    vwap_min_candles: int = 10
    obv_lookback: int = 5


@dataclass(frozen=True)
class IndicatorThresholds:
    """State bounds for oscillators and bucket edges for ATR/ADX."""
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_extreme_oversold: float = 25.0
    rsi_extreme_overbought: float = 75.0
    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0
    cci_oversold: float = -100.0
    cci_overbought: float = 100.0
    williams_oversold: float = -80.0
    williams_overbought: float = -20.0
    mfi_oversold: float = 20.0
    mfi_overbought: float = 80.0

    # ATR as percent of price
    atr_high_pct: float = 2.0
    atr_moderate_pct: float = 1.0

    # ADX buckets: weak < moderate < strong < extreme
    adx_moderate: float = 25.0
    adx_strong: float = 50.0
    adx_extreme: float = 75.0

    # Trend score needed for the confluence trend factor
    trend_factor: float = 30.0

    def __post_init__(self):
        if self.rsi_oversold >= self.rsi_overbought:
            raise ValueError("rsi_oversold must be below rsi_overbought")
        if not self.adx_moderate < self.adx_strong < self.adx_extreme:
            raise ValueError("ADX bucket edges must be increasing")
        if self.atr_moderate_pct >= self.atr_high_pct:
            raise ValueError("atr_moderate_pct must be below atr_high_pct")


@dataclass(frozen=True)
class StructureParams:
    """Swing detection and structure bookkeeping."""
    min_candles: int = 30
    swing_window: int = 5
    keep_last: int = 5
    trend_lookback: int = 3
    bos_lookback: int = 3
    ob_body_ratio: float = 2.0


@dataclass(frozen=True)
class SignalConfig:
    """
    Standard generator parameters.

    Stop = entry -/+ min(atr_stop_multiplier x ATR, entry x stop percent
    for the volatility bucket). Targets sit at `tp_multiples` x risk and
    are blended with `tp_weights` for the reported R:R.
    """
    min_candles: int = 50
    min_confidence: float = 0.65
    atr_stop_multiplier: float = 1.5
    stop_pct_high: float = 0.006
    stop_pct_moderate: float = 0.008
    stop_pct_low: float = 0.010
    tp_multiples: Tuple[float, float, float] = (2.0, 3.2, 4.5)
    tp_weights: Tuple[float, float, float] = (0.40, 0.35, 0.25)
    base_confidence: float = 0.70
    confluence_score_factor: float = 0.05
    strength_bonus_strong: float = 0.10
    strength_bonus_moderate: float = 0.05
    expiry_minutes: int = 30
    default_timeframe: str = "5m"
    default_exchange: str = "binance"
    trail_step_pct: float = 0.5
    activation_profit_pct: float = 1.0
    account_risk_pct: float = 1.0

    def __post_init__(self):
        if not 0.0 < self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be in (0, 1], got {self.min_confidence}")
        if abs(sum(self.tp_weights) - 1.0) > 1e-9:
            raise ValueError(f"tp_weights must sum to 1.0, got {sum(self.tp_weights)}")
        if list(self.tp_multiples) != sorted(self.tp_multiples):
            raise ValueError("tp_multiples must be increasing")

    def stop_pct(self, volatility: str) -> float:
        if volatility == "high":
            return self.stop_pct_high
        if volatility == "moderate":
            return self.stop_pct_moderate
        return self.stop_pct_low


@dataclass(frozen=True)
class SniperConfig(SignalConfig):
    """
    Sniper-mode parameters.

    Inherits the standard generator's constants and tightens the
    stop, target and confidence rules.
    """
    base_confidence: float = 0.85
    confluence_score_factor: float = 0.03
    min_risk_reward: float = 2.5
    stop_pct_high: float = 0.005
    stop_pct_moderate: float = 0.007
    stop_pct_low: float = 0.010
    tp_multiples: Tuple[float, float, float] = (2.5, 3.5, 5.0)
    max_long_short_ratio: float = 2.5
    min_long_short_ratio: float = 0.4
    mtf_timeframes: Tuple[str, ...] = ("5m", "15m", "1h", "4h")
    macro_timeframes: Tuple[str, ...] = ("1h", "4h")
    require_tape_confirmation: bool = False
    provider_timeout_sec: float = 10.0

    def __post_init__(self):
        super().__post_init__()
        if self.min_long_short_ratio >= self.max_long_short_ratio:
            raise ValueError("min_long_short_ratio must be below max_long_short_ratio")


@dataclass(frozen=True)
class TriggerGateConfig:
    """Rate limits for handing triggered setups to an expensive evaluator."""
    cooldown_seconds: float = 60.0
    max_per_hour: int = 30


# Default instances
DEFAULT_INDICATOR_PARAMS = IndicatorParams()
DEFAULT_THRESHOLDS = IndicatorThresholds()
DEFAULT_STRUCTURE_PARAMS = StructureParams()
DEFAULT_SIGNAL_CONFIG = SignalConfig()
DEFAULT_SNIPER_CONFIG = SniperConfig()
DEFAULT_TRIGGER_GATE = TriggerGateConfig()
