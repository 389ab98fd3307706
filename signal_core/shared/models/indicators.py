"""
Technical indicator data models.

An IndicatorSnapshot is derived, stateless and recomputed on every run;
it is never persisted. IndicatorResult wraps a snapshot together with the
reason it could not be computed, so callers branch on `.ok` instead of
catching exceptions.
"""

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional


OscillatorState = Literal["oversold", "neutral", "overbought"]
Volatility = Literal["low", "moderate", "high"]
AdxStrength = Literal["weak", "moderate", "strong", "extreme"]


@dataclass
class RSIReading:
    value: float = 50.0
    state: OscillatorState = "neutral"
    previous: Optional[float] = None


@dataclass
class MACDReading:
    """
    MACD line/signal/histogram at the last bar.

    `crossover` is set only when the histogram changed sign between the
    last two bars; `direction` follows the sign of the last histogram.
    """
    line: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None
    direction: Literal["bullish", "bearish", "neutral"] = "neutral"
    crossover: Optional[Literal["bullish", "bearish"]] = None


@dataclass
class StochRSIReading:
    k: Optional[float] = None
    d: Optional[float] = None
    state: OscillatorState = "neutral"


@dataclass
class OscillatorReading:
    """Single-value bounded oscillator (CCI, Williams %R, MFI)."""
    value: Optional[float] = None
    state: OscillatorState = "neutral"


@dataclass
class BollingerReading:
    upper: Optional[float] = None
    middle: Optional[float] = None
    lower: Optional[float] = None
    bandwidth: Optional[float] = None
    percent_b: Optional[float] = None
    position: Literal["above_upper", "upper_half", "lower_half", "below_lower", "unknown"] = "unknown"


@dataclass
class ATRReading:
    value: Optional[float] = None
    pct: float = 0.0
    volatility: Volatility = "low"


@dataclass
class SupertrendReading:
    direction: Literal["bullish", "bearish", "neutral"] = "neutral"
    value: float = 0.0


@dataclass
class ADXReading:
    value: float = 0.0
    strength: AdxStrength = "weak"
    direction: Literal["bullish", "bearish"] = "bullish"
    plus_di: float = 0.0
    minus_di: float = 0.0

    @property
    def is_trending(self) -> bool:
        return self.strength in ("strong", "extreme")


@dataclass
class VWAPReading:
    value: Optional[float] = None
    position: Literal["above", "below", "unknown"] = "unknown"


@dataclass
class OBVReading:
    value: Optional[float] = None
    trend: Literal["rising", "falling", "neutral"] = "neutral"


@dataclass
class IndicatorSnapshot:
    """
    Complete indicator read for one candle window.

    Trend Composite:
        trend_score: Signed weighted sum of EMA/Supertrend/ADX/MACD/VWAP
            votes, clamped to [-100, 100]
        momentum_score: RSI distance from 50 plus StochRSI/MACD/CCI
            extremes, clamped to [-100, 100], one decimal

    Moving Averages:
        ema: period -> value for periods the window is long enough for
        ema_position: period -> 'above' / 'below' (last close vs EMA)
        sma: period -> value for periods the window is long enough for

    Everything else is a per-indicator reading object.
    """
    price: float = 0.0
    trend_score: int = 0
    momentum_score: float = 0.0
    ema: Dict[int, float] = field(default_factory=dict)
    ema_position: Dict[int, str] = field(default_factory=dict)
    sma: Dict[int, float] = field(default_factory=dict)
    supertrend: SupertrendReading = field(default_factory=SupertrendReading)
    adx: ADXReading = field(default_factory=ADXReading)
    rsi: RSIReading = field(default_factory=RSIReading)
    macd: MACDReading = field(default_factory=MACDReading)
    stoch_rsi: StochRSIReading = field(default_factory=StochRSIReading)
    cci: OscillatorReading = field(default_factory=OscillatorReading)
    williams_r: OscillatorReading = field(default_factory=OscillatorReading)
    mfi: OscillatorReading = field(default_factory=OscillatorReading)
    bollinger: BollingerReading = field(default_factory=BollingerReading)
    atr: ATRReading = field(default_factory=ATRReading)
    vwap: VWAPReading = field(default_factory=VWAPReading)
    obv: OBVReading = field(default_factory=OBVReading)

    def __post_init__(self):
        if not -100 <= self.trend_score <= 100:
            raise ValueError(f"trend_score {self.trend_score} outside [-100, 100]")
        if not -100 <= self.momentum_score <= 100:
            raise ValueError(f"momentum_score {self.momentum_score} outside [-100, 100]")


@dataclass
class IndicatorResult:
    """
    Outcome of an indicator run.

    A failed run still carries a zero-valued snapshot so downstream
    diagnostics have something to show; `error` is 'insufficient_data'
    for short windows and the exception message for computation faults.
    """
    snapshot: IndicatorSnapshot = field(default_factory=IndicatorSnapshot)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
