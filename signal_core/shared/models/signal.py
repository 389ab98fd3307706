"""
Terminal signal artifact and the pipeline result envelope.

A Signal is constructed only when every gate passed; it is immutable and
ownership passes to the caller. Rejections are reported through
SignalResult with the partial diagnostics computed up to the failing
stage.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.market import Direction
from signal_core.shared.models.risk import RiskAssessment
from signal_core.shared.models.scoring import ConfidenceResult, ConfluenceVerdict, TriggerVerdict
from signal_core.shared.models.structure import StructureSnapshot


def confidence_level(confidence: float) -> Literal["high", "medium", "low"]:
    """Bucket a 0..1 confidence into high (>=0.85), medium (>=0.70) or low."""
    if confidence >= 0.85:
        return "high"
    if confidence >= 0.70:
        return "medium"
    return "low"


@dataclass(frozen=True)
class TrailingStopConfig:
    initial_stop: float
    trail_step_pct: float = 0.5
    activation_profit_pct: float = 1.0


@dataclass(frozen=True)
class Signal:
    """
    Directional trade signal.

    Attributes:
        id: Unique id, 'sig_<yyyymmdd>_<seq3>'
        timestamp: Generation time (UTC)
        symbol: Instrument symbol
        exchange: Venue name
        direction: 'LONG' or 'SHORT'
        entry_price: Entry (last close)
        stop_loss: Stop on the loss side of entry
        take_profit: Three targets ordered by increasing reward
        risk_reward: Weighted average R:R across targets
        confidence: Scored confidence in [0, 1]
        timeframe: Candle interval the signal was computed on
        triggers: Names of fired triggers
        expiry: Time after which the signal should be discarded
        trailing_stop: Trailing stop parameters
        leverage: Recommended leverage
        mode: 'standard' or 'sniper'
    """
    id: str
    timestamp: datetime
    symbol: str
    exchange: str
    direction: Direction
    entry_price: float
    stop_loss: float
    take_profit: Tuple[float, float, float]
    risk_reward: float
    confidence: float
    timeframe: str
    triggers: Tuple[str, ...]
    expiry: datetime
    trailing_stop: TrailingStopConfig
    leverage: int = 1
    mode: Literal["standard", "sniper"] = "standard"

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")
        if len(self.take_profit) != 3:
            raise ValueError(f"Signal requires exactly three take-profits, got {len(self.take_profit)}")
        if self.expiry <= self.timestamp:
            raise ValueError("Expiry must be after the signal timestamp")

    @property
    def confidence_level(self) -> str:
        return confidence_level(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["expiry"] = self.expiry.isoformat()
        data["take_profit"] = list(self.take_profit)
        data["triggers"] = list(self.triggers)
        data["confidence_level"] = self.confidence_level
        return data


@dataclass
class SignalResult:
    """
    Outcome of one pipeline run.

    `signal` is None on rejection; `reason` and `stage` then say where and
    why, and whatever snapshots were computed before that stage are kept
    for observability. Sniper runs also record the fail-fast `level`
    reached (0 when rejected before level 1) and which external checks
    were skipped as unavailable.
    """
    signal: Optional[Signal] = None
    reason: Optional[str] = None
    stage: str = "START"
    indicators: Optional[IndicatorSnapshot] = None
    structure: Optional[StructureSnapshot] = None
    confluence: Optional[ConfluenceVerdict] = None
    triggers: Optional[TriggerVerdict] = None
    risk: Optional[RiskAssessment] = None
    confidence: Optional[ConfidenceResult] = None
    level: Optional[int] = None
    skipped_checks: List[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.signal is not None
