"""
Verdict models for the gating stages: confluence, triggers, confidence.

All of these are judgments recomputed on every run. None of them is
persisted.
"""

import math
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from signal_core.shared.models.market import Direction


ConfluenceMode = Literal["strict", "relaxed", "sniper"]
TriggerStrength = Literal["weak", "moderate", "strong"]

TriggerKind = Literal[
    "volume_spike",
    "dom_imbalance",
    "macd_crossover",
    "rsi_extreme",
    "strong_pattern",
    "bos",
    "choch",
    "strong_trend",
    "bb_breakout",
    "stoch_rsi_reversal",
    "adx_trend",
]


@dataclass
class ConfluenceVerdict:
    """
    Directional pass/fail judgment over the five confluence factors.

    Attributes:
        passed: Whether the mode's acceptance rule was met
        direction: Winning side, None when the check failed
        matched_factors: Factor names agreeing with `direction`
        mismatched_factors: Factor names opposing `direction`
        score: Matches on the winning side (weighted in relaxed mode)
        mode: Which algorithm produced the verdict
        reason: Human-readable explanation
    """
    passed: bool
    direction: Optional[Direction]
    matched_factors: List[str] = field(default_factory=list)
    mismatched_factors: List[str] = field(default_factory=list)
    score: float = 0.0
    mode: ConfluenceMode = "strict"
    reason: str = ""


@dataclass(frozen=True)
class Trigger:
    """A single fired condition with its polarity and weight."""
    kind: TriggerKind
    polarity: Literal["bullish", "bearish", "neutral"]
    weight: int
    detail: str = ""


@dataclass
class TriggerVerdict:
    triggered: bool = False
    triggers: List[Trigger] = field(default_factory=list)
    direction: Optional[Direction] = None
    strength: TriggerStrength = "weak"
    bullish_score: int = 0
    bearish_score: int = 0

    @property
    def kinds(self) -> List[str]:
        return [t.kind for t in self.triggers]


@dataclass(frozen=True)
class ConfidenceAdjustment:
    factor: str
    delta: float
    reason: str


@dataclass
class ConfidenceResult:
    """
    Scored confidence with the audit trail of applied deltas.

    `adjustments` preserves the order in which deltas were evaluated;
    the final value does not depend on that order.
    """
    confidence: float
    base: float
    adjustments: List[ConfidenceAdjustment] = field(default_factory=list)

    @property
    def total_delta(self) -> float:
        return math.fsum(a.delta for a in self.adjustments)
