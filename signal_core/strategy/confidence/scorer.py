"""
Confidence Scorer

Adjusts a base confidence with additive deltas, one per rule. Each rule
reads only the inputs, never another rule's output, so the final value
is independent of evaluation order; deltas are summed with math.fsum to
keep that true numerically as well.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from signal_core.shared.config.defaults import DEFAULT_THRESHOLDS
from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.market import Direction
from signal_core.shared.models.scoring import ConfidenceAdjustment, ConfidenceResult, ConfluenceVerdict
from signal_core.shared.models.structure import StructureSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringContext:
    direction: Direction
    indicators: IndicatorSnapshot
    structure: StructureSnapshot
    confluence: ConfluenceVerdict
    risk_reward: float

    @property
    def bullish(self) -> bool:
        return self.direction == "LONG"


Rule = Callable[[ScoringContext], Optional[ConfidenceAdjustment]]


def trend_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    threshold = DEFAULT_THRESHOLDS.trend_factor
    score = ctx.indicators.trend_score
    aligned = score > threshold if ctx.bullish else score < -threshold
    opposed = score < -threshold if ctx.bullish else score > threshold
    if aligned:
        return ConfidenceAdjustment("trend", 0.05, f"{ctx.direction} aligned with trend score {score}")
    if opposed:
        return ConfidenceAdjustment("trend", -0.15, f"{ctx.direction} against trend score {score}")
    return None


def supertrend_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    st = ctx.indicators.supertrend.direction
    if st == "neutral":
        return None
    if (st == "bullish") == ctx.bullish:
        return ConfidenceAdjustment("supertrend", 0.05, f"Supertrend {st}")
    return ConfidenceAdjustment("supertrend", -0.10, f"{ctx.direction} against Supertrend {st}")


def structure_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    bias = ctx.structure.bias
    own, other = ("bullish", "bearish") if ctx.bullish else ("bearish", "bullish")
    if own in bias:
        return ConfidenceAdjustment("structure", 0.08, f"Structure {bias}")
    if other in bias:
        return ConfidenceAdjustment("structure", -0.10, f"{ctx.direction} against structure {bias}")
    return None


def _agrees(polarity: Optional[str], ctx: ScoringContext) -> bool:
    return polarity == ("bullish" if ctx.bullish else "bearish")


def bos_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    if _agrees(ctx.structure.bos, ctx):
        return ConfidenceAdjustment("bos", 0.03, f"BOS {ctx.structure.bos} confirms {ctx.direction}")
    return None


def choch_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    if _agrees(ctx.structure.choch, ctx):
        return ConfidenceAdjustment("choch", 0.05, f"CHoCH {ctx.structure.choch}")
    return None


def adx_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    adx = ctx.indicators.adx
    if adx.is_trending:
        return ConfidenceAdjustment("adx", 0.05, f"ADX {adx.strength}")
    return None


def macd_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    crossover = ctx.indicators.macd.crossover
    if _agrees(crossover, ctx):
        return ConfidenceAdjustment("macd_crossover", 0.03, f"MACD {crossover} crossover")
    return None


def rsi_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    state = ctx.indicators.rsi.state
    if (state == "oversold" and ctx.bullish) or (state == "overbought" and not ctx.bullish):
        return ConfidenceAdjustment("rsi", 0.02, f"RSI {state}")
    return None


def risk_reward_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    rr = ctx.risk_reward
    if rr >= 3.0:
        return ConfidenceAdjustment("rr", 0.05, f"R:R >= 3.0 ({rr:.1f})")
    if rr < 1.5:
        return ConfidenceAdjustment("rr", -0.10, f"R:R < 1.5 ({rr:.1f})")
    return None


def confluence_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    if ctx.confluence.passed:
        return ConfidenceAdjustment("confluence", 0.05, f"Confluence passed ({ctx.confluence.score:g}/5)")
    return None


def mismatch_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    count = len(ctx.confluence.mismatched_factors)
    if count:
        return ConfidenceAdjustment("mismatches", -0.02 * count, f"{count} mismatched factors")
    return None


def volatility_rule(ctx: ScoringContext) -> Optional[ConfidenceAdjustment]:
    if ctx.indicators.atr.volatility == "high":
        return ConfidenceAdjustment("volatility", -0.03, "High volatility")
    return None


DEFAULT_RULES: Sequence[Rule] = (
    trend_rule,
    supertrend_rule,
    structure_rule,
    bos_rule,
    choch_rule,
    adx_rule,
    macd_rule,
    rsi_rule,
    risk_reward_rule,
    confluence_rule,
    mismatch_rule,
    volatility_rule,
)


def score_confidence(
    base: float,
    direction: Direction,
    indicators: IndicatorSnapshot,
    structure: StructureSnapshot,
    confluence: ConfluenceVerdict,
    risk_reward: float,
    rules: Sequence[Rule] = DEFAULT_RULES,
) -> ConfidenceResult:
    """
    Apply every rule to `base` and clamp the result.

    Args:
        base: Starting confidence
        direction: Candidate direction
        indicators: Indicator snapshot
        structure: Structure snapshot
        confluence: Confluence verdict for the candidate
        risk_reward: Blended R:R of the candidate levels
        rules: Rules to apply (default: all)

    Returns:
        ConfidenceResult with the value clamped to [0, 1] and rounded to
        three decimals
    """
    ctx = ScoringContext(direction, indicators, structure, confluence, risk_reward)

    adjustments: List[ConfidenceAdjustment] = []
    for rule in rules:
        adjustment = rule(ctx)
        if adjustment is not None:
            logger.debug("Confidence %+.2f (%s): %s", adjustment.delta, adjustment.factor, adjustment.reason)
            adjustments.append(adjustment)

    total = math.fsum(a.delta for a in adjustments)
    confidence = round(max(0.0, min(1.0, base + total)), 3)
    return ConfidenceResult(confidence=confidence, base=base, adjustments=adjustments)
