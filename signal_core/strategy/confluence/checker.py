"""
Confluence Checker

Five factors are read for each side:

    trend       trend score beyond +/-30
    supertrend  Supertrend direction
    volume      tape volume pressure (buying / selling buckets)
    dom         order-book pressure (moderate or strong buy / sell)
    structure   structure bias containing 'bullish' / 'bearish'

Strict, relaxed and sniper variants share this vector. `structure` and
`volume` are load-bearing: either one mismatching vetoes a 3-match pass.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from signal_core.shared.config.defaults import DEFAULT_THRESHOLDS
from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.market import DOMData, VolumeData
from signal_core.shared.models.scoring import ConfluenceMode, ConfluenceVerdict
from signal_core.shared.models.structure import StructureSnapshot

logger = logging.getLogger(__name__)

FACTORS = ("trend", "supertrend", "volume", "dom", "structure")
CRITICAL_FACTORS = frozenset({"structure", "volume"})

# Relaxed-mode constants. Pinned as-is; tests assert them.
RELAXED_TREND_THRESHOLD = 20.0
RELAXED_ADX_BONUS = 0.5
RELAXED_MIN_SCORE = 3.0
RELAXED_DOMINANCE = 1.5

_BUY_VOLUME = ("buying", "strong_buying")
_SELL_VOLUME = ("selling", "strong_selling")
_BUY_DOM = ("moderate_buy_pressure", "strong_buy_pressure")
_SELL_DOM = ("moderate_sell_pressure", "strong_sell_pressure")


def confluence_factors(
    indicators: IndicatorSnapshot,
    volume: VolumeData,
    dom: DOMData,
    structure: StructureSnapshot,
    trend_threshold: float = DEFAULT_THRESHOLDS.trend_factor,
) -> Tuple[Dict[str, bool], Dict[str, bool]]:
    """Return (long_conditions, short_conditions) keyed by factor name."""
    long_conditions = {
        "trend": indicators.trend_score > trend_threshold,
        "supertrend": indicators.supertrend.direction == "bullish",
        "volume": volume.volume_pressure in _BUY_VOLUME,
        "dom": dom.dom_signal in _BUY_DOM,
        "structure": "bullish" in structure.bias,
    }
    short_conditions = {
        "trend": indicators.trend_score < -trend_threshold,
        "supertrend": indicators.supertrend.direction == "bearish",
        "volume": volume.volume_pressure in _SELL_VOLUME,
        "dom": dom.dom_signal in _SELL_DOM,
        "structure": "bearish" in structure.bias,
    }
    return long_conditions, short_conditions


def _split(conditions: Dict[str, bool]) -> Tuple[List[str], List[str]]:
    matched = [name for name in FACTORS if conditions[name]]
    mismatched = [name for name in FACTORS if not conditions[name]]
    return matched, mismatched


def _strict_pass(matched: List[str], mismatched: List[str]) -> bool:
    if len(matched) >= 4 and len(mismatched) <= 1:
        return True
    if len(matched) == 3 and len(mismatched) <= 2:
        return not CRITICAL_FACTORS.intersection(mismatched)
    return False


def check_strict_confluence(
    indicators: IndicatorSnapshot,
    volume: VolumeData,
    dom: DOMData,
    structure: StructureSnapshot,
) -> ConfluenceVerdict:
    """
    Strict five-factor confluence.

    Passes when one side has 4+ matches with at most one mismatch, or
    exactly 3 matches where neither mismatch is `structure` or `volume`.
    LONG is evaluated first. On failure the factors of the side with
    more matches are reported (SHORT on a tie) and direction is None.
    """
    long_conditions, short_conditions = confluence_factors(indicators, volume, dom, structure)
    long_matched, long_mismatched = _split(long_conditions)
    short_matched, short_mismatched = _split(short_conditions)

    for direction, matched, mismatched in (
        ("LONG", long_matched, long_mismatched),
        ("SHORT", short_matched, short_mismatched),
    ):
        if _strict_pass(matched, mismatched):
            logger.debug("Strict confluence %s: matched=%s mismatched=%s", direction, matched, mismatched)
            return ConfluenceVerdict(
                passed=True,
                direction=direction,
                matched_factors=matched,
                mismatched_factors=mismatched,
                score=float(len(matched)),
                mode="strict",
                reason=f"{len(matched)}/5 factors agree {direction}",
            )

    if len(long_matched) > len(short_matched):
        matched, mismatched, side = long_matched, long_mismatched, "LONG"
    else:
        matched, mismatched, side = short_matched, short_mismatched, "SHORT"

    return ConfluenceVerdict(
        passed=False,
        direction=None,
        matched_factors=matched,
        mismatched_factors=mismatched,
        score=float(len(matched)),
        mode="strict",
        reason=f"Only {len(matched)}/5 factors agree (best side {side}); mismatched: {', '.join(mismatched) or 'none'}",
    )


def check_relaxed_confluence(
    indicators: IndicatorSnapshot,
    volume: VolumeData,
    dom: DOMData,
    structure: StructureSnapshot,
) -> ConfluenceVerdict:
    """
    Relaxed confluence: strict first, then a weighted fallback.

    The fallback loosens the trend factor to +/-20 and adds 0.5 for a
    strong or extreme ADX in its direction. A side passes with a score of
    at least 3 that is strictly greater than 1.5x the other side.
    """
    strict = check_strict_confluence(indicators, volume, dom, structure)
    if strict.passed:
        return strict

    long_conditions, short_conditions = confluence_factors(
        indicators, volume, dom, structure, trend_threshold=RELAXED_TREND_THRESHOLD
    )
    long_score = float(sum(long_conditions.values()))
    short_score = float(sum(short_conditions.values()))

    if indicators.adx.is_trending:
        if indicators.adx.direction == "bullish":
            long_score += RELAXED_ADX_BONUS
        else:
            short_score += RELAXED_ADX_BONUS

    for direction, score, other, conditions in (
        ("LONG", long_score, short_score, long_conditions),
        ("SHORT", short_score, long_score, short_conditions),
    ):
        if score >= RELAXED_MIN_SCORE and score > other * RELAXED_DOMINANCE:
            matched, mismatched = _split(conditions)
            return ConfluenceVerdict(
                passed=True,
                direction=direction,
                matched_factors=matched,
                mismatched_factors=mismatched,
                score=score,
                mode="relaxed",
                reason=f"Weighted score {score:g} vs {other:g}",
            )

    best = long_conditions if long_score > short_score else short_conditions
    matched, mismatched = _split(best)
    return ConfluenceVerdict(
        passed=False,
        direction=None,
        matched_factors=matched,
        mismatched_factors=mismatched,
        score=max(long_score, short_score),
        mode="relaxed",
        reason=f"Weighted score {long_score:g} LONG vs {short_score:g} SHORT below dominance rule",
    )


def tape_confirmation_failures(direction: str, volume: VolumeData, dom: DOMData) -> List[str]:
    """
    Order-book and tape rules layered on a strict pass.

    LONG needs no ask walls, bid imbalance (>= 0.6 or pressure >= 2),
    bullish CVD and a volume spike; SHORT mirrors.
    """
    failures: List[str] = []
    if direction == "LONG":
        if dom.ask_walls > 0:
            failures.append("Ask walls detected blocking LONG")
        if dom.imbalance < 0.6 and dom.pressure_score < 2:
            failures.append(f"Weak bid imbalance: {dom.imbalance * 100:.0f}%")
        if volume.cvd_direction != "bullish":
            failures.append("CVD is not bullish")
    else:
        if dom.bid_walls > 0:
            failures.append("Bid walls detected blocking SHORT")
        if dom.imbalance > -0.6 and dom.pressure_score > -2:
            failures.append(f"Weak ask imbalance: {dom.imbalance * 100:.0f}%")
        if volume.cvd_direction != "bearish":
            failures.append("CVD is not bearish")
    if not volume.volume_spike:
        failures.append("No volume spike detected")
    return failures


def check_sniper_confluence(
    indicators: IndicatorSnapshot,
    volume: VolumeData,
    dom: DOMData,
    structure: StructureSnapshot,
    require_tape_confirmation: bool = False,
) -> ConfluenceVerdict:
    """
    Sniper confluence: the strict check, optionally hardened with the
    order-book/tape rules. The orchestrator adds the remaining gates.
    """
    strict = check_strict_confluence(indicators, volume, dom, structure)
    sniper = replace(strict, mode="sniper")
    if not sniper.passed or not require_tape_confirmation:
        return sniper

    failures = tape_confirmation_failures(sniper.direction, volume, dom)
    if not failures:
        return sniper

    logger.debug("Sniper tape confirmation failed: %s", failures)
    return replace(
        sniper,
        passed=False,
        direction=None,
        mismatched_factors=sniper.mismatched_factors + failures,
        reason="; ".join(failures),
    )


def check_confluence(
    mode: ConfluenceMode,
    indicators: IndicatorSnapshot,
    volume: Optional[VolumeData] = None,
    dom: Optional[DOMData] = None,
    structure: Optional[StructureSnapshot] = None,
    require_tape_confirmation: bool = False,
) -> ConfluenceVerdict:
    """Dispatch to the check for `mode`, filling default snapshots."""
    volume = volume or VolumeData()
    dom = dom or DOMData()
    structure = structure or StructureSnapshot()

    if mode == "strict":
        return check_strict_confluence(indicators, volume, dom, structure)
    if mode == "relaxed":
        return check_relaxed_confluence(indicators, volume, dom, structure)
    if mode == "sniper":
        return check_sniper_confluence(indicators, volume, dom, structure, require_tape_confirmation)
    raise ValueError(f"Unknown confluence mode: {mode}")
