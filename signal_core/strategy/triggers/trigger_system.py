"""
Trigger System

Detects discrete, named reasons to evaluate a setup now rather than
wait. Each firing condition adds its weight to a bullish or bearish
accumulator:

    volume_spike        2   polarity from tape pressure (buying / selling)
    dom_imbalance       2   |pressure score| > 50
    macd_crossover      2   histogram sign flip on the last bar
    rsi_extreme         1   RSI <= 30 / >= 70, +1 more at <= 25 / >= 75
    strong_pattern      2   allow-listed candlestick pattern (once; a mixed window credits both sides)
    bos                 2   break of structure present
    choch               3   change of character present
    strong_trend        2   |trend score| > 60
    bb_breakout         1   close outside a Bollinger band
    stoch_rsi_reversal  1   StochRSI oversold (bullish) / overbought (bearish)
    adx_trend           1   ADX strong or extreme, in ADX direction

TriggerGate rate-limits how often triggered setups are handed to an
expensive downstream evaluator.
"""

import threading
import logging
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Deque, Iterable, List, Optional, Tuple

from signal_core.indicators.patterns import STRONG_PATTERNS, canonical_pattern
from signal_core.shared.config.defaults import (
    DEFAULT_THRESHOLDS,
    DEFAULT_TRIGGER_GATE,
    TriggerGateConfig,
)
from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.market import DOMData, VolumeData
from signal_core.shared.models.scoring import Trigger, TriggerVerdict
from signal_core.shared.models.structure import StructureSnapshot

logger = logging.getLogger(__name__)

DOM_IMBALANCE_THRESHOLD = 50.0
STRONG_TREND_THRESHOLD = 60
MIN_DIRECTIONAL_SCORE = 2

_BULLISH_PATTERNS = frozenset({
    "bullish_engulfing", "morning_star", "three_white_soldiers", "bullish_marubozu",
})


def detect_triggers(
    indicators: IndicatorSnapshot,
    volume: VolumeData,
    dom: DOMData,
    structure: StructureSnapshot,
    patterns: Iterable[str] = (),
) -> TriggerVerdict:
    """
    Evaluate all trigger conditions.

    Args:
        indicators: Indicator snapshot for the window
        volume: Tape volume snapshot
        dom: Order-book snapshot
        structure: Structure snapshot
        patterns: Names of candlestick patterns on the last bar

    Returns:
        TriggerVerdict. `direction` is the side with the higher
        accumulator if that accumulator is at least 2, else None.
        `strength` buckets the combined total: < 4 weak, < 7 moderate,
        otherwise strong.
    """
    t = DEFAULT_THRESHOLDS
    triggers: List[Trigger] = []

    def fire(kind: str, polarity: str, weight: int, detail: str = "") -> None:
        triggers.append(Trigger(kind=kind, polarity=polarity, weight=weight, detail=detail))

    if volume.volume_spike:
        if "buying" in volume.volume_pressure:
            fire("volume_spike", "bullish", 2, volume.volume_pressure)
        elif "selling" in volume.volume_pressure:
            fire("volume_spike", "bearish", 2, volume.volume_pressure)
        else:
            fire("volume_spike", "neutral", 0, volume.volume_pressure)

    if abs(dom.pressure_score) > DOM_IMBALANCE_THRESHOLD:
        fire("dom_imbalance", "bullish" if dom.pressure_score > 0 else "bearish", 2, f"pressure {dom.pressure_score:g}")

    if indicators.macd.crossover:
        fire("macd_crossover", indicators.macd.crossover, 2)

    rsi = indicators.rsi.value
    if rsi <= t.rsi_oversold:
        fire("rsi_extreme", "bullish", 2 if rsi <= t.rsi_extreme_oversold else 1, f"RSI {rsi:g}")
    elif rsi >= t.rsi_overbought:
        fire("rsi_extreme", "bearish", 2 if rsi >= t.rsi_extreme_overbought else 1, f"RSI {rsi:g}")

    # Score credited to the minority side of a mixed pattern window
    cross_credit = {"bullish": 0, "bearish": 0}
    strong = sorted({canonical_pattern(p) for p in patterns} & STRONG_PATTERNS)
    if strong:
        bullish = [p for p in strong if p in _BULLISH_PATTERNS]
        bearish = [p for p in strong if p not in _BULLISH_PATTERNS]
        polarity = "bearish" if len(bearish) > len(bullish) else "bullish"
        fire("strong_pattern", polarity, 2, ", ".join(strong))
        if bullish and bearish:
            cross_credit["bearish" if polarity == "bullish" else "bullish"] += 2

    if structure.bos:
        fire("bos", structure.bos, 2)
    if structure.choch:
        fire("choch", structure.choch, 3)

    if abs(indicators.trend_score) > STRONG_TREND_THRESHOLD:
        fire("strong_trend", "bullish" if indicators.trend_score > 0 else "bearish", 2, f"trend {indicators.trend_score}")

    if indicators.bollinger.position == "above_upper":
        fire("bb_breakout", "bullish", 1)
    elif indicators.bollinger.position == "below_lower":
        fire("bb_breakout", "bearish", 1)

    if indicators.stoch_rsi.state == "oversold":
        fire("stoch_rsi_reversal", "bullish", 1)
    elif indicators.stoch_rsi.state == "overbought":
        fire("stoch_rsi_reversal", "bearish", 1)

    if indicators.adx.is_trending:
        fire("adx_trend", indicators.adx.direction, 1, f"ADX {indicators.adx.value:g}")

    bullish_score = sum(tr.weight for tr in triggers if tr.polarity == "bullish") + cross_credit["bullish"]
    bearish_score = sum(tr.weight for tr in triggers if tr.polarity == "bearish") + cross_credit["bearish"]

    direction = None
    if bullish_score > bearish_score and bullish_score >= MIN_DIRECTIONAL_SCORE:
        direction = "LONG"
    elif bearish_score > bullish_score and bearish_score >= MIN_DIRECTIONAL_SCORE:
        direction = "SHORT"

    total = bullish_score + bearish_score
    if total >= 7:
        strength = "strong"
    elif total >= 4:
        strength = "moderate"
    else:
        strength = "weak"

    verdict = TriggerVerdict(
        triggered=bool(triggers),
        triggers=triggers,
        direction=direction,
        strength=strength,
        bullish_score=bullish_score,
        bearish_score=bearish_score,
    )
    logger.debug(
        "Triggers %s: bull=%d bear=%d direction=%s strength=%s",
        verdict.kinds, bullish_score, bearish_score, direction, strength,
    )
    return verdict


class TriggerGate:
    """
    Thread-safe rate limiter for handing triggered setups downstream.

    Rejects with 'no_triggers', 'weak_signal' (weak strength with fewer
    than two triggers), 'cooldown_active' or 'hourly_limit_reached'.
    An allowed evaluation is recorded atomically with the check.
    """

    def __init__(self, config: TriggerGateConfig = DEFAULT_TRIGGER_GATE):
        self._config = config
        self._lock = threading.Lock()
        self._history: Deque[datetime] = deque()

    def should_evaluate(self, verdict: TriggerVerdict, now: Optional[datetime] = None) -> Tuple[bool, Optional[str]]:
        """
        Decide whether `verdict` may be evaluated now.

        Returns:
            (allowed, reason); reason is None when allowed
        """
        if not verdict.triggered:
            return False, "no_triggers"
        if verdict.strength == "weak" and len(verdict.triggers) < 2:
            return False, "weak_signal"

        now = now or datetime.now(timezone.utc)
        with self._lock:
            hour_ago = now - timedelta(hours=1)
            while self._history and self._history[0] <= hour_ago:
                self._history.popleft()

            if self._history and (now - self._history[-1]).total_seconds() < self._config.cooldown_seconds:
                return False, "cooldown_active"
            if len(self._history) >= self._config.max_per_hour:
                return False, "hourly_limit_reached"

            self._history.append(now)
        return True, None

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
