"""
Multi-timeframe alignment.

Buckets the trend score of each timeframe (above +30 bullish, below -30
bearish, otherwise neutral) and grades how many frames agree:

    perfect   every frame on the same side
    strong    all but one on the same side, none opposing
    partial   a strict majority on the same side
    conflict  anything else

Missing timeframes count as neutral.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Sequence, Union

import pandas as pd

from signal_core.services.indicator_service import IndicatorService, get_indicator_service
from signal_core.shared.config.defaults import DEFAULT_SNIPER_CONFIG, DEFAULT_THRESHOLDS
from signal_core.shared.models.market import Candle, MTFAlignment, TrendDirection

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAMES = DEFAULT_SNIPER_CONFIG.mtf_timeframes


def trend_from_score(score: float, threshold: float = DEFAULT_THRESHOLDS.trend_factor) -> TrendDirection:
    if score > threshold:
        return "bullish"
    if score < -threshold:
        return "bearish"
    return "neutral"


def compute_alignment(
    trend_by_timeframe: Mapping[str, float],
    timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
) -> MTFAlignment:
    """
    Grade agreement across `timeframes` from per-frame trend scores.

    Args:
        trend_by_timeframe: Trend score (-100..100) per timeframe
        timeframes: Frames to consider; absent ones read as neutral

    Returns:
        MTFAlignment with the dominant direction (neutral on conflict)
    """
    trends: Dict[str, TrendDirection] = {}
    for tf in timeframes:
        score = trend_by_timeframe.get(tf)
        trends[tf] = trend_from_score(score) if score is not None else "neutral"

    total = len(timeframes)
    bullish = sum(1 for t in trends.values() if t == "bullish")
    bearish = sum(1 for t in trends.values() if t == "bearish")

    if bullish > bearish:
        direction, agree, oppose = "bullish", bullish, bearish
    elif bearish > bullish:
        direction, agree, oppose = "bearish", bearish, bullish
    else:
        return MTFAlignment(alignment="conflict", direction="neutral", timeframe_trends=trends)

    if agree == total:
        alignment = "perfect"
    elif agree == total - 1 and oppose == 0:
        alignment = "strong"
    elif agree * 2 > total:
        alignment = "partial"
    else:
        return MTFAlignment(alignment="conflict", direction="neutral", timeframe_trends=trends)

    return MTFAlignment(alignment=alignment, direction=direction, timeframe_trends=trends)


def analyze_alignment(
    candles_by_timeframe: Mapping[str, Union[Sequence[Candle], pd.DataFrame]],
    timeframes: Sequence[str] = DEFAULT_TIMEFRAMES,
    service: Optional[IndicatorService] = None,
) -> MTFAlignment:
    """Run the indicator engine on each timeframe and grade the alignment."""
    service = service or get_indicator_service()
    scores: Dict[str, float] = {}
    for tf in timeframes:
        data = candles_by_timeframe.get(tf)
        if data is None:
            continue
        result = service.analyze(data)
        if not result.ok:
            logger.debug("MTF alignment: %s skipped (%s)", tf, result.error)
            continue
        scores[tf] = result.snapshot.trend_score
    return compute_alignment(scores, timeframes)
