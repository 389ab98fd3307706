from __future__ import annotations

import logging
from typing import Sequence, Union

import pandas as pd

from signal_core.indicators.trend import compute_ema
from signal_core.shared.models.market import Candle, MacroTrend, candles_to_frame

logger = logging.getLogger(__name__)

MIN_HOURLY_CANDLES = 21
MIN_FOUR_HOUR_CANDLES = 2
EMA_PERIOD = 21

STRONG_MOVE_1H = 1.5
MODERATE_MOVE_1H = 0.5
STRONG_MOVE_4H = 3.0

STRONG_BEARISH_LONG_PENALTY = 0.12
MODERATE_BEARISH_LONG_PENALTY = 0.06
STRONG_BULLISH_SHORT_PENALTY = 0.10
MODERATE_BULLISH_SHORT_PENALTY = 0.05

CandleInput = Union[Sequence[Candle], pd.DataFrame]


def _as_frame(data: CandleInput) -> pd.DataFrame:
    return data if isinstance(data, pd.DataFrame) else candles_to_frame(data)


def _pct_change(current: float, prev: float) -> float:
    if prev is None or prev <= 0:
        return 0.0
    return (current - prev) / prev * 100.0


def _last_change(closes: pd.Series) -> float:
    if len(closes) < 2:
        return 0.0
    return _pct_change(float(closes.iloc[-1]), float(closes.iloc[-2]))


def analyze_macro_trend(candles_1h: CandleInput, candles_4h: CandleInput) -> MacroTrend:
    """
    Classify the higher-timeframe trend from the last 1h and 4h bars.

    Strong moves (1h beyond 1.5%, or 4h beyond 3% with 1h beyond 0.5% the
    same way) classify on their own. Moderate 1h moves beyond 0.5% need the
    hourly close on the matching side of EMA21. Bearish reads penalise
    LONG candidates, bullish reads penalise SHORT candidates.
    """
    df_1h = _as_frame(candles_1h)
    df_4h = _as_frame(candles_4h)

    if len(df_1h) < MIN_HOURLY_CANDLES or len(df_4h) < MIN_FOUR_HOUR_CANDLES:
        logger.debug("Macro trend: insufficient data (1h=%d, 4h=%d)", len(df_1h), len(df_4h))
        return MacroTrend(reason="insufficient_data")

    change_1h = _last_change(df_1h['close'])
    change_4h = _last_change(df_4h['close'])

    last_close = float(df_1h['close'].iloc[-1])
    ema21 = float(compute_ema(df_1h, EMA_PERIOD).iloc[-1])
    if last_close > ema21:
        ema21_position = "above"
    elif last_close < ema21:
        ema21_position = "below"
    else:
        ema21_position = "at"

    fields = dict(
        change_1h=round(change_1h, 3),
        change_4h=round(change_4h, 3),
        ema21_position=ema21_position,
    )

    if change_1h < -STRONG_MOVE_1H or (change_4h < -STRONG_MOVE_4H and change_1h < -MODERATE_MOVE_1H):
        return MacroTrend(
            trend="bearish", long_penalty=STRONG_BEARISH_LONG_PENALTY,
            reason="strong bearish move", **fields,
        )
    if change_1h < -MODERATE_MOVE_1H and ema21_position == "below":
        return MacroTrend(
            trend="bearish", long_penalty=MODERATE_BEARISH_LONG_PENALTY,
            reason="moderate bearish move below EMA21", **fields,
        )
    if change_1h > STRONG_MOVE_1H or (change_4h > STRONG_MOVE_4H and change_1h > MODERATE_MOVE_1H):
        return MacroTrend(
            trend="bullish", short_penalty=STRONG_BULLISH_SHORT_PENALTY,
            reason="strong bullish move", **fields,
        )
    if change_1h > MODERATE_MOVE_1H and ema21_position == "above":
        return MacroTrend(
            trend="bullish", short_penalty=MODERATE_BULLISH_SHORT_PENALTY,
            reason="moderate bullish move above EMA21", **fields,
        )

    return MacroTrend(reason="no directional pressure", **fields)
