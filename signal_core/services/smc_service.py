"""
SMC Service - market structure (smart money concepts) for one candle window.

Runs swing detection, trend classification, BOS/CHoCH, order blocks and
fair value gaps, then folds trend/BOS/CHoCH into the five-level
structure bias. Windows under the minimum size return a neutral
snapshot with `error` set instead of raising.
"""

import logging
from typing import Optional, Sequence, Union

import pandas as pd

from signal_core.shared.config.defaults import DEFAULT_STRUCTURE_PARAMS, StructureParams
from signal_core.shared.models.market import Candle, candles_to_frame
from signal_core.shared.models.structure import StructureBias, StructureSnapshot
from signal_core.strategy.smc.swing_structure import find_swings, determine_trend
from signal_core.strategy.smc.bos_choch import detect_bos, detect_choch
from signal_core.strategy.smc.order_blocks import find_order_blocks
from signal_core.strategy.smc.fvg import find_fvgs

logger = logging.getLogger(__name__)


def structure_bias(trend: str, bos: Optional[str], choch: Optional[str]) -> StructureBias:
    """
    Ordinal bias: +/-2 trend, +/-1 BOS, +/-2 CHoCH.

    Totals of 3 or more are strong, 1 or more are plain, 0 is neutral.
    """
    score = 0
    score += {'bullish': 2, 'bearish': -2}.get(trend, 0)
    score += {'bullish': 1, 'bearish': -1}.get(bos, 0)
    score += {'bullish': 2, 'bearish': -2}.get(choch, 0)

    if score >= 3:
        return 'strong_bullish'
    if score >= 1:
        return 'bullish'
    if score <= -3:
        return 'strong_bearish'
    if score <= -1:
        return 'bearish'
    return 'neutral'


class SMCService:
    """
    Detects market structure for a single window.

    Usage:
        service = SMCService()
        structure = service.analyze(candles)
    """

    def __init__(self, params: StructureParams = DEFAULT_STRUCTURE_PARAMS):
        self._params = params

    def analyze(self, data: Union[Sequence[Candle], pd.DataFrame]) -> StructureSnapshot:
        """
        Analyze market structure.

        Args:
            data: Candles (oldest first) or an OHLCV DataFrame

        Returns:
            StructureSnapshot; lists hold at most `params.keep_last` items
        """
        p = self._params
        df = data if isinstance(data, pd.DataFrame) else candles_to_frame(data)

        if len(df) < p.min_candles:
            logger.debug("Insufficient candles for structure: %d < %d", len(df), p.min_candles)
            return StructureSnapshot(error="insufficient_data")

        try:
            return self._analyze(df)
        except Exception as e:
            logger.warning("Structure analysis failed: %s", e)
            return StructureSnapshot(error=str(e) or e.__class__.__name__)

    def _analyze(self, df: pd.DataFrame) -> StructureSnapshot:
        p = self._params
        closes = df['close'].to_numpy(dtype=float)

        swing_highs, swing_lows = find_swings(df, window=p.swing_window)
        trend = determine_trend(swing_highs, swing_lows, lookback=p.trend_lookback)
        bos = detect_bos(closes, swing_highs, swing_lows, lookback=p.bos_lookback)
        choch = detect_choch(closes, swing_highs, swing_lows, trend)
        order_blocks = find_order_blocks(df, body_ratio=p.ob_body_ratio)
        fvgs = find_fvgs(df)
        bias = structure_bias(trend, bos, choch)

        logger.debug(
            "Structure: trend=%s bos=%s choch=%s bias=%s obs=%d fvgs=%d",
            trend, bos, choch, bias, len(order_blocks), len(fvgs),
        )

        keep = p.keep_last
        return StructureSnapshot(
            trend=trend,
            bos=bos,
            choch=choch,
            order_blocks=order_blocks[-keep:],
            fvgs=fvgs[-keep:],
            swing_highs=swing_highs[-keep:],
            swing_lows=swing_lows[-keep:],
            bias=bias,
        )


# Singleton
_smc_service: Optional[SMCService] = None


def get_smc_service() -> SMCService:
    """Get the shared SMCService, creating a default one on first use."""
    global _smc_service
    if _smc_service is None:
        _smc_service = SMCService()
    return _smc_service


def configure_smc_service(params: StructureParams = DEFAULT_STRUCTURE_PARAMS) -> SMCService:
    """Configure and return the shared SMCService."""
    global _smc_service
    _smc_service = SMCService(params=params)
    return _smc_service


def analyze_structure(data: Union[Sequence[Candle], pd.DataFrame]) -> StructureSnapshot:
    """Analyze structure with the shared service."""
    return get_smc_service().analyze(data)
