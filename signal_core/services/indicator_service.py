"""
Indicator Service - builds the IndicatorSnapshot for one candle window.

Runs every indicator with its fixed parameters, classifies each reading
into its state bucket, and derives the composite trend and momentum
scores. Never raises: short windows and computation faults come back as
an IndicatorResult with `error` set and a zero-valued snapshot.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence, Union

import pandas as pd

from signal_core.shared.config.defaults import (
    DEFAULT_INDICATOR_PARAMS,
    DEFAULT_THRESHOLDS,
    IndicatorParams,
    IndicatorThresholds,
)
from signal_core.shared.models.market import Candle, candles_to_frame
from signal_core.shared.models.indicators import (
    ADXReading,
    ATRReading,
    BollingerReading,
    IndicatorResult,
    IndicatorSnapshot,
    MACDReading,
    OBVReading,
    OscillatorReading,
    RSIReading,
    StochRSIReading,
    SupertrendReading,
    VWAPReading,
)
from signal_core.indicators.trend import compute_adx, compute_ema, compute_sma, compute_supertrend
from signal_core.indicators.momentum import (
    compute_cci,
    compute_macd,
    compute_mfi,
    compute_rsi,
    compute_stoch_rsi,
    compute_williams_r,
)
from signal_core.indicators.volatility import bollinger_metrics, compute_atr, compute_bollinger_bands
from signal_core.indicators.volume import compute_obv, compute_vwap
from signal_core.indicators.validation_utils import finite_or, last_value, validate_ohlcv
from signal_core.shared.utils.error_policy import IndicatorComputationError

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "insufficient_data"


def _clamp(value: float, low: float = -100.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _oscillator_state(value: Optional[float], oversold, overbought, inclusive: bool = True) -> str:
    if value is None:
        return "neutral"
    if inclusive:
        if value <= oversold:
            return "oversold"
        if value >= overbought:
            return "overbought"
    else:
        if value < oversold:
            return "oversold"
        if value > overbought:
            return "overbought"
    return "neutral"


def compute_trend_score(snapshot: IndicatorSnapshot) -> int:
    """
    Signed vote of trend indicators, clamped to [-100, 100].

    +/-5 per EMA the price is above/below, +/-15 Supertrend,
    +/-10 ADX direction, +/-10 MACD direction, +/-5 VWAP position.
    """
    score = 0
    for position in snapshot.ema_position.values():
        score += 5 if position == "above" else -5

    votes = (
        (snapshot.supertrend.direction, 15),
        (snapshot.adx.direction, 10),
        (snapshot.macd.direction, 10),
    )
    for direction, weight in votes:
        if direction == "bullish":
            score += weight
        elif direction == "bearish":
            score -= weight

    if snapshot.vwap.position == "above":
        score += 5
    elif snapshot.vwap.position == "below":
        score -= 5

    return int(_clamp(score))


def compute_momentum_score(snapshot: IndicatorSnapshot) -> float:
    """
    RSI distance from 50 (x1.5) plus StochRSI, MACD crossover and CCI
    extremes; clamped to [-100, 100] and rounded to one decimal.
    """
    score = (snapshot.rsi.value - 50) * 1.5

    if snapshot.stoch_rsi.state == "overbought":
        score += 15
    elif snapshot.stoch_rsi.state == "oversold":
        score -= 15

    if snapshot.macd.crossover == "bullish":
        score += 20
    elif snapshot.macd.crossover == "bearish":
        score -= 20

    if snapshot.cci.state == "overbought":
        score += 10
    elif snapshot.cci.state == "oversold":
        score -= 10

    return _clamp(round(score, 1))


class IndicatorService:
    """
    Computes the full indicator snapshot for a single candle window.

    Holds only immutable parameters, so one instance can serve concurrent
    runs for different symbols.

    Usage:
        service = IndicatorService()
        result = service.analyze(candles)
        if result.ok:
            snapshot = result.snapshot
    """

    def __init__(
        self,
        params: IndicatorParams = DEFAULT_INDICATOR_PARAMS,
        thresholds: IndicatorThresholds = DEFAULT_THRESHOLDS,
    ):
        self._params = params
        self._thresholds = thresholds

    @property
    def params(self) -> IndicatorParams:
        return self._params

    @property
    def thresholds(self) -> IndicatorThresholds:
        return self._thresholds

    def analyze(self, data: Union[Sequence[Candle], pd.DataFrame]) -> IndicatorResult:
        """
        Compute indicators for a candle window.

        Args:
            data: Candles (oldest first) or an OHLCV DataFrame

        Returns:
            IndicatorResult; `error` is 'insufficient_data' when fewer than
            `params.min_candles` bars were supplied, or the failure message
            when an indicator could not be computed
        """
        df = data if isinstance(data, pd.DataFrame) else candles_to_frame(data)

        if len(df) < self._params.min_candles:
            logger.debug("Insufficient candles for indicators: %d < %d", len(df), self._params.min_candles)
            return IndicatorResult(error=INSUFFICIENT_DATA)

        try:
            snapshot = self.compute_snapshot(df)
        except Exception as e:
            logger.warning("Indicator computation failed: %s", e)
            return IndicatorResult(error=str(e) or e.__class__.__name__)

        return IndicatorResult(snapshot=snapshot)

    def compute_snapshot(self, df: pd.DataFrame) -> IndicatorSnapshot:
        """
        Compute every reading and the composite scores.

        Raises:
            DataValidationError: If the frame fails OHLCV validation
            IndicatorComputationError: If the last close is unusable
        """
        validate_ohlcv(df, min_rows=1)
        price = last_value(df['close'], default=float('nan'))
        if not price > 0:
            raise IndicatorComputationError(f"Unusable last close: {df['close'].iloc[-1]!r}")

        ema, ema_position = self._moving_averages(df, price)
        sma = {
            period: round(last_value(compute_sma(df, period)), 6)
            for period in self._params.sma_periods
            if len(df) >= period
        }

        snapshot = IndicatorSnapshot(
            price=price,
            ema=ema,
            ema_position=ema_position,
            sma=sma,
            supertrend=self._supertrend(df),
            adx=self._adx(df),
            rsi=self._rsi(df),
            macd=self._macd(df),
            stoch_rsi=self._stoch_rsi(df),
            cci=self._cci(df),
            williams_r=self._williams_r(df),
            mfi=self._mfi(df),
            bollinger=self._bollinger(df, price),
            atr=self._atr(df, price),
            vwap=self._vwap(df, price),
            obv=self._obv(df),
        )

        snapshot = replace(
            snapshot,
            trend_score=compute_trend_score(snapshot),
            momentum_score=compute_momentum_score(snapshot),
        )

        logger.debug(
            "Indicators: price=%.6g trend=%d momentum=%.1f RSI=%.1f ATR%%=%.3f ADX=%.1f(%s)",
            price, snapshot.trend_score, snapshot.momentum_score, snapshot.rsi.value,
            snapshot.atr.pct, snapshot.adx.value, snapshot.adx.strength,
        )
        return snapshot

    def _moving_averages(self, df: pd.DataFrame, price: float):
        ema, ema_position = {}, {}
        for period in self._params.ema_periods:
            if len(df) < period:
                continue
            value = last_value(compute_ema(df, period), default=price)
            ema[period] = round(value, 6)
            ema_position[period] = "above" if price > value else "below"
        return ema, ema_position

    def _supertrend(self, df: pd.DataFrame) -> SupertrendReading:
        p = self._params
        if len(df) < p.supertrend_period + 1:
            return SupertrendReading()
        line, direction = compute_supertrend(df, period=p.supertrend_period, multiplier=p.supertrend_multiplier)
        return SupertrendReading(
            direction="bullish" if direction.iloc[-1] > 0 else "bearish",
            value=round(last_value(line), 6),
        )

    def _adx(self, df: pd.DataFrame) -> ADXReading:
        p, t = self._params, self._thresholds
        if len(df) < p.adx_period * 2:
            return ADXReading()
        adx, plus_di, minus_di = compute_adx(df, period=p.adx_period)
        value = last_value(adx)
        pdi = last_value(plus_di)
        mdi = last_value(minus_di)

        if value < t.adx_moderate:
            strength = "weak"
        elif value < t.adx_strong:
            strength = "moderate"
        elif value < t.adx_extreme:
            strength = "strong"
        else:
            strength = "extreme"

        return ADXReading(
            value=round(value, 2),
            strength=strength,
            direction="bullish" if pdi > mdi else "bearish",
            plus_di=round(pdi, 2),
            minus_di=round(mdi, 2),
        )

    def _rsi(self, df: pd.DataFrame) -> RSIReading:
        p, t = self._params, self._thresholds
        if len(df) < p.rsi_period + 1:
            return RSIReading()
        rsi = compute_rsi(df, period=p.rsi_period, validate_input=False)
        value = last_value(rsi, default=50.0)
        previous = finite_or(rsi.iloc[-2], None) if len(rsi) > 1 else None
        return RSIReading(
            value=round(value, 2),
            state=_oscillator_state(value, t.rsi_oversold, t.rsi_overbought),
            previous=round(previous, 2) if previous is not None else None,
        )

    def _macd(self, df: pd.DataFrame) -> MACDReading:
        p = self._params
        if len(df) < max(p.macd_fast, p.macd_slow) + p.macd_signal + 1:
            return MACDReading()
        line, signal, histogram = compute_macd(df, fast=p.macd_fast, slow=p.macd_slow, signal=p.macd_signal)
        hist = last_value(histogram)
        prev_hist = last_value(histogram, offset=2)

        crossover = None
        if hist > 0 and prev_hist <= 0:
            crossover = "bullish"
        elif hist < 0 and prev_hist >= 0:
            crossover = "bearish"

        return MACDReading(
            line=round(last_value(line), 6),
            signal=round(last_value(signal), 6),
            histogram=round(hist, 6),
            direction="bullish" if hist > 0 else "bearish",
            crossover=crossover,
        )

    def _stoch_rsi(self, df: pd.DataFrame) -> StochRSIReading:
        p, t = self._params, self._thresholds
        if len(df) < p.stoch_rsi_period + p.stoch_period:
            return StochRSIReading()
        k_series, d_series = compute_stoch_rsi(
            df, rsi_period=p.stoch_rsi_period, stoch_period=p.stoch_period,
            k_smooth=p.stoch_k, d_smooth=p.stoch_d,
        )
        k = finite_or(k_series.iloc[-1], None)
        if k is None:
            return StochRSIReading()
        d = finite_or(d_series.iloc[-1], k)
        return StochRSIReading(
            k=round(k, 2),
            d=round(d, 2),
            state=_oscillator_state(k, t.stoch_oversold, t.stoch_overbought),
        )

    def _cci(self, df: pd.DataFrame) -> OscillatorReading:
        p, t = self._params, self._thresholds
        if len(df) < p.cci_period:
            return OscillatorReading()
        value = finite_or(compute_cci(df, period=p.cci_period).iloc[-1], None)
        if value is None:
            return OscillatorReading()
        return OscillatorReading(
            value=round(value, 2),
            state=_oscillator_state(value, t.cci_oversold, t.cci_overbought, inclusive=False),
        )

    def _williams_r(self, df: pd.DataFrame) -> OscillatorReading:
        p, t = self._params, self._thresholds
        if len(df) < p.williams_period:
            return OscillatorReading()
        value = finite_or(compute_williams_r(df, period=p.williams_period).iloc[-1], None)
        if value is None:
            return OscillatorReading()
        return OscillatorReading(
            value=round(value, 2),
            state=_oscillator_state(value, t.williams_oversold, t.williams_overbought, inclusive=False),
        )

    def _mfi(self, df: pd.DataFrame) -> OscillatorReading:
        p, t = self._params, self._thresholds
        if len(df) < p.mfi_period + 1:
            return OscillatorReading()
        value = finite_or(compute_mfi(df, period=p.mfi_period).iloc[-1], None)
        if value is None:
            return OscillatorReading()
        return OscillatorReading(
            value=round(value, 2),
            state=_oscillator_state(value, t.mfi_oversold, t.mfi_overbought),
        )

    def _bollinger(self, df: pd.DataFrame, price: float) -> BollingerReading:
        p = self._params
        if len(df) < p.bb_period:
            return BollingerReading()
        upper_s, middle_s, lower_s = compute_bollinger_bands(df, period=p.bb_period, std_dev=p.bb_std)
        upper, middle, lower = last_value(upper_s), last_value(middle_s), last_value(lower_s)
        bandwidth, percent_b = bollinger_metrics(price, upper, middle, lower)

        # Zero-width bands carry no positional information
        if upper <= lower:
            position = "unknown"
        elif price >= upper:
            position = "above_upper"
        elif price <= lower:
            position = "below_lower"
        elif price > middle:
            position = "upper_half"
        else:
            position = "lower_half"

        return BollingerReading(
            upper=round(upper, 6),
            middle=round(middle, 6),
            lower=round(lower, 6),
            bandwidth=round(bandwidth, 4),
            percent_b=round(percent_b, 4),
            position=position,
        )

    def _atr(self, df: pd.DataFrame, price: float) -> ATRReading:
        p, t = self._params, self._thresholds
        if len(df) < p.atr_period + 1:
            return ATRReading()
        value = last_value(compute_atr(df, period=p.atr_period, validate_input=False))
        pct = round(value / price * 100, 3) if price > 0 else 0.0

        if pct > t.atr_high_pct:
            volatility = "high"
        elif pct > t.atr_moderate_pct:
            volatility = "moderate"
        else:
            volatility = "low"

        return ATRReading(value=round(value, 6), pct=pct, volatility=volatility)

    def _vwap(self, df: pd.DataFrame, price: float) -> VWAPReading:
        if len(df) < self._params.vwap_min_candles:
            return VWAPReading()
        value = finite_or(compute_vwap(df).iloc[-1], None)
        if value is None:
            return VWAPReading()
        return VWAPReading(value=round(value, 6), position="above" if price > value else "below")

    def _obv(self, df: pd.DataFrame) -> OBVReading:
        lookback = self._params.obv_lookback
        if len(df) < max(10, lookback):
            return OBVReading()
        obv = compute_obv(df)
        current = last_value(obv)
        previous = last_value(obv, offset=lookback)
        if current > previous:
            trend = "rising"
        elif current < previous:
            trend = "falling"
        else:
            trend = "neutral"
        return OBVReading(value=round(current, 2), trend=trend)


# Singleton
_indicator_service: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get the shared IndicatorService, creating a default one on first use."""
    global _indicator_service
    if _indicator_service is None:
        _indicator_service = IndicatorService()
    return _indicator_service


def configure_indicator_service(
    params: IndicatorParams = DEFAULT_INDICATOR_PARAMS,
    thresholds: IndicatorThresholds = DEFAULT_THRESHOLDS,
) -> IndicatorService:
    """Configure and return the shared IndicatorService."""
    global _indicator_service
    _indicator_service = IndicatorService(params=params, thresholds=thresholds)
    return _indicator_service


def analyze_technical(data: Union[Sequence[Candle], pd.DataFrame]) -> IndicatorResult:
    """Compute indicators with the shared service."""
    return get_indicator_service().analyze(data)
