"""
Standard Signal Generator

Sequences the analysis stages into an accept/reject decision:

    START -> INDICATORS -> STRUCTURE -> CONFLUENCE -> TRIGGERS -> LEVELS
          -> CONFIDENCE -> VALIDATE -> EMIT | REJECTED

Every rejection returns a SignalResult carrying the reason, the stage it
stopped at and every snapshot computed up to that point. Nothing here
raises to the caller for data problems.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from signal_core.engine.context import CandleInput, SignalRequest, as_frame, utcnow
from signal_core.engine.id_sequence import SignalIdSequence, get_signal_id_sequence
from signal_core.indicators.patterns import detect_patterns
from signal_core.risk.risk_manager import (
    assess_risk,
    calculate_risk_reward,
    dynamic_risk_pct,
    validate_signal_risk,
)
from signal_core.services.indicator_service import IndicatorService, get_indicator_service
from signal_core.services.smc_service import SMCService, get_smc_service
from signal_core.shared.config.defaults import DEFAULT_SIGNAL_CONFIG, SignalConfig
from signal_core.shared.models.market import DOMData, Direction, VolumeData
from signal_core.shared.models.scoring import ConfluenceVerdict, TriggerVerdict
from signal_core.shared.models.signal import Signal, SignalResult, TrailingStopConfig
from signal_core.shared.utils.error_policy import (
    InsufficientDataError,
    SignalGeometryError,
    enforce_signal_geometry,
)
from signal_core.shared.utils.logging_utils import (
    TimingContext,
    format_signal_summary,
    log_pipeline_stage,
    log_rejection,
)
from signal_core.strategy.confidence.scorer import score_confidence
from signal_core.strategy.confluence.checker import check_confluence
from signal_core.strategy.triggers.trigger_system import detect_triggers

Clock = Callable[[], datetime]


def round_price(price: float) -> float:
    """Round by magnitude: 2 decimals from 100, 4 from 1, else 8."""
    magnitude = abs(price)
    if magnitude >= 100:
        return round(price, 2)
    if magnitude >= 1:
        return round(price, 4)
    return round(price, 8)


def compute_levels(
    direction: Direction,
    entry: float,
    atr_value: float,
    volatility: str,
    config: SignalConfig = DEFAULT_SIGNAL_CONFIG,
) -> Tuple[float, Tuple[float, ...], float]:
    """
    Build stop and targets around entry.

    Stop distance is min(atr_stop_multiplier x ATR, entry x stop percent
    for the volatility bucket); targets sit at `tp_multiples` x that
    distance on the profit side.

    Returns:
        (stop_loss, take_profits, blended risk:reward)
    """
    sign = 1 if direction == "LONG" else -1
    distance = min(atr_value * config.atr_stop_multiplier, entry * config.stop_pct(volatility))

    stop_loss = entry - sign * distance
    take_profits = tuple(entry + sign * distance * multiple for multiple in config.tp_multiples)
    rr = calculate_risk_reward(entry, stop_loss, list(zip(take_profits, config.tp_weights)))
    return stop_loss, take_profits, rr


class SignalGenerator:
    """
    Standard-mode pipeline.

    Holds only immutable collaborators plus the shared id sequence, so a
    single instance can serve concurrent runs for different symbols.

    Usage:
        generator = SignalGenerator()
        result = generator.generate(SignalRequest(candles=candles, symbol="BTC/USDT"))
        if result.accepted:
            print(result.signal.to_dict())
    """

    def __init__(
        self,
        config: SignalConfig = DEFAULT_SIGNAL_CONFIG,
        indicator_service: Optional[IndicatorService] = None,
        smc_service: Optional[SMCService] = None,
        id_sequence: Optional[SignalIdSequence] = None,
        clock: Clock = utcnow,
    ):
        self.config = config
        self.indicator_service = indicator_service or get_indicator_service()
        self.smc_service = smc_service or get_smc_service()
        self.id_sequence = id_sequence or get_signal_id_sequence()
        self.clock = clock

    def generate(self, request: SignalRequest) -> SignalResult:
        """Run the pipeline for one candle window."""
        result = SignalResult()
        with TimingContext("signal_generation", request.symbol):
            try:
                return self._generate(request, result)
            except InsufficientDataError as e:
                return self._reject(result, request.symbol, result.stage, str(e))

    def _generate(self, request: SignalRequest, result: SignalResult) -> SignalResult:
        cfg = self.config
        symbol = request.symbol
        df = as_frame(request.candles)

        # START
        if len(df) < cfg.min_candles:
            raise InsufficientDataError(cfg.min_candles, len(df))

        # INDICATORS
        result.stage = "INDICATORS"
        log_pipeline_stage("INDICATORS", symbol)
        indicator_result = self.indicator_service.analyze(df)
        result.indicators = indicator_result.snapshot
        if not indicator_result.ok:
            return self._reject(result, symbol, "INDICATORS", f"Technical analysis error: {indicator_result.error}")
        indicators = indicator_result.snapshot

        # STRUCTURE
        result.stage = "STRUCTURE"
        structure = self.smc_service.analyze(df)
        result.structure = structure
        log_pipeline_stage("STRUCTURE", symbol, "COMPLETE", {"trend": structure.trend, "bias": structure.bias})

        volume = request.volume or VolumeData()
        dom = request.dom or DOMData()
        if request.patterns is None:
            patterns = [match.name for match in detect_patterns(df)]
        else:
            patterns = list(request.patterns)

        # CONFLUENCE (triggers are still computed on failure for diagnostics)
        result.stage = "CONFLUENCE"
        confluence = check_confluence(request.confluence_mode, indicators, volume, dom, structure)
        result.confluence = confluence
        triggers = detect_triggers(indicators, volume, dom, structure, patterns)
        result.triggers = triggers

        if not confluence.passed:
            detail = ", ".join(confluence.mismatched_factors) or "not enough matching factors"
            return self._reject(result, symbol, "CONFLUENCE", f"Confluence failed: {detail}", {
                "score": confluence.score,
                "matched": confluence.matched_factors,
            })

        # TRIGGERS
        result.stage = "TRIGGERS"
        if not triggers.triggered:
            return self._reject(result, symbol, "TRIGGERS", "No active triggers")
        if confluence.direction is None:
            return self._reject(result, symbol, "TRIGGERS", "Direction undefined")
        if triggers.direction is not None and triggers.direction != confluence.direction:
            return self._reject(result, symbol, "TRIGGERS", "Trigger direction conflicts with confluence", {
                "confluence": confluence.direction,
                "triggers": triggers.direction,
            })
        direction = confluence.direction

        # LEVELS
        result.stage = "LEVELS"
        entry = float(df['close'].iloc[-1])
        assessment = assess_risk(indicators)
        result.risk = assessment
        stop_loss, take_profits, rr = compute_levels(
            direction, entry, indicators.atr.value, indicators.atr.volatility, cfg
        )

        # CONFIDENCE
        result.stage = "CONFIDENCE"
        base = self.base_confidence(confluence, triggers)
        scored = score_confidence(base, direction, indicators, structure, confluence, rr)
        result.confidence = scored
        result.risk = replace(assessment, risk_per_trade=dynamic_risk_pct(scored.confidence))
        if scored.confidence < cfg.min_confidence:
            return self._reject(
                result, symbol, "CONFIDENCE",
                f"Confidence {scored.confidence:.3f} below threshold {cfg.min_confidence:g}",
                {"base": base, "adjustments": len(scored.adjustments)},
            )

        # VALIDATE
        result.stage = "VALIDATE"
        leverage = request.leverage or assessment.recommended_leverage
        validation = validate_signal_risk(entry, stop_loss, take_profits, leverage, assessment, direction)
        for warning in validation.warnings:
            logger.debug(f"⚠️ {symbol}: {warning}")
        if not validation.valid:
            return self._reject(result, symbol, "VALIDATE", f"Risk validation failed: {', '.join(validation.errors)}")

        rounded_entry = round_price(entry)
        rounded_stop = round_price(stop_loss)
        rounded_tps = tuple(round_price(tp) for tp in take_profits)
        try:
            enforce_signal_geometry(direction, rounded_entry, rounded_stop, rounded_tps)
        except SignalGeometryError as e:
            return self._reject(result, symbol, "VALIDATE", f"Risk validation failed: {e}")

        # EMIT
        result.stage = "EMIT"
        now = self.clock()
        signal = Signal(
            id=self.id_sequence.next_id(now),
            timestamp=now,
            symbol=symbol,
            exchange=request.exchange or cfg.default_exchange,
            direction=direction,
            entry_price=rounded_entry,
            stop_loss=rounded_stop,
            take_profit=rounded_tps,
            risk_reward=rr,
            confidence=scored.confidence,
            timeframe=request.timeframe or cfg.default_timeframe,
            triggers=tuple(triggers.kinds),
            expiry=now + timedelta(minutes=cfg.expiry_minutes),
            trailing_stop=TrailingStopConfig(
                initial_stop=rounded_stop,
                trail_step_pct=cfg.trail_step_pct,
                activation_profit_pct=cfg.activation_profit_pct,
            ),
            leverage=leverage,
            mode="standard",
        )
        result.signal = signal
        result.reason = (
            f"Signal {direction}: confluence {confluence.score:g}/5, "
            f"triggers: {', '.join(signal.triggers)}, confidence {scored.confidence:.2f}"
        )
        logger.info(f"✅ {symbol}: Signal generated ({scored.confidence:.2f}) - {direction} @ {leverage}x")
        logger.debug("\n" + format_signal_summary(signal))
        return result

    def base_confidence(self, confluence: ConfluenceVerdict, triggers: TriggerVerdict) -> float:
        cfg = self.config
        bonus = 0.0
        if triggers.strength == "strong":
            bonus = cfg.strength_bonus_strong
        elif triggers.strength == "moderate":
            bonus = cfg.strength_bonus_moderate
        return cfg.base_confidence + confluence.score * cfg.confluence_score_factor + bonus

    @staticmethod
    def _reject(
        result: SignalResult,
        symbol: str,
        stage: str,
        reason: str,
        diagnostics: Optional[Dict[str, Any]] = None,
    ) -> SignalResult:
        result.stage = stage
        result.reason = reason
        log_pipeline_stage(stage, symbol, "FAILED", {"reason": reason})
        log_rejection(symbol, stage, reason, diagnostics, level="DEBUG")
        return result


# Singleton
_signal_generator: Optional[SignalGenerator] = None


def get_signal_generator() -> SignalGenerator:
    """Get the shared SignalGenerator, creating a default one on first use."""
    global _signal_generator
    if _signal_generator is None:
        _signal_generator = SignalGenerator()
    return _signal_generator


def configure_signal_generator(**kwargs) -> SignalGenerator:
    """Configure and return the shared SignalGenerator."""
    global _signal_generator
    _signal_generator = SignalGenerator(**kwargs)
    return _signal_generator


def generate_signal(candles: CandleInput, symbol: str, **kwargs) -> SignalResult:
    """Run the standard pipeline with the shared generator."""
    return get_signal_generator().generate(SignalRequest(candles=candles, symbol=symbol, **kwargs))


def quick_analyze(candles: CandleInput) -> Dict[str, Any]:
    """
    Ungated read of a candle window.

    Uses neutral tape/order-book inputs and relaxed confluence. Returns a
    compact dict: direction, confidence, trend_score, momentum_score, rsi,
    macd_direction, structure_bias, bias and triggers.
    """
    df = as_frame(candles)
    indicator_result = get_indicator_service().analyze(df)
    if not indicator_result.ok:
        return {
            "direction": None,
            "confidence": 0.0,
            "trend_score": 0,
            "momentum_score": 0.0,
            "rsi": 50.0,
            "macd_direction": "neutral",
            "structure_bias": "neutral",
            "bias": "neutral",
            "triggers": [],
            "error": indicator_result.error,
        }

    indicators = indicator_result.snapshot
    structure = get_smc_service().analyze(df)
    volume, dom = VolumeData(), DOMData()
    triggers = detect_triggers(indicators, volume, dom, structure)
    confluence = check_confluence("relaxed", indicators, volume, dom, structure)

    combined = indicators.trend_score + indicators.momentum_score / 2
    if combined > 30:
        bias = "bullish"
    elif combined < -30:
        bias = "bearish"
    else:
        bias = "neutral"

    return {
        "direction": confluence.direction,
        "confidence": round(0.6 + confluence.score * 0.08, 3) if confluence.passed else 0.0,
        "trend_score": indicators.trend_score,
        "momentum_score": indicators.momentum_score,
        "rsi": indicators.rsi.value,
        "macd_direction": indicators.macd.direction,
        "structure_bias": structure.bias,
        "bias": bias,
        "triggers": list(triggers.kinds),
        "error": None,
    }
