"""
Sniper Orchestrator - fail-fast five-level pipeline.

Levels run in order and the first failure ends the run:

    1. Sniper confluence plus a BOS/CHoCH confirming the direction, with
       no trigger verdict pointing the other way
    2. Macro trend must not contradict the direction
    3. Sniper risk:reward of at least `min_risk_reward`
    4. Perfect multi-timeframe alignment in the same direction
    5. Retail sentiment must not be crowded on the same side

Levels 2 and 5 await external providers (macro and MTF are fetched
together at level 2; level 4 reads the MTF result). A provider that is
missing, returns None, raises or times out is recorded in
`skipped_checks` and its check passes through.
"""

import asyncio
import inspect
from dataclasses import replace
from datetime import timedelta
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from signal_core.analysis.macro_trend import analyze_macro_trend
from signal_core.analysis.mtf_alignment import analyze_alignment
from signal_core.engine.context import (
    CandleInput,
    Provider,
    SniperContext,
    SniperRequest,
    as_frame,
    utcnow,
)
from signal_core.engine.id_sequence import SignalIdSequence, get_signal_id_sequence
from signal_core.engine.signal_generator import (
    Clock,
    compute_levels,
    round_price,
)
from signal_core.indicators.patterns import detect_patterns
from signal_core.risk.risk_manager import assess_risk, dynamic_risk_pct, validate_signal_risk
from signal_core.services.indicator_service import IndicatorService, get_indicator_service
from signal_core.services.smc_service import SMCService, get_smc_service
from signal_core.shared.config.defaults import DEFAULT_SNIPER_CONFIG, SniperConfig
from signal_core.shared.models.market import (
    DOMData,
    MacroTrend,
    MTFAlignment,
    VolumeData,
    direction_to_trend,
)
from signal_core.shared.models.signal import Signal, SignalResult, TrailingStopConfig
from signal_core.shared.utils.error_policy import (
    ExternalDataUnavailable,
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
from signal_core.strategy.confluence.checker import check_sniper_confluence
from signal_core.strategy.triggers.trigger_system import detect_triggers

LevelStep = Callable[[SniperContext], Union[Optional[str], Awaitable[Optional[str]]]]


class SniperOrchestrator:
    """
    Sniper-mode pipeline.

    Usage:
        orchestrator = SniperOrchestrator()
        result = asyncio.run(orchestrator.run(SniperRequest(candles=candles, symbol="ETH/USDT")))
    """

    def __init__(
        self,
        config: SniperConfig = DEFAULT_SNIPER_CONFIG,
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

        self.levels: List[Tuple[int, str, LevelStep]] = [
            (1, "LEVEL_1_CONFLUENCE", self._level_confluence),
            (2, "LEVEL_2_MACRO", self._level_macro),
            (3, "LEVEL_3_RISK_REWARD", self._level_risk_reward),
            (4, "LEVEL_4_MTF", self._level_mtf),
            (5, "LEVEL_5_SENTIMENT", self._level_sentiment),
        ]

    async def run(self, request: SniperRequest) -> SignalResult:
        """Run the fail-fast pipeline for one candle window."""
        result = SignalResult(level=0)
        with TimingContext("sniper_pipeline", request.symbol):
            try:
                return await self._run(request, result)
            except InsufficientDataError as e:
                return self._reject(result, request.symbol, result.stage, str(e))

    async def _run(self, request: SniperRequest, result: SignalResult) -> SignalResult:
        cfg = self.config
        symbol = request.symbol
        df = as_frame(request.candles)

        if len(df) < cfg.min_candles:
            raise InsufficientDataError(cfg.min_candles, len(df))

        result.stage = "INDICATORS"
        indicator_result = self.indicator_service.analyze(df)
        result.indicators = indicator_result.snapshot
        if not indicator_result.ok:
            return self._reject(result, symbol, "INDICATORS", f"Technical analysis error: {indicator_result.error}")

        result.stage = "STRUCTURE"
        result.structure = self.smc_service.analyze(df)

        ctx = SniperContext(
            request=request,
            result=result,
            volume=request.volume or VolumeData(),
            dom=request.dom or DOMData(),
        )
        ctx.entry = float(df['close'].iloc[-1])

        if request.patterns is None:
            patterns = [match.name for match in detect_patterns(df)]
        else:
            patterns = list(request.patterns)
        result.triggers = detect_triggers(result.indicators, ctx.volume, ctx.dom, result.structure, patterns)

        for level, stage, step in self.levels:
            result.stage = stage
            result.level = level
            log_pipeline_stage(stage, symbol)
            outcome = step(ctx)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            if outcome is not None:
                return self._reject(result, symbol, stage, f"Level {level}: {outcome}")
            log_pipeline_stage(stage, symbol, "COMPLETE")

        return self._finalize(ctx)

    # Level 1
    def _level_confluence(self, ctx: SniperContext) -> Optional[str]:
        result = ctx.result
        confluence = check_sniper_confluence(
            result.indicators, ctx.volume, ctx.dom, result.structure,
            require_tape_confirmation=self.config.require_tape_confirmation,
        )
        result.confluence = confluence
        if not confluence.passed or confluence.direction is None:
            return f"sniper confluence failed: {confluence.reason}"

        wanted = direction_to_trend(confluence.direction)
        structure = result.structure
        if structure.bos != wanted and structure.choch != wanted:
            return f"no {wanted} BOS/CHoCH confirming {confluence.direction}"

        triggers = result.triggers
        if triggers is not None and triggers.direction is not None and triggers.direction != confluence.direction:
            return f"trigger direction {triggers.direction} opposes confluence {confluence.direction}"

        ctx.direction = confluence.direction
        return None

    # Level 2
    async def _level_macro(self, ctx: SniperContext) -> Optional[str]:
        request = ctx.request
        macro, mtf = await asyncio.gather(
            self._fetch("macro_trend", request.macro_provider, request.symbol),
            self._fetch("mtf_alignment", request.mtf_provider, request.symbol),
            return_exceptions=True,
        )

        for outcome in (macro, mtf):
            if isinstance(outcome, ExternalDataUnavailable):
                self._skip(ctx, outcome)
            elif isinstance(outcome, BaseException):
                raise outcome

        if not isinstance(mtf, BaseException):
            ctx.mtf = mtf
        if isinstance(macro, BaseException):
            return None

        ctx.macro = macro
        if macro.contradicts(ctx.direction):
            return f"macro trend {macro.trend} contradicts {ctx.direction} ({macro.reason})"
        return None

    # Level 3
    def _level_risk_reward(self, ctx: SniperContext) -> Optional[str]:
        cfg = self.config
        atr = ctx.result.indicators.atr
        if not atr.value > 0:
            return "ATR unavailable, cannot size stop"

        ctx.stop_loss, ctx.take_profits, ctx.risk_reward = compute_levels(
            ctx.direction, ctx.entry, atr.value, atr.volatility, cfg
        )
        if ctx.risk_reward < cfg.min_risk_reward:
            return f"R:R {ctx.risk_reward:.2f} below minimum {cfg.min_risk_reward:g}"
        return None

    # Level 4
    def _level_mtf(self, ctx: SniperContext) -> Optional[str]:
        mtf = ctx.mtf
        if mtf is None:
            return None
        wanted = direction_to_trend(ctx.direction)
        if not mtf.is_perfect:
            return f"MTF alignment {mtf.alignment}, perfect required"
        if mtf.direction != wanted:
            return f"MTF direction {mtf.direction} does not match {ctx.direction}"
        return None

    # Level 5
    async def _level_sentiment(self, ctx: SniperContext) -> Optional[str]:
        cfg = self.config
        request = ctx.request
        try:
            sentiment = await self._fetch("sentiment", request.sentiment_provider, request.symbol)
        except ExternalDataUnavailable as e:
            self._skip(ctx, e)
            return None

        ctx.sentiment = sentiment
        ratio = sentiment.long_short_ratio
        if ctx.direction == "LONG" and ratio > cfg.max_long_short_ratio:
            return f"long/short ratio {ratio:.2f} above {cfg.max_long_short_ratio:g} (crowded longs)"
        if ctx.direction == "SHORT" and ratio < cfg.min_long_short_ratio:
            return f"long/short ratio {ratio:.2f} below {cfg.min_long_short_ratio:g} (crowded shorts)"
        return None

    def _finalize(self, ctx: SniperContext) -> SignalResult:
        cfg = self.config
        result = ctx.result
        symbol = ctx.request.symbol
        direction = ctx.direction
        indicators = result.indicators
        confluence = result.confluence

        result.stage = "CONFIDENCE"
        assessment = assess_risk(indicators)
        base = cfg.base_confidence + confluence.score * cfg.confluence_score_factor
        scored = score_confidence(base, direction, indicators, result.structure, confluence, ctx.risk_reward)
        result.confidence = scored
        result.risk = assessment
        if scored.confidence < cfg.min_confidence:
            return self._reject(
                result, symbol, "CONFIDENCE",
                f"Confidence {scored.confidence:.3f} below threshold {cfg.min_confidence:g}",
            )
        result.risk = replace(assessment, risk_per_trade=dynamic_risk_pct(scored.confidence))

        result.stage = "VALIDATE"
        leverage = ctx.request.leverage or assessment.recommended_leverage
        validation = validate_signal_risk(ctx.entry, ctx.stop_loss, ctx.take_profits, leverage, assessment, direction)
        if not validation.valid:
            return self._reject(result, symbol, "VALIDATE", f"Risk validation failed: {', '.join(validation.errors)}")

        entry = round_price(ctx.entry)
        stop_loss = round_price(ctx.stop_loss)
        take_profits = tuple(round_price(tp) for tp in ctx.take_profits)
        try:
            enforce_signal_geometry(direction, entry, stop_loss, take_profits)
        except SignalGeometryError as e:
            return self._reject(result, symbol, "VALIDATE", f"Risk validation failed: {e}")

        result.stage = "EMIT"
        now = self.clock()
        signal = Signal(
            id=self.id_sequence.next_id(now),
            timestamp=now,
            symbol=symbol,
            exchange=ctx.request.exchange or cfg.default_exchange,
            direction=direction,
            entry_price=entry,
            stop_loss=stop_loss,
            take_profit=take_profits,
            risk_reward=ctx.risk_reward,
            confidence=scored.confidence,
            timeframe=ctx.request.timeframe or cfg.default_timeframe,
            triggers=tuple(result.triggers.kinds),
            expiry=now + timedelta(minutes=cfg.expiry_minutes),
            trailing_stop=TrailingStopConfig(
                initial_stop=stop_loss,
                trail_step_pct=cfg.trail_step_pct,
                activation_profit_pct=cfg.activation_profit_pct,
            ),
            leverage=leverage,
            mode="sniper",
        )
        result.signal = signal
        skipped = f", skipped: {', '.join(result.skipped_checks)}" if result.skipped_checks else ""
        result.reason = f"Sniper {direction}: all 5 levels passed, confidence {scored.confidence:.2f}{skipped}"
        logger.info(f"🎯 {symbol}: Sniper signal generated ({scored.confidence:.2f}) - {direction}{skipped}")
        logger.debug("\n" + format_signal_summary(signal))
        return result

    async def _fetch(self, source: str, provider: Optional[Provider], symbol: str):
        """
        Await a provider with the configured timeout.

        Raises:
            ExternalDataUnavailable: If the provider is missing, returns
                None, raises or times out
        """
        if provider is None:
            raise ExternalDataUnavailable(source, "no provider")
        try:
            value = await asyncio.wait_for(provider(symbol), timeout=self.config.provider_timeout_sec)
        except asyncio.TimeoutError as e:
            raise ExternalDataUnavailable(source, f"timed out after {self.config.provider_timeout_sec:g}s") from e
        except Exception as e:
            raise ExternalDataUnavailable(source, str(e) or e.__class__.__name__) from e
        if value is None:
            raise ExternalDataUnavailable(source, "no data")
        return value

    @staticmethod
    def _skip(ctx: SniperContext, error: ExternalDataUnavailable) -> None:
        ctx.result.skipped_checks.append(error.source)
        logger.warning(f"⚠️ {ctx.request.symbol}: {error} - check passes through")

    @staticmethod
    def _reject(result: SignalResult, symbol: str, stage: str, reason: str) -> SignalResult:
        result.stage = stage
        result.reason = reason
        log_pipeline_stage(stage, symbol, "FAILED", {"reason": reason})
        log_rejection(symbol, stage, reason, {"level": result.level}, level="DEBUG")
        return result


def macro_provider_from_candles(candles_1h: CandleInput, candles_4h: CandleInput) -> Provider[MacroTrend]:
    """Provider that classifies the macro trend from candles already in hand."""
    async def provider(symbol: str) -> Optional[MacroTrend]:
        macro = analyze_macro_trend(candles_1h, candles_4h)
        return None if macro.reason == "insufficient_data" else macro
    return provider


def mtf_provider_from_candles(
    candles_by_timeframe: Mapping[str, CandleInput],
    timeframes: Sequence[str] = DEFAULT_SNIPER_CONFIG.mtf_timeframes,
) -> Provider[MTFAlignment]:
    """Provider that grades alignment from candles already in hand."""
    async def provider(symbol: str) -> Optional[MTFAlignment]:
        return analyze_alignment(candles_by_timeframe, timeframes)
    return provider


# Singleton
_sniper_orchestrator: Optional[SniperOrchestrator] = None


def get_sniper_orchestrator() -> SniperOrchestrator:
    """Get the shared SniperOrchestrator, creating a default one on first use."""
    global _sniper_orchestrator
    if _sniper_orchestrator is None:
        _sniper_orchestrator = SniperOrchestrator()
    return _sniper_orchestrator


async def run_sniper(candles: CandleInput, symbol: str, **kwargs) -> SignalResult:
    """Run the sniper pipeline with the shared orchestrator."""
    return await get_sniper_orchestrator().run(SniperRequest(candles=candles, symbol=symbol, **kwargs))
