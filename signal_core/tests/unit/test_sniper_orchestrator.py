"""
Test suite for the sniper orchestrator.

Fail-fast level ordering, provider pass-through (missing, None, raising,
timing out) and the per-level rejection reasons.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from signal_core.engine import sniper_orchestrator
from signal_core.engine.context import SignalRequest, SniperRequest
from signal_core.engine.id_sequence import SignalIdSequence
from signal_core.engine.signal_generator import SignalGenerator
from signal_core.engine.sniper_orchestrator import (
    SniperOrchestrator,
    macro_provider_from_candles,
    mtf_provider_from_candles,
)
from signal_core.shared.config.defaults import SniperConfig
from signal_core.shared.models.market import DOMData, MacroTrend, MTFAlignment, SentimentData
from signal_core.shared.models.scoring import Trigger, TriggerVerdict
from signal_core.tests.fixtures.market_data import (
    bearish_book,
    bearish_tape,
    bullish_book,
    bullish_tape,
    confirmed_structure,
    generate_downtrend_candles,
    generate_uptrend_candles,
)


class FixedStructure:
    """SMC stand-in returning a confirmed break in one direction."""

    def __init__(self, direction="bullish"):
        self.direction = direction

    def analyze(self, data):
        return confirmed_structure(self.direction)


def recording(value, calls, name):
    async def provider(symbol):
        calls.append(name)
        return value
    return provider


def orchestrator(config=None, direction="bullish"):
    kwargs = dict(smc_service=FixedStructure(direction), id_sequence=SignalIdSequence())
    if config is not None:
        kwargs["config"] = config
    return SniperOrchestrator(**kwargs)


def long_request(**overrides):
    fields = dict(
        candles=generate_uptrend_candles(),
        symbol="BTC/USDT",
        volume=bullish_tape(),
        dom=bullish_book(),
    )
    fields.update(overrides)
    return SniperRequest(**fields)


def run(orch, request):
    return asyncio.run(orch.run(request))


class TestAccepted:

    def test_all_levels_pass_with_providers(self):
        calls = []
        result = run(orchestrator(), long_request(
            macro_provider=recording(MacroTrend(trend="bullish"), calls, "macro"),
            mtf_provider=recording(MTFAlignment(alignment="perfect", direction="bullish"), calls, "mtf"),
            sentiment_provider=recording(SentimentData(long_short_ratio=1.2), calls, "sentiment"),
        ))

        assert result.accepted
        assert result.level == 5
        assert result.skipped_checks == []
        assert calls == ["macro", "mtf", "sentiment"]

        signal = result.signal
        assert signal.mode == "sniper"
        assert signal.direction == "LONG"
        assert signal.risk_reward >= 2.5
        assert signal.confidence == 1.0
        assert signal.stop_loss == pytest.approx(125.2 * (1 - 0.007), abs=0.01)

    def test_missing_providers_pass_through(self):
        result = run(orchestrator(), long_request())

        assert result.accepted
        assert result.skipped_checks == ["macro_trend", "mtf_alignment", "sentiment"]
        assert "skipped: macro_trend, mtf_alignment, sentiment" in result.reason

    def test_providers_returning_none_pass_through(self):
        calls = []
        result = run(orchestrator(), long_request(
            macro_provider=recording(None, calls, "macro"),
            mtf_provider=recording(None, calls, "mtf"),
            sentiment_provider=recording(None, calls, "sentiment"),
        ))

        assert result.accepted
        assert len(calls) == 3
        assert result.skipped_checks == ["macro_trend", "mtf_alignment", "sentiment"]

    def test_raising_provider_passes_through(self):
        async def broken(symbol):
            raise RuntimeError("feed down")

        result = run(orchestrator(), long_request(
            macro_provider=broken,
            sentiment_provider=recording(SentimentData(long_short_ratio=1.0), [], "sentiment"),
        ))

        assert result.accepted
        assert result.skipped_checks == ["macro_trend", "mtf_alignment"]

    def test_timed_out_provider_passes_through(self):
        async def slow(symbol):
            await asyncio.sleep(1.0)
            return SentimentData(long_short_ratio=5.0)

        config = SniperConfig(provider_timeout_sec=0.05)
        result = run(orchestrator(config), long_request(sentiment_provider=slow))

        assert result.accepted
        assert "sentiment" in result.skipped_checks

    def test_short_side(self):
        result = run(orchestrator(direction="bearish"), SniperRequest(
            candles=generate_downtrend_candles(),
            symbol="ETH/USDT",
            volume=bearish_tape(),
            dom=bearish_book(),
        ))

        assert result.accepted
        assert result.signal.direction == "SHORT"
        assert result.signal.stop_loss > result.signal.entry_price


class TestRejected:

    def test_insufficient_candles(self):
        result = run(orchestrator(), long_request(candles=generate_uptrend_candles(periods=30)))

        assert not result.accepted
        assert result.level == 0
        assert result.stage == "START"
        assert result.reason == "Insufficient data: need at least 50 candles, got 30"

    def test_level_one_without_structure_break_calls_no_providers(self):
        calls = []
        orch = SniperOrchestrator(id_sequence=SignalIdSequence())
        result = run(orch, long_request(
            macro_provider=recording(MacroTrend(trend="bullish"), calls, "macro"),
            mtf_provider=recording(MTFAlignment(alignment="perfect", direction="bullish"), calls, "mtf"),
            sentiment_provider=recording(SentimentData(long_short_ratio=1.0), calls, "sentiment"),
        ))

        assert not result.accepted
        assert result.level == 1
        assert result.stage == "LEVEL_1_CONFLUENCE"
        assert result.reason == "Level 1: no bullish BOS/CHoCH confirming LONG"
        assert calls == []

    def test_level_one_confluence_failure(self):
        result = run(orchestrator(), long_request(volume=None, dom=None))

        assert result.level == 1
        assert result.reason.startswith("Level 1: sniper confluence failed")

    def test_level_one_tape_confirmation(self):
        config = SniperConfig(require_tape_confirmation=True)
        result = run(orchestrator(config), long_request(
            dom=DOMData(dom_signal="strong_buy_pressure", pressure_score=70.0, imbalance=0.7, ask_walls=2),
        ))

        assert result.level == 1
        assert "Ask walls detected blocking LONG" in result.reason

    def test_level_one_opposing_trigger_direction(self, monkeypatch):
        verdict = TriggerVerdict(
            triggered=True,
            triggers=[
                Trigger(kind="choch", polarity="bearish", weight=3),
                Trigger(kind="macd_crossover", polarity="bearish", weight=2),
            ],
            direction="SHORT",
            strength="moderate",
            bearish_score=5,
        )
        monkeypatch.setattr(sniper_orchestrator, "detect_triggers", lambda *args, **kwargs: verdict)
        calls = []
        result = run(orchestrator(), long_request(
            macro_provider=recording(MacroTrend(trend="bullish"), calls, "macro"),
            sentiment_provider=recording(SentimentData(long_short_ratio=1.0), calls, "sentiment"),
        ))

        assert not result.accepted
        assert result.signal is None
        assert result.level == 1
        assert result.stage == "LEVEL_1_CONFLUENCE"
        assert result.reason == "Level 1: trigger direction SHORT opposes confluence LONG"
        assert result.triggers is verdict
        assert calls == []

    def test_level_one_undirected_triggers_pass(self, monkeypatch):
        verdict = TriggerVerdict(
            triggered=True,
            triggers=[Trigger(kind="volume_spike", polarity="neutral", weight=0)],
        )
        monkeypatch.setattr(sniper_orchestrator, "detect_triggers", lambda *args, **kwargs: verdict)
        result = run(orchestrator(), long_request())

        assert result.accepted
        assert result.signal.triggers == ("volume_spike",)

    def test_level_two_macro_contradiction(self):
        calls = []
        result = run(orchestrator(), long_request(
            macro_provider=recording(MacroTrend(trend="bearish", reason="strong bearish move"), calls, "macro"),
            sentiment_provider=recording(SentimentData(long_short_ratio=1.0), calls, "sentiment"),
        ))

        assert result.level == 2
        assert result.stage == "LEVEL_2_MACRO"
        assert result.reason == "Level 2: macro trend bearish contradicts LONG (strong bearish move)"
        assert calls == ["macro"]

    def test_level_three_minimum_risk_reward(self):
        config = SniperConfig(min_risk_reward=4.0)
        result = run(orchestrator(config), long_request())

        assert result.level == 3
        assert result.reason.startswith("Level 3: R:R 3.4")
        assert result.reason.endswith("below minimum 4")

    def test_level_four_requires_perfect_alignment(self):
        result = run(orchestrator(), long_request(
            mtf_provider=recording(MTFAlignment(alignment="strong", direction="bullish"), [], "mtf"),
        ))

        assert result.level == 4
        assert result.reason == "Level 4: MTF alignment strong, perfect required"

    def test_level_four_requires_matching_direction(self):
        result = run(orchestrator(), long_request(
            mtf_provider=recording(MTFAlignment(alignment="perfect", direction="bearish"), [], "mtf"),
        ))

        assert result.level == 4
        assert result.reason == "Level 4: MTF direction bearish does not match LONG"

    def test_level_five_crowded_longs(self):
        result = run(orchestrator(), long_request(
            sentiment_provider=recording(SentimentData(long_short_ratio=2.8), [], "sentiment"),
        ))

        assert not result.accepted
        assert result.level == 5
        assert result.reason == "Level 5: long/short ratio 2.80 above 2.5 (crowded longs)"

    def test_level_five_boundary_passes(self):
        result = run(orchestrator(), long_request(
            sentiment_provider=recording(SentimentData(long_short_ratio=2.5), [], "sentiment"),
        ))
        assert result.accepted

    def test_level_five_crowded_shorts(self):
        result = run(orchestrator(direction="bearish"), SniperRequest(
            candles=generate_downtrend_candles(),
            symbol="ETH/USDT",
            volume=bearish_tape(),
            dom=bearish_book(),
            sentiment_provider=recording(SentimentData(long_short_ratio=0.3), [], "sentiment"),
        ))

        assert result.level == 5
        assert result.reason == "Level 5: long/short ratio 0.30 below 0.4 (crowded shorts)"


class TestCandleProviders:

    def test_macro_from_candles(self):
        provider = macro_provider_from_candles(generate_uptrend_candles(periods=30), generate_uptrend_candles(periods=10))
        macro = asyncio.run(provider("BTC/USDT"))

        assert macro.trend == "bullish"
        assert macro.reason == "strong bullish move"

    def test_macro_from_short_history_is_unavailable(self):
        provider = macro_provider_from_candles(generate_uptrend_candles(periods=10), generate_uptrend_candles(periods=10))
        assert asyncio.run(provider("BTC/USDT")) is None

    def test_mtf_from_candles(self):
        frames = {tf: generate_uptrend_candles() for tf in ("5m", "15m", "1h", "4h")}
        alignment = asyncio.run(mtf_provider_from_candles(frames)("BTC/USDT"))

        assert alignment.is_perfect
        assert alignment.direction == "bullish"

    def test_candle_providers_in_pipeline(self):
        frames = {tf: generate_uptrend_candles() for tf in ("5m", "15m", "1h", "4h")}
        result = run(orchestrator(), long_request(
            macro_provider=macro_provider_from_candles(generate_uptrend_candles(periods=30),
                                                       generate_uptrend_candles(periods=10)),
            mtf_provider=mtf_provider_from_candles(frames),
        ))

        assert result.accepted
        assert result.skipped_checks == ["sentiment"]


def test_default_pipelines_share_one_id_sequence():
    now = datetime(2025, 3, 4, 9, 30, tzinfo=timezone.utc)
    generator = SignalGenerator(clock=lambda: now)
    sniper = SniperOrchestrator(smc_service=FixedStructure(), clock=lambda: now)

    standard = generator.generate(SignalRequest(
        candles=generate_uptrend_candles(), symbol="BTC/USDT", volume=bullish_tape(), dom=bullish_book(),
    ))
    sniped = run(sniper, long_request())

    assert standard.accepted and sniped.accepted
    assert generator.id_sequence is sniper.id_sequence
    assert standard.signal.id != sniped.signal.id
