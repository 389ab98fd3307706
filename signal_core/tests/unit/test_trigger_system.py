"""
Test suite for the trigger system and the evaluation gate.
"""

from datetime import datetime, timedelta, timezone

import pytest

from signal_core.shared.config.defaults import TriggerGateConfig
from signal_core.shared.models.indicators import (
    ADXReading,
    BollingerReading,
    IndicatorSnapshot,
    MACDReading,
    RSIReading,
    StochRSIReading,
)
from signal_core.shared.models.market import DOMData, VolumeData
from signal_core.shared.models.scoring import Trigger, TriggerVerdict
from signal_core.shared.models.structure import StructureSnapshot
from signal_core.strategy.triggers.trigger_system import TriggerGate, detect_triggers
from signal_core.tests.fixtures.market_data import bullish_book, bullish_tape

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def run(indicators=None, volume=None, dom=None, structure=None, patterns=()):
    return detect_triggers(
        indicators or IndicatorSnapshot(),
        volume or VolumeData(),
        dom or DOMData(),
        structure or StructureSnapshot(),
        patterns,
    )


def weights(verdict):
    return {t.kind: (t.polarity, t.weight) for t in verdict.triggers}


def test_quiet_market_fires_nothing():
    verdict = run()

    assert not verdict.triggered
    assert verdict.triggers == []
    assert verdict.direction is None
    assert verdict.strength == "weak"


def test_volume_spike_polarity_from_pressure():
    assert weights(run(volume=bullish_tape()))["volume_spike"] == ("bullish", 2)

    neutral = run(volume=VolumeData(volume_spike=True))
    assert weights(neutral)["volume_spike"] == ("neutral", 0)
    assert neutral.triggered
    assert neutral.direction is None


def test_dom_imbalance_threshold():
    assert "dom_imbalance" not in run(dom=DOMData(pressure_score=50.0)).kinds
    assert weights(run(dom=DOMData(pressure_score=-51.0)))["dom_imbalance"] == ("bearish", 2)


def test_macd_crossover():
    indicators = IndicatorSnapshot(macd=MACDReading(histogram=0.1, direction="bullish", crossover="bullish"))
    verdict = run(indicators=indicators)

    assert weights(verdict)["macd_crossover"] == ("bullish", 2)
    assert verdict.direction == "LONG"


@pytest.mark.parametrize("rsi,expected", [
    (22.0, ("bullish", 2)),
    (25.0, ("bullish", 2)),
    (28.0, ("bullish", 1)),
    (30.0, ("bullish", 1)),
    (72.0, ("bearish", 1)),
    (80.0, ("bearish", 2)),
])
def test_rsi_extreme_weights(rsi, expected):
    verdict = run(indicators=IndicatorSnapshot(rsi=RSIReading(value=rsi)))
    assert weights(verdict)["rsi_extreme"] == expected


def test_rsi_in_range_does_not_fire():
    assert "rsi_extreme" not in run(indicators=IndicatorSnapshot(rsi=RSIReading(value=55.0))).kinds


def test_only_allow_listed_patterns_fire():
    assert "strong_pattern" not in run(patterns=["hammer", "shooting_star"]).kinds

    verdict = run(patterns=["bullish_engulfing", "hammer"])
    assert weights(verdict)["strong_pattern"] == ("bullish", 2)


def test_mixed_patterns_fire_once_and_credit_both_sides():
    verdict = run(patterns=["bullish_engulfing", "evening_star"])
    strong = [t for t in verdict.triggers if t.kind == "strong_pattern"]

    assert len(strong) == 1
    assert verdict.kinds == ["strong_pattern"]
    assert verdict.bullish_score == verdict.bearish_score == 2
    assert verdict.direction is None


def test_mixed_patterns_take_the_stronger_side():
    verdict = run(patterns=["evening_star", "three_black_crows", "morning_star"])

    assert weights(verdict)["strong_pattern"] == ("bearish", 2)
    assert verdict.kinds == ["strong_pattern"]
    assert (verdict.bullish_score, verdict.bearish_score) == (2, 2)


def test_short_marubozu_names_fire():
    verdict = run(patterns=["bear_marubozu"])

    assert weights(verdict)["strong_pattern"] == ("bearish", 2)
    assert verdict.direction == "SHORT"


def test_structure_triggers():
    verdict = run(structure=StructureSnapshot(bos="bearish", choch="bullish"))
    w = weights(verdict)

    assert w["bos"] == ("bearish", 2)
    assert w["choch"] == ("bullish", 3)
    assert verdict.direction == "LONG"


def test_strong_trend_threshold():
    assert "strong_trend" not in run(indicators=IndicatorSnapshot(trend_score=60)).kinds
    assert weights(run(indicators=IndicatorSnapshot(trend_score=-61)))["strong_trend"] == ("bearish", 2)


def test_single_point_triggers():
    indicators = IndicatorSnapshot(
        bollinger=BollingerReading(position="below_lower"),
        stoch_rsi=StochRSIReading(k=10.0, d=12.0, state="oversold"),
        adx=ADXReading(value=55.0, strength="strong", direction="bullish"),
    )
    w = weights(run(indicators=indicators))

    assert w["bb_breakout"] == ("bearish", 1)
    assert w["stoch_rsi_reversal"] == ("bullish", 1)
    assert w["adx_trend"] == ("bullish", 1)


def test_moderate_adx_does_not_fire():
    indicators = IndicatorSnapshot(adx=ADXReading(value=40.0, strength="moderate"))
    assert "adx_trend" not in run(indicators=indicators).kinds


def test_direction_needs_score_of_two():
    verdict = run(indicators=IndicatorSnapshot(bollinger=BollingerReading(position="above_upper")))

    assert verdict.triggered
    assert verdict.bullish_score == 1
    assert verdict.direction is None


def test_equal_scores_have_no_direction():
    verdict = run(structure=StructureSnapshot(bos="bullish"), dom=DOMData(pressure_score=-70.0))

    assert verdict.bullish_score == verdict.bearish_score == 2
    assert verdict.direction is None
    assert verdict.strength == "moderate"


def test_strength_buckets():
    # 2 + 2 = 4 -> moderate
    moderate = run(volume=bullish_tape(), dom=bullish_book())
    assert moderate.strength == "moderate"

    # 2 + 2 + 3 = 7 -> strong
    strong = run(volume=bullish_tape(), dom=bullish_book(), structure=StructureSnapshot(choch="bullish"))
    assert strong.strength == "strong"
    assert strong.direction == "LONG"

    # 3 -> weak
    weak = run(structure=StructureSnapshot(choch="bearish"))
    assert weak.strength == "weak"
    assert weak.direction == "SHORT"


def verdict_with(*triggers, strength="moderate"):
    return TriggerVerdict(triggered=bool(triggers), triggers=list(triggers), strength=strength)


BOS = Trigger(kind="bos", polarity="bullish", weight=2)
SPIKE = Trigger(kind="volume_spike", polarity="bullish", weight=2)


class TestTriggerGate:

    def test_no_triggers(self):
        assert TriggerGate().should_evaluate(verdict_with(), now=NOW) == (False, "no_triggers")

    def test_single_weak_trigger(self):
        verdict = verdict_with(BOS, strength="weak")
        assert TriggerGate().should_evaluate(verdict, now=NOW) == (False, "weak_signal")

    def test_two_weak_triggers_allowed(self):
        verdict = verdict_with(BOS, SPIKE, strength="weak")
        assert TriggerGate().should_evaluate(verdict, now=NOW) == (True, None)

    def test_cooldown(self):
        gate = TriggerGate(TriggerGateConfig(cooldown_seconds=60, max_per_hour=30))
        verdict = verdict_with(BOS, SPIKE)

        assert gate.should_evaluate(verdict, now=NOW) == (True, None)
        assert gate.should_evaluate(verdict, now=NOW + timedelta(seconds=30)) == (False, "cooldown_active")
        assert gate.should_evaluate(verdict, now=NOW + timedelta(seconds=61)) == (True, None)

    def test_hourly_limit(self):
        gate = TriggerGate(TriggerGateConfig(cooldown_seconds=0, max_per_hour=2))
        verdict = verdict_with(BOS, SPIKE)

        assert gate.should_evaluate(verdict, now=NOW)[0]
        assert gate.should_evaluate(verdict, now=NOW + timedelta(minutes=1))[0]
        assert gate.should_evaluate(verdict, now=NOW + timedelta(minutes=2)) == (False, "hourly_limit_reached")
        # Earlier evaluations age out of the window
        assert gate.should_evaluate(verdict, now=NOW + timedelta(minutes=61)) == (True, None)

    def test_reset(self):
        gate = TriggerGate()
        verdict = verdict_with(BOS, SPIKE)
        gate.should_evaluate(verdict, now=NOW)

        gate.reset()

        assert gate.should_evaluate(verdict, now=NOW + timedelta(seconds=1)) == (True, None)
