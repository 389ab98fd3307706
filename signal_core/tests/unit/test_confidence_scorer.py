"""
Tests for confidence scoring: clamping, order independence and the
individual rule deltas.
"""

import pytest

from signal_core.shared.models.indicators import (
    ADXReading,
    ATRReading,
    IndicatorSnapshot,
    MACDReading,
    RSIReading,
    SupertrendReading,
)
from signal_core.shared.models.scoring import ConfluenceVerdict
from signal_core.shared.models.structure import StructureSnapshot
from signal_core.strategy.confidence.scorer import DEFAULT_RULES, score_confidence


def bullish_indicators(**overrides):
    fields = dict(
        trend_score=55,
        supertrend=SupertrendReading(direction="bullish"),
        adx=ADXReading(value=60.0, strength="strong", direction="bullish"),
        macd=MACDReading(histogram=0.2, direction="bullish", crossover="bullish"),
        rsi=RSIReading(value=28.0, state="oversold"),
        atr=ATRReading(value=1.0, pct=1.2, volatility="moderate"),
    )
    fields.update(overrides)
    return IndicatorSnapshot(**fields)


PASSED = ConfluenceVerdict(passed=True, direction="LONG", matched_factors=["trend", "supertrend", "volume", "dom"],
                           mismatched_factors=["structure"], score=4.0)
BULLISH_STRUCTURE = StructureSnapshot(trend="bullish", bos="bullish", choch="bullish", bias="strong_bullish")


def factors(result):
    return {a.factor: a.delta for a in result.adjustments}


def test_all_aligned_deltas():
    result = score_confidence(0.5, "LONG", bullish_indicators(), BULLISH_STRUCTURE, PASSED, 3.2)

    assert factors(result) == {
        "trend": 0.05,
        "supertrend": 0.05,
        "structure": 0.08,
        "bos": 0.03,
        "choch": 0.05,
        "adx": 0.05,
        "macd_crossover": 0.03,
        "rsi": 0.02,
        "rr": 0.05,
        "confluence": 0.05,
        "mismatches": -0.02,
    }
    assert result.confidence == pytest.approx(0.94)
    assert result.total_delta == pytest.approx(0.44)
    assert result.base == 0.5


def test_opposed_deltas_for_short():
    result = score_confidence(0.8, "SHORT", bullish_indicators(), BULLISH_STRUCTURE, PASSED, 1.2)
    f = factors(result)

    assert f["trend"] == -0.15
    assert f["supertrend"] == -0.10
    assert f["structure"] == -0.10
    assert f["rr"] == -0.10
    assert "bos" not in f
    assert "rsi" not in f


def test_order_independence():
    args = (0.7, "LONG", bullish_indicators(), BULLISH_STRUCTURE, PASSED, 2.0)
    forward = score_confidence(*args)
    backward = score_confidence(*args, rules=tuple(reversed(DEFAULT_RULES)))

    assert forward.confidence == backward.confidence
    assert [a.factor for a in forward.adjustments] == [a.factor for a in reversed(backward.adjustments)]


def test_clamped_to_one():
    result = score_confidence(0.99, "LONG", bullish_indicators(), BULLISH_STRUCTURE, PASSED, 4.0)
    assert result.confidence == 1.0


def test_clamped_to_zero():
    result = score_confidence(0.1, "SHORT", bullish_indicators(), BULLISH_STRUCTURE, PASSED, 0.5)
    assert result.confidence == 0.0


def test_risk_reward_monotonic():
    values = [
        score_confidence(0.7, "LONG", bullish_indicators(), StructureSnapshot(), PASSED, rr).confidence
        for rr in (0.8, 1.5, 2.5, 3.0, 5.0)
    ]
    assert values == sorted(values)
    assert values[0] < values[1] < values[3]


def test_high_volatility_penalty():
    indicators = bullish_indicators(atr=ATRReading(value=3.0, pct=2.5, volatility="high"))
    result = score_confidence(0.7, "LONG", indicators, StructureSnapshot(), PASSED, 2.0)
    assert factors(result)["volatility"] == -0.03


def test_neutral_inputs_leave_base_unchanged():
    result = score_confidence(
        0.7, "LONG", IndicatorSnapshot(), StructureSnapshot(),
        ConfluenceVerdict(passed=False, direction=None), 2.0,
    )
    assert result.adjustments == []
    assert result.confidence == 0.7
