"""
Test suite for Risk Manager.

Leverage steps, dynamic risk, weighted R:R and stop/target validation.
"""

import pytest

from signal_core.risk.risk_manager import (
    MAX_LEVERAGE_LIMIT,
    RiskSummary,
    assess_risk,
    calculate_risk_reward,
    dynamic_risk_pct,
    risk_summary,
    suggest_leverage,
    validate_signal_risk,
)
from signal_core.shared.models.indicators import ATRReading, IndicatorSnapshot


def assessment_for(atr_pct, volatility="moderate"):
    return assess_risk(IndicatorSnapshot(atr=ATRReading(value=1.0, pct=atr_pct, volatility=volatility)))


@pytest.mark.parametrize("atr_pct,expected", [
    (4.0, 3),
    (3.0, 3),
    (2.5, 5),
    (2.0, 5),
    (1.76, 8),
    (1.5, 8),
    (1.2, 10),
    (0.7, 15),
    (0.5, 15),
    (0.2, 20),
    (0.0, 20),
])
def test_suggest_leverage_steps(atr_pct, expected):
    assert suggest_leverage(atr_pct) == expected


def test_leverage_never_exceeds_cap():
    assert all(suggest_leverage(p / 10) <= MAX_LEVERAGE_LIMIT for p in range(0, 60))


@pytest.mark.parametrize("confidence,expected", [
    (0.95, 4.0),
    (0.90, 4.0),
    (0.87, 3.0),
    (0.80, 2.0),
    (0.70, 1.0),
    (0.65, 1.0),
    (0.60, 0.5),
])
def test_dynamic_risk_pct(confidence, expected):
    assert dynamic_risk_pct(confidence) == expected


def test_assess_risk():
    assessment = assessment_for(2.4, volatility="high")

    assert assessment.recommended_leverage == 5
    assert assessment.max_leverage == 5
    assert assessment.volatility_level == "high"
    assert assessment.max_position_size_pct == 10.0
    assert assessment.risk_per_trade == 1.0
    assert assessment.atr_pct == 2.4


def test_assess_risk_low_volatility():
    assessment = assessment_for(0.3, volatility="low")

    assert assessment.recommended_leverage == 20
    assert assessment.max_position_size_pct == 30.0


def test_risk_reward_weighted():
    # risk 1; rewards 2, 3.2, 4.5 weighted 40/35/25
    rr = calculate_risk_reward(100, 99, [(102, 0.40), (103.2, 0.35), (104.5, 0.25)])
    assert rr == pytest.approx(3.05, abs=0.01)


def test_risk_reward_weights_normalised():
    fractions = calculate_risk_reward(100, 98, [(104, 0.5), (108, 0.5)])
    percentages = calculate_risk_reward(100, 98, [(104, 50), (108, 50)])

    assert fractions == percentages == 3.0


def test_risk_reward_short():
    assert calculate_risk_reward(100, 101, [(97, 1.0)]) == 3.0


def test_risk_reward_degenerate():
    assert calculate_risk_reward(100, 100, [(105, 1.0)]) == 0.0
    assert calculate_risk_reward(100, 99, []) == 0.0


class TestValidateSignalRisk:

    def test_valid_long(self):
        result = validate_signal_risk(100, 99, [102, 103, 104], 5, assessment_for(1.2))

        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_stop_too_far(self):
        result = validate_signal_risk(100, 85, [130], 3, assessment_for(1.2))

        assert not result.valid
        assert "Stop loss too far: 15.0% from entry" in result.errors

    def test_stop_very_close_is_warning(self):
        result = validate_signal_risk(100, 99.9, [100.5], 3, assessment_for(1.2))

        assert result.valid
        assert any(w.startswith("Stop loss very close") for w in result.warnings)

    def test_no_targets(self):
        result = validate_signal_risk(100, 99, [], 3, assessment_for(1.2))
        assert "No take profit levels defined" in result.errors

    def test_wrong_side_targets_long(self):
        result = validate_signal_risk(100, 99, [99.5, 102], 3, assessment_for(1.2), direction="LONG")
        assert "Take profit must be above entry for LONG" in result.errors

    def test_wrong_side_targets_short(self):
        result = validate_signal_risk(100, 101, [98, 100.5], 3, assessment_for(1.2), direction="SHORT")
        assert "Take profit must be below entry for SHORT" in result.errors

    def test_wrong_side_stop(self):
        long_result = validate_signal_risk(100, 101, [103], 3, assessment_for(1.2), direction="LONG")
        short_result = validate_signal_risk(100, 99, [97], 3, assessment_for(1.2), direction="SHORT")

        assert "Stop loss must be below entry for LONG" in long_result.errors
        assert "Stop loss must be above entry for SHORT" in short_result.errors

    def test_direction_inferred_from_stop(self):
        result = validate_signal_risk(100, 101, [98, 97], 3, assessment_for(1.2))
        assert result.valid

    def test_leverage_above_recommendation_warns(self):
        result = validate_signal_risk(100, 99, [102, 103], 15, assessment_for(1.2))

        assert result.valid
        assert any("Leverage 15x exceeds recommended 10x" in w for w in result.warnings)

    def test_low_risk_reward_warns(self):
        result = validate_signal_risk(100, 98, [101, 102], 3, assessment_for(1.2))

        assert result.valid
        assert any(w.startswith("Risk:Reward ratio 0.75") for w in result.warnings)

    def test_invalid_entry(self):
        result = validate_signal_risk(0, 1, [2], 3, assessment_for(1.2))

        assert not result.valid
        assert result.errors[0].startswith("Invalid entry price")


def test_risk_summary():
    summary = risk_summary(10000, 100, 99, [103, 103, 103], leverage=10, confidence=0.8)

    assert isinstance(summary, RiskSummary)
    assert summary.risk_pct == 1.0
    assert summary.rr_ratio == 3.0
    # 2% of 10k = 200 at risk over a 1.0 stop
    assert summary.position_size == 200.0
    assert summary.margin == 2000.0
    assert summary.max_loss == 200.0
    assert summary.max_profit == 600.0
    assert "R:R 3.00" in str(summary)
    assert "10x" in str(summary)


def test_risk_summary_rejects_bad_balance():
    with pytest.raises(ValueError, match="Account balance must be positive"):
        risk_summary(0, 100, 99, [102], leverage=5)
