"""
Tests for the shared data models: candle geometry, signal invariants
and serialization.
"""

from datetime import datetime, timedelta, timezone

import pytest

from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.market import (
    Candle,
    MacroTrend,
    SentimentData,
    candles_to_frame,
    direction_to_trend,
)
from signal_core.shared.models.signal import Signal, SignalResult, TrailingStopConfig, confidence_level

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_signal(**overrides):
    fields = dict(
        id="sig_20250101_001",
        timestamp=NOW,
        symbol="BTC/USDT",
        exchange="binance",
        direction="LONG",
        entry_price=100.0,
        stop_loss=99.0,
        take_profit=(102.0, 103.2, 104.5),
        risk_reward=3.05,
        confidence=0.8,
        timeframe="5m",
        triggers=("volume_spike", "bos"),
        expiry=NOW + timedelta(minutes=30),
        trailing_stop=TrailingStopConfig(initial_stop=99.0),
        leverage=10,
    )
    fields.update(overrides)
    return Signal(**fields)


class TestCandle:

    def test_valid(self):
        candle = Candle(open=100, high=105, low=99, close=104, volume=10)

        assert candle.is_bullish
        assert candle.body == 4

    @pytest.mark.parametrize("fields,message", [
        (dict(open=100, high=98, low=99, close=99), "cannot be less than Low"),
        (dict(open=100, high=101, low=99, close=102), "must be >= Open"),
        (dict(open=100, high=101, low=99.5, close=99), "must be <= Open"),
    ])
    def test_geometry(self, fields, message):
        with pytest.raises(ValueError, match=message):
            Candle(volume=1, **fields)

    def test_negative_volume(self):
        with pytest.raises(ValueError, match="Volume cannot be negative"):
            Candle(open=1, high=1, low=1, close=1, volume=-1)

    def test_to_frame(self):
        candles = [
            Candle(open=1, high=2, low=0.5, close=1.5, volume=10, timestamp=NOW),
            Candle(open=1.5, high=2, low=1, close=1.2, volume=5, timestamp=NOW + timedelta(minutes=5)),
        ]
        frame = candles_to_frame(candles)

        assert list(frame.columns) == ["open", "high", "low", "close", "volume", "timestamp"]
        assert frame['close'].tolist() == [1.5, 1.2]

    def test_empty_frame(self):
        frame = candles_to_frame([])

        assert frame.empty
        assert "timestamp" not in frame.columns


class TestMarketModels:

    def test_negative_sentiment(self):
        with pytest.raises(ValueError, match="Long/short ratio cannot be negative"):
            SentimentData(long_short_ratio=-0.1)

    def test_neutral_macro_contradicts_nothing(self):
        assert not MacroTrend().contradicts("LONG")
        assert not MacroTrend().contradicts("SHORT")

    def test_direction_to_trend(self):
        assert direction_to_trend("LONG") == "bullish"
        assert direction_to_trend("SHORT") == "bearish"
        assert direction_to_trend(None) == "neutral"


class TestSignal:

    @pytest.mark.parametrize("confidence,expected", [
        (0.95, "high"),
        (0.85, "high"),
        (0.84, "medium"),
        (0.70, "medium"),
        (0.69, "low"),
    ])
    def test_confidence_level(self, confidence, expected):
        assert confidence_level(confidence) == expected
        assert make_signal(confidence=confidence).confidence_level == expected

    def test_confidence_bounds(self):
        with pytest.raises(ValueError, match="Confidence must be within"):
            make_signal(confidence=1.2)

    def test_three_targets_required(self):
        with pytest.raises(ValueError, match="exactly three take-profits"):
            make_signal(take_profit=(102.0, 103.0))

    def test_expiry_after_timestamp(self):
        with pytest.raises(ValueError, match="Expiry must be after"):
            make_signal(expiry=NOW)

    def test_immutable(self):
        signal = make_signal()
        with pytest.raises(AttributeError):
            signal.confidence = 0.9

    def test_to_dict(self):
        data = make_signal().to_dict()

        assert data["timestamp"] == "2025-01-01T12:00:00+00:00"
        assert data["expiry"] == "2025-01-01T12:30:00+00:00"
        assert data["take_profit"] == [102.0, 103.2, 104.5]
        assert data["triggers"] == ["volume_spike", "bos"]
        assert data["trailing_stop"] == {"initial_stop": 99.0, "trail_step_pct": 0.5, "activation_profit_pct": 1.0}
        assert data["confidence_level"] == "medium"
        assert data["mode"] == "standard"


def test_signal_result_defaults():
    result = SignalResult()

    assert not result.accepted
    assert result.stage == "START"
    assert result.skipped_checks == []

    result.signal = make_signal()
    assert result.accepted


def test_snapshot_score_bounds():
    with pytest.raises(ValueError):
        IndicatorSnapshot(trend_score=150)
