"""
Tests for candlestick pattern detection on the last bars of a window.
"""

import pandas as pd

from signal_core.indicators.patterns import (
    STRONG_PATTERNS,
    canonical_pattern,
    detect_engulfing,
    detect_marubozu,
    detect_patterns,
    detect_star,
    detect_three_soldiers_or_crows,
)
from signal_core.shared.models.market import candles_to_frame
from signal_core.tests.fixtures.market_data import generate_downtrend_candles, generate_uptrend_candles


def bars(rows):
    """rows: list of (open, high, low, close)."""
    return pd.DataFrame(
        [{'open': o, 'high': h, 'low': l, 'close': c, 'volume': 1000.0} for o, h, l, c in rows]
    )


def names(df):
    return [match.name for match in detect_patterns(df)]


def test_bullish_engulfing():
    df = bars([(101, 101.5, 99.5, 100), (99.8, 102.5, 99.6, 102)])
    assert detect_engulfing(df) == "bullish_engulfing"


def test_bearish_engulfing():
    df = bars([(100, 101.5, 99.5, 101), (101.2, 101.4, 98.5, 99)])
    assert detect_engulfing(df) == "bearish_engulfing"


def test_engulfing_needs_larger_body():
    df = bars([(102, 102.5, 99.5, 100), (100, 101.5, 99.8, 101)])
    assert detect_engulfing(df) is None


def test_hammer_named_by_context():
    falling = [(105, 105.2, 103.8, 104), (104, 104.2, 102.8, 103), (103, 103.2, 101.8, 102)]
    hammer_bar = (101, 101.55, 98, 101.5)

    after_decline = names(bars(falling + [hammer_bar]))
    assert "hammer" in after_decline

    rising = [(100, 101.2, 99.8, 101), (101, 102.2, 100.8, 102), (102, 103.2, 101.8, 103)]
    after_rally = names(bars(rising + [hammer_bar]))
    assert "hanging_man" in after_rally
    assert "hammer" not in after_rally


def test_shooting_star_after_rally():
    rising = [(100, 101.2, 99.8, 101), (101, 102.2, 100.8, 102), (102, 103.2, 101.8, 103)]
    star_bar = (103, 106, 102.95, 103.4)

    assert "shooting_star" in names(bars(rising + [star_bar]))


def test_morning_star():
    df = bars([(110, 110.5, 104.5, 105), (104.8, 105.5, 104, 104.9), (105, 109.5, 104.8, 109)])
    assert detect_star(df) == "morning_star"


def test_evening_star():
    df = bars([(100, 105.5, 99.5, 105), (105.2, 106, 104.5, 105.1), (105, 105.2, 100.5, 101)])
    assert detect_star(df) == "evening_star"


def test_three_white_soldiers():
    df = bars([(100, 102.2, 99.8, 102), (101, 103.2, 100.8, 103), (102, 104.2, 101.8, 104)])
    assert detect_three_soldiers_or_crows(df) == "three_white_soldiers"


def test_three_black_crows():
    df = bars([(104, 104.2, 101.8, 102), (103, 103.2, 100.8, 101), (102, 102.2, 99.8, 100)])
    assert detect_three_soldiers_or_crows(df) == "three_black_crows"


def test_marubozu():
    bullish = bars([(100, 110.2, 99.9, 110)]).iloc[-1]
    bearish = bars([(110, 110.1, 99.8, 100)]).iloc[-1]
    shadowed = bars([(100, 112, 98, 110)]).iloc[-1]

    assert detect_marubozu(bullish) == "bullish_marubozu"
    assert detect_marubozu(bearish) == "bearish_marubozu"
    assert detect_marubozu(shadowed) is None


def test_zero_range_bar_is_not_a_pattern():
    df = bars([(100, 100, 100, 100), (100, 100, 100, 100), (100, 100, 100, 100)])
    assert names(df) == []


def test_single_bar_window():
    assert detect_patterns(bars([(100, 101, 99, 100.5)])) == []


def test_zigzag_fixtures_end_on_engulfing():
    up = detect_patterns(candles_to_frame(generate_uptrend_candles()))
    down = detect_patterns(candles_to_frame(generate_downtrend_candles()))

    assert ("bullish_engulfing", "bullish") in [(m.name, m.direction) for m in up]
    assert ("bearish_engulfing", "bearish") in [(m.name, m.direction) for m in down]


def test_strong_allow_list():
    assert "bullish_engulfing" in STRONG_PATTERNS
    assert "three_black_crows" in STRONG_PATTERNS
    assert "hammer" not in STRONG_PATTERNS
    assert "shooting_star" not in STRONG_PATTERNS


def test_short_marubozu_names_map_to_canonical():
    assert canonical_pattern("bull_marubozu") == "bullish_marubozu"
    assert canonical_pattern("bear_marubozu") == "bearish_marubozu"
    assert canonical_pattern("hammer") == "hammer"
    assert canonical_pattern("bull_marubozu") in STRONG_PATTERNS
