"""
signal-core: the analytical decision core of a trading platform.

Turns an OHLCV candle window into either a directional Signal (entry,
stop, three take-profits, confidence, leverage) or a structured rejection
that still carries every diagnostic computed before the failing gate.
"""

__version__ = "0.1.0"
