"""
Signal id sequence.

Ids look like 'sig_20250101_007': the UTC date plus a per-day counter.
One sequence is shared by every concurrent run, so increments happen
under a lock.
"""

import threading
from datetime import datetime, timezone
from typing import Optional


class SignalIdSequence:
    """Thread-safe, per-day signal id generator."""

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._day: Optional[str] = None
        self._counter = start

    def next_id(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        day = now.strftime("%Y%m%d")
        with self._lock:
            if self._day is not None and day != self._day:
                self._counter = 0
            self._day = day
            self._counter += 1
            seq = self._counter
        return f"sig_{day}_{seq:03d}"

    def reset(self) -> None:
        with self._lock:
            self._day = None
            self._counter = 0


# Singleton
_signal_id_sequence: Optional[SignalIdSequence] = None


def get_signal_id_sequence() -> SignalIdSequence:
    """Get the process-wide sequence used by pipelines built without one."""
    global _signal_id_sequence
    if _signal_id_sequence is None:
        _signal_id_sequence = SignalIdSequence()
    return _signal_id_sequence
