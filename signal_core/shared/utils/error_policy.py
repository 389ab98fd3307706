"""
Error taxonomy for the signal core.

Nothing in the core raises to its caller for data problems: these
exceptions are raised inside a stage and converted into a typed result
(IndicatorResult.error, SignalResult.reason, a skipped sniper check) at
the stage boundary.
"""

from typing import Optional, Sequence


class SignalCoreError(Exception):
    """Base class for all signal-core errors."""


class InsufficientDataError(SignalCoreError):
    """Raised when a candle window is shorter than a stage requires."""

    def __init__(self, required: int, actual: int, what: str = "candles"):
        self.required = required
        self.actual = actual
        super().__init__(f"Insufficient data: need at least {required} {what}, got {actual}")


class IndicatorComputationError(SignalCoreError):
    """Raised when an indicator produces an unusable value."""


class ExternalDataUnavailable(SignalCoreError):
    """Raised when a macro/MTF/sentiment collaborator cannot answer."""

    def __init__(self, source: str, detail: Optional[str] = None):
        self.source = source
        message = f"{source} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SignalGeometryError(SignalCoreError):
    """Raised when stop/targets sit on the wrong side of entry."""


def enforce_signal_geometry(
    direction: str,
    entry: float,
    stop_loss: float,
    take_profits: Sequence[float],
) -> None:
    """
    Ensure stop and targets bracket entry correctly and targets are ordered.

    Raises:
        SignalGeometryError: If any level is on the wrong side of entry or
            the targets are not strictly increasing in reward
    """
    if not take_profits:
        raise SignalGeometryError("No take-profit levels")

    sign = 1 if direction == "LONG" else -1
    if sign * (entry - stop_loss) <= 0:
        raise SignalGeometryError(f"{direction} stop {stop_loss} is not on the loss side of entry {entry}")

    previous = entry
    for tp in take_profits:
        if sign * (tp - previous) <= 0:
            raise SignalGeometryError(
                f"{direction} take-profits must move away from entry in order, got {list(take_profits)}"
            )
        previous = tp

