"""
Risk Manager

Volatility-driven leverage guidance and stop/target geometry checks.

Leverage steps down as ATR% rises (3x at >= 3% up to 20x under 0.5%)
and never exceeds the platform cap. Validation separates fatal errors
(stop beyond 10%, missing or wrong-side targets) from warnings (stop
under 0.2%, leverage above the recommendation, R:R under 1.5).
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from signal_core.risk.position_sizer import PositionSizer
from signal_core.shared.config.defaults import DEFAULT_SIGNAL_CONFIG
from signal_core.shared.models.indicators import IndicatorSnapshot
from signal_core.shared.models.risk import RiskAssessment, RiskValidation

logger = logging.getLogger(__name__)

MAX_LEVERAGE_LIMIT = 20
MAX_STOP_PCT = 10.0
MIN_STOP_PCT = 0.2
MIN_RR_WARNING = 1.5

_LEVERAGE_STEPS = (
    (3.0, 3),
    (2.0, 5),
    (1.5, 8),
    (1.0, 10),
    (0.5, 15),
)

_RISK_STEPS = (
    (0.90, 4.0),
    (0.85, 3.0),
    (0.75, 2.0),
    (0.65, 1.0),
)


def suggest_leverage(atr_pct: float) -> int:
    """Step-function leverage from ATR as percent of price, capped at 20x."""
    for floor, leverage in _LEVERAGE_STEPS:
        if atr_pct >= floor:
            return min(leverage, MAX_LEVERAGE_LIMIT)
    return MAX_LEVERAGE_LIMIT


def dynamic_risk_pct(confidence: float) -> float:
    """Percent of equity to risk for a given confidence; 0.5% below 0.65."""
    for floor, risk in _RISK_STEPS:
        if confidence >= floor:
            return risk
    return 0.5


def assess_risk(indicators: IndicatorSnapshot, confidence: float = 0.70) -> RiskAssessment:
    """
    Build leverage and sizing guidance from the ATR reading.

    Args:
        indicators: Indicator snapshot (uses the ATR reading)
        confidence: Confidence used for the risk-per-trade step

    Returns:
        RiskAssessment
    """
    atr_pct = indicators.atr.pct
    recommended = suggest_leverage(atr_pct)

    volatility = indicators.atr.volatility
    max_position = {"high": 10.0, "moderate": 20.0, "low": 30.0}[volatility]

    return RiskAssessment(
        recommended_leverage=recommended,
        max_leverage=min(recommended, MAX_LEVERAGE_LIMIT),
        atr_pct=atr_pct,
        volatility_level=volatility,
        risk_per_trade=dynamic_risk_pct(confidence),
        max_position_size_pct=max_position,
    )


def calculate_risk_reward(
    entry_price: float,
    stop_loss: float,
    take_profits: Sequence[Tuple[float, float]],
) -> float:
    """
    Weighted-average reward over risk.

    Args:
        entry_price: Entry
        stop_loss: Stop
        take_profits: (price, weight) pairs; weights are normalised, so
            fractions and percentages give the same result

    Returns:
        R:R rounded to 2 decimals; 0 when risk is zero or no targets
    """
    risk = abs(entry_price - stop_loss)
    if risk == 0 or not take_profits:
        return 0.0

    weighted_reward = 0.0
    total_weight = 0.0
    for price, weight in take_profits:
        weighted_reward += abs(price - entry_price) * weight
        total_weight += weight

    if total_weight > 0:
        avg_reward = weighted_reward / total_weight
    else:
        avg_reward = abs(take_profits[0][0] - entry_price)

    return round(avg_reward / risk, 2)


def validate_signal_risk(
    entry_price: float,
    stop_loss: float,
    take_profits: Sequence[float],
    leverage: float,
    assessment: RiskAssessment,
    direction: Optional[str] = None,
) -> RiskValidation:
    """
    Validate stop/target geometry for a candidate signal.

    Args:
        entry_price: Entry
        stop_loss: Stop
        take_profits: Target prices
        leverage: Leverage the signal will carry
        assessment: Risk assessment for the window
        direction: 'LONG' / 'SHORT'; inferred from the stop side when None

    Returns:
        RiskValidation; `valid` is False when any error was recorded
    """
    errors = []
    warnings = []

    if entry_price <= 0:
        return RiskValidation(valid=False, errors=[f"Invalid entry price {entry_price}"])

    risk = abs(entry_price - stop_loss)
    risk_pct = risk / entry_price * 100

    if risk_pct > MAX_STOP_PCT:
        errors.append(f"Stop loss too far: {risk_pct:.1f}% from entry")
    if risk_pct < MIN_STOP_PCT:
        warnings.append(f"Stop loss very close: {risk_pct:.2f}% from entry")

    if leverage > assessment.recommended_leverage:
        warnings.append(
            f"Leverage {leverage:g}x exceeds recommended {assessment.recommended_leverage}x for current volatility"
        )

    if direction is None:
        direction = "LONG" if stop_loss < entry_price else "SHORT"

    if not take_profits:
        errors.append("No take profit levels defined")
    elif direction == "LONG":
        if min(take_profits) <= entry_price:
            errors.append("Take profit must be above entry for LONG")
    else:
        if max(take_profits) >= entry_price:
            errors.append("Take profit must be below entry for SHORT")

    if direction == "LONG" and stop_loss >= entry_price:
        errors.append("Stop loss must be below entry for LONG")
    if direction == "SHORT" and stop_loss <= entry_price:
        errors.append("Stop loss must be above entry for SHORT")

    if take_profits and risk > 0:
        avg_tp = sum(take_profits) / len(take_profits)
        rr = abs(avg_tp - entry_price) / risk
        if rr < MIN_RR_WARNING:
            warnings.append(f"Risk:Reward ratio {rr:.2f} is below {MIN_RR_WARNING}")

    if errors:
        logger.debug("Risk validation failed: %s", errors)
    return RiskValidation(valid=not errors, errors=errors, warnings=warnings)


@dataclass
class RiskSummary:
    """Money view of a candidate trade for a given account."""
    risk_pct: float
    rr_ratio: float
    position_size: float
    max_loss: float
    max_profit: float
    margin: float
    leverage: float

    def __str__(self) -> str:
        return (
            f"risk {self.risk_pct:.2f}% | R:R {self.rr_ratio:.2f} | size {self.position_size:g} "
            f"@ {self.leverage:g}x | margin {self.margin:.2f} | max loss {self.max_loss:.2f} "
            f"| max profit {self.max_profit:.2f}"
        )


def risk_summary(
    balance: float,
    entry_price: float,
    stop_loss: float,
    take_profits: Sequence[float],
    leverage: float,
    confidence: float = 0.70,
) -> RiskSummary:
    """
    Summarise a trade in account terms.

    Risk per trade follows dynamic_risk_pct(confidence); targets are
    weighted 40/35/25 for the R:R.

    Raises:
        ValueError: If balance, prices or leverage are invalid
    """
    weights = DEFAULT_SIGNAL_CONFIG.tp_weights[:len(take_profits)]
    rr = calculate_risk_reward(entry_price, stop_loss, list(zip(take_profits, weights)))

    risk_pct = dynamic_risk_pct(confidence)
    position = PositionSizer(account_balance=balance).calculate(risk_pct, entry_price, stop_loss, leverage)

    max_loss = balance * risk_pct / 100
    return RiskSummary(
        risk_pct=round(abs(entry_price - stop_loss) / entry_price * 100, 2),
        rr_ratio=rr,
        position_size=position.contracts,
        max_loss=round(max_loss, 2),
        max_profit=round(max_loss * rr, 2),
        margin=position.margin_required,
        leverage=leverage,
    )
