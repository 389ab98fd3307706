"""
Risk assessment data models.
"""

from dataclasses import dataclass, field
from typing import List, Literal


@dataclass
class RiskAssessment:
    """
    Volatility-derived leverage and sizing guidance.

    Attributes:
        recommended_leverage: Step-function leverage from ATR%
        max_leverage: Recommended leverage capped at the platform maximum
        atr_pct: ATR as percent of price
        volatility_level: 'low', 'moderate' or 'high'
        risk_per_trade: Percent of equity to risk
        max_position_size_pct: Percent of equity allowed in one position
    """
    recommended_leverage: int
    max_leverage: int
    atr_pct: float
    volatility_level: Literal["low", "moderate", "high"]
    risk_per_trade: float
    max_position_size_pct: float


@dataclass
class PositionSize:
    """Contracts, margin and a simplified liquidation estimate."""
    contracts: float
    margin_required: float
    liquidation_price: float
    max_loss: float
    max_profit: float


@dataclass
class RiskValidation:
    """Result of stop/target geometry checks; errors are fatal, warnings are not."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
