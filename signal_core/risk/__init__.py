"""
Risk management package.

Provides leverage guidance, position sizing and stop/target validation
for candidate signals.
"""

from .position_sizer import PositionSizer
from .risk_manager import (
    RiskSummary,
    assess_risk,
    calculate_risk_reward,
    dynamic_risk_pct,
    risk_summary,
    suggest_leverage,
    validate_signal_risk,
)

__all__ = [
    'PositionSizer',
    'RiskSummary',
    'assess_risk',
    'calculate_risk_reward',
    'dynamic_risk_pct',
    'risk_summary',
    'suggest_leverage',
    'validate_signal_risk',
]
