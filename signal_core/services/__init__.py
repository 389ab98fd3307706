"""Services package - indicator and structure computation for a candle window."""

from signal_core.services.indicator_service import (
    IndicatorService,
    get_indicator_service,
    configure_indicator_service,
    analyze_technical,
)
from signal_core.services.smc_service import (
    SMCService,
    get_smc_service,
    configure_smc_service,
    analyze_structure,
    structure_bias,
)

__all__ = [
    "IndicatorService",
    "get_indicator_service",
    "configure_indicator_service",
    "analyze_technical",
    "SMCService",
    "get_smc_service",
    "configure_smc_service",
    "analyze_structure",
    "structure_bias",
]
