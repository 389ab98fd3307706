"""
OHLCV data validation and value sanitising helpers.

Indicator functions validate their input frames here so data problems
surface as DataValidationError before NaN can leak into a score.
"""

import math
from typing import Iterable, Optional

import pandas as pd
import logging

logger = logging.getLogger(__name__)


class DataValidationError(ValueError):
    """Raised when OHLCV data fails validation checks."""


def validate_ohlcv(
    df: pd.DataFrame,
    required_cols: Iterable[str] = ("open", "high", "low", "close", "volume"),
    min_rows: Optional[int] = None,
    check_positive_prices: bool = True,
    raise_on_error: bool = True,
) -> dict:
    """
    Validate an OHLCV DataFrame before indicator calculation.

    Args:
        df: DataFrame with OHLCV columns
        required_cols: Columns that must be present
        min_rows: Minimum required rows (None = no minimum)
        check_positive_prices: If True, verify price columns are > 0
        raise_on_error: If True, raise DataValidationError; else return dict

    Returns:
        dict with keys 'valid' (bool), 'errors' and 'warnings' (lists of str)

    Raises:
        DataValidationError: If validation fails and raise_on_error=True
    """
    result = {"valid": True, "errors": [], "warnings": []}

    missing = [col for col in required_cols if col not in df.columns]
    if missing:
        result["errors"].append(f"Missing required columns: {missing}")
        result["valid"] = False
        if raise_on_error:
            raise DataValidationError("; ".join(result["errors"]))
        return result

    if min_rows is not None and len(df) < min_rows:
        result["errors"].append(f"DataFrame too short: need {min_rows} rows, got {len(df)}")
        result["valid"] = False

    price_cols = [col for col in ("open", "high", "low", "close") if col in df.columns]
    for col in price_cols:
        nan_count = int(df[col].isna().sum())
        if nan_count:
            result["errors"].append(f"Column '{col}' has {nan_count} NaN values")
            result["valid"] = False
        if check_positive_prices:
            non_positive = int((df[col] <= 0).sum())
            if non_positive:
                result["errors"].append(f"Column '{col}' has {non_positive} non-positive values")
                result["valid"] = False

    if "high" in df.columns and "low" in df.columns:
        inverted = int((df["high"] < df["low"]).sum())
        if inverted:
            result["errors"].append(f"Found {inverted} inverted candles (high < low)")
            result["valid"] = False

    if "volume" in df.columns:
        negative = int((df["volume"] < 0).sum())
        if negative:
            result["errors"].append(f"Found {negative} negative volume values")
            result["valid"] = False
        if len(df) and (df["volume"] == 0).all():
            result["warnings"].append("All volume values are zero")

    if result["warnings"]:
        logger.debug("OHLCV validation warnings: %s", result["warnings"])

    if raise_on_error and not result["valid"]:
        raise DataValidationError("; ".join(result["errors"]))

    return result


def finite_or(value, default: float) -> float:
    """Return `value` as float, or `default` when it is None/NaN/inf."""
    if value is None:
        return default
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def last_value(series: pd.Series, default: float = 0.0, offset: int = 1) -> float:
    """
    Read a finite value `offset` bars from the end of `series`.

    Returns `default` when the series is too short or the value is not finite.
    """
    if series is None or len(series) < offset:
        return default
    return finite_or(series.iloc[-offset], default)
