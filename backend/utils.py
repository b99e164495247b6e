"""
Utility Functions for the GPS Track Viewer

This module provides helper functions for value conversion and rounding used
by the ingestion and rendering code.
"""

from datetime import datetime
from typing import Optional

import numpy as np
import pandas as pd

# Strings pandas turns into the current time rather than a fixed instant
RELATIVE_KEYWORDS = frozenset({"now", "today"})


def safe_float(value) -> float:
    """
    Safely convert a value to a finite float, returning NaN on failure.

    Strings are trimmed before parsing. Infinite results count as failures.

    Args:
        value: Value to convert (string, number, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    if isinstance(value, str):
        value = value.strip()
    try:
        result = float(value)
    except (TypeError, ValueError):
        return np.nan
    if not np.isfinite(result):
        return np.nan
    return result


def safe_timestamp(value) -> Optional[datetime]:
    """
    Safely convert a value to a naive datetime, returning None on failure.

    Accepts anything pandas can parse as a timestamp, except the relative
    keywords ("now", "today") that pandas resolves against the wall clock.
    Timezone-aware values are converted to UTC and the timezone is dropped
    so that all instants stay mutually comparable.

    Args:
        value: Value to convert (usually a string from a CSV cell).

    Returns:
        Naive datetime, or None if the value is blank or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value or value.lower() in RELATIVE_KEYWORDS:
            return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def parse_bound(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a filter bound supplied by the control panel.

    Args:
        value: Date-time string, or None/blank to clear the bound.

    Returns:
        Naive datetime, or None when the bound is cleared.

    Raises:
        ValueError: If a non-blank value cannot be parsed.
    """
    if value is None or not value.strip():
        return None
    parsed = safe_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid date-time bound: {value!r}")
    return parsed


def json_float(value) -> Optional[float]:
    """Return value as a plain float, or None if it is missing or not finite."""
    if value is None or not np.isfinite(value):
        return None
    return float(value)
