"""
Coercion helpers for spreadsheet cells and loosely typed input values
"""
import re
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

_LEADING_FLOAT = re.compile(r'^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))')
_LEADING_INT = re.compile(r'^\s*([-+]?\d+)')

YES_VALUES = {'1', 'y', 'yes'}


def is_missing(value: Any) -> bool:
    """
    Check whether a cell value is empty.

    Args:
        value: Cell value

    Returns:
        True for None, NaN/NaT and blank strings
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.

    Integral floats lose their decimal part, so a numeric 1 that pandas reads
    as 1.0 renders as "1".
    """
    if is_missing(value):
        return ''
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value).strip()


def parse_float(value: Any) -> Optional[float]:
    """
    Parse a number from a cell.

    Strings are read up to the first non-numeric character ("10 pts" -> 10.0).

    Args:
        value: Cell value

    Returns:
        Float value or None if not numeric
    """
    if is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, np.number)):
        return float(value)

    match = _LEADING_FLOAT.match(str(value).replace(',', ''))
    if not match:
        return None

    try:
        return float(match.group(1))
    except ValueError:
        return None


def parse_int(value: Any) -> Optional[int]:
    """
    Parse an integer from a cell, truncating decimals.

    Args:
        value: Cell value

    Returns:
        Integer value or None if not numeric
    """
    if is_missing(value) or isinstance(value, bool):
        return None

    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return int(value)

    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def is_yes(value: Any) -> bool:
    """
    Check whether a binary (Y/N) cell is a pass.

    Args:
        value: Cell value

    Returns:
        True for 1, "1", "y" and "yes"
    """
    return cell_text(value).lower() in YES_VALUES


def as_date(value: Any) -> Optional[date]:
    """Return the date part of datetime-like cells, None otherwise."""
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None
