"""
Month/year recovery from file names and free-text cells

Handles the formats seen in legacy scorecard files:
    "January 2025", "Jan 2025"
    "9.2025", "09/2025"
    "OCT'25", "Oct-25"
    "101425" (MMDDYY), "1025" (MMYY), "10-25"
    "4th quarter 2025", "Q4 2025"
    "December25CDA"
"""
import re
from datetime import date
from typing import Optional, Tuple

from config.settings import MONTH_MAP, QUARTER_MAP

# Longest names first so "september" wins over "sep"
_MONTH_NAMES = sorted(MONTH_MAP, key=len, reverse=True)
_MONTH_PATTERN = re.compile(r'(?<![a-z])(' + '|'.join(_MONTH_NAMES) + r')(?![a-z])')

_YEAR4 = re.compile(r'20([2-9][0-9])')
_ABBREV_YEAR = re.compile(r"[a-z]{3,9}['\-\s]?(2[0-9])\b")
_MONTH_DOT_YEAR = re.compile(r'\b(1[0-2]|0?[1-9])[./-](20[2-9][0-9])\b')
_MMDDYYYY = re.compile(r'\b(0[1-9]|1[0-2])(0[1-9]|[12][0-9]|3[01])(20[2-9][0-9])\b')
_MMDDYY = re.compile(r'\b(0[1-9]|1[0-2])(0[1-9]|[12][0-9]|3[01])(2[0-9])\b')
_MMYY = re.compile(r'\b(0[1-9]|1[0-2])(2[0-9])\b')
_MMYY_PREFIX = re.compile(r'^(0[1-9]|1[0-2])(2[0-9])[a-z]')
_MM_DASH_YY = re.compile(r'\b(0?[1-9]|1[0-2])-(2[0-9])\b')
_QUARTER = re.compile(r'\b(1st|2nd|3rd|4th|first|second|third|fourth|q[1-4])\s*(?:quarter|qtr)?\b')
_MONTH_SUFFIX_YEAR = re.compile(r'[a-z]{3,9}(2[0-9])(?![0-9])')
_STANDALONE_YEAR = re.compile(r"['\-\s](2[0-9])(?![0-9])")


def extract_date(text: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Extract month and year from a file name or cell text.

    Args:
        text: Text to parse

    Returns:
        Tuple (month, year); either may be None
    """
    if not text:
        return None, None

    lower = str(text).lower().strip()
    month: Optional[int] = None
    year: Optional[int] = None

    match = _YEAR4.search(lower)
    if match:
        year = 2000 + int(match.group(1))

    match = _MONTH_PATTERN.search(lower)
    if match:
        month = MONTH_MAP[match.group(1)]
    else:
        # Month names glued to digits ("december25cda")
        for name in _MONTH_NAMES:
            if re.search(name + r'(?=[0-9])', lower):
                month = MONTH_MAP[name]
                break

    if year is None:
        match = _ABBREV_YEAR.search(lower)
        if match:
            year = 2000 + int(match.group(1))

    if month is None:
        match = _MONTH_DOT_YEAR.search(lower)
        if match:
            month = int(match.group(1))
            year = int(match.group(2))

    if month is None or year is None:
        for pattern, century in ((_MMDDYYYY, 0), (_MMDDYY, 2000)):
            match = pattern.search(lower)
            if match:
                month = month or int(match.group(1))
                year = year or century + int(match.group(3))

    if month is None or year is None:
        match = _MMYY.search(lower) or _MMYY_PREFIX.search(lower) or _MM_DASH_YY.search(lower)
        if match:
            month = month or int(match.group(1))
            year = year or 2000 + int(match.group(2))

    if month is None:
        match = _QUARTER.search(lower)
        if match:
            month = QUARTER_MAP.get(match.group(1))

    if year is None and month is not None:
        match = _MONTH_SUFFIX_YEAR.search(lower) or _STANDALONE_YEAR.search(lower)
        if match:
            year = 2000 + int(match.group(1))

    return month, year


def infer_missing_year(month: Optional[int], year: Optional[int],
                       today: Optional[date] = None) -> Tuple[Optional[int], bool]:
    """
    Infer the year when only the month is known.

    Uses the current year, or the previous year when the month has not
    started yet this year.

    Args:
        month: Month number or None
        year: Year or None
        today: Reference date (defaults to date.today())

    Returns:
        Tuple (year, inferred)
    """
    if year or not month:
        return year, False

    today = today or date.today()
    if month > today.month:
        return today.year - 1, True
    return today.year, True
