"""
Text normalization helpers used for every name and label comparison
"""
import math
import re
import unicodedata
from typing import Any, List, Optional

from config.settings import (
    BOILERPLATE_PHRASES,
    BOILERPLATE_TOKENS,
    MONTH_MAP,
    NAME_ABBREVIATIONS,
)

_NON_ALNUM = re.compile(r'[^a-z0-9\s]')

_PHRASE_PATTERNS = [
    re.compile(r'\b' + r'\s+'.join(re.escape(word) for word in phrase.split()) + r'\b')
    for phrase in BOILERPLATE_PHRASES
]
_BOILERPLATE = set(BOILERPLATE_TOKENS)


def normalize_text(text: Any) -> str:
    """
    Normalize text for comparison.

    Folds accents to ASCII, lowercases, strips every character that is not a
    letter, digit or whitespace and collapses whitespace runs.

    Args:
        text: Text to normalize (None and NaN become an empty string)

    Returns:
        Normalized text
    """
    if text is None:
        return ""
    if isinstance(text, float) and math.isnan(text):
        return ""
    if not isinstance(text, str):
        text = str(text)

    text = unicodedata.normalize('NFKD', text)
    text = text.encode('ASCII', 'ignore').decode('ASCII')
    text = text.lower()
    text = _NON_ALNUM.sub('', text)

    return ' '.join(text.split())


def core_name(facility_name: Any) -> str:
    """
    Reduce a facility name to its distinguishing core.

    Example:
        "Colville Health & Rehabilitation of Cascadia" -> "colville"
        "Mt. Spokane SNF" -> "mount spokane"

    Args:
        facility_name: Raw facility name

    Returns:
        Core name (may be empty when the name is only boilerplate)
    """
    normalized = normalize_text(facility_name)
    if not normalized:
        return ""

    expanded = ' '.join(NAME_ABBREVIATIONS.get(token, token) for token in normalized.split())

    for pattern in _PHRASE_PATTERNS:
        expanded = pattern.sub(' ', expanded)

    tokens = [token for token in expanded.split() if token not in _BOILERPLATE]
    return ' '.join(tokens)


def significant_tokens(text: str, min_length: int = 3) -> set:
    """Whitespace tokens of at least `min_length` characters."""
    return {token for token in text.split() if len(token) >= min_length}


def month_from_text(value: Any) -> Optional[int]:
    """
    Map a month name or 3-letter abbreviation to its number.

    Args:
        value: Cell value such as "October", "oct" or "Oct 2025"

    Returns:
        Month number (1-12) or None
    """
    text = normalize_text(value)
    if not text:
        return None

    if text in MONTH_MAP:
        return MONTH_MAP[text]

    first = text.split()[0]
    return MONTH_MAP.get(first) or MONTH_MAP.get(first[:3])


def format_number(value: Optional[float]) -> str:
    """Format a number for messages without trailing zeros (728.0 -> "728")."""
    if value is None:
        return ""
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return text if text != "-0" else "0"


def join_messages(messages: List[str]) -> str:
    return '; '.join(message for message in messages if message)
