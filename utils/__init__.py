"""
Utilities package
"""
from .text_utils import (
    normalize_text,
    core_name,
    significant_tokens,
    month_from_text,
    format_number,
    join_messages,
)

from .similarity import (
    edit_similarity,
    token_overlap,
)

from .validation import (
    is_missing,
    cell_text,
    parse_float,
    parse_int,
    is_yes,
    as_date,
)

from .date_extractor import (
    extract_date,
    infer_missing_year,
)

__all__ = [
    'normalize_text',
    'core_name',
    'significant_tokens',
    'month_from_text',
    'format_number',
    'join_messages',
    'edit_similarity',
    'token_overlap',
    'is_missing',
    'cell_text',
    'parse_float',
    'parse_int',
    'is_yes',
    'as_date',
    'extract_date',
    'infer_missing_year',
]
