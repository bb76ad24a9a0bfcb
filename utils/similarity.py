"""
Similarity measures between normalized strings
"""
from rapidfuzz.distance import Levenshtein

from .text_utils import significant_tokens

TOKEN_MODE_MIN = "min"
TOKEN_MODE_JACCARD = "jaccard"


def edit_similarity(text1: str, text2: str) -> int:
    """
    Edit-distance similarity between two normalized strings.

    Args:
        text1: First string
        text2: Second string

    Returns:
        round((1 - distance / max_length) * 100), an integer from 0 to 100
    """
    if text1 == text2:
        return 100

    max_len = max(len(text1), len(text2))
    distance = Levenshtein.distance(text1, text2)

    return int(round((1 - distance / max_len) * 100))


def token_overlap(text1: str, text2: str, mode: str = TOKEN_MODE_JACCARD) -> float:
    """
    Token-set overlap between two normalized strings.

    Only tokens longer than two characters take part. The "min" mode divides
    the intersection by the smaller set, so a short name fully contained in a
    longer one scores 1.0. The "jaccard" mode divides by the union.

    Args:
        text1: First string
        text2: Second string
        mode: "min" or "jaccard"

    Returns:
        Score from 0.0 to 1.0 (0.0 when either token set is empty)
    """
    if mode not in (TOKEN_MODE_MIN, TOKEN_MODE_JACCARD):
        raise ValueError(f"Unknown token overlap mode: {mode}")

    tokens1 = significant_tokens(text1)
    tokens2 = significant_tokens(text2)

    if not tokens1 or not tokens2:
        return 0.0

    common = len(tokens1 & tokens2)

    if mode == TOKEN_MODE_MIN:
        return common / min(len(tokens1), len(tokens2))
    return common / len(tokens1 | tokens2)
